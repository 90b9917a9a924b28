"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session with create_app("testing").
    TestingConfig points at in-memory SQLite unless TEST_DATABASE_URL is set
    (e.g. a PostgreSQL stockserver_test database).
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order and the rate-limit
    counters are cleared, so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register_customer(client, ...)  → dict with user + tokens
  - login_customer(client, ...)     → dict with user + tokens
  - make_admin(app, ...)            → public id of a new admin
  - login_admin(client, ...)        → dict with user + tokens
  - auth_headers(token)             → {"Authorization": "Bearer <token>"}
  - make_category(client, ...)      → category dict
  - make_product(client, ...)       → product dict

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest

from stockserver.app import create_app
from stockserver.app.extensions import db as _db
from stockserver.app.extensions import limiter

ADMIN_EMAIL    = "admin@shop.test"
ADMIN_PASSWORD = "AdminPass1"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire
    test session, creates every table, and drops them at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    orders reference customers (RESTRICT), products reference categories
    (RESTRICT), customers reference users.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        from sqlalchemy import text
        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM jwt_blacklist"))
            conn.execute(text("DELETE FROM orders"))
            conn.execute(text("DELETE FROM products"))
            conn.execute(text("DELETE FROM categories"))
            conn.execute(text("DELETE FROM customers"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()

        limiter.reset()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def admin_token(app, client) -> str:
    make_admin(app)
    return login_admin(client)["access_token"]


@pytest.fixture
def customer(client) -> dict:
    return register_customer(client)


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def register_customer(
    client,
    name: str = "Jane Doe",
    email: str = "jane@shop.test",
    password: str = "Passw0rd",
    phone: str | None = "0771234567",
) -> dict:
    """
    Registers a customer and returns the response data dict.
    Returns: {"user": {...}, "access_token", "refresh_token", "token_type", "expires_in"}
    """
    payload = {"name": name, "email": email, "password": password}
    if phone is not None:
        payload["phone"] = phone
    resp = client.post("/api/auth/customer/register", json=payload)
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login_customer(client, email: str = "jane@shop.test", password: str = "Passw0rd") -> dict:
    resp = client.post("/api/auth/customer/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"customer login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_admin(app, email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD, name: str = "Shop Admin") -> str:
    """Creates an admin directly through the service layer; returns its public id."""
    from stockserver.app.services.auth_service import create_admin

    with app.app_context():
        admin = create_admin(name=name, email=email, password=password, session=_db.session)
        _db.session.commit()
        return admin.public_id


def login_admin(client, email: str = ADMIN_EMAIL, password: str = ADMIN_PASSWORD) -> dict:
    resp = client.post("/api/auth/admin/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"admin login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_category(client, token: str, name: str = "Mugs", **fields) -> dict:
    resp = client.post(
        "/api/admin/categories",
        json={"name": name, **fields},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_category failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_product(
    client,
    token: str,
    name: str = "Blue Mug",
    price: str = "12.50",
    stock_quantity: int = 25,
    **fields,
) -> dict:
    resp = client.post(
        "/api/admin/products",
        json={"name": name, "price": price, "stock_quantity": stock_quantity, **fields},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_product failed: {resp.get_json()}"
    return resp.get_json()["data"]
