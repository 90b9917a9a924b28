"""
tests/integration/test_rate_limits.py — Throttling at the HTTP boundary.

  AUTH_RATE_LIMIT      login + registration, one bucket per client IP
  CHECKOUT_RATE_LIMIT  POST /orders, per customer

The testing config keeps every limit far out of reach; each test lowers the
one it exercises.
"""

from __future__ import annotations

from .conftest import auth_headers, make_product, register_customer

LOGIN_BODY = {"email": "ghost@shop.test", "password": "Passw0rd"}


class TestAuthLimit:

    def test_login_attempts_are_throttled(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "AUTH_RATE_LIMIT", "3 per minute")

        for _ in range(3):
            resp = client.post("/api/auth/customer/login", json=LOGIN_BODY)
            assert resp.status_code == 401

        resp = client.post("/api/auth/customer/login", json=LOGIN_BODY)
        assert resp.status_code == 429
        assert resp.get_json() == {
            "success": False,
            "message": "Too many login attempts. Please try again in 1 minute.",
            "error_code": "RATE_LIMIT_EXCEEDED",
        }

    def test_login_and_register_share_one_bucket(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "AUTH_RATE_LIMIT", "2 per minute")

        client.post("/api/auth/admin/login", json=LOGIN_BODY)
        client.post("/api/auth/customer/login", json=LOGIN_BODY)

        resp = client.post("/api/auth/customer/register", json={
            "name": "Jane Doe", "email": "jane@shop.test", "password": "Passw0rd",
        })
        assert resp.status_code == 429

    def test_other_routes_are_not_counted(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "AUTH_RATE_LIMIT", "1 per minute")

        for _ in range(3):
            assert client.get("/api/categories").status_code == 200

        assert client.post("/api/auth/customer/login", json=LOGIN_BODY).status_code == 401


class TestCheckoutLimit:

    def test_order_placement_is_throttled(self, app, client, admin_token, customer, monkeypatch):
        mug = make_product(client, admin_token, stock_quantity=50)
        monkeypatch.setitem(app.config, "CHECKOUT_RATE_LIMIT", "2 per minute")

        def place():
            return client.post(
                "/api/orders",
                json={"items": [{"product_id": mug["id"], "quantity": 1}]},
                headers=auth_headers(customer["access_token"]),
            )

        assert place().status_code == 201
        assert place().status_code == 201

        resp = place()
        assert resp.status_code == 429
        assert resp.get_json()["error_code"] == "RATE_LIMIT_EXCEEDED"
        assert resp.get_json()["message"] == "Too many checkout requests. Please slow down."

    def test_listing_orders_is_not_checkout(self, app, client, monkeypatch):
        data = register_customer(client)
        monkeypatch.setitem(app.config, "CHECKOUT_RATE_LIMIT", "1 per minute")

        for _ in range(3):
            resp = client.get("/api/orders", headers=auth_headers(data["access_token"]))
            assert resp.status_code == 200
