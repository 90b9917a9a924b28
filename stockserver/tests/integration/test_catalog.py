"""
tests/integration/test_catalog.py — Categories and products, public and admin.

Endpoints covered:
  GET  /products, /products/:id, /categories          (public)
  CRUD /admin/products, /admin/categories             (admin)

Also covers what every endpoint shares: public ids in and out, the internal
id never leaving the server, the access gate on admin routes, and the error
envelope for unknown routes and methods.
"""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from stockserver.app.extensions import db
from stockserver.app.models.category import Category
from stockserver.app.models.product import Product

from .conftest import auth_headers, make_category, make_product


def _error(resp) -> str:
    return resp.get_json()["error_code"]


def _internal_ids(app, model) -> list[str]:
    with app.app_context():
        return list(db.session.execute(select(model.id)).scalars())


# ═══════════════════════════════════════════════════════════════════════════
# Admin: products
# ═══════════════════════════════════════════════════════════════════════════

class TestAdminProducts:

    def test_create_product(self, client, admin_token):
        category = make_category(client, admin_token)
        product = make_product(
            client, admin_token,
            sku="MUG-BLUE-01",
            category_id=category["id"],
            images=[{"url": "https://cdn.shop.test/mug.png", "is_primary": True}],
        )
        assert product["id"].startswith("prod_")
        assert product["price"] == "12.50"
        assert product["slug"] == "blue-mug"
        assert product["category_id"] == category["id"]
        assert product["category"] == "Mugs"
        assert product["primary_image"] == "https://cdn.shop.test/mug.png"
        assert product["is_in_stock"] is True
        assert product["is_low_stock"] is False

    def test_internal_id_never_returned(self, app, client, admin_token):
        category = make_category(client, admin_token)
        make_product(client, admin_token, category_id=category["id"])

        body = client.get("/api/admin/products", headers=auth_headers(admin_token)).get_data(as_text=True)
        for internal in _internal_ids(app, Product) + _internal_ids(app, Category):
            assert internal not in body

    def test_sku_generated_when_absent(self, client, admin_token):
        product = make_product(client, admin_token, name="Espresso Cup")
        assert product["sku"].startswith("ESPRES")

    def test_duplicate_sku_returns_409(self, client, admin_token):
        make_product(client, admin_token, sku="MUG-001")
        resp = client.post(
            "/api/admin/products",
            json={"name": "Other Mug", "price": "5.00", "sku": "MUG-001"},
            headers=auth_headers(admin_token),
        )
        assert resp.status_code == 409
        assert _error(resp) == "DUPLICATE_SKU"

    def test_same_name_gets_unique_slug(self, client, admin_token):
        make_product(client, admin_token)
        second = make_product(client, admin_token)
        assert second["slug"] == "blue-mug-2"

    def test_unknown_category_returns_404(self, client, admin_token):
        resp = client.post(
            "/api/admin/products",
            json={"name": "Mug", "price": "5.00", "category_id": "cat_0123456789abcdef"},
            headers=auth_headers(admin_token),
        )
        assert resp.status_code == 404
        assert _error(resp) == "CATEGORY_NOT_FOUND"

    def test_invalid_price_returns_400(self, client, admin_token):
        resp = client.post(
            "/api/admin/products",
            json={"name": "Mug", "price": "1.999"},
            headers=auth_headers(admin_token),
        )
        assert resp.status_code == 400
        assert _error(resp) == "INVALID_FIELD"
        assert resp.get_json()["field"] == "price"

    def test_update_product(self, client, admin_token):
        product = make_product(client, admin_token)
        resp = client.patch(
            f"/api/admin/products/{product['id']}",
            json={"price": "15.00", "status": "inactive"},
            headers=auth_headers(admin_token),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["id"] == product["id"]
        assert data["price"] == "15.00"
        assert data["status"] == "inactive"

    def test_delete_product(self, client, admin_token):
        product = make_product(client, admin_token)
        resp = client.delete(f"/api/admin/products/{product['id']}", headers=auth_headers(admin_token))
        assert resp.status_code == 200

        resp = client.get(f"/api/admin/products/{product['id']}", headers=auth_headers(admin_token))
        assert resp.status_code == 404
        assert _error(resp) == "PRODUCT_NOT_FOUND"

    def test_database_rejects_negative_stock(self, app):
        with app.app_context():
            db.session.add(Product(
                name="Broken Mug", slug="broken-mug", sku="MUG-NEG", price=Decimal("1.00"), stock_quantity=-1,
            ))
            with pytest.raises(IntegrityError):
                db.session.flush()
            db.session.rollback()

    def test_destructive_admin_action_is_audited(self, client, admin_token, caplog):
        product = make_product(client, admin_token)
        with caplog.at_level(logging.INFO, logger="stockserver.audit"):
            client.delete(f"/api/admin/products/{product['id']}", headers=auth_headers(admin_token))

        audit = [r for r in caplog.records if r.name == "stockserver.audit"]
        assert any(r.levelno == logging.INFO for r in audit)
        assert any(r.levelno == logging.WARNING for r in audit)


# ═══════════════════════════════════════════════════════════════════════════
# Admin routes behind the access gate
# ═══════════════════════════════════════════════════════════════════════════

class TestAdminGate:

    def test_no_token_is_401_not_403(self, client):
        resp = client.get("/api/admin/products")
        assert resp.status_code == 401
        assert _error(resp) == "TOKEN_ABSENT"

    def test_customer_token_is_403(self, client, customer):
        resp = client.get("/api/admin/products", headers=auth_headers(customer["access_token"]))
        assert resp.status_code == 403
        assert _error(resp) == "ADMIN_ACCESS_REQUIRED"

    def test_admin_after_logout_is_401(self, client, admin_token):
        client.post("/api/auth/logout", headers=auth_headers(admin_token))
        resp = client.get("/api/admin/products", headers=auth_headers(admin_token))
        assert resp.status_code == 401
        assert _error(resp) == "TOKEN_BLACKLISTED"


# ═══════════════════════════════════════════════════════════════════════════
# Admin: categories
# ═══════════════════════════════════════════════════════════════════════════

class TestAdminCategories:

    def test_create_child_category(self, client, admin_token):
        parent = make_category(client, admin_token, name="Kitchen")
        child = make_category(client, admin_token, name="Mugs", parent_id=parent["id"])
        assert child["parent_id"] == parent["id"]
        assert child["slug"] == "mugs"

    def test_explicit_duplicate_slug_returns_409(self, client, admin_token):
        make_category(client, admin_token, name="Mugs")
        resp = client.post(
            "/api/admin/categories",
            json={"name": "Cups", "slug": "mugs"},
            headers=auth_headers(admin_token),
        )
        assert resp.status_code == 409
        assert _error(resp) == "DUPLICATE_SLUG"

    def test_category_cannot_be_own_parent(self, client, admin_token):
        category = make_category(client, admin_token)
        resp = client.patch(
            f"/api/admin/categories/{category['id']}",
            json={"parent_id": category["id"]},
            headers=auth_headers(admin_token),
        )
        assert resp.status_code == 400
        assert _error(resp) == "INVALID_FIELD"

    def test_category_cannot_move_under_its_descendant(self, client, admin_token):
        kitchen = make_category(client, admin_token, name="Kitchen")
        mugs = make_category(client, admin_token, name="Mugs", parent_id=kitchen["id"])
        espresso = make_category(client, admin_token, name="Espresso", parent_id=mugs["id"])

        resp = client.patch(
            f"/api/admin/categories/{kitchen['id']}",
            json={"parent_id": espresso["id"]},
            headers=auth_headers(admin_token),
        )
        assert resp.status_code == 400
        assert _error(resp) == "INVALID_FIELD"
        assert resp.get_json()["field"] == "parent_id"

        resp = client.get(f"/api/admin/categories/{kitchen['id']}", headers=auth_headers(admin_token))
        assert resp.get_json()["data"]["parent_id"] is None

    def test_deleting_parent_moves_children_to_top_level(self, client, admin_token):
        kitchen = make_category(client, admin_token, name="Kitchen")
        mugs = make_category(client, admin_token, name="Mugs", parent_id=kitchen["id"])

        resp = client.delete(f"/api/admin/categories/{kitchen['id']}", headers=auth_headers(admin_token))
        assert resp.status_code == 200

        resp = client.get(f"/api/admin/categories/{mugs['id']}", headers=auth_headers(admin_token))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["parent_id"] is None

    def test_delete_category_with_products_returns_422(self, client, admin_token):
        category = make_category(client, admin_token)
        make_product(client, admin_token, category_id=category["id"])

        resp = client.delete(f"/api/admin/categories/{category['id']}", headers=auth_headers(admin_token))
        assert resp.status_code == 422
        assert _error(resp) == "CATEGORY_HAS_PRODUCTS"

    def test_delete_empty_category(self, client, admin_token):
        category = make_category(client, admin_token)
        resp = client.delete(f"/api/admin/categories/{category['id']}", headers=auth_headers(admin_token))
        assert resp.status_code == 200

        resp = client.get(f"/api/admin/categories/{category['id']}", headers=auth_headers(admin_token))
        assert resp.status_code == 404
        assert _error(resp) == "CATEGORY_NOT_FOUND"

    def test_products_count(self, client, admin_token):
        category = make_category(client, admin_token)
        make_product(client, admin_token, category_id=category["id"])
        resp = client.get(f"/api/admin/categories/{category['id']}", headers=auth_headers(admin_token))
        assert resp.get_json()["data"]["products_count"] == 1


# ═══════════════════════════════════════════════════════════════════════════
# Public catalogue
# ═══════════════════════════════════════════════════════════════════════════

class TestPublicCatalog:

    def test_lists_only_active_products(self, client, admin_token):
        make_product(client, admin_token, name="Visible Mug")
        make_product(client, admin_token, name="Hidden Mug", status="inactive")

        resp = client.get("/api/products")
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert [p["name"] for p in data["items"]] == ["Visible Mug"]
        assert data["pagination"]["total"] == 1

    def test_inactive_product_detail_is_404(self, client, admin_token):
        product = make_product(client, admin_token, status="inactive")
        resp = client.get(f"/api/products/{product['id']}")
        assert resp.status_code == 404
        assert _error(resp) == "PRODUCT_NOT_FOUND"

    def test_product_detail_by_public_id(self, client, admin_token):
        product = make_product(client, admin_token)
        resp = client.get(f"/api/products/{product['id']}")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["sku"] == product["sku"]

    def test_search(self, client, admin_token):
        make_product(client, admin_token, name="Blue Mug")
        make_product(client, admin_token, name="Red Plate")

        resp = client.get("/api/products?q=plate")
        assert [p["name"] for p in resp.get_json()["data"]["items"]] == ["Red Plate"]

    def test_search_operators_are_harmless(self, client, admin_token):
        make_product(client, admin_token)
        resp = client.get("/api/products?q=$where")
        assert resp.status_code == 200
        assert resp.get_json()["data"]["pagination"]["total"] == 1

    def test_category_filter(self, client, admin_token):
        mugs = make_category(client, admin_token, name="Mugs")
        plates = make_category(client, admin_token, name="Plates")
        make_product(client, admin_token, name="Blue Mug", category_id=mugs["id"])
        make_product(client, admin_token, name="Red Plate", category_id=plates["id"])

        resp = client.get(f"/api/products?category={plates['id']}")
        assert [p["name"] for p in resp.get_json()["data"]["items"]] == ["Red Plate"]

    def test_pagination(self, client, admin_token):
        for i in range(3):
            make_product(client, admin_token, name=f"Mug {i}")
        data = client.get("/api/products?per_page=2&page=2").get_json()["data"]
        assert len(data["items"]) == 1
        assert data["pagination"] == {"page": 2, "per_page": 2, "total": 3, "pages": 2}

    def test_malformed_id_returns_400(self, client):
        resp = client.get("/api/products/12345")
        assert resp.status_code == 400
        assert _error(resp) == "INVALID_IDENTIFIER"

    def test_wrong_prefix_returns_404(self, client, admin_token):
        category = make_category(client, admin_token)
        resp = client.get(f"/api/products/{category['id']}")
        assert resp.status_code == 404
        assert _error(resp) == "PRODUCT_NOT_FOUND"

    def test_public_categories_hide_inactive(self, client, admin_token):
        make_category(client, admin_token, name="Mugs")
        make_category(client, admin_token, name="Archive", status="inactive")
        names = [c["name"] for c in client.get("/api/categories").get_json()["data"]]
        assert names == ["Mugs"]


# ═══════════════════════════════════════════════════════════════════════════
# Envelope for framework errors
# ═══════════════════════════════════════════════════════════════════════════

class TestFrameworkErrors:

    def test_unknown_route(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        body = resp.get_json()
        assert body["success"] is False
        assert body["error_code"] == "ROUTE_NOT_FOUND"

    def test_method_not_allowed(self, client):
        resp = client.delete("/api/categories")
        assert resp.status_code == 405
        assert _error(resp) == "METHOD_NOT_ALLOWED"

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["database"] == "ok"
