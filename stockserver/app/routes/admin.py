"""
routes/admin.py — Admin back-office endpoints.

Every handler is wrapped in @require_admin: the full access gate with role
"admin", plus one audit log record per request.

Endpoints (url_prefix=/api/admin):
  GET    /products                 POST   /products
  GET    /products/:id             PATCH  /products/:id      DELETE /products/:id
  GET    /categories               POST   /categories
  GET    /categories/:id           PATCH  /categories/:id    DELETE /categories/:id
  GET    /customers                GET    /customers/:id     PATCH  /customers/:id
  GET    /orders                   GET    /orders/:id        PATCH  /orders/:id
  GET    /inventory/stock-levels   GET    /inventory/low-stock
  PUT    /inventory/:product_id
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from stockserver.app.extensions import db
from stockserver.app.middleware.auth_middleware import require_admin
from stockserver.app.schemas.catalog_schema import CategorySchema, ProductSchema, StockUpdateSchema
from stockserver.app.schemas.order_schema import CustomerStatusSchema, OrderStatusSchema
from stockserver.app.security.sanitize import sanitize_input, sanitize_search
from stockserver.app.services import catalog_service, customer_service, order_service

admin_bp = Blueprint("admin", __name__)


def _body() -> dict:
    return sanitize_input(request.get_json(force=True) or {})


def _threshold() -> int:
    return current_app.config["LOW_STOCK_THRESHOLD"]


def _page_args() -> dict:
    config = current_app.config
    return {
        "page": request.args.get("page", 1, type=int),
        "per_page": request.args.get("per_page", config["DEFAULT_PAGE_SIZE"], type=int),
        "max_per_page": config["MAX_PAGE_SIZE"],
    }


# ── Products ───────────────────────────────────────────────────────────────

@admin_bp.route("/products", methods=["GET"])
@require_admin
def list_products():
    result = catalog_service.list_products(
        session=db.session,
        search=sanitize_search(request.args.get("q"), current_app.config["SEARCH_MAX_LENGTH"]),
        category_id=request.args.get("category") or None,
        include_inactive=True,
        low_stock_threshold=_threshold(),
        **_page_args(),
    )
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/products", methods=["POST"])
@require_admin
def create_product():
    data = ProductSchema().load(_body())
    result = catalog_service.create_product(db.session, data, _threshold())
    db.session.commit()
    return jsonify({"success": True, "message": "Product created.", "data": result}), 201


@admin_bp.route("/products/<string:product_id>", methods=["GET"])
@require_admin
def get_product(product_id: str):
    result = catalog_service.get_product(
        db.session, product_id, include_inactive=True, low_stock_threshold=_threshold(),
    )
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/products/<string:product_id>", methods=["PATCH", "PUT"])
@require_admin
def update_product(product_id: str):
    data = ProductSchema(partial=True).load(_body())
    result = catalog_service.update_product(db.session, product_id, data, _threshold())
    db.session.commit()
    return jsonify({"success": True, "message": "Product updated.", "data": result}), 200


@admin_bp.route("/products/<string:product_id>", methods=["DELETE"])
@require_admin
def delete_product(product_id: str):
    catalog_service.delete_product(db.session, product_id)
    db.session.commit()
    return jsonify({"success": True, "message": "Product deleted."}), 200


# ── Categories ─────────────────────────────────────────────────────────────

@admin_bp.route("/categories", methods=["GET"])
@require_admin
def list_categories():
    result = catalog_service.list_categories(db.session, include_inactive=True)
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/categories", methods=["POST"])
@require_admin
def create_category():
    data = CategorySchema().load(_body())
    result = catalog_service.create_category(db.session, data)
    db.session.commit()
    return jsonify({"success": True, "message": "Category created.", "data": result}), 201


@admin_bp.route("/categories/<string:category_id>", methods=["GET"])
@require_admin
def get_category(category_id: str):
    result = catalog_service.get_category(db.session, category_id)
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/categories/<string:category_id>", methods=["PATCH", "PUT"])
@require_admin
def update_category(category_id: str):
    data = CategorySchema(partial=True).load(_body())
    result = catalog_service.update_category(db.session, category_id, data)
    db.session.commit()
    return jsonify({"success": True, "message": "Category updated.", "data": result}), 200


@admin_bp.route("/categories/<string:category_id>", methods=["DELETE"])
@require_admin
def delete_category(category_id: str):
    catalog_service.delete_category(db.session, category_id)
    db.session.commit()
    return jsonify({"success": True, "message": "Category deleted."}), 200


# ── Customers ──────────────────────────────────────────────────────────────

@admin_bp.route("/customers", methods=["GET"])
@require_admin
def list_customers():
    result = customer_service.list_customers(db.session, **_page_args())
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/customers/<string:customer_id>", methods=["GET"])
@require_admin
def get_customer(customer_id: str):
    result = customer_service.get_customer(db.session, customer_id)
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/customers/<string:customer_id>", methods=["PATCH"])
@require_admin
def update_customer(customer_id: str):
    data = CustomerStatusSchema().load(_body())
    result = customer_service.update_customer_status(db.session, customer_id, data["status"])
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200


# ── Orders ─────────────────────────────────────────────────────────────────

@admin_bp.route("/orders", methods=["GET"])
@require_admin
def list_orders():
    result = order_service.list_orders(
        db.session,
        status=request.args.get("status") or None,
        **_page_args(),
    )
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/orders/<string:order_id>", methods=["GET"])
@require_admin
def get_order(order_id: str):
    result = order_service.get_order(db.session, order_id)
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/orders/<string:order_id>", methods=["PATCH"])
@require_admin
def update_order(order_id: str):
    data = OrderStatusSchema().load(_body())
    result = order_service.update_order(db.session, order_id, data)
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200


# ── Inventory ──────────────────────────────────────────────────────────────

@admin_bp.route("/inventory/stock-levels", methods=["GET"])
@require_admin
def stock_levels():
    result = catalog_service.stock_levels(db.session, _threshold())
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/inventory/low-stock", methods=["GET"])
@require_admin
def low_stock():
    result = catalog_service.low_stock(db.session, _threshold())
    return jsonify({"success": True, "data": result}), 200


@admin_bp.route("/inventory/<string:product_id>", methods=["PUT"])
@require_admin
def update_stock(product_id: str):
    data = StockUpdateSchema().load(_body())
    result = catalog_service.update_stock(
        db.session,
        product_id,
        stock_quantity=data.get("stock_quantity"),
        adjustment=data.get("adjustment"),
        low_stock_threshold=_threshold(),
    )
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200
