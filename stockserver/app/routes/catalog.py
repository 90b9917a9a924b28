"""
routes/catalog.py — Public catalogue (no auth).

Endpoints (url_prefix=/api):
  GET /products                 → 200  active products, paginated
        ?q=<search>&category=<cat_…>&page=&per_page=
  GET /products/<product_id>    → 200  one active product
  GET /categories               → 200  active categories
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from stockserver.app.extensions import db
from stockserver.app.security.sanitize import sanitize_search
from stockserver.app.services import catalog_service

catalog_bp = Blueprint("catalog", __name__)


@catalog_bp.route("/products", methods=["GET"])
def list_products():
    """GET /products — Search and browse active products."""
    config = current_app.config
    result = catalog_service.list_products(
        session=db.session,
        search=sanitize_search(request.args.get("q"), config["SEARCH_MAX_LENGTH"]),
        category_id=request.args.get("category") or None,
        page=request.args.get("page", 1, type=int),
        per_page=request.args.get("per_page", config["DEFAULT_PAGE_SIZE"], type=int),
        low_stock_threshold=config["LOW_STOCK_THRESHOLD"],
        max_per_page=config["MAX_PAGE_SIZE"],
    )
    return jsonify({"success": True, "data": result}), 200


@catalog_bp.route("/products/<string:product_id>", methods=["GET"])
def get_product(product_id: str):
    """GET /products/:id — Product detail."""
    result = catalog_service.get_product(
        session=db.session,
        public_id=product_id,
        low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
    )
    return jsonify({"success": True, "data": result}), 200


@catalog_bp.route("/categories", methods=["GET"])
def list_categories():
    """GET /categories — Active categories in display order."""
    result = catalog_service.list_categories(session=db.session)
    return jsonify({"success": True, "data": result}), 200
