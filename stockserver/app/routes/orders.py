"""
routes/orders.py — Customer-facing order endpoints.

Endpoints (url_prefix=/api/orders, role "customer"):
  POST /orders   → 201  place an order (CHECKOUT_RATE_LIMIT)
  GET  /orders   → 200  the caller's orders
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from stockserver.app.extensions import db, limiter
from stockserver.app.middleware.auth_middleware import require_role
from stockserver.app.models.user import Role
from stockserver.app.schemas.order_schema import CreateOrderSchema
from stockserver.app.security.sanitize import sanitize_input
from stockserver.app.services import order_service

orders_bp = Blueprint("orders", __name__)


@orders_bp.route("", methods=["POST"])
@require_role(Role.CUSTOMER.value)
@limiter.limit(
    lambda: current_app.config["CHECKOUT_RATE_LIMIT"],
    error_message="Too many checkout requests. Please slow down.",
)
def place_order():
    """POST /orders — Place an order; stock is reserved immediately."""
    data = CreateOrderSchema().load(sanitize_input(request.get_json(force=True) or {}))
    result = order_service.create_order(db.session, g.current_user, data)
    db.session.commit()
    return jsonify({"success": True, "message": "Order placed.", "data": result}), 201


@orders_bp.route("", methods=["GET"])
@require_role(Role.CUSTOMER.value)
def my_orders():
    """GET /orders — Orders placed by the authenticated customer."""
    result = order_service.list_customer_orders(db.session, g.current_user)
    return jsonify({"success": True, "data": result}), 200
