"""
services/order_service.py — Order placement and administration.

Placement (customer):
  1. Resolve every product by public id; each must exist and be active.
  2. Lock the product rows (SELECT … FOR UPDATE where the backend supports
     it) and check stock for every line before changing any of them.
  3. Decrement stock, snapshot name and price into the order's items.
All inside the caller's transaction; the route commits once.

Administration (admin):
  - list / detail
  - status moves follow models.order.ORDER_TRANSITIONS
  - moving to "cancelled" returns the items to stock
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockserver.app.errors import AppError, ErrorCode
from stockserver.app.models.customer import Customer
from stockserver.app.models.order import ORDER_TRANSITIONS, Order, OrderStatus
from stockserver.app.models.product import Product, ProductStatus
from stockserver.app.presenters import present_order
from stockserver.app.services.lookup import get_or_404, paginate

logger = logging.getLogger(__name__)


def _order_number() -> str:
    return f"ORD-{datetime.now(timezone.utc):%Y%m%d}-{secrets.token_hex(3).upper()}"


def _customer_for(session: Session, user) -> Customer:
    customer = session.execute(
        select(Customer).where(Customer.user_id == user.id)
    ).scalar_one_or_none()
    if customer is None:
        raise AppError(
            ErrorCode.CUSTOMER_NOT_FOUND,
            "No customer profile exists for this account.",
            404,
        )
    return customer


def create_order(session: Session, user, data: dict) -> dict:
    """
    Places an order for the authenticated customer `user`.

    Raises:
      AppError(PRODUCT_NOT_FOUND, 404)   — unknown or inactive product
      AppError(INSUFFICIENT_STOCK, 422)  — any line exceeds available stock
    """
    customer = _customer_for(session, user)

    lines: list[tuple[Product, int]] = []
    for item in data["items"]:
        product = get_or_404(
            session, Product, item["product_id"], ErrorCode.PRODUCT_NOT_FOUND, "Product",
        )
        if product.status != ProductStatus.ACTIVE.value:
            raise AppError(
                ErrorCode.PRODUCT_NOT_FOUND,
                f"Product '{item['product_id']}' not found.",
                404,
            )
        lines.append((product, item["quantity"]))

    locked = {
        p.id: p
        for p in session.execute(
            select(Product)
            .where(Product.id.in_([product.id for product, _ in lines]))
            .with_for_update()
        ).scalars()
    }

    for product, quantity in lines:
        available = locked[product.id].stock_quantity
        if quantity > available:
            raise AppError(
                ErrorCode.INSUFFICIENT_STOCK,
                f"Only {available} unit(s) of '{product.name}' in stock.",
                422,
                field="items",
            )

    items = []
    subtotal = Decimal("0.00")
    for product, quantity in lines:
        locked[product.id].stock_quantity -= quantity
        line_total = Decimal(product.price) * quantity
        subtotal += line_total
        items.append({
            "product_id":   product.id,
            "product_name": product.name,
            "quantity":     quantity,
            "price":        str(Decimal(product.price)),
            "subtotal":     str(line_total),
        })

    order = Order(
        order_number=_order_number(),
        customer=customer,
        status=OrderStatus.PENDING.value,
        payment_method=data.get("payment_method"),
        subtotal=subtotal,
        total_amount=subtotal,
        items=items,
        shipping_address=data.get("shipping_address"),
        billing_address=data.get("billing_address"),
        notes=data.get("notes"),
    )
    session.add(order)
    session.flush()

    logger.info("Order %s placed by %s", order.order_number, customer.public_id)
    return present_order(order, include_items=True)


def list_customer_orders(session: Session, user) -> list[dict]:
    customer = _customer_for(session, user)
    orders = session.execute(
        select(Order)
        .where(Order.customer_id == customer.id)
        .order_by(Order.created_at.desc())
    ).scalars().all()
    return [present_order(o) for o in orders]


def list_orders(
        session: Session,
        status: str | None = None,
        page: int = 1,
        per_page: int = 20,
        max_per_page: int = 100,
) -> dict:
    stmt = select(Order).order_by(Order.created_at.desc(), Order.id)
    if status:
        stmt = stmt.where(Order.status == status)

    rows, meta = paginate(session, stmt, page, per_page, max_per_page)
    return {
        "items": [present_order(o) for o in rows],
        "pagination": meta,
    }


def get_order(session: Session, public_id: str) -> dict:
    order = get_or_404(session, Order, public_id, ErrorCode.ORDER_NOT_FOUND, "Order")
    return present_order(order, include_items=True)


def update_order(session: Session, public_id: str, data: dict) -> dict:
    """
    Changes status and/or payment status.

    Raises:
      AppError(INVALID_STATUS_TRANSITION, 422) — move not allowed from current status
    """
    order = get_or_404(session, Order, public_id, ErrorCode.ORDER_NOT_FOUND, "Order")

    new_status = data.get("status")
    if new_status and new_status != order.status:
        if new_status not in ORDER_TRANSITIONS.get(order.status, frozenset()):
            raise AppError(
                ErrorCode.INVALID_STATUS_TRANSITION,
                f"An order cannot move from '{order.status}' to '{new_status}'.",
                422,
                field="status",
            )
        if new_status == OrderStatus.CANCELLED.value:
            _restock(session, order)
        order.status = new_status

    if data.get("payment_status"):
        order.payment_status = data["payment_status"]

    session.flush()
    logger.info("Order %s updated: status=%s payment=%s", public_id, order.status, order.payment_status)
    return present_order(order, include_items=True)


def _restock(session: Session, order: Order) -> None:
    for item in order.items or []:
        product = session.get(Product, item.get("product_id"))
        # Deleted products have nothing to restock.
        if product is not None:
            product.stock_quantity += int(item.get("quantity", 0))
