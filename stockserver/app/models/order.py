"""
models/order.py — Order table definition.

Line items are stored denormalised in the `items` JSON column so an order
keeps the name and price the customer actually paid, even if the product is
later edited or deleted. Each item:

    {"product_id": <internal id>, "product_name": str, "quantity": int,
     "price": "<decimal str>", "subtotal": "<decimal str>"}
"""

from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import JSON, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockserver.app.extensions import db
from stockserver.app.models.base import Identifiable, Timestamped


class OrderStatus(str, enum.Enum):
    PENDING    = "pending"
    PROCESSING = "processing"
    SHIPPED    = "shipped"
    DELIVERED  = "delivered"
    CANCELLED  = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING  = "pending"
    PAID     = "paid"
    FAILED   = "failed"
    REFUNDED = "refunded"


# Allowed order status moves. Terminal states map to an empty set.
ORDER_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING.value:    frozenset({"processing", "cancelled"}),
    OrderStatus.PROCESSING.value: frozenset({"shipped", "cancelled"}),
    OrderStatus.SHIPPED.value:    frozenset({"delivered"}),
    OrderStatus.DELIVERED.value:  frozenset(),
    OrderStatus.CANCELLED.value:  frozenset(),
}


class Order(Identifiable, Timestamped, db.Model):
    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)

    # ON DELETE RESTRICT — order history outlives nothing it depends on.
    customer_id: Mapped[str] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING.value,
    )
    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
    )
    payment_method: Mapped[str | None] = mapped_column(String(40), nullable=True)

    subtotal:        Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    tax_amount:      Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    shipping_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_amount:    Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    shipping_address: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    billing_address:  Mapped[dict | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────

    customer: Mapped["Customer"] = relationship(  # noqa: F821
        "Customer",
        back_populates="orders",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Order public_id={self.public_id!r} status={self.status!r}>"
