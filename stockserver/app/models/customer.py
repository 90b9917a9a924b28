"""
models/customer.py — Customer profile table.

One-to-one with a users row whose role is "customer". Contact details here
are PII: presenters mask them before they leave the server.
"""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockserver.app.extensions import db
from stockserver.app.models.base import Identifiable, Timestamped


class Customer(Identifiable, Timestamped, db.Model):
    __tablename__ = "customers"

    # ON DELETE CASCADE — the profile is owned by its user.
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name:  Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone:      Mapped[str | None] = mapped_column(String(30), nullable=True)
    address:    Mapped[str | None] = mapped_column(String(255), nullable=True)
    city:       Mapped[str | None] = mapped_column(String(100), nullable=True)
    state:      Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code:   Mapped[str | None] = mapped_column(String(20), nullable=True)
    country:    Mapped[str | None] = mapped_column(String(100), nullable=True)

    marketing_consent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="customer",
    )

    orders: Mapped[list["Order"]] = relationship(  # noqa: F821
        "Order",
        back_populates="customer",
        order_by="Order.created_at",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Customer public_id={self.public_id!r}>"
