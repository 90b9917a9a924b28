"""
models/product.py — Product table definition.

Key design points:
  - `price` and `weight` use Numeric — never Float.
  - `images` is a JSON list of {"url": str, "is_primary": bool} objects.
  - Stock flags (in stock / low stock) and image summaries are computed by the
    presenter from these columns; they are not stored.
"""

from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockserver.app.extensions import db
from stockserver.app.models.base import Identifiable, Timestamped


class ProductStatus(str, enum.Enum):
    ACTIVE   = "active"
    INACTIVE = "inactive"
    DRAFT    = "draft"


class Product(Identifiable, Timestamped, db.Model):
    __tablename__ = "products"

    __table_args__ = (
        # Same checks as the migration; the schemas and services are the first gate.
        CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # ON DELETE RESTRICT — a category with products cannot be removed.
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    sku: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProductStatus.ACTIVE.value,
    )

    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    weight:     Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    dimensions: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    meta_title:       Mapped[str | None] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────

    category: Mapped["Category | None"] = relationship(  # noqa: F821
        "Category",
        back_populates="products",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Product public_id={self.public_id!r} sku={self.sku!r}>"
