"""
models/category.py — Product category table (optionally nested).
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockserver.app.extensions import db
from stockserver.app.models.base import Identifiable, Timestamped


class Category(Identifiable, Timestamped, db.Model):
    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(140), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ON DELETE SET NULL — children survive their parent's removal.
    parent_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    image_url:        Mapped[str | None] = mapped_column(String(500), nullable=True)
    meta_title:       Mapped[str | None] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────

    parent: Mapped["Category | None"] = relationship(
        "Category",
        remote_side="Category.id",
    )

    products: Mapped[list["Product"]] = relationship(  # noqa: F821
        "Product",
        back_populates="category",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Category public_id={self.public_id!r} slug={self.slug!r}>"
