"""
models/user.py — User table definition.

A user is either an admin or a customer (role) and is either active or
inactive (status). Status gates access regardless of token validity.
No business logic. No imports from services or routes.
"""

from __future__ import annotations

import enum

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockserver.app.extensions import db
from stockserver.app.models.base import Identifiable, Timestamped


class Role(str, enum.Enum):
    ADMIN    = "admin"
    CUSTOMER = "customer"


class UserStatus(str, enum.Enum):
    ACTIVE   = "active"
    INACTIVE = "inactive"


class User(Identifiable, Timestamped, db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'customer')", name="ck_users_role"),
        CheckConstraint("status IN ('active', 'inactive')", name="ck_users_status"),
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.CUSTOMER.value,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserStatus.ACTIVE.value,
    )

    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────

    customer: Mapped["Customer | None"] = relationship(  # noqa: F821
        "Customer",
        back_populates="user",
        uselist=False,
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User public_id={self.public_id!r} role={self.role!r}>"
