"""
models/jwt_blacklist.py — Revoked-token table.

Keyed by the SHA-256 hex digest of the raw token; the raw token is never
stored. Rows are inserted on logout / refresh rotation and deleted by the
`flask cleanup-blacklist` command once `expires_at` has passed.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from stockserver.app.extensions import db
from stockserver.app.models.base import utcnow


class JwtBlacklist(db.Model):
    __tablename__ = "jwt_blacklist"

    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    # Internal user id of the revoking user. Plain column, no FK: entries
    # must survive user deletion until they expire.
    user_id: Mapped[str | None] = mapped_column(String(24), nullable=True)

    reason: Mapped[str] = mapped_column(String(20), nullable=False, default="logout")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<JwtBlacklist reason={self.reason!r} expires_at={self.expires_at}>"
