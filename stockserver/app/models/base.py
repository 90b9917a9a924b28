"""
models/base.py — Shared columns for identifiable tables.

Every table whose rows are exposed to clients mixes in `Identifiable`:

  id        : 24-hex internal id, primary key. Never serialised.
  public_id : hash_id(id, prefix-for-table). Unique + indexed so that a
              public id resolves with one equality lookup.

Both values are assigned in a before_insert hook, so services never set
them by hand. No business logic here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, event
from sqlalchemy.orm import Mapped, mapped_column

from stockserver.app.security.public_id import new_internal_id, public_id_for


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Identifiable:

    id: Mapped[str] = mapped_column(String(24), primary_key=True)

    public_id: Mapped[str] = mapped_column(
        String(24),
        nullable=False,
        unique=True,
        index=True,
    )


class Timestamped:

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


@event.listens_for(Identifiable, "before_insert", propagate=True)
def _assign_identifiers(mapper, connection, target) -> None:
    if not target.id:
        target.id = new_internal_id()
    target.public_id = public_id_for(target.__tablename__, target.id)
