"""
services/lookup.py — Public-id resolution and pagination shared by services.

find_by_public_id() is the reverse of security.public_id.hash_id: one
indexed equality query on the `public_id` column. A well-formed id with the
wrong prefix for the table (e.g. a "cat_" id sent to a product route) is
simply not found; a malformed id is INVALID_IDENTIFIER.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stockserver.app.errors import AppError
from stockserver.app.security.public_id import prefix_for, split_public_id


def find_by_public_id(session: Session, model, public_id: str):
    """Returns the row or None. Raises AppError(INVALID_IDENTIFIER, 400) on bad format."""
    prefix, _ = split_public_id(public_id)
    if prefix != prefix_for(model.__tablename__):
        return None
    return session.execute(
        select(model).where(model.public_id == public_id)
    ).scalar_one_or_none()


def get_or_404(session: Session, model, public_id: str, code: str, label: str):
    """find_by_public_id, raising AppError(code, 404) when nothing matches."""
    row = find_by_public_id(session, model, public_id)
    if row is None:
        raise AppError(code, f"{label} '{public_id}' not found.", 404)
    return row


def paginate(session: Session, stmt, page: int, per_page: int, max_per_page: int = 100):
    """
    Runs `stmt` for one page. Returns (rows, meta) where meta is
    {"page", "per_page", "total", "pages"}. Out-of-range values are clamped.
    """
    page = max(page or 1, 1)
    per_page = min(max(per_page or 1, 1), max_per_page)

    total = session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()

    rows = session.execute(
        stmt.limit(per_page).offset((page - 1) * per_page)
    ).scalars().all()

    return rows, {
        "page": page,
        "per_page": per_page,
        "total": total,
        "pages": (total + per_page - 1) // per_page,
    }
