"""
services/blacklist_store.py — Revoked-token store.

The token service never touches a global: it is handed a BlacklistStore.

    get(token_hash, now)             -> expiry datetime, or None if not revoked
    set(token_hash, expires_at, ...) -> record a revocation (idempotent)
    delete_expired(now)              -> number of entries removed (idempotent)

Implementations:
  InMemoryBlacklistStore — lock-protected dict. Per process; tests and
                           single-worker development.
  SqlBlacklistStore      — jwt_blacklist table through the request's
                           SQLAlchemy session. Shared by every worker.

Infrastructure failures are raised as BlacklistUnavailable so callers can
answer 503 instead of mistaking an outage for a bad token.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from stockserver.app.models.jwt_blacklist import JwtBlacklist

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO NOTHING.
_INSERT_IGNORING_DUPLICATES = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class BlacklistUnavailable(Exception):
    """The revocation store could not be reached."""


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BlacklistStore:

    def get(self, token_hash: str, now: datetime) -> datetime | None:
        raise NotImplementedError

    def set(
            self,
            token_hash: str,
            expires_at: datetime,
            user_id: str | None = None,
            reason: str = "logout",
    ) -> None:
        raise NotImplementedError

    def delete_expired(self, now: datetime) -> int:
        raise NotImplementedError


class InMemoryBlacklistStore(BlacklistStore):

    def __init__(self) -> None:
        self._entries: dict[str, tuple[datetime, str | None, str]] = {}
        self._lock = threading.Lock()

    def get(self, token_hash: str, now: datetime) -> datetime | None:
        with self._lock:
            entry = self._entries.get(token_hash)
        if entry is None or entry[0] <= now:
            return None
        return entry[0]

    def set(
            self,
            token_hash: str,
            expires_at: datetime,
            user_id: str | None = None,
            reason: str = "logout",
    ) -> None:
        with self._lock:
            self._entries.setdefault(token_hash, (expires_at, user_id, reason))

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry[0] <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class SqlBlacklistStore(BlacklistStore):
    """
    Reads and writes go through the caller's session. `set` writes inside
    the caller's transaction; the route commits, as with every other write.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, token_hash: str, now: datetime) -> datetime | None:
        try:
            expires_at = self.session.execute(
                select(JwtBlacklist.expires_at).where(
                    JwtBlacklist.token_hash == token_hash,
                    JwtBlacklist.expires_at > now,
                )
            ).scalar_one_or_none()
        except (OperationalError, InterfaceError) as exc:
            logger.error("Token blacklist lookup failed: %s", exc)
            raise BlacklistUnavailable(str(exc)) from exc

        return _as_utc(expires_at) if expires_at is not None else None

    def set(
            self,
            token_hash: str,
            expires_at: datetime,
            user_id: str | None = None,
            reason: str = "logout",
    ) -> None:
        row = {
            "token_hash": token_hash,
            "expires_at": expires_at,
            "user_id": user_id,
            "reason": reason,
        }
        try:
            # Primary key on token_hash: a second revocation of the same
            # token, concurrent or not, keeps the first row and changes nothing.
            dialect = self.session.get_bind(JwtBlacklist).dialect.name
            insert = _INSERT_IGNORING_DUPLICATES.get(dialect)
            if insert is not None:
                self.session.execute(
                    insert(JwtBlacklist)
                    .values(**row)
                    .on_conflict_do_nothing(index_elements=["token_hash"])
                )
                return

            try:
                with self.session.begin_nested():
                    self.session.add(JwtBlacklist(**row))
                    self.session.flush()
            except IntegrityError:
                logger.debug("Token already blacklisted: %s", token_hash[:12])
        except (OperationalError, InterfaceError) as exc:
            logger.error("Token blacklist write failed: %s", exc)
            raise BlacklistUnavailable(str(exc)) from exc

    def delete_expired(self, now: datetime) -> int:
        try:
            result = self.session.execute(
                delete(JwtBlacklist)
                .where(JwtBlacklist.expires_at <= now)
                .execution_options(synchronize_session=False)
            )
        except (OperationalError, InterfaceError) as exc:
            logger.error("Token blacklist cleanup failed: %s", exc)
            raise BlacklistUnavailable(str(exc)) from exc
        return result.rowcount or 0
