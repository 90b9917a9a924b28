"""
Unit tests for the revoked-token stores.

The SQL store runs against a throwaway in-memory SQLite engine with only the
jwt_blacklist table; no Flask app is involved.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from stockserver.app.models.jwt_blacklist import JwtBlacklist
from stockserver.app.services.blacklist_store import (
    BlacklistUnavailable,
    InMemoryBlacklistStore,
    SqlBlacklistStore,
)

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
HASH_A = "a" * 64
HASH_B = "b" * 64


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    JwtBlacklist.__table__.create(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request, session):
    if request.param == "memory":
        return InMemoryBlacklistStore()
    return SqlBlacklistStore(session)


class TestStoreContract:

    def test_unknown_hash_is_not_revoked(self, store):
        assert store.get(HASH_A, NOW) is None

    def test_set_then_get_returns_expiry(self, store):
        expires = NOW + timedelta(minutes=30)
        store.set(HASH_A, expires, user_id="65a1b2c3d4e5f60718293a4b")
        assert store.get(HASH_A, NOW) == expires

    def test_entry_past_expiry_reads_as_not_revoked(self, store):
        store.set(HASH_A, NOW + timedelta(minutes=1))
        assert store.get(HASH_A, NOW + timedelta(minutes=2)) is None

    def test_second_set_keeps_first_entry(self, store):
        first = NOW + timedelta(minutes=10)
        store.set(HASH_A, first)
        store.set(HASH_A, NOW + timedelta(hours=5), reason="refresh")
        assert store.get(HASH_A, NOW) == first

    def test_delete_expired(self, store):
        store.set(HASH_A, NOW - timedelta(seconds=1))
        store.set(HASH_B, NOW + timedelta(hours=1))

        assert store.delete_expired(NOW) == 1
        assert store.delete_expired(NOW) == 0
        assert store.get(HASH_B, NOW) is not None


class TestSqlStoreFailures:

    def _broken_session(self):
        session = MagicMock()
        error = OperationalError("SELECT 1", {}, Exception("server closed the connection"))
        session.execute.side_effect = error
        session.flush.side_effect = error
        return session

    def test_lookup_failure_raises_unavailable(self):
        with pytest.raises(BlacklistUnavailable):
            SqlBlacklistStore(self._broken_session()).get(HASH_A, NOW)

    def test_write_failure_raises_unavailable(self):
        with pytest.raises(BlacklistUnavailable):
            SqlBlacklistStore(self._broken_session()).set(HASH_A, NOW)

    def test_cleanup_failure_raises_unavailable(self):
        with pytest.raises(BlacklistUnavailable):
            SqlBlacklistStore(self._broken_session()).delete_expired(NOW)


class TestSqlStoreDuplicates:

    def test_row_written_by_another_session_is_kept(self):
        # One shared connection so both sessions see the same in-memory database.
        engine = create_engine("sqlite://", poolclass=StaticPool)
        JwtBlacklist.__table__.create(engine)
        first = NOW + timedelta(minutes=10)

        with Session(engine) as other:
            SqlBlacklistStore(other).set(HASH_A, first)
            other.commit()

        with Session(engine) as session:
            store = SqlBlacklistStore(session)
            store.set(HASH_B, NOW + timedelta(minutes=5))
            store.set(HASH_A, NOW + timedelta(hours=5), reason="refresh")
            session.commit()

            assert store.get(HASH_A, NOW) == first
            assert store.get(HASH_B, NOW) is not None
        engine.dispose()

    def test_duplicate_on_savepoint_path_is_a_noop(self):
        session = MagicMock()
        session.flush.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        SqlBlacklistStore(session).set(HASH_A, NOW)

        session.begin_nested.assert_called_once()
