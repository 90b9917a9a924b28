"""
Unit tests for auth_service branches not naturally hit in integration flow.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from stockserver.app.errors import AppError, ErrorCode
from stockserver.app.services import auth_service, token_service
from stockserver.app.services.blacklist_store import InMemoryBlacklistStore
from stockserver.app.services.token_service import REFRESH, TokenSettings

USER_ID  = "65a1b2c3d4e5f60718293a4b"
OTHER_ID = "65a1b2c3d4e5f60718293a4c"
SETTINGS = TokenSettings(secret="auth-unit-secret-key-with-enough-bytes-32")


def _session_returning(user):
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = user
    return session


def test_get_current_user_returns_presented_user():
    user = SimpleNamespace(
        id=USER_ID, name="Jane", email="jane@example.com",
        role="customer", status="active", avatar=None,
    )

    result = auth_service.get_current_user(user)

    assert result["email"] == "jane@example.com"
    assert result["id"].startswith("usr_")
    assert USER_ID not in result.values()


def test_login_unknown_email_raises_invalid_credentials():
    with pytest.raises(AppError) as exc_info:
        auth_service.login("nobody@example.com", "Passw0rd", "admin", SETTINGS, _session_returning(None))

    assert exc_info.value.code == ErrorCode.INVALID_CREDENTIALS
    assert exc_info.value.http_status == 401


def test_logout_ignores_expired_refresh_token():
    store = InMemoryBlacklistStore()
    access = token_service.issue_token(USER_ID, "customer", SETTINGS)
    access_claims = token_service.decode_token(access, SETTINGS)
    stale_refresh = token_service.issue_token(
        USER_ID, "customer", SETTINGS, REFRESH,
        now=datetime.now(timezone.utc) - timedelta(days=30),
    )

    auth_service.logout(access, access_claims, SETTINGS, store, raw_refresh_token=stale_refresh)

    assert len(store) == 1


def test_logout_rejects_refresh_token_of_other_user():
    store = InMemoryBlacklistStore()
    access = token_service.issue_token(USER_ID, "customer", SETTINGS)
    access_claims = token_service.decode_token(access, SETTINGS)
    foreign_refresh = token_service.issue_token(OTHER_ID, "customer", SETTINGS, REFRESH)

    with pytest.raises(AppError) as exc_info:
        auth_service.logout(access, access_claims, SETTINGS, store, raw_refresh_token=foreign_refresh)

    assert exc_info.value.code == ErrorCode.TOKEN_INVALID
    # Nothing was revoked, not even the access token.
    assert len(store) == 0


def test_logout_revokes_both_tokens():
    store = InMemoryBlacklistStore()
    pair = token_service.issue_token_pair(USER_ID, "customer", SETTINGS)
    access_claims = token_service.decode_token(pair["access_token"], SETTINGS)

    auth_service.logout(
        pair["access_token"], access_claims, SETTINGS, store,
        raw_refresh_token=pair["refresh_token"],
    )

    assert len(store) == 2


def test_logout_with_malformed_refresh_token_revokes_nothing():
    store = InMemoryBlacklistStore()
    access = token_service.issue_token(USER_ID, "customer", SETTINGS)
    access_claims = token_service.decode_token(access, SETTINGS)

    with pytest.raises(AppError) as exc_info:
        auth_service.logout(access, access_claims, SETTINGS, store, raw_refresh_token="not-a-jwt")

    assert exc_info.value.code == ErrorCode.TOKEN_INVALID
    assert len(store) == 0


def test_refresh_with_user_store_down_is_503():
    store = InMemoryBlacklistStore()
    refresh = token_service.issue_token(USER_ID, "customer", SETTINGS, REFRESH)
    session = MagicMock()
    session.get.side_effect = OperationalError("SELECT users", {}, Exception("db down"))

    with pytest.raises(AppError) as exc_info:
        auth_service.refresh_tokens(refresh, SETTINGS, store, session)

    assert exc_info.value.code == ErrorCode.SERVICE_UNAVAILABLE
    assert exc_info.value.http_status == 503
    # The refresh token is still usable once the store is back.
    assert len(store) == 0


def test_user_loader_returns_none_for_unknown_user():
    session = MagicMock()
    session.get.return_value = None

    assert auth_service.user_loader(session)(USER_ID) is None
