"""
tests/unit/test_access_gate_units.py — evaluate_access() ordering.

What this file proves:
  - Authorization header parsing (absent / malformed / bare "Bearer")
  - checks run in order and the first failure wins: a request with no token
    is TOKEN_ABSENT even on an admin route, never a role error
  - role mismatch is the 403 for the required role, after every token and
    account check has passed
  - infrastructure failures of the blacklist or user store are 503, not 401

evaluate_access() takes its collaborators as arguments, so no Flask app or
database is needed.
"""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest

from stockserver.app.errors import AppError, ErrorCode, service_unavailable
from stockserver.app.middleware.auth_middleware import evaluate_access, extract_bearer_token
from stockserver.app.services import token_service
from stockserver.app.services.blacklist_store import InMemoryBlacklistStore
from stockserver.app.services.token_service import TokenSettings

from .test_token_service_units import BrokenStore

ADMIN_ID    = "65a1b2c3d4e5f60718293a4b"
CUSTOMER_ID = "65a1b2c3d4e5f60718293a4c"
SETTINGS = TokenSettings(secret="gate-test-secret-key-with-enough-bytes-32", access_ttl=timedelta(minutes=5))


def _loader(**status_by_id):
    users = {
        ADMIN_ID: SimpleNamespace(id=ADMIN_ID, public_id="usr_admin", role="admin",
                                  status=status_by_id.get(ADMIN_ID, "active")),
        CUSTOMER_ID: SimpleNamespace(id=CUSTOMER_ID, public_id="usr_cust", role="customer",
                                     status=status_by_id.get(CUSTOMER_ID, "active")),
    }
    return users.get


def _bearer(user_id: str, role: str) -> str:
    return f"Bearer {token_service.issue_token(user_id, role, SETTINGS)}"


def _gate(header, required_role=None, blacklist=None, loader=None):
    return evaluate_access(
        header,
        SETTINGS,
        blacklist if blacklist is not None else InMemoryBlacklistStore(),
        loader or _loader(),
        required_role=required_role,
        request_meta={"ip": "127.0.0.1", "path": "/api/admin/products", "user_agent": "pytest"},
    )


class TestExtractBearerToken:

    @pytest.mark.parametrize("header", [None, "", "   ", "Bearer", "bearer "])
    def test_no_token(self, header):
        assert extract_bearer_token(header) is None

    def test_token_returned(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize("header", ["Basic dXNlcjpwYXNz", "Token abc", "Bearer a b"])
    def test_wrong_scheme_is_invalid(self, header):
        with pytest.raises(AppError) as exc_info:
            extract_bearer_token(header)
        assert exc_info.value.code == ErrorCode.TOKEN_INVALID


class TestGateOrder:

    def test_admin_admitted_on_admin_route(self):
        context = _gate(_bearer(ADMIN_ID, "admin"), required_role="admin")
        assert context.user.id == ADMIN_ID
        assert context.role == "admin"
        assert context.claims.user_id == ADMIN_ID

    def test_any_role_admitted_without_required_role(self):
        assert _gate(_bearer(CUSTOMER_ID, "customer")).role == "customer"

    def test_absent_token_is_401_not_role_error(self):
        with pytest.raises(AppError) as exc_info:
            _gate(None, required_role="admin")
        assert exc_info.value.code == ErrorCode.TOKEN_ABSENT
        assert exc_info.value.http_status == 401

    def test_customer_on_admin_route_is_403(self):
        with pytest.raises(AppError) as exc_info:
            _gate(_bearer(CUSTOMER_ID, "customer"), required_role="admin")
        assert exc_info.value.code == ErrorCode.ADMIN_ACCESS_REQUIRED
        assert exc_info.value.http_status == 403
        assert exc_info.value.message == "Unauthorized. Admin access required."

    def test_admin_on_customer_route_is_403(self):
        with pytest.raises(AppError) as exc_info:
            _gate(_bearer(ADMIN_ID, "admin"), required_role="customer")
        assert exc_info.value.code == ErrorCode.CUSTOMER_ACCESS_REQUIRED

    def test_role_comes_from_stored_user_not_token(self):
        # Token claims "admin", but the stored user is a customer.
        with pytest.raises(AppError) as exc_info:
            _gate(_bearer(CUSTOMER_ID, "admin"), required_role="admin")
        assert exc_info.value.code == ErrorCode.ADMIN_ACCESS_REQUIRED

    def test_inactive_checked_before_role(self):
        with pytest.raises(AppError) as exc_info:
            _gate(
                _bearer(CUSTOMER_ID, "customer"),
                required_role="admin",
                loader=_loader(**{CUSTOMER_ID: "inactive"}),
            )
        assert exc_info.value.code == ErrorCode.ACCOUNT_INACTIVE

    def test_blacklisted_checked_before_user(self):
        store = InMemoryBlacklistStore()
        header = _bearer(ADMIN_ID, "admin")
        raw = header.split()[1]
        token_service.revoke_token(raw, token_service.decode_token(raw, SETTINGS), store)

        with pytest.raises(AppError) as exc_info:
            _gate(header, required_role="admin", blacklist=store, loader=lambda user_id: None)
        assert exc_info.value.code == ErrorCode.TOKEN_BLACKLISTED

    def test_invalid_token_checked_before_blacklist(self):
        with pytest.raises(AppError) as exc_info:
            _gate("Bearer not.a.token", blacklist=BrokenStore())
        assert exc_info.value.code == ErrorCode.TOKEN_INVALID


class TestInfrastructureFailures:

    def test_blacklist_unavailable_is_503(self):
        with pytest.raises(AppError) as exc_info:
            _gate(_bearer(ADMIN_ID, "admin"), blacklist=BrokenStore())
        assert exc_info.value.code == ErrorCode.SERVICE_UNAVAILABLE
        assert exc_info.value.http_status == 503

    def test_user_store_unavailable_is_503(self):
        def loader(user_id):
            raise service_unavailable("user directory")

        with pytest.raises(AppError) as exc_info:
            _gate(_bearer(ADMIN_ID, "admin"), loader=loader)
        assert exc_info.value.http_status == 503
