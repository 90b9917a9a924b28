"""
middleware/auth_middleware.py — Access gate and route decorators.

evaluate_access() is the gate itself, a plain function of its inputs:

  1. token present          → TOKEN_ABSENT (401)
  2. token structurally ok  → TOKEN_INVALID (401)
  3. token not expired      → TOKEN_EXPIRED (401)
  4. token not blacklisted  → TOKEN_BLACKLISTED (401)
  5. user exists            → USER_NOT_FOUND (404)
  6. user active            → ACCOUNT_INACTIVE (403)
  7. role matches, if asked → ADMIN_ACCESS_REQUIRED / CUSTOMER_ACCESS_REQUIRED (403)

The first failing check raises; nothing after it runs. Steps 2–6 are
token_service.validate_token(); this module adds header parsing and the
role check.

The decorators wire the gate to Flask:

    @require_auth          any active user
    @require_role("admin") active user with that role
    @require_admin         shorthand, plus an audit log line per request

On admit they set g.current_user, g.role, g.token_claims and g.raw_token.
Routes never catch AppError; the global handler renders it.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Callable

from flask import current_app, g, request

from stockserver.app.errors import AppError, ErrorCode, role_required_error
from stockserver.app.extensions import db
from stockserver.app.models.user import Role, User
from stockserver.app.services import token_service
from stockserver.app.services.auth_service import user_loader
from stockserver.app.services.blacklist_store import BlacklistStore, SqlBlacklistStore
from stockserver.app.services.token_service import TokenClaims, TokenSettings

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("stockserver.audit")

# Never written to the audit log.
_REDACTED_FIELDS = frozenset({
    "password",
    "password_confirmation",
    "current_password",
    "token",
    "refresh_token",
})


@dataclass(frozen=True)
class AuthContext:
    user: User
    role: str
    claims: TokenClaims
    raw_token: str


# ── Collaborators resolved from the app ────────────────────────────────────

def current_token_settings() -> TokenSettings:
    return TokenSettings.from_config(current_app.config)


def current_blacklist() -> BlacklistStore:
    """
    The configured revocation store. "memory" returns the per-app instance
    created by the factory; anything else uses the jwt_blacklist table.
    """
    if current_app.config.get("TOKEN_BLACKLIST_BACKEND") == "memory":
        return current_app.extensions["token_blacklist"]
    return SqlBlacklistStore(db.session)


# ── The gate ───────────────────────────────────────────────────────────────

def extract_bearer_token(auth_header: str | None) -> str | None:
    """
    Returns the raw token from an Authorization header value, or None when
    no token was sent.

    Raises:
      AppError(TOKEN_INVALID, 401) — header present but not "Bearer <token>"
    """
    if not auth_header or not auth_header.strip():
        return None

    parts = auth_header.split()
    if parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )
    if len(parts) == 1:
        return None
    if len(parts) != 2:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )
    return parts[1]


def evaluate_access(
        auth_header: str | None,
        settings: TokenSettings,
        blacklist: BlacklistStore,
        user_loader: Callable[[str], User | None],
        required_role: str | None = None,
        request_meta: dict | None = None,
) -> AuthContext:
    """
    Runs the ordered checks described in the module docstring and returns
    the admitted request's AuthContext.

    `request_meta` (ip, path, user_agent) is only used to log role denials.
    """
    raw_token = extract_bearer_token(auth_header)

    claims, user = token_service.validate_token(
        raw_token,
        settings,
        blacklist,
        user_loader,
    )

    if required_role is not None and user.role != required_role:
        meta = request_meta or {}
        logger.warning(
            "Role check failed: required=%s actual=%s user=%s ip=%s path=%s user_agent=%s",
            required_role,
            user.role,
            user.public_id,
            meta.get("ip"),
            meta.get("path"),
            meta.get("user_agent"),
        )
        raise role_required_error(required_role)

    return AuthContext(user=user, role=user.role, claims=claims, raw_token=raw_token)


# ── Flask wiring ───────────────────────────────────────────────────────────

def _request_meta() -> dict:
    return {
        "ip": request.remote_addr,
        "path": request.path,
        "user_agent": request.headers.get("User-Agent"),
    }


def authenticate_request(required_role: str | None = None) -> AuthContext:
    """
    Runs the gate against the current request and stores the result on
    flask.g. Separate from the decorators so tests can call it directly.
    """
    context = evaluate_access(
        request.headers.get("Authorization"),
        current_token_settings(),
        current_blacklist(),
        user_loader(db.session),
        required_role=required_role,
        request_meta=_request_meta(),
    )
    g.current_user = context.user
    g.role = context.role
    g.token_claims = context.claims
    g.raw_token = context.raw_token
    return context


def require_auth(f: Callable) -> Callable:
    """
    Route decorator: any authenticated, active user.

    Usage:
        @bp.route("/user")
        @require_auth
        def me():
            user = g.current_user
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_role(role: str) -> Callable[[Callable], Callable]:
    """Route decorator factory: authenticated, active user with `role`."""
    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            authenticate_request(required_role=role)
            return f(*args, **kwargs)

        return decorated

    return decorator


def require_admin(f: Callable) -> Callable:
    """Route decorator: admins only. Every admitted request is audited."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        context = authenticate_request(required_role=Role.ADMIN.value)
        _audit_admin_action(context.user)
        return f(*args, **kwargs)

    return decorated


def _audit_admin_action(admin: User) -> None:
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        payload = {k: v for k, v in payload.items() if k not in _REDACTED_FIELDS}

    record = {
        "admin_id": admin.public_id,
        "admin_name": admin.name,
        "action": request.method,
        "endpoint": request.path,
        "ip": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
        "payload": payload,
    }
    audit_logger.info("Admin action %s", record)

    if request.method in ("DELETE", "PUT", "PATCH"):
        audit_logger.warning("Critical admin action %s", {**record, "severity": "high"})
