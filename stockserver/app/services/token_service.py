"""
services/token_service.py — Session token issue, validation, revocation.

Token scheme: PyJWT, HS256 by default. Every token carries

    sub  : internal user id (24 hex)     role : "admin" | "customer"
    type : "access" | "refresh"          jti  : unique per token
    iat, exp

Lifecycle: Issued → Active → Expired | Revoked.

Layer rules:
  - No flask.request / flask.g here. Settings come in as TokenSettings,
    the blacklist as a BlacklistStore, the user lookup as a callable.
    That keeps every function unit-testable without an app.
  - All failures are AppError with the codes from errors.py.

Validation order (first failure wins):
  absent → invalid (signature / structure / claims / type) → expired
  → blacklisted → user not found → account inactive
PyJWT verifies the signature before the exp claim, so a token with a bad
signature is TOKEN_INVALID even when it is also past its expiry, and a
correctly signed stale token is always TOKEN_EXPIRED.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from stockserver.app.errors import AppError, ErrorCode, service_unavailable
from stockserver.app.models.user import Role, UserStatus
from stockserver.app.security.public_id import is_internal_id
from stockserver.app.services.blacklist_store import BlacklistStore, BlacklistUnavailable

logger = logging.getLogger(__name__)

ACCESS  = "access"
REFRESH = "refresh"
_ROLES = frozenset(role.value for role in Role)


@dataclass(frozen=True)
class TokenSettings:
    secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(hours=1)
    refresh_ttl: timedelta = timedelta(days=14)

    @classmethod
    def from_config(cls, config) -> "TokenSettings":
        """Builds settings from a Flask config mapping."""
        return cls(
            secret=config["JWT_SECRET_KEY"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            access_ttl=config["JWT_ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["JWT_REFRESH_TOKEN_EXPIRES"],
        )

    def ttl_for(self, token_type: str) -> timedelta:
        return self.refresh_ttl if token_type == REFRESH else self.access_ttl


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: str
    token_type: str
    issued_at: datetime
    expires_at: datetime
    jti: str


# ── Private helpers ────────────────────────────────────────────────────────

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _invalid(message: str) -> AppError:
    return AppError(ErrorCode.TOKEN_INVALID, message, 401)


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a raw token. Blacklist entries are keyed by this."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


# ── Issue ──────────────────────────────────────────────────────────────────

def issue_token(
        user_id: str,
        role: str,
        settings: TokenSettings,
        token_type: str = ACCESS,
        now: datetime | None = None,
) -> str:
    """
    Creates a signed token for `user_id`.
    `now` exists for tests that need a token issued in the past.
    """
    issued_at = now or _utcnow()
    payload = {
        "sub":  user_id,
        "role": role,
        "type": token_type,
        "iat":  issued_at,
        "exp":  issued_at + settings.ttl_for(token_type),
        # Guarantees each issued token is unique even within the same second.
        "jti":  secrets.token_hex(8),
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)


def issue_token_pair(
        user_id: str,
        role: str,
        settings: TokenSettings,
        now: datetime | None = None,
) -> dict:
    """Returns the login payload: access + refresh token and access lifetime."""
    return {
        "access_token":  issue_token(user_id, role, settings, ACCESS, now),
        "refresh_token": issue_token(user_id, role, settings, REFRESH, now),
        "token_type":    "bearer",
        "expires_in":    int(settings.access_ttl.total_seconds()),
    }


# ── Validate ───────────────────────────────────────────────────────────────

def decode_token(
        raw_token: str,
        settings: TokenSettings,
        expected_type: str = ACCESS,
) -> TokenClaims:
    """
    Verifies signature and expiry and checks the claim shapes.

    Raises:
      AppError(TOKEN_EXPIRED, 401) — signature valid, exp in the past
      AppError(TOKEN_INVALID, 401) — anything else wrong with the token
    """
    try:
        payload = jwt.decode(
            raw_token,
            settings.secret,
            algorithms=[settings.algorithm],
            options={"require": ["sub", "exp", "iat", "jti"]},
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "Token has expired. Log in again or use POST /api/auth/refresh.",
            401,
        )
    except jwt.InvalidTokenError:
        # Covers: bad signature, malformed token, missing/invalid claims.
        raise _invalid("Token is invalid or has been tampered with.")

    user_id = payload.get("sub")
    if not is_internal_id(user_id):
        raise _invalid("The token subject is not a valid user id.")

    role = payload.get("role")
    if role not in _ROLES:
        raise _invalid("The token carries an unknown role.")

    token_type = payload.get("type")
    if token_type != expected_type:
        raise _invalid(f"An {expected_type} token is required here.")

    return TokenClaims(
        user_id=user_id,
        role=role,
        token_type=token_type,
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        jti=payload["jti"],
    )


def ensure_not_revoked(
        raw_token: str,
        blacklist: BlacklistStore,
        now: datetime | None = None,
) -> None:
    """
    Raises:
      AppError(TOKEN_BLACKLISTED, 401)   — token was revoked before expiry
      AppError(SERVICE_UNAVAILABLE, 503) — blacklist store unreachable
    """
    try:
        revoked_until = blacklist.get(hash_token(raw_token), now or _utcnow())
    except BlacklistUnavailable:
        raise service_unavailable("token revocation service")

    if revoked_until is not None:
        logger.warning("Revoked token presented (prefix %s...)", raw_token[:12])
        raise AppError(
            ErrorCode.TOKEN_BLACKLISTED,
            "Token has been revoked.",
            401,
        )


def validate_token(
        raw_token: str | None,
        settings: TokenSettings,
        blacklist: BlacklistStore,
        load_user: Callable[[str], object | None],
        expected_type: str = ACCESS,
        now: datetime | None = None,
):
    """
    Full validation of one token. Returns (claims, user).

    `load_user(user_id)` returns the user row or None. It may raise AppError
    itself (for example SERVICE_UNAVAILABLE); that propagates unchanged.

    Raises:
      AppError(TOKEN_ABSENT, 401)      — no token supplied
      AppError(TOKEN_INVALID, 401)
      AppError(TOKEN_EXPIRED, 401)
      AppError(TOKEN_BLACKLISTED, 401)
      AppError(USER_NOT_FOUND, 404)    — user deleted after the token was issued
      AppError(ACCOUNT_INACTIVE, 403)  — user exists but is not active
    """
    if not raw_token:
        raise AppError(
            ErrorCode.TOKEN_ABSENT,
            "Token not provided. Send a Bearer token in the Authorization header.",
            401,
        )

    claims = decode_token(raw_token, settings, expected_type)
    ensure_not_revoked(raw_token, blacklist, now)

    user = load_user(claims.user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            "User not found.",
            404,
        )

    if user.status != UserStatus.ACTIVE.value:
        raise AppError(
            ErrorCode.ACCOUNT_INACTIVE,
            "Account is not active.",
            403,
        )

    return claims, user


# ── Revoke / cleanup ───────────────────────────────────────────────────────

def revoke_token(
        raw_token: str,
        claims: TokenClaims,
        blacklist: BlacklistStore,
        reason: str = "logout",
        now: datetime | None = None,
) -> bool:
    """
    Blacklists `raw_token` until its own expiry (TTL = remaining lifetime).
    Returns False when the token has already expired and nothing was stored.
    Revoking the same token twice is a no-op.

    Raises:
      AppError(SERVICE_UNAVAILABLE, 503) — blacklist store unreachable
    """
    current = now or _utcnow()
    if claims.expires_at <= current:
        return False

    try:
        blacklist.set(
            hash_token(raw_token),
            claims.expires_at,
            user_id=claims.user_id,
            reason=reason,
        )
    except BlacklistUnavailable:
        raise service_unavailable("token revocation service")

    logger.info(
        "Token revoked (reason=%s, remaining=%ss)",
        reason,
        int((claims.expires_at - current).total_seconds()),
    )
    return True


def cleanup_blacklist(blacklist: BlacklistStore, now: datetime | None = None) -> int:
    """
    Removes blacklist entries whose expiry has passed. Returns the count.
    Safe to run repeatedly and concurrently.
    """
    try:
        removed = blacklist.delete_expired(now or _utcnow())
    except BlacklistUnavailable:
        raise service_unavailable("token revocation service")

    logger.info("Cleaned up %d expired blacklist entries", removed)
    return removed
