"""
services/auth_service.py — Authentication business logic.

Responsibilities:
  - Admin / customer login (credential, role and status checks)
  - Customer self-registration
  - Refresh-token rotation
  - Logout (revocation of the access token and, optionally, the refresh token)

Layer rules:
  - No flask.request, flask.g or HTTP routing here.
  - current_app.config is read ONLY for BCRYPT_LOG_ROUNDS. Token settings and
    the blacklist store are passed in by the route.

Password storage:
  - bcrypt (cost from BCRYPT_LOG_ROUNDS). The raw password is never stored
    or logged.
"""

from __future__ import annotations

import logging
from typing import Callable

import bcrypt
from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from stockserver.app.errors import AppError, ErrorCode, role_required_error, service_unavailable
from stockserver.app.models.customer import Customer
from stockserver.app.models.user import Role, User, UserStatus
from stockserver.app.presenters import present_user
from stockserver.app.services import token_service
from stockserver.app.services.blacklist_store import BlacklistStore
from stockserver.app.services.token_service import REFRESH, TokenClaims, TokenSettings

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def user_loader(session: Session) -> Callable[[str], User | None]:
    """
    Single-attempt user lookup for token validation. A database outage is
    a 503, never a verdict about the token.
    """
    def load(user_id: str) -> User | None:
        try:
            return session.get(User, user_id)
        except (OperationalError, InterfaceError) as exc:
            logger.error("User lookup failed during authentication: %s", exc)
            raise service_unavailable("user directory")

    return load


def _login_payload(user: User, settings: TokenSettings) -> dict:
    return {
        "user": present_user(user),
        **token_service.issue_token_pair(user.id, user.role, settings),
    }


# ── Public service functions ───────────────────────────────────────────────

def login(
        email: str,
        password: str,
        required_role: str,
        settings: TokenSettings,
        session: Session,
) -> dict:
    """
    Validates credentials for the admin or customer login endpoint.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — unknown email or wrong password.
        Same error for both, to avoid account enumeration.
      AppError(ADMIN_ACCESS_REQUIRED / CUSTOMER_ACCESS_REQUIRED, 403)
      AppError(ACCOUNT_INACTIVE, 403)

    Returns: {"user": {...}, "access_token", "refresh_token", "token_type", "expires_in"}
    """
    user = session.execute(
        select(User).where(User.email == email.lower())
    ).scalar_one_or_none()

    # bcrypt.checkpw compares in constant time.
    if user is None or not _check_password(password, user.password_hash):
        logger.info("Failed %s login attempt", required_role)
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Invalid credentials.",
            401,
        )

    if user.role != required_role:
        raise role_required_error(required_role)

    if user.status != UserStatus.ACTIVE.value:
        raise AppError(
            ErrorCode.ACCOUNT_INACTIVE,
            "Account is not active.",
            403,
        )

    logger.info("%s logged in: %s", required_role.capitalize(), user.public_id)
    return _login_payload(user, settings)


def register_customer(
        name: str,
        email: str,
        password: str,
        settings: TokenSettings,
        session: Session,
        phone: str | None = None,
        marketing_consent: bool = False,
) -> dict:
    """
    Creates a customer user plus its profile and logs it in.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)

    Returns: same payload as login().
    """
    email = email.lower()
    existing = session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()
    if existing is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "This email address is already registered.",
            409,
            field="email",
        )

    first_name, _, last_name = name.partition(" ")
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=Role.CUSTOMER.value,
        status=UserStatus.ACTIVE.value,
    )
    user.customer = Customer(
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        marketing_consent=marketing_consent,
    )
    session.add(user)
    session.flush()  # assigns ids, needed for the token subject

    logger.info("Customer registered: %s", user.public_id)
    return _login_payload(user, settings)


def create_admin(name: str, email: str, password: str, session: Session) -> User:
    """
    Creates an active admin. Used by the `flask create-admin` command.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)
    """
    email = email.lower()
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "This email address is already registered.",
            409,
            field="email",
        )

    admin = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=Role.ADMIN.value,
        status=UserStatus.ACTIVE.value,
    )
    session.add(admin)
    session.flush()
    return admin


def refresh_tokens(
        raw_refresh_token: str,
        settings: TokenSettings,
        blacklist: BlacklistStore,
        session: Session,
) -> dict:
    """
    Exchanges a refresh token for a new access + refresh pair.

    The presented refresh token is revoked (rotation), so each refresh token
    works once.

    Raises: every error of token_service.validate_token for a refresh token.
    """
    claims, user = token_service.validate_token(
        raw_refresh_token,
        settings,
        blacklist,
        user_loader(session),
        expected_type=REFRESH,
    )
    token_service.revoke_token(raw_refresh_token, claims, blacklist, reason="refresh")

    return token_service.issue_token_pair(user.id, user.role, settings)


def logout(
        access_token: str,
        access_claims: TokenClaims,
        settings: TokenSettings,
        blacklist: BlacklistStore,
        raw_refresh_token: str | None = None,
) -> None:
    """
    Revokes the access token used for this request. When a refresh token is
    also supplied it is revoked too, provided it belongs to the same user.
    An already-expired refresh token needs no revocation and is ignored.

    The refresh token is checked before anything is revoked, so a rejected
    logout leaves both tokens exactly as they were on every backend.

    Raises:
      AppError(TOKEN_INVALID, 401)       — refresh token malformed or not the caller's
      AppError(SERVICE_UNAVAILABLE, 503) — blacklist store unreachable
    """
    refresh_claims = None
    if raw_refresh_token:
        try:
            refresh_claims = token_service.decode_token(raw_refresh_token, settings, REFRESH)
        except AppError as exc:
            if exc.code != ErrorCode.TOKEN_EXPIRED:
                raise

    if refresh_claims is not None and refresh_claims.user_id != access_claims.user_id:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The refresh token does not belong to the authenticated user.",
            401,
        )

    token_service.revoke_token(access_token, access_claims, blacklist, reason="logout")
    if refresh_claims is not None:
        token_service.revoke_token(raw_refresh_token, refresh_claims, blacklist, reason="logout")


def get_current_user(user: User) -> dict:
    """Profile of the authenticated user."""
    return present_user(user)
