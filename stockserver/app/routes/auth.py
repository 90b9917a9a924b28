"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Sanitize and validate the body with the schema (ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the envelope: {"success": true, "data": {...}}

AppError propagates to the global handler in app/__init__.py; routes never
catch it.

Endpoints (url_prefix=/api/auth):
  POST   /auth/admin/login         → 200  (AUTH_RATE_LIMIT)
  POST   /auth/customer/login      → 200  (AUTH_RATE_LIMIT)
  POST   /auth/customer/register   → 201  (AUTH_RATE_LIMIT)
  GET    /auth/user                → 200  (auth)
  POST   /auth/logout              → 200  (auth)
  POST   /auth/refresh             → 200
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from flask_limiter.util import get_remote_address

from stockserver.app.extensions import db, limiter
from stockserver.app.middleware.auth_middleware import (
    current_blacklist,
    current_token_settings,
    require_auth,
)
from stockserver.app.models.user import Role
from stockserver.app.schemas.auth_schema import (
    CustomerRegisterSchema,
    LoginSchema,
    LogoutSchema,
    RefreshTokenSchema,
)
from stockserver.app.security.sanitize import sanitize_input
from stockserver.app.services import auth_service

auth_bp = Blueprint("auth", __name__)

# Login and registration share one bucket per client IP.
auth_rate_limit = limiter.shared_limit(
    lambda: current_app.config["AUTH_RATE_LIMIT"],
    scope="auth",
    key_func=get_remote_address,
    error_message="Too many login attempts. Please try again in 1 minute.",
)


def _login(role: str):
    data = LoginSchema().load(sanitize_input(request.get_json(force=True) or {}))
    result = auth_service.login(
        email=data["email"],
        password=data["password"],
        required_role=role,
        settings=current_token_settings(),
        session=db.session,
    )
    return jsonify({"success": True, "message": "Login successful.", "data": result}), 200


@auth_bp.route("/admin/login", methods=["POST"])
@auth_rate_limit
def admin_login():
    """POST /auth/admin/login — Admin credentials → tokens."""
    return _login(Role.ADMIN.value)


@auth_bp.route("/customer/login", methods=["POST"])
@auth_rate_limit
def customer_login():
    """POST /auth/customer/login — Customer credentials → tokens."""
    return _login(Role.CUSTOMER.value)


@auth_bp.route("/customer/register", methods=["POST"])
@auth_rate_limit
def customer_register():
    """POST /auth/customer/register — Create a customer account; return tokens."""
    data = CustomerRegisterSchema().load(sanitize_input(request.get_json(force=True) or {}))
    result = auth_service.register_customer(
        name=data["name"],
        email=data["email"],
        password=data["password"],
        phone=data.get("phone"),
        marketing_consent=data.get("marketing_consent", False),
        settings=current_token_settings(),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Registration successful.", "data": result}), 201


@auth_bp.route("/user", methods=["GET"])
@require_auth
def me():
    """GET /auth/user — Current user profile."""
    result = auth_service.get_current_user(g.current_user)
    return jsonify({"success": True, "data": result}), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    """POST /auth/logout — Revoke the bearer token (and the refresh token, if sent)."""
    data = LogoutSchema().load(request.get_json(silent=True) or {})
    auth_service.logout(
        access_token=g.raw_token,
        access_claims=g.token_claims,
        settings=current_token_settings(),
        blacklist=current_blacklist(),
        raw_refresh_token=data.get("refresh_token"),
    )
    db.session.commit()
    return jsonify({"success": True, "message": "Successfully logged out."}), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh — Exchange a refresh token for a new token pair."""
    data = RefreshTokenSchema().load(request.get_json(force=True) or {})
    result = auth_service.refresh_tokens(
        raw_refresh_token=data["refresh_token"],
        settings=current_token_settings(),
        blacklist=current_blacklist(),
        session=db.session,
    )
    db.session.commit()
    return jsonify({"success": True, "data": result}), 200
