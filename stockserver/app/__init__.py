"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, which enables:
           - Multiple isolated test app instances
           - `flask db` / alembic tooling without starting the full server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Initialise extensions (SQLAlchemy, Marshmallow, Flask-Limiter) via init_app()
  3. Create the in-process token blacklist when TOKEN_BLACKLIST_BACKEND=memory
  4. Register all route blueprints under /api
  5. Register global error handlers (AppError → JSON envelope, Exception → 500)
  6. Register a JSON provider that serialises Decimal as string
  7. Register the maintenance CLI commands

Model imports happen inside create_app() so SQLAlchemy's metadata is
populated before db.create_all() or Alembic inspects it.
"""

from __future__ import annotations

import traceback
from decimal import Decimal

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_limiter.errors import RateLimitExceeded
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from stockserver.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Money is serialised as a string so clients never see float rounding.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    # ── Extensions ─────────────────────────────────────────────────────────
    # Imported here (not at module top) to avoid circular imports.
    from stockserver.app.extensions import db, limiter, ma
    db.init_app(app)
    ma.init_app(app)
    limiter.init_app(app)

    if app.config.get("TOKEN_BLACKLIST_BACKEND") == "memory":
        from stockserver.app.services.blacklist_store import InMemoryBlacklistStore
        app.extensions["token_blacklist"] = InMemoryBlacklistStore()

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from stockserver.app.models import (  # noqa: F401
            category,
            customer,
            jwt_blacklist,
            order,
            product,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    from stockserver.app.commands import register_commands
    register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api prefix.

    The url_prefix is set here so route files only specify paths relative
    to their resource.
    """
    from stockserver.app.routes.admin import admin_bp
    from stockserver.app.routes.auth import auth_bp
    from stockserver.app.routes.catalog import catalog_bp
    from stockserver.app.routes.health import health_bp
    from stockserver.app.routes.orders import orders_bp

    app.register_blueprint(auth_bp,    url_prefix="/api/auth")
    # catalog_bp owns both /products and /categories, so it sits at /api.
    app.register_blueprint(catalog_bp, url_prefix="/api")
    app.register_blueprint(orders_bp,  url_prefix="/api/orders")
    app.register_blueprint(admin_bp,   url_prefix="/api/admin")
    app.register_blueprint(health_bp,  url_prefix="/api")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError          → error envelope with the correct HTTP status
      RateLimitExceeded → RATE_LIMIT_EXCEEDED (429)
      ValidationError   → marshmallow errors as MISSING_FIELD / INVALID_FIELD (400)
      HTTPException     → Werkzeug errors (unknown route, bad method, bad JSON)
                          in the same envelope
      Exception         → INTERNAL_ERROR (500); traceback logged, never returned
    """
    from stockserver.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the error envelope.
        """
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the error envelope.
        Only the FIRST offending field is reported.
        """
        field, message = _first_validation_message(error.messages)

        if message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        return jsonify(AppError(code, message, 400, field=field).to_dict()), 400

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(error: RateLimitExceeded):
        limit = getattr(error, "limit", None)
        message = getattr(limit, "error_message", None) or "Too many requests. Please try again later."
        app.logger.warning(
            "Rate limit exceeded: %s %s ip=%s limit=%s",
            request.method,
            request.path,
            request.remote_addr,
            error.description,
        )
        return jsonify({
            "success": False,
            "message": message,
            "error_code": ErrorCode.RATE_LIMIT_EXCEEDED,
        }), 429

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        codes = {
            404: ErrorCode.ROUTE_NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
        }
        code = codes.get(error.code, ErrorCode.INVALID_FIELD)
        return jsonify({
            "success": False,
            "message": error.description,
            "error_code": code,
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        Stack traces NEVER leave the server in the response body.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "success": False,
            "message": "An unexpected error occurred. Please try again later.",
            "error_code": ErrorCode.INTERNAL_ERROR,
        }), 500


def _first_validation_message(messages) -> tuple[str | None, str]:
    """
    Walks marshmallow's nested messages to the first (field, message) pair.
    Nested fields are joined with dots, e.g. "items.0.quantity".
    """
    path: list[str] = []
    current = messages
    while isinstance(current, dict) and current:
        key, current = next(iter(current.items()))
        if key != "_schema":
            path.append(str(key))

    if isinstance(current, list):
        current = current[0] if current else "Invalid value."

    return (".".join(path) or None), str(current)


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so the admin/shop client served
    from another local port can call the API with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response
