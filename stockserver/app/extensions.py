"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy, marshmallow and the rate limiter as module-level
objects so they can be imported anywhere without creating circular
dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db`, `ma` or `limiter` from here wherever needed.

    from stockserver.app.extensions import db, ma

Do not pass the app object directly to SQLAlchemy() or Marshmallow() at
import time; that would prevent running tests with a separate app instance.
"""

from flask import g
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_marshmallow import Marshmallow
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Marshmallow instance, registered on the app for its serialization helpers.
#
# Schema inheritance rule:
#   Validation schemas in app/schemas/ inherit from marshmallow.Schema
#   directly, NOT from ma.Schema. ma.Schema needs an active application
#   context and tests/unit/ run without one.
ma = Marshmallow()


def user_or_ip() -> str:
    """Rate-limit bucket: the authenticated user once known, else the client IP."""
    user = g.get("current_user")
    if user is not None:
        return f"user:{user.id}"
    return get_remote_address()


# Limits and storage come from the RATELIMIT_* / *_RATE_LIMIT config keys.
limiter = Limiter(key_func=user_or_ip)
