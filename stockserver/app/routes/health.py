"""
routes/health.py — Liveness / readiness probe.

GET /api/health → 200 when the database answers, 503 otherwise.
"""

from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from stockserver.app.extensions import db

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        current_app.logger.error("Health check: database unreachable: %s", exc)
        database = "unavailable"

    healthy = database == "ok"
    return jsonify({
        "success": healthy,
        "status": "healthy" if healthy else "degraded",
        "database": database,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200 if healthy else 503
