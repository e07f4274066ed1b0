# stockroom/routes/system.py
"""
System health endpoint.

Reports the startup readiness state plus a live database round-trip.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db
from ..readiness import ReadyState, ensure_ready

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    state = ensure_ready(current_app._get_current_object())
    database = check_database_health()
    healthy = state is ReadyState.READY and database["status"] == "healthy"
    return jsonify({
        "status": "ok" if healthy else "unavailable",
        "state": state.value,
        "database": database,
    }), 200 if healthy else 503
