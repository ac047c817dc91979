# Overview: System health and announcement endpoints.

import time

from flask import Blueprint, current_app, jsonify, request

from ..broadcast import get_hub
from ..decorators import require_auth, require_admin
from ..extensions import db
from ..models import User, Flock, Report
from poultrydesk.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Database connectivity plus a few row counts."""
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "flocks": db.session.query(Flock).count(),
            "reports": db.session.query(Report).count(),
        }
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": details,
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


def check_broadcast_health() -> dict:
    hub = get_hub()
    if not hub.running:
        return {"status": "unhealthy", "error": "Broadcast hub stopped"}
    return {"status": "healthy", "connections": hub.connection_count()}


@system_bp.get("/health")
def health():
    database = check_database_health()
    broadcast = check_broadcast_health()
    healthy = database["status"] == "healthy" and broadcast["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database, "broadcast": broadcast},
    }), (200 if healthy else 503)


@system_bp.post("/api/system/announce")
@require_auth
@require_admin
def announce():
    """Push a message to every live connection, across all tenants."""
    data = request.get_json(silent=True) or {}
    message = (data.get("message") or "").strip()
    if not message:
        return jsonify({"error": "message is required"}), 400
    get_hub().publish("announcement", "system", {"message": message, "sent_at": to_utc_z(utcnow())})
    return jsonify({"queued": True}), 202
