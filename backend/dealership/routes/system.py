# backend/dealership/routes/system.py
"""
System endpoints: health, version, and whole-store snapshots.
"""

import sys
import time

from flask import Blueprint, current_app, request, jsonify

from ..extensions import db
from ..models import Part, User, SessionToken
from ..services import snapshot_service
from ..services.snapshot_service import SnapshotError
from ..time_utils import utcnow, to_utc_z
from ..decorators import require_auth, require_role

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Check database connectivity with a few cheap counts."""
    start_time = time.time()
    try:
        part_count = db.session.query(Part).count()
        user_count = db.session.query(User).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at >= utcnow(),
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "parts": part_count,
                "users": user_count,
                "active_sessions": active_sessions,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }


@system_bp.get("/api/snapshot")
@require_auth
@require_role("SUPER_ADMIN")
def export_snapshot_route():
    return jsonify(snapshot_service.export_snapshot()), 200


@system_bp.post("/api/snapshot")
@require_auth
@require_role("SUPER_ADMIN")
def import_snapshot_route():
    """
    Replace all data with a snapshot. Every session (including the caller's)
    is revoked.

    Requires: SUPER_ADMIN
    """
    try:
        counts = snapshot_service.import_snapshot(request.get_json(silent=True))
        return jsonify({"restored": counts}), 200
    except SnapshotError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to import snapshot")
        return jsonify({"error": "Internal server error"}), 500
