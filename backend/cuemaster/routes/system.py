# backend/cuemaster/routes/system.py
"""
System health, version and snapshot inspection endpoints.
"""

import sys
import time

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_permission, require_staff
from ..extensions import db
from ..models import CollectionSnapshot
from ..permissions import SYSTEM_ADMIN
from ..services.hall_data import get_registry, global_hall_id, load_users
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity by counting snapshot rows.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        snapshot_count = db.session.query(CollectionSnapshot).count()
        hall_count = db.session.query(CollectionSnapshot.hall_id).distinct().count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "snapshots": snapshot_count,
                "halls": hall_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_registry_health() -> dict:
    """
    Check that the global staff registry is seeded.

    An empty registry means nobody can identify; that is degraded, not down.
    """
    start_time = time.time()
    try:
        users = load_users()
        elapsed_ms = (time.time() - start_time) * 1000
        if not users:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": f"No staff in the {global_hall_id()} registry; run 'flask system init'",
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"staff": len(users)},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Staff registry health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Registry error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    registry_health = check_registry_health()

    all_checks = [database_health, registry_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "staff_registry": registry_health,
        }
    }
    return response, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }


@system_bp.get("/api/system/snapshots")
@require_staff
@require_permission(SYSTEM_ADMIN)
def list_snapshots_route():
    hall_id = request.args.get("hallId")
    rows = get_registry().store.list_snapshots(hall_id)
    return jsonify({"snapshots": [row.to_dict() for row in rows], "count": len(rows)})


@system_bp.post("/api/system/sync/flush")
@require_staff
@require_permission(SYSTEM_ADMIN)
def flush_sync_route():
    get_registry().flush_all()
    return jsonify({"flushed": True})
