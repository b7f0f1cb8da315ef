# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .models.staff import ROLE_ADMIN
from .permissions import role_has_permission
from .services.hall_data import get_registry, global_hall_id, hall_data, load_users


def _is_identified() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'hall_id')


def _poll_remote(hall_id: str) -> None:
    """Pick up snapshots written by other processes since the last request."""
    try:
        get_registry().poll(hall_id)
    except Exception:
        current_app.logger.exception("Snapshot poll failed for %s", hall_id)


def require_staff(f):
    """
    Resolve the calling staff member and the hall partition.

    Sets the following Flask g attributes:
    - g.current_user: StaffUser from the global users registry
    - g.hall_id: the staff member's hall (ADMIN may override with X-Hall-Id)
    - g.hall: HallData for that hall

    Returns 401 if X-Staff-Id is missing or unknown, 403 if the account is
    locked, 400 if no hall can be resolved.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _poll_remote(global_hall_id())

        staff_id = (request.headers.get("X-Staff-Id") or "").strip()
        if not staff_id:
            return jsonify({"error": "Staff identification required"}), 401

        user = next((u for u in load_users() if u.id == staff_id), None)
        if user is None:
            return jsonify({"error": "Unknown staff member"}), 401
        if not user.is_active:
            return jsonify({"error": "Account is locked"}), 403

        hall_id = user.hall_id
        override = (request.headers.get("X-Hall-Id") or "").strip()
        if override and user.role == ROLE_ADMIN:
            hall_id = override
        if not hall_id:
            return jsonify({"error": "No hall selected"}), 400

        _poll_remote(hall_id)

        g.current_user = user
        g.hall_id = hall_id
        g.hall = hall_data(hall_id)

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_staff was called first
            if not _is_identified():
                return jsonify({"error": "Staff identification required"}), 401

            if not role_has_permission(g.current_user.role, permission_code):
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
