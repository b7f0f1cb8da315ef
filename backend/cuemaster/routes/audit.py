# Overview: Flask API routes for the table audit, leak estimate and match history.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import MANAGE_SETTINGS, VIEW_AUDIT, VIEW_MATCHES
from ..services import audit_service, settings_service
from ..services.audit_service import AuditError
from ..services.hall_data import business_clock
from ..time_utils import business_date_for, now_ms, parse_business_date
from ..validation import ValidationError, optional_int


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("/tables")
@require_staff
@require_permission(VIEW_AUDIT)
def table_audit_route():
    tz, start_hour = business_clock()
    try:
        day = parse_business_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    if day is None:
        day = business_date_for(now_ms(), tz, start_hour)

    payload = audit_service.audit_day(
        g.hall.load_transactions(),
        g.hall.load_settings(),
        day,
        tz=tz,
        start_hour=start_hour,
    )
    return jsonify(payload)


@audit_bp.put("/tables/<int:table_number>/range")
@require_staff
@require_permission(MANAGE_SETTINGS)
def update_range_route(table_number: int):
    data = request.get_json(silent=True) or {}
    try:
        minimum = optional_int(data, "min", minimum=None, maximum=24 * 60)
        maximum = optional_int(data, "max", minimum=None, maximum=24 * 60)
        updated = settings_service.set_table_range(g.hall, table_number, minimum=minimum, maximum=maximum)
    except (ValidationError, AuditError) as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"tableNumber": table_number, "range": updated.to_dict()})


@audit_bp.get("/matches")
@require_staff
@require_permission(VIEW_MATCHES)
def matches_route():
    matches = audit_service.find_matches(g.hall.load_transactions(), request.args.get("player"))
    return jsonify({"matches": [m.to_dict() for m in matches], "count": len(matches)})
