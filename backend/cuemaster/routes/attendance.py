# Overview: Flask API routes for staff attendance; parses input and returns JSON responses.

"""
Attendance Routes

SECURITY:
- Clock in/out and logout marks act on the calling staff member only.
- Listing shows everyone to privileged roles and own shifts to staff.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import CLOCK_IN_OUT, VIEW_ATTENDANCE
from ..services import attendance_service
from ..services.attendance_service import AttendanceError
from ..services.hall_data import business_clock


attendance_bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")


@attendance_bp.post("/clock-in")
@require_staff
@require_permission(CLOCK_IN_OUT)
def clock_in_route():
    tz, start_hour = business_clock()
    try:
        record = attendance_service.clock_in(g.hall, g.current_user, tz=tz, start_hour=start_hour)
        return jsonify({"record": record.to_dict()}), 201
    except AttendanceError as e:
        return jsonify({"error": str(e)}), 400


@attendance_bp.post("/logout")
@require_staff
@require_permission(CLOCK_IN_OUT)
def logout_route():
    try:
        record = attendance_service.record_logout(g.hall, g.current_user)
        return jsonify({"record": record.to_dict()})
    except AttendanceError as e:
        return jsonify({"error": str(e)}), 400


@attendance_bp.post("/clock-out")
@require_staff
@require_permission(CLOCK_IN_OUT)
def clock_out_route():
    try:
        record = attendance_service.clock_out(g.hall, g.current_user)
        return jsonify({"record": record.to_dict()})
    except AttendanceError as e:
        return jsonify({"error": str(e)}), 400


@attendance_bp.get("/status")
@require_staff
@require_permission(CLOCK_IN_OUT)
def status_route():
    return jsonify(attendance_service.current_status(g.hall, g.current_user))


@attendance_bp.get("")
@require_staff
@require_permission(VIEW_ATTENDANCE)
def list_records_route():
    records = attendance_service.list_records(g.hall.load_attendance(), g.current_user, request.args.get("name"))
    return jsonify({"records": [r.to_dict() for r in records], "count": len(records)})
