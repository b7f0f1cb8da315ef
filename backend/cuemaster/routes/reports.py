# Overview: Flask API routes for the daily business report and per-table statistics.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import VIEW_REPORTS
from ..services import reporting_service
from ..services.hall_data import business_clock, load_users
from ..services.reporting_service import ReportError
from ..time_utils import business_date_for, now_ms, parse_business_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daily")
@require_staff
@require_permission(VIEW_REPORTS)
def daily_report_route():
    tz, start_hour = business_clock()
    try:
        day = parse_business_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    if day is None:
        day = business_date_for(now_ms(), tz, start_hour)

    report = reporting_service.daily_report(
        g.hall.load_transactions(),
        load_users(),
        hall_id=g.hall_id,
        day=day,
        tz=tz,
        start_hour=start_hour,
    )
    return jsonify(report)


@reports_bp.get("/tables")
@require_staff
@require_permission(VIEW_REPORTS)
def table_stats_route():
    tz, start_hour = business_clock()
    period = (request.args.get("period") or reporting_service.PERIOD_TODAY).upper()
    try:
        rows = reporting_service.table_stats(
            g.hall.load_transactions(),
            g.hall.load_settings().table_count,
            period=period,
            now=now_ms(),
            tz=tz,
            start_hour=start_hour,
        )
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"period": period, "tables": rows})


@reports_bp.get("/totals")
@require_staff
@require_permission(VIEW_REPORTS)
def totals_route():
    return jsonify(reporting_service.hall_totals(g.hall.load_transactions(), now=now_ms()))
