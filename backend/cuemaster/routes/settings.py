# Overview: Flask API routes for hall settings (price, tiers, tables, durations, catalog).

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import MANAGE_SESSIONS, MANAGE_SETTINGS
from ..services import settings_service
from ..services.settings_service import SettingsError
from ..validation import ValidationError, parse_int


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_staff
@require_permission(MANAGE_SESSIONS)
def get_settings_route():
    return jsonify({"settings": g.hall.load_settings().to_dict()})


@settings_bp.patch("")
@require_staff
@require_permission(MANAGE_SETTINGS)
def update_settings_route():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({"error": "A JSON object of settings is required"}), 400
    try:
        updated = settings_service.update_settings(g.hall, data)
        return jsonify({"settings": updated.to_dict()})
    except SettingsError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/tables")
@require_staff
@require_permission(MANAGE_SETTINGS)
def change_tables_route():
    data = request.get_json(silent=True) or {}
    try:
        delta = parse_int(data.get("delta"), "delta", minimum=-100, maximum=100)
        updated = settings_service.change_table_count(g.hall, delta)
    except (ValidationError, SettingsError) as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"settings": updated.to_dict()})


@settings_bp.get("/catalog")
@require_staff
@require_permission(MANAGE_SESSIONS)
def catalog_route():
    catalog = g.hall.market_catalog()
    return jsonify({"items": [{"name": name, "price": price} for name, price in sorted(catalog.items())]})
