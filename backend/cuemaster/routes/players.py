from flask import Blueprint, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import MANAGE_PLAYERS
from ..services import players_service
from ..services.players_service import PlayerError
from ..validation import ValidationError, require_str


players_bp = Blueprint("players", __name__, url_prefix="/api/players")


@players_bp.get("")
@require_staff
@require_permission(MANAGE_PLAYERS)
def list_players_route():
    players = players_service.list_players(g.hall, request.args.get("name"))
    return jsonify({"players": players, "count": len(players)})


@players_bp.post("")
@require_staff
@require_permission(MANAGE_PLAYERS)
def add_player_route():
    data = request.get_json(silent=True) or {}
    try:
        name = players_service.add_player(g.hall, require_str(data, "name"))
        return jsonify({"player": name}), 201
    except (ValidationError, PlayerError) as e:
        return jsonify({"error": str(e)}), 400


@players_bp.delete("/<name>")
@require_staff
@require_permission(MANAGE_PLAYERS)
def remove_player_route(name: str):
    applied = players_service.remove_player(g.hall, name, g.current_user)
    return jsonify({"applied": applied})
