# Overview: Flask API routes for the session board: check-in, games, purchases, checkout.

"""
Session Routes

SECURITY:
- Every route requires an identified staff member (X-Staff-Id).
- Undo and removal by non-privileged staff are silent no-ops: 200 with
  "applied": false.

TWO-PHASE GAME ADD:
- POST .../games/request stores one pending request per (hall, staff).
- POST .../games/commit applies it with the chosen table; 409 if nothing
  is pending for that session.
"""

import threading

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import CHECKOUT, MANAGE_SESSIONS
from ..services import checkout_service, pricing_service, session_service
from ..services.checkout_service import CheckoutError
from ..services.pricing_service import PricingError
from ..services.session_service import (
    AwaitingTableChoice,
    NoPendingRequest,
    SessionError,
    SessionNotFoundError,
)
from ..validation import ValidationError, optional_int, parse_int, require_str


sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")

PENDING_EXTENSION_KEY = "cuemaster.pending_games"
_pending_lock = threading.Lock()


def _pending_requests() -> dict:
    return current_app.extensions.setdefault(PENDING_EXTENSION_KEY, {})


def _pending_key() -> tuple[str, str]:
    return g.hall_id, g.current_user.id


@sessions_bp.get("")
@require_staff
@require_permission(MANAGE_SESSIONS)
def list_sessions_route():
    sessions = session_service.list_sessions(g.hall)
    return jsonify({"sessions": [s.to_dict() for s in sessions], "count": len(sessions)})


@sessions_bp.post("")
@require_staff
@require_permission(MANAGE_SESSIONS)
def start_session_route():
    data = request.get_json(silent=True) or {}
    try:
        player_name = require_str(data, "playerName")
        price = optional_int(data, "pricePerGame", minimum=0)
        session = session_service.start_session(g.hall, player_name=player_name, price_per_game=price)
        return jsonify({"session": session.to_dict()}), 201
    except (ValidationError, SessionError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to start session")
        return jsonify({"error": "Internal server error"}), 500


@sessions_bp.get("/<session_id>")
@require_staff
@require_permission(MANAGE_SESSIONS)
def get_session_route(session_id: str):
    try:
        session = session_service.get_session(g.hall, session_id)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"session": session.to_dict()})


@sessions_bp.post("/<session_id>/games/request")
@require_staff
@require_permission(MANAGE_SESSIONS)
def request_game_route(session_id: str):
    data = request.get_json(silent=True) or {}
    try:
        delta = parse_int(data.get("delta", 1), "delta", minimum=-100, maximum=100)
        pending = session_service.request_game_change(g.hall, session_id, delta, g.current_user)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, SessionError) as e:
        return jsonify({"error": str(e)}), 400

    with _pending_lock:
        if isinstance(pending, AwaitingTableChoice):
            _pending_requests()[_pending_key()] = pending
        else:
            _pending_requests().pop(_pending_key(), None)

    session = session_service.get_session(g.hall, session_id)
    return jsonify({"pending": pending.to_dict(), "session": session.to_dict()})


@sessions_bp.post("/<session_id>/games/commit")
@require_staff
@require_permission(MANAGE_SESSIONS)
def commit_game_route(session_id: str):
    data = request.get_json(silent=True) or {}
    with _pending_lock:
        pending = _pending_requests().get(_pending_key(), NoPendingRequest())
    if not isinstance(pending, AwaitingTableChoice) or pending.session_id != session_id:
        return jsonify({"error": "No game request is waiting for a table"}), 409

    try:
        table_number = parse_int(data.get("tableNumber"), "tableNumber", minimum=1, maximum=1000)
        session = session_service.commit_game(g.hall, pending, table_number)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, SessionError) as e:
        return jsonify({"error": str(e)}), 400

    with _pending_lock:
        _pending_requests().pop(_pending_key(), None)
    return jsonify({"session": session.to_dict(), "pending": NoPendingRequest().to_dict()})


@sessions_bp.post("/<session_id>/games/cancel")
@require_staff
@require_permission(MANAGE_SESSIONS)
def cancel_game_request_route(session_id: str):
    with _pending_lock:
        pending = _pending_requests().get(_pending_key())
        if isinstance(pending, AwaitingTableChoice) and pending.session_id == session_id:
            _pending_requests().pop(_pending_key(), None)
    return jsonify({"pending": NoPendingRequest().to_dict()})


@sessions_bp.post("/<session_id>/games/undo")
@require_staff
@require_permission(MANAGE_SESSIONS)
def undo_game_route(session_id: str):
    try:
        applied = session_service.undo_game(g.hall, session_id, g.current_user)
        session = session_service.get_session(g.hall, session_id)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"applied": applied, "session": session.to_dict()})


@sessions_bp.post("/<session_id>/purchases")
@require_staff
@require_permission(MANAGE_SESSIONS)
def adjust_purchase_route(session_id: str):
    data = request.get_json(silent=True) or {}
    try:
        item_name = require_str(data, "itemName")
        delta = parse_int(data.get("delta", 1), "delta", minimum=-1000, maximum=1000)
        session = session_service.adjust_purchase(g.hall, session_id, item_name, delta)
        return jsonify({"session": session.to_dict()})
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, SessionError) as e:
        return jsonify({"error": str(e)}), 400


@sessions_bp.delete("/<session_id>")
@require_staff
@require_permission(MANAGE_SESSIONS)
def remove_session_route(session_id: str):
    try:
        applied = session_service.remove_session(g.hall, session_id, g.current_user)
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"applied": applied})


@sessions_bp.get("/<session_id>/quote")
@require_staff
@require_permission(CHECKOUT)
def quote_route(session_id: str):
    method = (request.args.get("method") or "CASH").upper()
    try:
        session = session_service.get_session(g.hall, session_id)
        quote = pricing_service.quote(session, method, g.hall.load_settings())
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PricingError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"quote": quote.to_dict()})


@sessions_bp.post("/<session_id>/checkout")
@require_staff
@require_permission(CHECKOUT)
def checkout_route(session_id: str):
    data = request.get_json(silent=True) or {}
    try:
        method = require_str(data, "paymentMethod").upper()
        actual_paid = optional_int(data, "actualPaid", minimum=0)
        result = checkout_service.finalize(
            g.hall,
            session_id,
            payment_method=method,
            actual_paid=actual_paid,
            note=data.get("note"),
            collected_by=g.current_user.id,
        )
        return jsonify(result.to_dict()), 201
    except SessionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, PricingError, CheckoutError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Internal server error"}), 500
