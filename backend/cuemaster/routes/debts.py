# Overview: Flask API routes for outstanding debts and FIFO settlement.

"""
Debt Routes

- GET  /api/debts            grouped open debts (optional ?name= filter)
- POST /api/debts/settle     {playerName, mode: FULL|PARTIAL, amount?}

A PARTIAL amount <= 0 is rejected with 400; amounts above the payer's
total are capped.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import SETTLE_DEBTS
from ..services import debt_service
from ..services.debt_service import DebtSettlementError
from ..validation import ValidationError, optional_int, require_str


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("")
@require_staff
@require_permission(SETTLE_DEBTS)
def list_debts_route():
    transactions = g.hall.load_transactions()
    groups = debt_service.group_debts(transactions, request.args.get("name"))
    return jsonify({
        "groups": [grp.to_dict() for grp in groups],
        "count": len(groups),
        "totalOutstanding": debt_service.total_outstanding(transactions),
    })


@debts_bp.post("/settle")
@require_staff
@require_permission(SETTLE_DEBTS)
def settle_route():
    data = request.get_json(silent=True) or {}
    try:
        player_name = require_str(data, "playerName")
        mode = str(data.get("mode") or debt_service.SETTLE_FULL).upper()
        amount = optional_int(data, "amount", minimum=None)
        result = debt_service.settle_for_hall(g.hall, player_name, mode, amount)
    except (ValidationError, DebtSettlementError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Debt settlement failed")
        return jsonify({"error": "Internal server error"}), 500

    transactions = g.hall.load_transactions()
    return jsonify({
        "settlement": result.to_dict(),
        "totalOutstanding": debt_service.total_outstanding(transactions),
    })
