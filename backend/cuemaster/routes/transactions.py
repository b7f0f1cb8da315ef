# Overview: Flask API routes for the transaction ledger: history view and audit corrections.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_permission, require_staff
from ..permissions import DELETE_TRANSACTIONS, VIEW_TRANSACTIONS
from ..services import checkout_service
from ..services.checkout_service import CheckoutError, TransactionNotFoundError
from ..services.hall_data import business_clock
from ..time_utils import parse_business_date


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_staff
@require_permission(VIEW_TRANSACTIONS)
def list_transactions_route():
    tz, start_hour = business_clock()
    try:
        start_date = parse_business_date(request.args.get("start"))
        end_date = parse_business_date(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be YYYY-MM-DD"}), 400

    method = request.args.get("method")
    try:
        rows = checkout_service.filter_history(
            g.hall.load_transactions(),
            name=request.args.get("name"),
            start_date=start_date,
            end_date=end_date,
            collected_by=request.args.get("collectedBy"),
            payment_method=method.upper() if method else None,
            tz=tz,
            start_hour=start_hour,
        )
    except CheckoutError as e:
        return jsonify({"error": str(e)}), 400

    limit = max(1, request.args.get("limit", type=int) or 500)
    rows = rows[:limit]
    return jsonify({"transactions": [t.to_dict() for t in rows], "count": len(rows)})


@transactions_bp.get("/<transaction_id>")
@require_staff
@require_permission(VIEW_TRANSACTIONS)
def get_transaction_route(transaction_id: str):
    try:
        transaction = checkout_service.get_transaction(g.hall, transaction_id)
    except TransactionNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"transaction": transaction.to_dict()})


@transactions_bp.delete("/<transaction_id>")
@require_staff
@require_permission(DELETE_TRANSACTIONS)
def delete_transaction_route(transaction_id: str):
    try:
        removed = checkout_service.delete_transaction(g.hall, transaction_id, g.current_user)
    except CheckoutError as e:
        return jsonify({"error": str(e)}), 400
    if not removed:
        return jsonify({"error": "Transaction not found"}), 404
    return jsonify({"deleted": 1})


@transactions_bp.post("/bulk-delete")
@require_staff
@require_permission(DELETE_TRANSACTIONS)
def bulk_delete_route():
    data = request.get_json(silent=True) or {}
    ids = data.get("ids")
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        return jsonify({"error": "ids must be a list of transaction ids"}), 400

    try:
        removed = checkout_service.delete_transactions(g.hall, ids, g.current_user)
        return jsonify({"deleted": removed})
    except CheckoutError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Bulk delete failed")
        return jsonify({"error": "Internal server error"}), 500
