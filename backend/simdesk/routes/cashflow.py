# Overview: Flask API routes for cash transactions; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..services.app_store import get_app_store
from ..services import entry_service, reporting_service
from ..validation import (
    TRANSACTION_POLICY,
    validate_payload,
    enforce_rules_transaction,
    parse_date_arg,
    ValidationError,
)
from ..decorators import require_auth, current_user_id

cashflow_bp = Blueprint("cashflow", __name__, url_prefix="/api/transactions")


@cashflow_bp.get("")
@require_auth
def list_transactions():
    """
    Cash movements, newest first, with in/out totals for the listed rows.

    Query params:
    - start, end: YYYY-MM-DD (optional, inclusive)
    - direction: IN | OUT (optional)
    """
    try:
        start = parse_date_arg("start", request.args.get("start"))
        end = parse_date_arg("end", request.args.get("end"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    transactions = reporting_service.filter_by_date_range(get_app_store().transactions, start, end)
    direction = (request.args.get("direction") or "").upper()
    if direction:
        transactions = [t for t in transactions if t.direction == direction]

    return {
        "items": [t.to_dict() for t in transactions],
        "totals": reporting_service.cash_totals(transactions),
    }


@cashflow_bp.post("")
@require_auth
def create_transaction_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=TRANSACTION_POLICY, partial=False)
        enforce_rules_transaction(patch)
        created = entry_service.record_transaction(get_app_store(), patch, current_user_id())
    except ValidationError as e:
        return {"error": str(e)}, 400

    if created is None:
        current_app.logger.error("Transaction dropped: no user on the request")
        return {"error": "No user logged in"}, 401

    return created.to_dict(), 201


@cashflow_bp.delete("/<transaction_id>")
@require_auth
def delete_transaction_route(transaction_id: str):
    store = get_app_store()
    if store.get_transaction(transaction_id) is None:
        return {"error": "Transaction not found"}, 404

    store.delete_transaction(transaction_id)
    return {"ok": True}, 200
