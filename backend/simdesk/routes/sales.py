# Overview: Flask API routes for sale orders and due-date extensions; parses input and returns JSON responses.

"""
Sale order routes.

Listings return orders joined with their derived figures (total, cost,
profit, paid, remaining, payment status, debt level). Extending a due date
also tags the order's customer with the reason's comma-separated parts.
"""

from flask import Blueprint, request

from ..records import SALE_CLASSES
from ..services.app_store import get_app_store, RecordNotFound
from ..services import entry_service, stats_service
from ..validation import (
    ORDER_POLICY,
    DUE_DATE_EXTENSION_POLICY,
    validate_payload,
    enforce_rules_order,
    ValidationError,
)
from ..decorators import require_auth, current_user_id

sales_bp = Blueprint("sales", __name__, url_prefix="/api/orders")


@sales_bp.get("")
@require_auth
def list_orders():
    """
    Orders, newest first.

    Query params:
    - sale_class: WHOLESALE | RETAIL (optional)
    - customer_id: str (optional)
    """
    sale_class = (request.args.get("sale_class") or "").upper()
    if sale_class and sale_class not in SALE_CLASSES:
        return {"error": f"sale_class must be one of {', '.join(SALE_CLASSES)}"}, 400
    customer_id = request.args.get("customer_id")

    orders = stats_service.derive(get_app_store()).orders
    if sale_class:
        orders = [o for o in orders if o.sale_class == sale_class]
    if customer_id:
        orders = [o for o in orders if o.customer_id == customer_id]

    return {"items": [o.to_dict() for o in orders]}


@sales_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    for stat in stats_service.derive(get_app_store()).orders:
        if stat.id == order_id:
            return stat.to_dict(), 200
    return {"error": "Order not found"}, 404


@sales_bp.post("")
@require_auth
def create_order_route():
    """
    Create a sale order.

    With is_settled_at_creation the order is paid in full on the spot: an IN
    transaction for the whole amount is recorded and returned as "settlement".
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=ORDER_POLICY, partial=False)
        enforce_rules_order(patch)
        order, settlement = entry_service.record_sale(get_app_store(), patch, current_user_id())
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {
        "order": order.to_dict(),
        "settlement": settlement.to_dict() if settlement else None,
    }, 201


@sales_bp.delete("/<order_id>")
@require_auth
def delete_order_route(order_id: str):
    store = get_app_store()
    if store.get_order(order_id) is None:
        return {"error": "Order not found"}, 404

    store.delete_order(order_id)
    return {"ok": True}, 200


@sales_bp.post("/<order_id>/due-date")
@require_auth
def extend_due_date_route(order_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=DUE_DATE_EXTENSION_POLICY, partial=False)
        log = entry_service.extend_due_date(get_app_store(), order_id, patch)
    except RecordNotFound:
        return {"error": "Order not found"}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    order = get_app_store().get_order(order_id)
    return {"order": order.to_dict(), "log": log.to_dict()}, 200


@sales_bp.get("/<order_id>/due-date-logs")
@require_auth
def due_date_logs_route(order_id: str):
    """Change history for one order, newest first."""
    store = get_app_store()
    if store.get_order(order_id) is None:
        return {"error": "Order not found"}, 404
    return {"items": [log.to_dict() for log in store.logs_for_order(order_id)]}
