# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services.app_store import get_app_store, RecordNotFound
from ..services import entry_service, stats_service
from ..validation import (
    CUSTOMER_POLICY,
    validate_payload,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _matches(stat: stats_service.CustomerStat, term: str) -> bool:
    customer = stat.customer
    haystack = (customer.name, customer.customer_code, customer.phone, customer.email)
    return any(term in (value or "").lower() for value in haystack)


@customers_bp.get("")
@require_auth
def list_customers():
    """
    Customers with their derived figures (GMV, current debt, next due date, worst debt level).

    Query params:
    - q: str (optional) - case-insensitive match on name, code, phone or email
    """
    views = stats_service.derive(get_app_store())
    customers = views.customers

    term = (request.args.get("q") or "").strip().lower()
    if term:
        customers = [c for c in customers if _matches(c, term)]

    return {"items": [c.to_dict() for c in customers]}


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=CUSTOMER_POLICY, partial=False)
        created = entry_service.record_customer(get_app_store(), patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return created.to_dict(), 201


@customers_bp.put("/<customer_id>")
@require_auth
def update_customer_route(customer_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=CUSTOMER_POLICY, partial=True)
        updated = entry_service.edit_customer(get_app_store(), customer_id, patch)
    except RecordNotFound:
        return {"error": "Customer not found"}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return updated.to_dict(), 200


@customers_bp.delete("/<customer_id>")
@require_auth
def delete_customer_route(customer_id: str):
    """Orders that reference the customer keep their counterparty name."""
    store = get_app_store()
    if store.get_customer(customer_id) is None:
        return {"error": "Customer not found"}, 404

    store.delete_customer(customer_id)
    return {"ok": True}, 200
