# Overview: Flask API routes for SIM types and imported packages; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services.app_store import get_app_store
from ..services import entry_service, stats_service
from ..validation import (
    PRODUCT_TYPE_POLICY,
    BATCH_POLICY,
    validate_payload,
    enforce_rules_batch,
    ValidationError,
)
from ..decorators import require_auth

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.get("/product-types")
@require_auth
def list_product_types():
    store = get_app_store()
    return {"items": [p.to_dict() for p in store.product_types]}


@catalog_bp.post("/product-types")
@require_auth
def create_product_type_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=PRODUCT_TYPE_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    created = entry_service.record_product_type(get_app_store(), patch)
    return created.to_dict(), 201


@catalog_bp.delete("/product-types/<product_type_id>")
@require_auth
def delete_product_type_route(product_type_id: str):
    """Batches and orders of the type are kept; they render with an unknown product name."""
    store = get_app_store()
    if store.get_product_type(product_type_id) is None:
        return {"error": "Product type not found"}, 404

    store.delete_product_type(product_type_id)
    return {"ok": True}, 200


@catalog_bp.get("/inventory/batches")
@require_auth
def list_batches():
    """
    Imported packages, newest first.

    Query params:
    - product_type_id: str (optional) - only batches of this type
    """
    product_type_id = request.args.get("product_type_id")
    batches = get_app_store().batches
    if product_type_id:
        batches = [b for b in batches if b.product_type_id == product_type_id]
    return {"items": [b.to_dict() for b in batches]}


@catalog_bp.post("/inventory/batches")
@require_auth
def create_batch_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=BATCH_POLICY, partial=False)
        enforce_rules_batch(patch)
        created = entry_service.record_batch(get_app_store(), patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return created.to_dict(), 201


@catalog_bp.delete("/inventory/batches/<batch_id>")
@require_auth
def delete_batch_route(batch_id: str):
    store = get_app_store()
    if store.get_batch(batch_id) is None:
        return {"error": "Batch not found"}, 404

    store.delete_batch(batch_id)
    return {"ok": True}, 200


@catalog_bp.get("/inventory/stats")
@require_auth
def inventory_stats_route():
    """Per product type: imported, sold, current stock, weighted average cost and stock status."""
    stats = stats_service.inventory_stats(get_app_store())
    return {"items": [s.to_dict() for s in stats]}
