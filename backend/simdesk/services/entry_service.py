# Overview: Service-layer operations that turn validated input into new records and hand them to the AppStore.

from __future__ import annotations

from ..records import (
    ProductType,
    InventoryBatch,
    Customer,
    SaleOrder,
    CashTransaction,
    DueDateChangeLog,
    WHOLESALE,
    RETAIL,
    DIRECTION_IN,
    with_changes,
)
from ..time_utils import today as utc_today
from ..validation import ValidationError, ConflictError
from .app_store import AppStore, RecordNotFound, generate_code, generate_id


BATCH_CODE_PREFIX = "SIM"
ORDER_CODE_PREFIX = "SO"
TRANSACTION_CODE_PREFIX = "TX"
CUSTOMER_CODE_PREFIX = "KH"

DEFAULT_WHOLESALE_NAME = "Đại lý"
DEFAULT_RETAIL_NAME = "Khách lẻ"

SETTLEMENT_CATEGORY = {
    WHOLESALE: "Thu bán sỉ",
    RETAIL: "Thu bán lẻ",
}


def record_product_type(store: AppStore, patch: dict) -> ProductType:
    return store.add_product_type(ProductType(id=generate_id(), name=patch["name"]))


def record_batch(store: AppStore, patch: dict) -> InventoryBatch:
    """Import a batch of an existing product type; the batch takes the type's name."""
    product_type = store.get_product_type(patch["product_type_id"])
    if product_type is None:
        raise ValidationError("product type not found")

    batch = InventoryBatch(
        id=generate_id(),
        code=generate_code(BATCH_CODE_PREFIX, (b.code for b in store.batches)),
        name=product_type.name,
        product_type_id=product_type.id,
        import_date=patch.get("import_date") or utc_today(),
        quantity=patch["quantity"],
        total_import_cost=patch["total_import_cost"],
    )
    return store.add_batch(batch)


def _check_customer_code(store: AppStore, code: str, customer_id: str | None = None) -> None:
    for customer in store.customers:
        if customer.customer_code == code and customer.id != customer_id:
            raise ConflictError(f"customer code {code} already exists")


def record_customer(store: AppStore, patch: dict) -> Customer:
    code = patch.get("customer_code") or generate_code(
        CUSTOMER_CODE_PREFIX, (c.customer_code for c in store.customers)
    )
    _check_customer_code(store, code)

    customer = Customer(
        id=generate_id(),
        customer_code=code,
        name=patch["name"],
        phone=patch.get("phone") or "",
        email=patch.get("email") or "",
        address=patch.get("address") or "",
        customer_class=patch.get("customer_class") or WHOLESALE,
        tags=patch.get("tags") or [],
        note=patch.get("note") or "",
    )
    return store.add_customer(customer)


def edit_customer(store: AppStore, customer_id: str, patch: dict) -> Customer:
    customer = store.get_customer(customer_id)
    if customer is None:
        raise RecordNotFound(f"customer {customer_id} not found")

    if "customer_code" in patch:
        if not patch["customer_code"]:
            raise ValidationError("customer_code cannot be blank")
        _check_customer_code(store, patch["customer_code"], customer_id=customer_id)

    changes = dict(patch)
    for key in ("phone", "email", "address", "note"):
        if key in changes and changes[key] is None:
            changes[key] = ""
    if "tags" in changes and changes["tags"] is None:
        changes["tags"] = []
    return store.update_customer(with_changes(customer, **changes))


def record_sale(
    store: AppStore,
    patch: dict,
    user_id: int | None,
) -> tuple[SaleOrder, CashTransaction | None]:
    """
    Create a sale order.

    A wholesale order linked to a customer carries that customer's name;
    retail orders are anonymous. A settled order gets no
    due date and an IN transaction for its full total, linked to it.
    """
    product_type = store.get_product_type(patch["product_type_id"])
    if product_type is None:
        raise ValidationError("product type not found")

    sale_class = patch["sale_class"]
    settled = bool(patch.get("is_settled_at_creation"))
    sale_date = patch.get("date") or utc_today()

    customer_id = None
    if sale_class == WHOLESALE:
        customer = store.get_customer(patch.get("customer_id"))
        if patch.get("customer_id") and customer is None:
            raise ValidationError("customer not found")
        customer_id = customer.id if customer else None
        counterparty = customer.name if customer else (patch.get("counterparty_name") or DEFAULT_WHOLESALE_NAME)
    else:
        counterparty = patch.get("counterparty_name") or DEFAULT_RETAIL_NAME

    order = SaleOrder(
        id=generate_id(),
        code=generate_code(ORDER_CODE_PREFIX, (o.code for o in store.orders)),
        date=sale_date,
        customer_id=customer_id,
        counterparty_name=counterparty,
        sale_class=sale_class,
        product_type_id=product_type.id,
        quantity=patch["quantity"],
        unit_price=patch["unit_price"],
        due_date=None if settled else patch.get("due_date"),
        due_date_change_count=0,
        note=patch.get("note") or "",
        is_settled_at_creation=settled,
    )

    settlement = None
    if settled:
        settlement = store.add_transaction(
            CashTransaction(
                id=generate_id(),
                code=generate_code(TRANSACTION_CODE_PREFIX, (t.code for t in store.transactions)),
                date=sale_date,
                direction=DIRECTION_IN,
                category=SETTLEMENT_CATEGORY[sale_class],
                amount=order.quantity * order.unit_price,
                method=patch.get("payment_method") or "CASH",
                linked_order_id=order.id,
                note=f"Tự động thu đơn {order.code}",
            ),
            user_id,
        )

    store.add_order(order)
    return order, settlement


def record_transaction(store: AppStore, patch: dict, user_id: int | None) -> CashTransaction | None:
    """
    Record a cash movement. Returns None (nothing recorded) when there is no
    signed-in user to attribute it to.
    """
    linked = patch.get("linked_order_id")
    if linked and store.get_order(linked) is None:
        raise ValidationError("linked order not found")

    transaction = CashTransaction(
        id=generate_id(),
        code=generate_code(TRANSACTION_CODE_PREFIX, (t.code for t in store.transactions)),
        date=patch.get("date") or utc_today(),
        direction=patch["direction"],
        category=patch.get("category") or "",
        amount=patch["amount"],
        method=patch.get("method") or "CASH",
        linked_order_id=linked or None,
        note=patch.get("note") or "",
    )
    return store.add_transaction(transaction, user_id)


def extend_due_date(store: AppStore, order_id: str, patch: dict) -> DueDateChangeLog:
    return store.extend_due_date(order_id, patch["new_due_date"], patch.get("reason") or "")
