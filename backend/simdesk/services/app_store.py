# Overview: In-memory cache of the six collections with optimistic write-through to the row store.

"""
AppStore: the persistence adapter.

Holds the six collections in memory and is the only object that talks to the
backing RowStore. Lifecycle:

- reload(): full read of every collection (sign-in, token refresh, first
  authenticated request after start-up).
- clear(): drop everything (sign-out).

Every mutation changes the in-memory collections first and then writes
through to the store via optimistic_write(); a failed write is logged and the
local change is kept. New records are prepended so collections read newest
first.

The statistics pipeline reads the collections directly from this object; it
never touches the store.
"""

from __future__ import annotations

import logging
import re
import uuid
from datetime import date, datetime
from typing import Iterable

from flask import current_app

from ..records import (
    ProductType,
    InventoryBatch,
    Customer,
    SaleOrder,
    CashTransaction,
    DueDateChangeLog,
    merge_reason_tags,
    with_changes,
)
from ..time_utils import utcnow
from .auth_service import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED
from .optimistic import optimistic_write
from .row_mapping import (
    COLLECTIONS,
    Collection,
    PRODUCT_TYPES,
    BATCHES,
    CUSTOMERS,
    ORDERS,
    TRANSACTIONS,
    DUE_DATE_LOGS,
    from_row,
    to_row,
    to_row_fields,
)
from .row_store import RowStore, RowStoreError


logger = logging.getLogger(__name__)

EXTENSION_KEY = "simdesk.app_store"


class RecordNotFound(LookupError):
    """Raised when an operation names a record id that is not in the store."""
    pass


def generate_id() -> str:
    return uuid.uuid4().hex


def generate_code(prefix: str, existing_codes: Iterable[str], pad: int = 5) -> str:
    """
    Next sequential code for a prefix, e.g. SO-00042.

    The sequence continues from the highest existing numeric suffix for the
    prefix; codes in other formats are ignored.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    highest = 0
    for code in existing_codes:
        match = pattern.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{highest + 1:0{pad}d}"


def get_app_store() -> "AppStore":
    """The AppStore bound to the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]


class AppStore:
    def __init__(self, row_store: RowStore):
        self.row_store = row_store
        self.loaded = False
        self._reset()

    def _reset(self) -> None:
        self.product_types: list[ProductType] = []
        self.batches: list[InventoryBatch] = []
        self.customers: list[Customer] = []
        self.orders: list[SaleOrder] = []
        self.transactions: list[CashTransaction] = []
        self.due_date_logs: list[DueDateChangeLog] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reload(self) -> bool:
        """
        Replace every collection with a fresh read from the store.

        All six tables are read before anything is replaced; if any read
        fails the previous collections stay as they were.
        """
        try:
            fresh = {
                collection.key: [from_row(collection, row) for row in self.row_store.select_all(collection.table)]
                for collection in COLLECTIONS
            }
        except (RowStoreError, ValueError):
            logger.exception("Error fetching data")
            return False

        for key, records in fresh.items():
            setattr(self, key, records)
        self.loaded = True
        logger.debug(
            "Loaded %s",
            ", ".join(f"{len(records)} {key}" for key, records in fresh.items()),
        )
        return True

    def clear(self) -> None:
        self._reset()
        self.loaded = False

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.reload()

    def handle_auth_event(self, event: str, session=None) -> None:
        """Subscriber for the auth change stream."""
        if event in (SIGNED_IN, TOKEN_REFRESHED):
            self.reload()
        elif event == SIGNED_OUT:
            self.clear()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _find(self, records: list, record_id: str | None):
        if record_id is None:
            return None
        for record in records:
            if record.id == record_id:
                return record
        return None

    def get_product_type(self, product_type_id: str | None) -> ProductType | None:
        return self._find(self.product_types, product_type_id)

    def get_batch(self, batch_id: str) -> InventoryBatch | None:
        return self._find(self.batches, batch_id)

    def get_customer(self, customer_id: str | None) -> Customer | None:
        return self._find(self.customers, customer_id)

    def get_order(self, order_id: str | None) -> SaleOrder | None:
        return self._find(self.orders, order_id)

    def get_transaction(self, transaction_id: str) -> CashTransaction | None:
        return self._find(self.transactions, transaction_id)

    def logs_for_order(self, order_id: str) -> list[DueDateChangeLog]:
        return sorted(
            (log for log in self.due_date_logs if log.order_id == order_id),
            key=lambda log: log.timestamp or datetime.min,
            reverse=True,
        )

    # ------------------------------------------------------------------
    # Generic write-through helpers
    # ------------------------------------------------------------------

    def _insert(self, collection: Collection, record, label: str) -> bool:
        def apply_local():
            setattr(self, collection.key, [record] + getattr(self, collection.key))

        return optimistic_write(
            apply_local,
            lambda: self.row_store.insert(collection.table, to_row(collection, record)),
            f"adding {label}",
        )

    def _delete(self, collection: Collection, record_id: str, label: str) -> bool:
        def apply_local():
            setattr(self, collection.key, [r for r in getattr(self, collection.key) if r.id != record_id])

        return optimistic_write(
            apply_local,
            lambda: self.row_store.delete(collection.table, record_id),
            f"deleting {label}",
        )

    def _replace_local(self, collection: Collection, record) -> None:
        setattr(
            self,
            collection.key,
            [record if r.id == record.id else r for r in getattr(self, collection.key)],
        )

    def _update(self, collection: Collection, record, changes: dict, label: str) -> bool:
        return optimistic_write(
            lambda: self._replace_local(collection, record),
            lambda: self.row_store.update(collection.table, record.id, to_row_fields(collection, changes)),
            f"updating {label}",
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_product_type(self, product_type: ProductType) -> ProductType:
        self._insert(PRODUCT_TYPES, product_type, "sim type")
        return product_type

    def delete_product_type(self, product_type_id: str) -> None:
        # Batches and orders of the type are left alone.
        self._delete(PRODUCT_TYPES, product_type_id, "sim type")

    def add_batch(self, batch: InventoryBatch) -> InventoryBatch:
        self._insert(BATCHES, batch, "package")
        return batch

    def delete_batch(self, batch_id: str) -> None:
        self._delete(BATCHES, batch_id, "package")

    def add_customer(self, customer: Customer) -> Customer:
        self._insert(CUSTOMERS, customer, "customer")
        return customer

    def update_customer(self, customer: Customer) -> Customer:
        changes = {
            "customer_code": customer.customer_code,
            "name": customer.name,
            "phone": customer.phone,
            "email": customer.email,
            "address": customer.address,
            "customer_class": customer.customer_class,
            "tags": customer.tags,
            "note": customer.note,
        }
        self._update(CUSTOMERS, customer, changes, "customer")
        return customer

    def delete_customer(self, customer_id: str) -> None:
        self._delete(CUSTOMERS, customer_id, "customer")

    def add_order(self, order: SaleOrder) -> SaleOrder:
        self._insert(ORDERS, order, "order")
        return order

    def delete_order(self, order_id: str) -> None:
        # Linked transactions and due-date logs stay; they just stop matching.
        self._delete(ORDERS, order_id, "order")

    def add_transaction(self, transaction: CashTransaction, user_id: int | None) -> CashTransaction | None:
        """
        Record a cash transaction attributed to the signed-in user.

        Without a user the write is abandoned before anything changes and
        None is returned.
        """
        if user_id is None:
            logger.error("Cannot add transaction: No user logged in")
            return None
        attributed = with_changes(transaction, user_id=user_id)
        self._insert(TRANSACTIONS, attributed, "transaction")
        return attributed

    def delete_transaction(self, transaction_id: str) -> None:
        self._delete(TRANSACTIONS, transaction_id, "transaction")

    def extend_due_date(
        self,
        order_id: str,
        new_date: date | None,
        reason: str,
        *,
        now: datetime | None = None,
        log_id: str | None = None,
    ) -> DueDateChangeLog:
        """
        Move an order's payment deadline.

        Locally, in one step: set the new due date, bump the change counter
        and prepend a DueDateChangeLog. Then, as separate store writes: the
        order update, the log insert and (when the order has a customer and
        the reason yields tags) the customer's merged tag set. A failed write
        leaves the earlier local changes in place.

        Raises RecordNotFound before touching anything if the order is unknown.
        """
        order = self.get_order(order_id)
        if order is None:
            raise RecordNotFound(f"order {order_id} not found")

        log = DueDateChangeLog(
            id=log_id or generate_id(),
            order_id=order.id,
            old_date=order.due_date,
            new_date=new_date,
            reason=reason or "",
            timestamp=now or utcnow(),
        )
        new_count = (order.due_date_change_count or 0) + 1
        updated = with_changes(order, due_date=new_date, due_date_change_count=new_count)

        def apply_local():
            self._replace_local(ORDERS, updated)
            self.due_date_logs = [log] + self.due_date_logs

        optimistic_write(
            apply_local,
            lambda: self.row_store.update(
                ORDERS.table,
                order.id,
                to_row_fields(ORDERS, {"due_date": new_date, "due_date_change_count": new_count}),
            ),
            "updating order due date",
        )
        optimistic_write(
            None,
            lambda: self.row_store.insert(DUE_DATE_LOGS.table, to_row(DUE_DATE_LOGS, log)),
            "adding due date log",
        )

        if order.customer_id and reason:
            customer = self.get_customer(order.customer_id)
            if customer is not None:
                tags = merge_reason_tags(customer.tags, reason)
                self._update(
                    CUSTOMERS,
                    with_changes(customer, tags=tags),
                    {"tags": tags},
                    "customer tags",
                )
        return log
