# Overview: Field-name translation between store rows and in-memory records.

"""
Row <-> record translation.

The backing store uses its own flattened column names (sim_type_id,
total_import_price, agent_name, ...). The in-memory records use the
application's names (product_type_id, total_import_cost, counterparty_name,
...). Each Collection lists only the fields whose names differ; every other
field has the same name on both sides.

Reading is lenient: missing or NULL columns fall back to the record field's
default, and ISO strings are accepted for date/datetime fields so a store
that returns text works the same as one that returns native values.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime

from ..records import (
    ProductType,
    InventoryBatch,
    Customer,
    SaleOrder,
    CashTransaction,
    DueDateChangeLog,
)
from ..time_utils import parse_iso_date, parse_iso_datetime


@dataclass(frozen=True)
class Collection:
    key: str                 # attribute name on the AppStore
    table: str               # table name in the backing store
    record_type: type
    renames: dict[str, str] = field(default_factory=dict)  # record field -> row column
    date_fields: frozenset[str] = frozenset()
    datetime_fields: frozenset[str] = frozenset()

    def column_for(self, field_name: str) -> str:
        return self.renames.get(field_name, field_name)


PRODUCT_TYPES = Collection(
    key="product_types",
    table="sim_types",
    record_type=ProductType,
)

BATCHES = Collection(
    key="batches",
    table="sim_packages",
    record_type=InventoryBatch,
    renames={
        "product_type_id": "sim_type_id",
        "total_import_cost": "total_import_price",
    },
    date_fields=frozenset({"import_date"}),
)

CUSTOMERS = Collection(
    key="customers",
    table="customers",
    record_type=Customer,
    renames={
        "customer_code": "cid",
        "customer_class": "type",
    },
)

ORDERS = Collection(
    key="orders",
    table="sale_orders",
    record_type=SaleOrder,
    renames={
        "counterparty_name": "agent_name",
        "sale_class": "sale_type",
        "product_type_id": "sim_type_id",
        "unit_price": "sale_price",
        "due_date_change_count": "due_date_changes",
        "is_settled_at_creation": "is_finished",
    },
    date_fields=frozenset({"date", "due_date"}),
)

TRANSACTIONS = Collection(
    key="transactions",
    table="transactions",
    record_type=CashTransaction,
    renames={
        "direction": "type",
        "linked_order_id": "sale_order_id",
    },
    date_fields=frozenset({"date"}),
)

DUE_DATE_LOGS = Collection(
    key="due_date_logs",
    table="due_date_logs",
    record_type=DueDateChangeLog,
    renames={
        "timestamp": "updated_at",
    },
    date_fields=frozenset({"old_date", "new_date"}),
    datetime_fields=frozenset({"timestamp"}),
)

# Load order matters only for readability of logs; collections are independent.
COLLECTIONS = (PRODUCT_TYPES, BATCHES, CUSTOMERS, ORDERS, TRANSACTIONS, DUE_DATE_LOGS)


def _field_default(f: dataclasses.Field):
    if f.default is not dataclasses.MISSING:
        return f.default
    if f.default_factory is not dataclasses.MISSING:  # type: ignore[misc]
        return f.default_factory()  # type: ignore[misc]
    return None


def _read_value(collection: Collection, f: dataclasses.Field, value):
    if value is None:
        return _field_default(f)
    if f.name in collection.date_fields:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return parse_iso_date(str(value))
    if f.name in collection.datetime_fields:
        if isinstance(value, datetime):
            return value
        return parse_iso_datetime(str(value))
    if isinstance(value, list):
        return list(value)
    return value


def from_row(collection: Collection, row: dict):
    """Build an in-memory record from a store row."""
    kwargs = {}
    for f in dataclasses.fields(collection.record_type):
        kwargs[f.name] = _read_value(collection, f, row.get(collection.column_for(f.name)))
    return collection.record_type(**kwargs)


def to_row(collection: Collection, record) -> dict:
    """Full store row for an insert."""
    row = {}
    for f in dataclasses.fields(collection.record_type):
        value = getattr(record, f.name)
        row[collection.column_for(f.name)] = list(value) if isinstance(value, list) else value
    return row


def to_row_fields(collection: Collection, changes: dict) -> dict:
    """Translate a partial record-field change set to store column names."""
    valid = {f.name for f in dataclasses.fields(collection.record_type)}
    unknown = set(changes) - valid
    if unknown:
        raise KeyError(f"unknown field(s) for {collection.key}: {', '.join(sorted(unknown))}")
    return {
        collection.column_for(name): (list(value) if isinstance(value, list) else value)
        for name, value in changes.items()
    }
