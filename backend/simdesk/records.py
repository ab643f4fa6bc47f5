# Overview: In-memory record shapes for the six collections held by the AppStore.

"""
In-memory records.

These are the application's own shapes. The backing store keeps the same data
under different field names (see services/row_mapping.py); nothing outside the
persistence adapter should ever see a store row.

Money is integer currency units (VND, no minor unit). Calendar dates are
datetime.date; the due-date log timestamp is a UTC-naive datetime.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime

from .time_utils import to_iso_date, to_utc_z


WHOLESALE = "WHOLESALE"
RETAIL = "RETAIL"
SALE_CLASSES = (WHOLESALE, RETAIL)

DIRECTION_IN = "IN"
DIRECTION_OUT = "OUT"
DIRECTIONS = (DIRECTION_IN, DIRECTION_OUT)

PAYMENT_METHODS = ("CASH", "TRANSFER", "COD")

# Total order, least to most troubled.
DEBT_NORMAL = "NORMAL"
DEBT_WARNING = "WARNING"
DEBT_OVERDUE = "OVERDUE"
DEBT_RECOVERY = "RECOVERY"
DEBT_LEVELS = (DEBT_NORMAL, DEBT_WARNING, DEBT_OVERDUE, DEBT_RECOVERY)


@dataclass
class ProductType:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass
class InventoryBatch:
    """One purchase event. Immutable once created; removed only by delete."""
    id: str
    code: str
    product_type_id: str
    import_date: date | None
    quantity: int
    total_import_cost: int
    name: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "product_type_id": self.product_type_id,
            "import_date": to_iso_date(self.import_date),
            "quantity": self.quantity,
            "total_import_cost": self.total_import_cost,
        }


@dataclass
class Customer:
    id: str
    customer_code: str
    name: str
    phone: str = ""
    email: str = ""
    address: str = ""
    customer_class: str = WHOLESALE
    tags: list[str] = field(default_factory=list)
    note: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_code": self.customer_code,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "customer_class": self.customer_class,
            "tags": list(self.tags),
            "note": self.note,
        }


@dataclass
class SaleOrder:
    """
    A sale of one product type.

    customer_id is None for anonymous retail sales; counterparty_name then
    holds whatever the seller typed for the buyer.
    """
    id: str
    code: str
    date: date | None
    counterparty_name: str
    sale_class: str
    product_type_id: str
    quantity: int
    unit_price: int
    customer_id: str | None = None
    due_date: date | None = None
    due_date_change_count: int = 0
    note: str = ""
    is_settled_at_creation: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "date": to_iso_date(self.date),
            "customer_id": self.customer_id,
            "counterparty_name": self.counterparty_name,
            "sale_class": self.sale_class,
            "product_type_id": self.product_type_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "due_date": to_iso_date(self.due_date),
            "due_date_change_count": self.due_date_change_count,
            "note": self.note,
            "is_settled_at_creation": self.is_settled_at_creation,
        }


@dataclass
class CashTransaction:
    """A ledger entry. amount is never negative; direction carries the sign."""
    id: str
    code: str
    date: date | None
    direction: str
    category: str
    amount: int
    method: str = "CASH"
    linked_order_id: str | None = None
    note: str = ""
    user_id: int | None = None

    @property
    def signed_amount(self) -> int:
        return self.amount if self.direction == DIRECTION_IN else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "date": to_iso_date(self.date),
            "direction": self.direction,
            "category": self.category,
            "amount": self.amount,
            "method": self.method,
            "linked_order_id": self.linked_order_id,
            "note": self.note,
            "user_id": self.user_id,
        }


@dataclass
class DueDateChangeLog:
    """Append-only audit row for one payment-deadline extension."""
    id: str
    order_id: str
    old_date: date | None
    new_date: date | None
    reason: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "old_date": to_iso_date(self.old_date),
            "new_date": to_iso_date(self.new_date),
            "reason": self.reason,
            "timestamp": to_utc_z(self.timestamp),
        }


def split_reason_tags(reason: str | None) -> list[str]:
    """Split a free-text reason on commas into trimmed, non-empty tags."""
    if not reason:
        return []
    return [piece.strip() for piece in reason.split(",") if piece.strip()]


def merge_reason_tags(existing: list[str] | None, reason: str | None) -> list[str]:
    """
    Union the tags found in `reason` into `existing`.

    Result is deduplicated; existing tags keep their position and new ones
    are appended in the order they appear in the reason.
    """
    merged: list[str] = []
    for tag in list(existing or []) + split_reason_tags(reason):
        if tag not in merged:
            merged.append(tag)
    return merged


def with_changes(record, **changes):
    """Return a copy of a record with some fields replaced."""
    return replace(record, **changes)
