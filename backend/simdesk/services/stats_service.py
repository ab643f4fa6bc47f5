# Overview: Derived statistics over the in-memory collections (inventory, orders, customers).

"""
Statistics pipeline.

Three layers, each a pure function of the AppStore collections plus the layer
below it:

    inventory_stats(store)               per product type
    order_stats(store, inventory, now)   per sale order
    customer_stats(store, orders)        per customer

Everything is recomputed from scratch on every call. Nothing is cached.

Costing: an order's cost uses the product type's *current* weighted average
cost, so profit on old orders moves when new batches are imported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time

from ..records import (
    Customer,
    InventoryBatch,
    SaleOrder,
    DIRECTION_IN,
    DEBT_LEVELS,
    DEBT_NORMAL,
    DEBT_OVERDUE,
    DEBT_RECOVERY,
)
from ..time_utils import to_iso_date, utcnow


LOW_STOCK_THRESHOLD = 20
RECOVERY_CHANGE_COUNT = 3

STOCK_OK = "OK"
STOCK_LOW = "LOW_STOCK"

PAID = "PAID"
PARTIAL = "PARTIAL"
UNPAID = "UNPAID"


@dataclass
class InventoryProductStat:
    product_type_id: str
    name: str
    total_imported: int
    total_sold: int
    current_stock: int
    weighted_avg_cost: int
    status: str
    batches: list[InventoryBatch] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "product_type_id": self.product_type_id,
            "name": self.name,
            "total_imported": self.total_imported,
            "total_sold": self.total_sold,
            "current_stock": self.current_stock,
            "weighted_avg_cost": self.weighted_avg_cost,
            "status": self.status,
            "batches": [batch.to_dict() for batch in self.batches],
        }


@dataclass
class OrderStat:
    order: SaleOrder
    product_name: str
    customer_name: str
    total_amount: int
    cost: int
    profit: int
    paid_amount: int
    remaining: int
    status: str
    debt_level: str
    is_overdue: bool
    latest_reason: str | None = None

    # Pass-throughs used by reports
    @property
    def id(self) -> str:
        return self.order.id

    @property
    def date(self) -> date | None:
        return self.order.date

    @property
    def due_date(self) -> date | None:
        return self.order.due_date

    @property
    def customer_id(self) -> str | None:
        return self.order.customer_id

    @property
    def sale_class(self) -> str:
        return self.order.sale_class

    def to_dict(self) -> dict:
        data = self.order.to_dict()
        data.update({
            "product_name": self.product_name,
            "customer_name": self.customer_name,
            "total_amount": self.total_amount,
            "cost": self.cost,
            "profit": self.profit,
            "paid_amount": self.paid_amount,
            "remaining": self.remaining,
            "status": self.status,
            "debt_level": self.debt_level,
            "is_overdue": self.is_overdue,
            "latest_reason": self.latest_reason,
        })
        return data


@dataclass
class CustomerStat:
    customer: Customer
    gmv: int
    current_debt: int
    next_due_date: date | None
    worst_debt_level: str

    @property
    def id(self) -> str:
        return self.customer.id

    def to_dict(self) -> dict:
        data = self.customer.to_dict()
        data.update({
            "gmv": self.gmv,
            "current_debt": self.current_debt,
            "next_due_date": to_iso_date(self.next_due_date),
            "worst_debt_level": self.worst_debt_level,
        })
        return data


@dataclass
class DerivedViews:
    inventory: list[InventoryProductStat]
    orders: list[OrderStat]
    customers: list[CustomerStat]


def weighted_average_cost(batches: list[InventoryBatch]) -> int:
    """Total import cost over total units imported, rounded; 0 when nothing was imported."""
    imported = sum(batch.quantity for batch in batches)
    if imported <= 0:
        return 0
    total_cost = sum(batch.total_import_cost for batch in batches)
    # nearest-unit rounding (half-up)
    return (total_cost + (imported // 2)) // imported


def inventory_stats(store) -> list[InventoryProductStat]:
    stats = []
    for product_type in store.product_types:
        batches = [b for b in store.batches if b.product_type_id == product_type.id]
        imported = sum(b.quantity for b in batches)
        sold = sum(o.quantity for o in store.orders if o.product_type_id == product_type.id)
        stock = imported - sold
        stats.append(InventoryProductStat(
            product_type_id=product_type.id,
            name=product_type.name,
            total_imported=imported,
            total_sold=sold,
            current_stock=stock,
            weighted_avg_cost=weighted_average_cost(batches),
            status=STOCK_LOW if stock <= LOW_STOCK_THRESHOLD else STOCK_OK,
            batches=batches,
        ))
    return stats


def payment_status(remaining: int, paid_amount: int) -> str:
    if remaining <= 0:
        return PAID
    if paid_amount > 0:
        return PARTIAL
    return UNPAID


def classify_debt(order: SaleOrder, remaining: int, now: datetime) -> str:
    """
    Debt level of one order.

    Only orders with money outstanding are classified. Three or more
    extensions put the order in RECOVERY whatever its date; otherwise it is
    OVERDUE once the current moment is past the start of the due date.
    WARNING is never assigned here.
    """
    if remaining <= 0:
        return DEBT_NORMAL
    if (order.due_date_change_count or 0) >= RECOVERY_CHANGE_COUNT:
        return DEBT_RECOVERY
    if order.due_date and now > datetime.combine(order.due_date, time.min):
        return DEBT_OVERDUE
    return DEBT_NORMAL


def order_stats(store, inventory: list[InventoryProductStat], now: datetime | None = None) -> list[OrderStat]:
    now = now or utcnow()
    by_type = {stat.product_type_id: stat for stat in inventory}

    paid_by_order: dict[str, int] = {}
    for tx in store.transactions:
        if tx.direction == DIRECTION_IN and tx.linked_order_id:
            paid_by_order[tx.linked_order_id] = paid_by_order.get(tx.linked_order_id, 0) + tx.amount

    latest_log = {}
    for log in store.due_date_logs:
        current = latest_log.get(log.order_id)
        if current is None or (log.timestamp or datetime.min) > (current.timestamp or datetime.min):
            latest_log[log.order_id] = log

    stats = []
    for order in store.orders:
        product = by_type.get(order.product_type_id)
        avg_cost = product.weighted_avg_cost if product else 0
        total = order.quantity * order.unit_price
        cost = order.quantity * avg_cost
        paid = paid_by_order.get(order.id, 0)
        remaining = max(0, total - paid)
        customer = store.get_customer(order.customer_id)
        debt_level = classify_debt(order, remaining, now)
        log = latest_log.get(order.id)

        stats.append(OrderStat(
            order=order,
            product_name=product.name if product else "?",
            customer_name=customer.name if customer else order.counterparty_name,
            total_amount=total,
            cost=cost,
            profit=total - cost,
            paid_amount=paid,
            remaining=remaining,
            status=payment_status(remaining, paid),
            debt_level=debt_level,
            is_overdue=debt_level in (DEBT_OVERDUE, DEBT_RECOVERY),
            latest_reason=log.reason if log else None,
        ))
    return stats


def worst_debt_level(levels) -> str:
    worst = DEBT_NORMAL
    for level in levels:
        if DEBT_LEVELS.index(level) > DEBT_LEVELS.index(worst):
            worst = level
    return worst


def customer_stats(store, orders: list[OrderStat]) -> list[CustomerStat]:
    stats = []
    for customer in store.customers:
        mine = [o for o in orders if o.customer_id == customer.id]
        open_due_dates = [o.due_date for o in mine if o.remaining > 0 and o.due_date]
        stats.append(CustomerStat(
            customer=customer,
            gmv=sum(o.total_amount for o in mine),
            current_debt=sum(o.remaining for o in mine),
            next_due_date=min(open_due_dates) if open_due_dates else None,
            worst_debt_level=worst_debt_level(o.debt_level for o in mine),
        ))
    return stats


def derive(store, now: datetime | None = None) -> DerivedViews:
    """Run the whole pipeline once."""
    inventory = inventory_stats(store)
    orders = order_stats(store, inventory, now=now)
    return DerivedViews(
        inventory=inventory,
        orders=orders,
        customers=customer_stats(store, orders),
    )
