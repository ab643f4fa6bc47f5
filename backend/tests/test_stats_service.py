"""
Tests for the derived statistics pipeline (inventory -> orders -> customers).

The pipeline only reads collections, so a SimpleNamespace with the six lists
and a get_customer() stands in for the AppStore.
"""

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from simdesk.records import (
    ProductType,
    InventoryBatch,
    Customer,
    SaleOrder,
    CashTransaction,
    DueDateChangeLog,
    WHOLESALE,
    RETAIL,
    DEBT_NORMAL,
    DEBT_WARNING,
    DEBT_OVERDUE,
    DEBT_RECOVERY,
)
from simdesk.services import stats_service
from simdesk.services.stats_service import PAID, PARTIAL, UNPAID, STOCK_LOW, STOCK_OK


NOW = datetime(2026, 5, 10, 9, 30)


def make_store(product_types=(), batches=(), customers=(), orders=(), transactions=(), logs=()):
    customers = list(customers)
    by_id = {c.id: c for c in customers}
    return SimpleNamespace(
        product_types=list(product_types),
        batches=list(batches),
        customers=customers,
        orders=list(orders),
        transactions=list(transactions),
        due_date_logs=list(logs),
        get_customer=lambda cid: by_id.get(cid),
    )


def batch(bid, product_type_id, quantity, cost):
    return InventoryBatch(
        id=bid, code=f"SIM-{bid}", product_type_id=product_type_id,
        import_date=date(2026, 5, 1), quantity=quantity, total_import_cost=cost,
    )


def order(oid, product_type_id="p", quantity=1, unit_price=0, customer_id=None,
          due_date=None, changes=0, sale_class=WHOLESALE, name="Đại lý A"):
    return SaleOrder(
        id=oid, code=f"SO-{oid}", date=date(2026, 5, 2), counterparty_name=name,
        sale_class=sale_class, product_type_id=product_type_id, quantity=quantity,
        unit_price=unit_price, customer_id=customer_id, due_date=due_date,
        due_date_change_count=changes,
    )


def pay(tid, order_id, amount, direction="IN"):
    return CashTransaction(
        id=tid, code=f"TX-{tid}", date=date(2026, 5, 3), direction=direction,
        category="Thu nợ", amount=amount, linked_order_id=order_id,
    )


PRODUCT = ProductType(id="p", name="Viettel 4G")


# =============================================================================
# INVENTORY
# =============================================================================


def test_weighted_average_cost_over_two_batches():
    store = make_store(
        product_types=[PRODUCT],
        batches=[batch("b1", "p", 100, 1_000_000), batch("b2", "p", 50, 600_000)],
    )
    [stat] = stats_service.inventory_stats(store)
    assert stat.weighted_avg_cost == 10_667
    assert stat.total_imported == 150
    assert [b.id for b in stat.batches] == ["b1", "b2"]


def test_zero_imported_has_zero_average_cost():
    store = make_store(product_types=[PRODUCT], orders=[order("o1", quantity=5, unit_price=1000)])
    [stat] = stats_service.inventory_stats(store)
    assert stat.weighted_avg_cost == 0
    assert stat.total_imported == 0


def test_stock_can_go_negative_and_is_low():
    store = make_store(
        product_types=[PRODUCT],
        batches=[batch("b1", "p", 10, 100_000)],
        orders=[order("o1", quantity=15, unit_price=20_000)],
    )
    [stat] = stats_service.inventory_stats(store)
    assert stat.total_sold == 15
    assert stat.current_stock == -5
    assert stat.status == STOCK_LOW


@pytest.mark.parametrize("stock,expected", [(20, STOCK_LOW), (21, STOCK_OK)])
def test_low_stock_threshold_is_inclusive(stock, expected):
    store = make_store(product_types=[PRODUCT], batches=[batch("b1", "p", stock, 0)])
    [stat] = stats_service.inventory_stats(store)
    assert stat.status == expected


def test_batches_of_other_types_are_ignored():
    other = ProductType(id="q", name="Mobi")
    store = make_store(
        product_types=[PRODUCT, other],
        batches=[batch("b1", "p", 100, 1_000_000), batch("b2", "q", 100, 5_000_000)],
    )
    stats = {s.product_type_id: s for s in stats_service.inventory_stats(store)}
    assert stats["p"].weighted_avg_cost == 10_000
    assert stats["q"].weighted_avg_cost == 50_000


# =============================================================================
# ORDERS
# =============================================================================


def test_order_cost_and_profit_use_weighted_average():
    store = make_store(
        product_types=[PRODUCT],
        batches=[batch("b1", "p", 100, 1_000_000), batch("b2", "p", 50, 600_000)],
        orders=[order("o1", quantity=10, unit_price=20_000)],
    )
    views = stats_service.derive(store, now=NOW)
    [stat] = views.orders
    assert stat.total_amount == 200_000
    assert stat.cost == 106_670
    assert stat.profit == 93_330


def test_partial_payment():
    store = make_store(
        product_types=[PRODUCT],
        orders=[order("o1", quantity=10, unit_price=50_000)],
        transactions=[pay("t1", "o1", 200_000)],
    )
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.total_amount == 500_000
    assert stat.paid_amount == 200_000
    assert stat.remaining == 300_000
    assert stat.status == PARTIAL


def test_overpayment_never_makes_remaining_negative():
    store = make_store(
        product_types=[PRODUCT],
        orders=[order("o1", quantity=1, unit_price=100_000)],
        transactions=[pay("t1", "o1", 150_000)],
    )
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.remaining == 0
    assert stat.status == PAID


def test_out_transactions_do_not_count_as_payment():
    store = make_store(
        product_types=[PRODUCT],
        orders=[order("o1", quantity=1, unit_price=100_000)],
        transactions=[pay("t1", "o1", 100_000, direction="OUT")],
    )
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.paid_amount == 0
    assert stat.status == UNPAID


@pytest.mark.parametrize(
    "remaining,paid,expected",
    [(0, 0, PAID), (0, 500, PAID), (-1, 0, PAID), (100, 0, UNPAID), (100, 1, PARTIAL)],
)
def test_payment_status(remaining, paid, expected):
    assert stats_service.payment_status(remaining, paid) == expected


def test_settled_debt_is_normal_even_after_three_extensions():
    store = make_store(
        product_types=[PRODUCT],
        orders=[order("o1", quantity=1, unit_price=100_000, changes=3, due_date=date(2026, 1, 1))],
        transactions=[pay("t1", "o1", 100_000)],
    )
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.remaining == 0
    assert stat.debt_level == DEBT_NORMAL
    assert stat.is_overdue is False


def test_three_extensions_is_recovery_before_due_date():
    store = make_store(
        product_types=[PRODUCT],
        orders=[order("o1", quantity=1, unit_price=100_000, changes=3, due_date=date(2026, 12, 31))],
    )
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.debt_level == DEBT_RECOVERY
    assert stat.is_overdue is True


def test_overdue_once_past_start_of_due_day():
    o = order("o1", quantity=1, unit_price=100_000, due_date=date(2026, 5, 10))
    assert stats_service.classify_debt(o, 100_000, datetime(2026, 5, 10, 0, 0)) == DEBT_NORMAL
    assert stats_service.classify_debt(o, 100_000, datetime(2026, 5, 10, 0, 1)) == DEBT_OVERDUE
    assert stats_service.classify_debt(o, 100_000, datetime(2026, 5, 9, 23, 59)) == DEBT_NORMAL


def test_no_due_date_is_never_overdue():
    o = order("o1", quantity=1, unit_price=100_000, changes=2)
    assert stats_service.classify_debt(o, 100_000, NOW) == DEBT_NORMAL


def test_unknown_product_and_customer_fall_back():
    store = make_store(orders=[order("o1", product_type_id="gone", customer_id="c-gone", name="Anh Ba")])
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.product_name == "?"
    assert stat.customer_name == "Anh Ba"
    assert stat.cost == 0


def test_customer_name_comes_from_customer_record():
    customer = Customer(id="c1", customer_code="KH-00001", name="Cửa hàng Minh")
    store = make_store(product_types=[PRODUCT], customers=[customer], orders=[order("o1", customer_id="c1")])
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.customer_name == "Cửa hàng Minh"


def test_latest_reason_is_from_most_recent_log():
    logs = [
        DueDateChangeLog(id="l1", order_id="o1", old_date=None, new_date=date(2026, 6, 1),
                         reason="hẹn lại", timestamp=datetime(2026, 5, 1, 8)),
        DueDateChangeLog(id="l2", order_id="o1", old_date=date(2026, 6, 1), new_date=date(2026, 6, 8),
                         reason="mưa bão", timestamp=datetime(2026, 5, 4, 8)),
    ]
    store = make_store(product_types=[PRODUCT], orders=[order("o1")], logs=list(reversed(logs)))
    [stat] = stats_service.derive(store, now=NOW).orders
    assert stat.latest_reason == "mưa bão"


def test_order_to_dict_includes_derived_fields():
    store = make_store(product_types=[PRODUCT], orders=[order("o1", quantity=2, unit_price=10_000)])
    [stat] = stats_service.derive(store, now=NOW).orders
    data = stat.to_dict()
    assert data["id"] == "o1"
    assert data["total_amount"] == 20_000
    assert data["status"] == UNPAID
    assert data["product_name"] == "Viettel 4G"


# =============================================================================
# CUSTOMERS
# =============================================================================


def test_worst_debt_level():
    assert stats_service.worst_debt_level([]) == DEBT_NORMAL
    assert stats_service.worst_debt_level([DEBT_NORMAL, DEBT_NORMAL]) == DEBT_NORMAL
    assert stats_service.worst_debt_level([DEBT_OVERDUE, DEBT_RECOVERY, DEBT_NORMAL]) == DEBT_RECOVERY
    assert stats_service.worst_debt_level([DEBT_WARNING, DEBT_NORMAL]) == DEBT_WARNING
    assert stats_service.worst_debt_level([DEBT_WARNING, DEBT_OVERDUE]) == DEBT_OVERDUE


def test_customer_without_orders():
    customer = Customer(id="c1", customer_code="KH-00001", name="Minh")
    store = make_store(customers=[customer])
    [stat] = stats_service.derive(store, now=NOW).customers
    assert stat.gmv == 0
    assert stat.current_debt == 0
    assert stat.next_due_date is None
    assert stat.worst_debt_level == DEBT_NORMAL


def test_customer_aggregates():
    customer = Customer(id="c1", customer_code="KH-00001", name="Minh")
    orders = [
        order("o1", quantity=1, unit_price=100_000, customer_id="c1", due_date=date(2026, 6, 1)),
        order("o2", quantity=1, unit_price=200_000, customer_id="c1", due_date=date(2026, 5, 20)),
        order("o3", quantity=1, unit_price=300_000, customer_id="c1", due_date=date(2026, 5, 1)),
        order("o4", quantity=1, unit_price=999_000, customer_id="other"),
        order("o5", quantity=1, unit_price=50_000, customer_id="c1", sale_class=RETAIL, changes=3),
    ]
    store = make_store(
        product_types=[PRODUCT],
        customers=[customer],
        orders=orders,
        transactions=[pay("t1", "o3", 300_000)],
    )
    [stat] = stats_service.derive(store, now=NOW).customers
    assert stat.gmv == 650_000
    assert stat.current_debt == 350_000
    # o3 is paid, so its earlier due date does not count
    assert stat.next_due_date == date(2026, 5, 20)
    assert stat.worst_debt_level == DEBT_RECOVERY
    assert stat.to_dict()["next_due_date"] == "2026-05-20"
