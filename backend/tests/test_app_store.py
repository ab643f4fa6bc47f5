"""
AppStore tests against the in-memory RowStore from conftest.

Covers the write-through contract (local first, store second, failures only
logged), reload/clear lifecycle, and due-date extension.
"""

import logging
from datetime import date, datetime

import pytest

from simdesk.records import (
    ProductType,
    Customer,
    SaleOrder,
    CashTransaction,
    WHOLESALE,
    with_changes,
)
from simdesk.services.app_store import AppStore, RecordNotFound, generate_code
from simdesk.services.auth_service import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED


def _order(**overrides):
    fields = dict(
        id="o1", code="SO-00001", date=date(2026, 5, 1), counterparty_name="Minh",
        sale_class=WHOLESALE, product_type_id="p", quantity=10, unit_price=20_000,
        customer_id="c1", due_date=date(2026, 5, 15),
    )
    fields.update(overrides)
    return SaleOrder(**fields)


def _seeded(store):
    store.add_customer(Customer(id="c1", customer_code="KH-00001", name="Minh", tags=["hẹn lại"]))
    store.add_order(_order())
    return store


# =============================================================================
# CODES
# =============================================================================


def test_generate_code_continues_from_highest():
    assert generate_code("SO", []) == "SO-00001"
    assert generate_code("SO", ["SO-00002", "SO-00010", "TX-00099", "legacy", None]) == "SO-00011"


# =============================================================================
# LIFECYCLE
# =============================================================================


def test_reload_reads_rows_through_mapping(row_store):
    row_store.tables["sim_types"] = [{"id": "p", "name": "Viettel"}]
    row_store.tables["sim_packages"] = [{
        "id": "b1", "code": "SIM-00001", "name": "Viettel", "sim_type_id": "p",
        "import_date": "2026-05-01", "quantity": 100, "total_import_price": 1_000_000,
    }]
    store = AppStore(row_store)

    assert store.reload() is True
    assert store.loaded is True
    [b] = store.batches
    assert b.product_type_id == "p"
    assert b.total_import_cost == 1_000_000
    assert b.import_date == date(2026, 5, 1)


def test_failed_reload_keeps_previous_collections(store, row_store, caplog):
    store.add_product_type(ProductType(id="p", name="Viettel"))
    row_store.fail_on.add("select_all")

    with caplog.at_level(logging.ERROR):
        assert store.reload() is False

    assert [p.id for p in store.product_types] == ["p"]
    assert "Error fetching data" in caplog.text


def test_auth_events_drive_reload_and_clear(row_store):
    row_store.tables["sim_types"] = [{"id": "p", "name": "Viettel"}]
    store = AppStore(row_store)

    store.handle_auth_event(SIGNED_IN)
    assert len(store.product_types) == 1

    store.handle_auth_event(SIGNED_OUT)
    assert store.product_types == []
    assert store.loaded is False

    store.handle_auth_event(TOKEN_REFRESHED)
    assert len(store.product_types) == 1


def test_ensure_loaded_reads_once(row_store):
    store = AppStore(row_store)
    store.ensure_loaded()
    store.ensure_loaded()
    assert [c for c in row_store.calls if c == ("select_all", "sim_types")] == [("select_all", "sim_types")]


# =============================================================================
# WRITES
# =============================================================================


def test_new_records_are_prepended_and_written(store, row_store):
    store.add_product_type(ProductType(id="p1", name="A"))
    store.add_product_type(ProductType(id="p2", name="B"))

    assert [p.id for p in store.product_types] == ["p2", "p1"]
    assert [r["id"] for r in row_store.tables["sim_types"]] == ["p1", "p2"]


def test_insert_failure_keeps_local_record(store, row_store, caplog):
    row_store.fail_on.add("insert")

    with caplog.at_level(logging.ERROR):
        store.add_product_type(ProductType(id="p1", name="A"))

    assert [p.id for p in store.product_types] == ["p1"]
    assert row_store.tables.get("sim_types", []) == []
    assert "Error adding sim type" in caplog.text


def test_delete_removes_locally_and_remotely(store, row_store):
    store.add_product_type(ProductType(id="p1", name="A"))
    store.delete_product_type("p1")
    assert store.product_types == []
    assert row_store.tables["sim_types"] == []


def test_update_customer_writes_renamed_columns(store, row_store):
    _seeded(store)
    customer = store.get_customer("c1")
    store.update_customer(with_changes(customer, name="Minh Mới", customer_code="KH-00009"))

    assert store.get_customer("c1").name == "Minh Mới"
    [row] = row_store.tables["customers"]
    assert row["name"] == "Minh Mới"
    assert row["cid"] == "KH-00009"


def test_add_transaction_without_user_changes_nothing(store, row_store, caplog):
    tx = CashTransaction(id="t1", code="TX-00001", date=date(2026, 5, 1),
                         direction="IN", category="Thu nợ", amount=100)

    with caplog.at_level(logging.ERROR):
        assert store.add_transaction(tx, None) is None

    assert store.transactions == []
    assert ("insert", "transactions") not in row_store.calls
    assert "No user logged in" in caplog.text


def test_add_transaction_is_attributed(store, row_store):
    tx = CashTransaction(id="t1", code="TX-00001", date=date(2026, 5, 1),
                         direction="IN", category="Thu nợ", amount=100)
    saved = store.add_transaction(tx, 7)
    assert saved.user_id == 7
    assert row_store.tables["transactions"][0]["user_id"] == 7
    assert row_store.tables["transactions"][0]["type"] == "IN"


# =============================================================================
# DUE-DATE EXTENSION
# =============================================================================


@pytest.mark.parametrize("start_count", [0, 1, 4])
def test_extension_appends_one_log_and_bumps_count(store, start_count):
    _seeded(store)
    store.orders = [_order(due_date_change_count=start_count)]

    log = store.extend_due_date("o1", date(2026, 5, 22), "", now=datetime(2026, 5, 10, 8))

    assert len(store.due_date_logs) == 1
    assert store.due_date_logs[0] is log
    updated = store.get_order("o1")
    assert updated.due_date_change_count == start_count + 1
    assert updated.due_date == date(2026, 5, 22)
    assert log.old_date == date(2026, 5, 15)
    assert log.new_date == date(2026, 5, 22)


def test_extension_writes_order_log_and_tags(store, row_store):
    _seeded(store)

    store.extend_due_date("o1", date(2026, 5, 22), "hẹn lại, mưa bão", now=datetime(2026, 5, 10, 8))

    [order_row] = row_store.tables["sale_orders"]
    assert order_row["due_date"] == date(2026, 5, 22)
    assert order_row["due_date_changes"] == 1
    [log_row] = row_store.tables["due_date_logs"]
    assert log_row["order_id"] == "o1"
    assert log_row["updated_at"] == datetime(2026, 5, 10, 8)
    assert store.get_customer("c1").tags == ["hẹn lại", "mưa bão"]
    assert row_store.tables["customers"][0]["tags"] == ["hẹn lại", "mưa bão"]


def test_extension_without_reason_leaves_tags(store, row_store):
    _seeded(store)
    store.extend_due_date("o1", date(2026, 5, 22), "")
    assert store.get_customer("c1").tags == ["hẹn lại"]
    assert ("update", "customers") not in row_store.calls


def test_extension_of_unknown_order_touches_nothing(store, row_store):
    _seeded(store)
    calls_before = list(row_store.calls)

    with pytest.raises(RecordNotFound):
        store.extend_due_date("missing", date(2026, 5, 22), "x")

    assert store.due_date_logs == []
    assert row_store.calls == calls_before


def test_extension_keeps_local_state_when_store_fails(store, row_store, caplog):
    _seeded(store)
    row_store.fail_on.update({"update", "insert"})

    with caplog.at_level(logging.ERROR):
        store.extend_due_date("o1", date(2026, 5, 22), "mưa bão")

    assert store.get_order("o1").due_date_change_count == 1
    assert len(store.due_date_logs) == 1
    assert store.get_customer("c1").tags == ["hẹn lại", "mưa bão"]
    assert "due_date_logs" not in row_store.tables
    assert "Error updating order due date" in caplog.text


def test_logs_for_order_newest_first(store):
    _seeded(store)
    store.extend_due_date("o1", date(2026, 5, 22), "a", now=datetime(2026, 5, 10))
    store.extend_due_date("o1", date(2026, 5, 29), "b", now=datetime(2026, 5, 17))
    assert [log.reason for log in store.logs_for_order("o1")] == ["b", "a"]
    assert store.get_order("o1").due_date_change_count == 2
