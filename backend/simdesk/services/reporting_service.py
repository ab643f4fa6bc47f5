# Overview: Service-layer operations for reporting; dashboard figures, period summaries and the debt reminder.

"""
Reports built on top of the statistics pipeline.

All functions take already-derived views (OrderStat / InventoryProductStat)
and raw transactions; none of them read the store on their own. Date ranges
are inclusive on both ends and either end may be open (None).
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable

from ..records import (
    CashTransaction,
    Customer,
    DIRECTION_IN,
    DIRECTION_OUT,
    RETAIL,
    DEBT_RECOVERY,
    DEBT_WARNING,
)
from ..time_utils import to_iso_date
from .stats_service import STOCK_LOW, DerivedViews, InventoryProductStat, OrderStat


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


DEBT_HORIZON_DAYS = 7
MAX_CHART_DAYS = 366


def format_currency(amount: int) -> str:
    """12345678 -> '12.345.678 ₫'"""
    return f"{amount:,}".replace(",", ".") + " ₫"


def format_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "N/A"


def filter_by_date_range(records: Iterable, start: date | None, end: date | None) -> list:
    """Keep records whose .date falls in [start, end]; records without a date are dropped when a bound is set."""
    kept = []
    for record in records:
        if start and (record.date is None or record.date < start):
            continue
        if end and (record.date is None or record.date > end):
            continue
        kept.append(record)
    return kept


def _check_range(start: date | None, end: date | None) -> None:
    if start and end and start > end:
        raise ReportError("start must be on or before end")


def cash_totals(transactions: Iterable[CashTransaction]) -> dict:
    total_in = 0
    total_out = 0
    for tx in transactions:
        if tx.direction == DIRECTION_IN:
            total_in += tx.amount
        elif tx.direction == DIRECTION_OUT:
            total_out += tx.amount
    return {"total_in": total_in, "total_out": total_out, "balance": total_in - total_out}


def dashboard_summary(
    views: DerivedViews,
    transactions: list[CashTransaction],
    *,
    start: date | None,
    end: date | None,
    today: date,
) -> dict:
    """
    Headline figures.

    Stock is always the current total; receivables, cash and profit are
    limited to the range; the "today" block ignores the range.
    """
    _check_range(start, end)
    orders = filter_by_date_range(views.orders, start, end)
    cash = cash_totals(filter_by_date_range(transactions, start, end))
    todays = [o for o in views.orders if o.date == today]

    return {
        "start": to_iso_date(start),
        "end": to_iso_date(end),
        "total_stock": sum(p.current_stock for p in views.inventory),
        "total_receivables": sum(o.remaining for o in orders),
        "total_in": cash["total_in"],
        "total_out": cash["total_out"],
        "cash_balance": cash["balance"],
        "estimated_profit": sum(o.profit for o in orders),
        "today": {
            "date": to_iso_date(today),
            "revenue": sum(o.total_amount for o in todays),
            "profit": sum(o.profit for o in todays),
            "order_count": len(todays),
        },
        "low_stock": [p.product_type_id for p in views.inventory if p.status == STOCK_LOW],
    }


def pending_orders(orders: Iterable[OrderStat]) -> list[OrderStat]:
    """Orders with money still outstanding."""
    return [o for o in orders if o.remaining > 0]


def available_products(inventory: Iterable[InventoryProductStat]) -> list[InventoryProductStat]:
    """Product types that can still be sold from stock."""
    return [p for p in inventory if p.current_stock > 0]


def weekly_debt_orders(orders: Iterable[OrderStat], today: date) -> list[OrderStat]:
    """Open orders due within the next week (or already past due), earliest first."""
    horizon = today + timedelta(days=DEBT_HORIZON_DAYS)
    due = [o for o in orders if o.remaining > 0 and o.due_date and o.due_date <= horizon]
    return sorted(due, key=lambda o: o.due_date)


def _debt_icon(order: OrderStat) -> str:
    if order.debt_level == DEBT_RECOVERY:
        return "🚨"
    if order.debt_level == DEBT_WARNING:
        return "⚠️"
    if order.is_overdue:
        return "⏰"
    return "📅"


def debt_reminder_message(orders: Iterable[OrderStat], customers: Iterable[Customer], today: date) -> str:
    """Plain-text reminder of this week's collectible debts, ready to paste into a chat."""
    phones = {c.id: c.phone for c in customers}
    due = weekly_debt_orders(orders, today)

    header = f"📋 THÔNG BÁO THU HỒI NỢ TUẦN NÀY ({format_date(today)})\n----------------------------\n"
    if due:
        body = "\n".join(
            f"{_debt_icon(o)} {o.customer_name} - {phones.get(o.customer_id) or 'N/A'}\n"
            f"💰 Nợ: {format_currency(o.remaining)}\n"
            f"📅 Hạn: {format_date(o.due_date)}\n"
            for o in due
        )
    else:
        body = "✅ Không có nợ đến hạn trong tuần này."
    footer = "\n----------------------------\n👉 Nhân viên phụ trách vui lòng kiểm tra và đôn đốc!"
    return header + body + footer


def daily_sales_chart(orders: Iterable[OrderStat], start: date | None, end: date | None) -> list[dict]:
    """
    Revenue per day split by sale class.

    With both bounds set every day in the range appears, zero-filled.
    """
    _check_range(start, end)
    if start and end and (end - start).days + 1 > MAX_CHART_DAYS:
        raise ReportError(f"range cannot exceed {MAX_CHART_DAYS} days")
    days: dict[date, dict] = {}
    if start and end:
        day = start
        while day <= end:
            days[day] = {"retail": 0, "wholesale": 0}
            day += timedelta(days=1)

    for order in filter_by_date_range(orders, start, end):
        if order.date is None:
            continue
        bucket = days.setdefault(order.date, {"retail": 0, "wholesale": 0})
        if order.sale_class == RETAIL:
            bucket["retail"] += order.total_amount
        else:
            bucket["wholesale"] += order.total_amount

    return [
        {
            "date": day.isoformat(),
            "label": f"{day.day}/{day.month}",
            "retail": bucket["retail"],
            "wholesale": bucket["wholesale"],
            "total": bucket["retail"] + bucket["wholesale"],
        }
        for day, bucket in sorted(days.items())
    ]


def monthly_summary(
    orders: Iterable[OrderStat],
    transactions: Iterable[CashTransaction],
    start: date | None,
    end: date | None,
) -> list[dict]:
    """Cash in, cash out and order profit per YYYY-MM, for months with any activity."""
    _check_range(start, end)
    txs = [t for t in filter_by_date_range(transactions, start, end) if t.date]
    sold = [o for o in filter_by_date_range(orders, start, end) if o.date]

    months: dict[str, dict] = {}

    def bucket(day: date) -> dict:
        return months.setdefault(day.strftime("%Y-%m"), {"total_in": 0, "total_out": 0, "profit": 0})

    for tx in txs:
        if tx.direction == DIRECTION_IN:
            bucket(tx.date)["total_in"] += tx.amount
        else:
            bucket(tx.date)["total_out"] += tx.amount
    for order in sold:
        bucket(order.date)["profit"] += order.profit

    return [{"month": month, **figures} for month, figures in sorted(months.items())]


def profit_calendar(orders: Iterable[OrderStat], year: int, month: int) -> list[dict]:
    """One entry per day of the month with that day's orders and their profit."""
    if not 1 <= month <= 12:
        raise ReportError("month must be between 1 and 12")
    if not date.min.year <= year <= date.max.year:
        raise ReportError(f"year must be between {date.min.year} and {date.max.year}")
    by_day: dict[date, list[OrderStat]] = {}
    for order in orders:
        if order.date and order.date.year == year and order.date.month == month:
            by_day.setdefault(order.date, []).append(order)

    days = []
    for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
        day = date(year, month, day_number)
        day_orders = by_day.get(day, [])
        days.append({
            "day": day_number,
            "date": day.isoformat(),
            "profit": sum(o.profit for o in day_orders),
            "order_ids": [o.id for o in day_orders],
        })
    return days
