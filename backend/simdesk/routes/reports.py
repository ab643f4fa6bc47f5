from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import reporting_service, stats_service
from ..services.app_store import get_app_store
from ..time_utils import today as utc_today
from ..validation import parse_date_arg, ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range_args():
    return (
        parse_date_arg("start", request.args.get("start")),
        parse_date_arg("end", request.args.get("end")),
    )


@reports_bp.get("/dashboard")
@require_auth
def dashboard_report():
    store = get_app_store()
    try:
        start, end = _range_args()
        report = reporting_service.dashboard_summary(
            stats_service.derive(store),
            store.transactions,
            start=start,
            end=end,
            today=utc_today(),
        )
        return jsonify(report), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/monthly")
@require_auth
def monthly_report():
    store = get_app_store()
    try:
        start, end = _range_args()
        rows = reporting_service.monthly_summary(
            stats_service.derive(store).orders, store.transactions, start, end
        )
        return jsonify({"items": rows}), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/daily-sales")
@require_auth
def daily_sales_report():
    try:
        start, end = _range_args()
        rows = reporting_service.daily_sales_chart(stats_service.derive(get_app_store()).orders, start, end)
        return jsonify({"items": rows}), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/calendar")
@require_auth
def calendar_report():
    current = utc_today()
    year = request.args.get("year", default=current.year, type=int)
    month = request.args.get("month", default=current.month, type=int)

    try:
        days = reporting_service.profit_calendar(stats_service.derive(get_app_store()).orders, year, month)
        return jsonify({"year": year, "month": month, "days": days}), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/debts")
@require_auth
def debts_report():
    """Orders with an outstanding balance, and the subset due within the week."""
    orders = stats_service.derive(get_app_store()).orders
    return jsonify({
        "pending": [o.to_dict() for o in reporting_service.pending_orders(orders)],
        "due_this_week": [o.to_dict() for o in reporting_service.weekly_debt_orders(orders, utc_today())],
    }), 200


@reports_bp.get("/debt-reminder")
@require_auth
def debt_reminder_report():
    store = get_app_store()
    message = reporting_service.debt_reminder_message(
        stats_service.derive(store).orders, store.customers, utc_today()
    )
    return jsonify({"message": message}), 200
