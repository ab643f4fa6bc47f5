from __future__ import annotations

from ..extensions import db


class SaleOrderRow(db.Model):
    """
    A sale order.

    customer_id is NULL for anonymous retail sales. No foreign keys: the
    store does not enforce references between collections.
    """
    __tablename__ = "sale_orders"
    __table_args__ = (
        db.Index("ix_sale_orders_customer_id", "customer_id"),
        db.Index("ix_sale_orders_sim_type_id", "sim_type_id"),
    )

    id = db.Column(db.String(64), primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    date = db.Column(db.Date, nullable=True)
    customer_id = db.Column(db.String(64), nullable=True)
    agent_name = db.Column(db.String(255), nullable=True)
    sale_type = db.Column(db.String(16), nullable=False)
    sim_type_id = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    sale_price = db.Column(db.BigInteger, nullable=False)
    due_date = db.Column(db.Date, nullable=True)
    due_date_changes = db.Column(db.Integer, nullable=False, default=0)
    note = db.Column(db.Text, nullable=True)
    is_finished = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class DueDateLogRow(db.Model):
    """Append-only history of payment deadline extensions."""
    __tablename__ = "due_date_logs"
    __table_args__ = (
        db.Index("ix_due_date_logs_order_id", "order_id"),
    )

    id = db.Column(db.String(64), primary_key=True)
    order_id = db.Column(db.String(64), nullable=False)
    old_date = db.Column(db.Date, nullable=True)
    new_date = db.Column(db.Date, nullable=True)
    reason = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)
