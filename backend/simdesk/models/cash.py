from __future__ import annotations

from ..extensions import db


class TransactionRow(db.Model):
    """
    Cash ledger entry.

    amount is always non-negative; type (IN/OUT) carries the sign.
    user_id attributes the entry to the signed-in user who recorded it.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_sale_order_id", "sale_order_id"),
        db.Index("ix_transactions_date", "date"),
    )

    id = db.Column(db.String(64), primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    date = db.Column(db.Date, nullable=True)
    type = db.Column(db.String(8), nullable=False)
    category = db.Column(db.String(128), nullable=True)
    amount = db.Column(db.BigInteger, nullable=False, default=0)
    method = db.Column(db.String(16), nullable=False, default="CASH")
    sale_order_id = db.Column(db.String(64), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
