from __future__ import annotations

from ..extensions import db


class CustomerRow(db.Model):
    """
    Customer master data.

    tags accumulate from due-date extension reasons and are stored as a JSON
    array of strings.
    """
    __tablename__ = "customers"

    id = db.Column(db.String(64), primary_key=True)
    cid = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(16), nullable=False, default="WHOLESALE")
    tags = db.Column(db.JSON, nullable=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
