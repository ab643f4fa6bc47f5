from __future__ import annotations

from ..extensions import db


class SimTypeRow(db.Model):
    """Catalog of sellable SIM variants."""
    __tablename__ = "sim_types"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class SimPackageRow(db.Model):
    """
    One imported batch of SIMs.

    No foreign key to sim_types: deleting a type leaves its batches in place.
    """
    __tablename__ = "sim_packages"
    __table_args__ = (
        db.Index("ix_sim_packages_sim_type_id", "sim_type_id"),
    )

    id = db.Column(db.String(64), primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    sim_type_id = db.Column(db.String(64), nullable=False)
    import_date = db.Column(db.Date, nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    total_import_price = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
