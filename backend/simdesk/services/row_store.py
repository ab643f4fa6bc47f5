# Overview: Row-oriented backing store interface and its SQLAlchemy implementation.

"""
Backing store collaborator.

The AppStore talks to persistence only through `RowStore`: bulk read, insert
one row (client-supplied id), update by id with a partial field set, delete
by id. Rows are plain dicts keyed by the store's own snake-style column
names; translating them to in-memory records is the job of row_mapping.

Updating or deleting an id that matches no row is not an error (zero rows
affected), the same as a filtered UPDATE/DELETE in SQL.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    SimTypeRow,
    SimPackageRow,
    CustomerRow,
    SaleOrderRow,
    TransactionRow,
    DueDateLogRow,
)


class RowStoreError(Exception):
    """Raised when a read or write against the backing store fails."""
    pass


class RowStore:
    """Interface of the backing store. Subclasses implement all four calls."""

    def select_all(self, table: str) -> list[dict]:
        raise NotImplementedError

    def insert(self, table: str, row: dict) -> None:
        raise NotImplementedError

    def update(self, table: str, row_id: str, fields: dict) -> None:
        raise NotImplementedError

    def delete(self, table: str, row_id: str) -> None:
        raise NotImplementedError


TABLE_MODELS = {
    "sim_types": SimTypeRow,
    "sim_packages": SimPackageRow,
    "customers": CustomerRow,
    "sale_orders": SaleOrderRow,
    "transactions": TransactionRow,
    "due_date_logs": DueDateLogRow,
}

# Managed by the database, never part of the row contract.
_SERVER_COLUMNS = {"created_at"}


class SqlRowStore(RowStore):
    """RowStore on the Flask-SQLAlchemy session. Every write commits on its own."""

    def _model(self, table: str):
        model = TABLE_MODELS.get(table)
        if model is None:
            raise RowStoreError(f"unknown table: {table}")
        return model

    def _columns(self, model) -> list[str]:
        return [c.key for c in model.__mapper__.columns if c.key not in _SERVER_COLUMNS]

    def _check_fields(self, table: str, model, fields: dict) -> None:
        unknown = set(fields) - set(self._columns(model))
        if unknown:
            raise RowStoreError(f"unknown column(s) for {table}: {', '.join(sorted(unknown))}")

    def select_all(self, table: str) -> list[dict]:
        model = self._model(table)
        columns = self._columns(model)
        try:
            rows = db.session.query(model).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise RowStoreError(f"select from {table} failed") from exc
        return [{col: getattr(row, col) for col in columns} for row in rows]

    def insert(self, table: str, row: dict) -> None:
        model = self._model(table)
        self._check_fields(table, model, row)
        try:
            db.session.add(model(**row))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise RowStoreError(f"insert into {table} failed") from exc

    def update(self, table: str, row_id: str, fields: dict) -> None:
        model = self._model(table)
        self._check_fields(table, model, fields)
        if not fields:
            return
        try:
            db.session.query(model).filter_by(id=row_id).update(fields, synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise RowStoreError(f"update of {table} {row_id} failed") from exc

    def delete(self, table: str, row_id: str) -> None:
        model = self._model(table)
        try:
            db.session.query(model).filter_by(id=row_id).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise RowStoreError(f"delete from {table} {row_id} failed") from exc
