"""
Pytest fixtures for simdesk backend tests.

Provides the app on an in-memory database, a test client, a fresh database
per test, a signed-in user, and an in-memory RowStore for AppStore unit tests.
"""

import copy

import pytest
from simdesk import create_app
from simdesk.extensions import db
from simdesk.services import auth_service
from simdesk.services.app_store import AppStore, get_app_store
from simdesk.services.row_store import RowStore, RowStoreError


TEST_PASSWORD = "Password123!"


class MemoryRowStore(RowStore):
    """Dict-of-lists RowStore. Set fail_on to a set of operation names to make them raise."""

    def __init__(self, tables=None):
        self.tables = {name: list(rows) for name, rows in (tables or {}).items()}
        self.fail_on = set()
        self.calls = []

    def _maybe_fail(self, op, table):
        self.calls.append((op, table))
        if op in self.fail_on:
            raise RowStoreError(f"{op} on {table} failed")

    def select_all(self, table):
        self._maybe_fail("select_all", table)
        return [copy.deepcopy(row) for row in self.tables.get(table, [])]

    def insert(self, table, row):
        self._maybe_fail("insert", table)
        self.tables.setdefault(table, []).append(copy.deepcopy(row))

    def update(self, table, row_id, fields):
        self._maybe_fail("update", table)
        for row in self.tables.get(table, []):
            if row["id"] == row_id:
                row.update(copy.deepcopy(fields))

    def delete(self, table, row_id):
        self._maybe_fail("delete", table)
        self.tables[table] = [r for r in self.tables.get(table, []) if r["id"] != row_id]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh database and an empty AppStore for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        get_app_store().clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def user(db_session):
    return auth_service.sign_up("staff@example.com", TEST_PASSWORD)


@pytest.fixture(scope='function')
def auth_headers(client, user):
    response = client.post('/api/auth/login', json={
        'email': user.email,
        'password': TEST_PASSWORD,
    })
    assert response.status_code == 200
    return {'Authorization': f"Bearer {response.json['token']}"}


@pytest.fixture
def row_store():
    return MemoryRowStore()


@pytest.fixture
def store(row_store):
    """An AppStore over an empty in-memory RowStore, already loaded."""
    app_store = AppStore(row_store)
    app_store.reload()
    return app_store
