"""
Pytest fixtures for phone_pos backend tests.

Provides the test app (in-memory SQLite), a clean database per test, and
entity stores for both storage variants.
"""

import itertools

import pytest
from phone_pos import create_app
from phone_pos.extensions import db
from phone_pos.stores import MemoryEntityStore, SqlEntityStore


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BACKUP_DIR': str(tmp_path_factory.mktemp("backups")),
        'DEFAULT_OWNER_ID': 'local',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def memory_tables():
    """Shared backing tables so several memory stores act as one database."""
    return {}


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_tables):
    """One store for owner-a, once per storage variant."""
    if request.param == "sql":
        request.getfixturevalue("db_session")
        return SqlEntityStore("owner-a")
    return MemoryEntityStore("owner-a", tables=memory_tables)


@pytest.fixture(params=["memory", "sql"])
def store_pair(request, memory_tables):
    """Stores for two owners sharing the same backing storage."""
    if request.param == "sql":
        request.getfixturevalue("db_session")
        return SqlEntityStore("owner-a"), SqlEntityStore("owner-b")
    return (
        MemoryEntityStore("owner-a", tables=memory_tables),
        MemoryEntityStore("owner-b", tables=memory_tables),
    )


_imei_counter = itertools.count(1)


def next_imei() -> str:
    """Unique 15-digit IMEI for test phones."""
    return f"35{next(_imei_counter):013d}"


def _phone_payload(**overrides) -> dict:
    payload = {
        "imei1": next_imei(),
        "model_name": "iPhone 13",
        "storage": "128GB",
        "color": "Midnight",
        "condition": "Good",
        "purchase_date": "01/10/2026",
        "purchase_price_cents": 10000,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def phone_payload():
    """Factory for valid add_phone payloads with unique IMEIs."""
    return _phone_payload
