"""
Pytest fixtures for shopdesk backend tests.

Provides the application on an in-memory database, a clean session per test,
entity store / ledger fixtures and small record factories.
"""

import pytest

from shopdesk import create_app
from shopdesk.extensions import db
from shopdesk.services import auth_service, catalog_service
from shopdesk.services.entity_store import EntityStore
from shopdesk.services.events import EventBus
from shopdesk.services.invoice_ledger import InvoiceLedger
from shopdesk.services.payment_service import PaymentRecorder


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SEED_DEMO_DATA': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt cost keeps account tests fast; the hash format is unchanged."""
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope='function')
def client(app):
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


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store(db_session, bus):
    return EntityStore(db_session, bus, backoff_base=0)


@pytest.fixture
def ledger(store):
    return InvoiceLedger(store)


@pytest.fixture
def recorder(store):
    return PaymentRecorder(store)


@pytest.fixture
def make_product(store):
    def _make(name="Widget", price="10.00", stock=10, **extra):
        return catalog_service.add_product(store, {"name": name, "price": price, "stock": stock, **extra})
    return _make


@pytest.fixture
def make_customer(store):
    counter = {"n": 0}

    def _make(first_name="Test", last_name="Customer", wallet_balance=None, **extra):
        counter["n"] += 1
        payload = {
            "first_name": first_name,
            "last_name": last_name,
            "email": extra.pop("email", f"customer{counter['n']}@example.com"),
            **extra,
        }
        if wallet_balance is not None:
            payload["wallet_balance"] = wallet_balance
        return catalog_service.add_customer(store, payload)
    return _make

