"""
Pytest fixtures for ShopLedger backend tests.

Provides an in-memory application, a clean database per test, the Flask
test client and small data factories.
"""

import pytest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Product, Customer


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
        'DB_RETRY_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_product(db_session):
    """Factory: make_product(name, quantity=10, price_cents=100, cost_cents=60)."""
    def _make(name="Widget", quantity=10, price_cents=100, cost_cents=60, is_active=True):
        product = Product(
            name=name,
            quantity=quantity,
            price_cents=price_cents,
            cost_cents=cost_cents,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def make_customer(db_session):
    """Factory: make_customer(name, phone=None, address=None)."""
    def _make(name="Somchai", phone=None, address=None, is_active=True):
        customer = Customer(name=name, phone=phone, address=address, is_active=is_active)
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture
def product(make_product):
    return make_product(name="Rice 5kg", quantity=10, price_cents=100, cost_cents=60)


@pytest.fixture
def customer(make_customer):
    return make_customer(name="Somchai", phone="0812345678", address="Bangkok")
