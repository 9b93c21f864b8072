"""
Pytest fixtures for back office tests.

Provides in-memory database setup, catalog fixtures, and test client.
"""

import itertools

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Product, Service


# Service ids live far above product ids so lookups never resolve to a product
_service_ids = itertools.count(50_000)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RECONCILE_BACKOFF_SECONDS': 0,
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
        db.session.expunge_all()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: product whose opening stock equals its starting stock."""
    def _make(name="Widget", stock=10, cost_cents=200, price_cents=500, sku=None):
        product = Product(
            sku=sku,
            name=name,
            stock=stock,
            opening_stock=stock,
            cost_cents=cost_cents,
            price_cents=price_cents,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Product P starting at stock=10."""
    return make_product(name="Product P", stock=10)


@pytest.fixture(scope='function')
def service(db_session):
    """Create an inventory-inert service."""
    svc = Service(id=next(_service_ids), name="Installation", price_cents=2500, cost_cents=500)
    db_session.add(svc)
    db_session.commit()
    return svc
