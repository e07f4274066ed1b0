"""
Pytest fixtures for stockroom tests.

Provides an in-memory database, per-test table wipes, user/product
factories, and logged-in test clients.
"""

import pytest

from stockroom import create_app
from stockroom.config import TestingConfig
from stockroom.extensions import db
from stockroom.models import Product
from stockroom.services import auth_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

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
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()
    db.session.expire_all()


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: create a user with an explicit role (bypasses registration policy)."""
    def _make(username, role="staff", password=PASSWORD, **profile):
        return auth_service.create_user(username, password, role, profile or None)
    return _make


@pytest.fixture(scope='function')
def admin_user(make_user):
    return make_user("admin_alpha", role="admin")


@pytest.fixture(scope='function')
def staff_user(make_user):
    return make_user("staff_alpha", role="staff")


@pytest.fixture(scope='function')
def supplier_user(make_user):
    return make_user("supplier_alpha", role="supplier")


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: create a product with the given manual id, price and stock."""
    def _make(manual_id, quantity=10, price_cents=500, name=None):
        product = Product(
            manual_id=manual_id,
            name=name or f"Product {manual_id}",
            price_cents=price_cents,
            quantity=quantity,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


def login(client, username: str, password: str = PASSWORD):
    """Helper: POST /api/login; the test client keeps the sessionId cookie."""
    return client.post('/api/login', json={
        'username': username,
        'password': password,
    })


def reload(model, pk):
    """Re-read a row, discarding anything cached in the test's session."""
    db.session.expire_all()
    return db.session.get(model, pk)


@pytest.fixture(scope='function')
def admin_client(app, admin_user):
    client = app.test_client()
    assert login(client, admin_user.username).status_code == 200
    return client


@pytest.fixture(scope='function')
def staff_client(app, staff_user):
    client = app.test_client()
    assert login(client, staff_user.username).status_code == 200
    return client


@pytest.fixture(scope='function')
def supplier_client(app, supplier_user):
    client = app.test_client()
    assert login(client, supplier_user.username).status_code == 200
    return client
