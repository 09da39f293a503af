"""
Pytest fixtures for storefront backend tests.

Provides test database setup, seeded accounts, catalog fixtures, the Flask
test client, and an httpx-based StorefrontClient wired straight into the app.
"""

import httpx
import pytest

from storefront import create_app
from storefront.engine import StorefrontClient, login
from storefront.extensions import db
from storefront.models import Party, Product
from storefront.services import auth_service

BASE_URL = "http://storefront.test"
DEV_EMAIL = "owner@shop.local"
SALESMAN_EMAIL = "counter@shop.local"
PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def developer(db_session):
    return auth_service.signup_developer("Owner", DEV_EMAIL, PASSWORD)


@pytest.fixture(scope='function')
def salesman(db_session, developer):
    return auth_service.create_salesman("Counter", SALESMAN_EMAIL, PASSWORD, created_by=developer)


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def dev_headers(client, developer):
    return auth_headers(get_auth_token(client, DEV_EMAIL))


@pytest.fixture(scope='function')
def salesman_headers(client, salesman):
    return auth_headers(get_auth_token(client, SALESMAN_EMAIL))


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, unit_price_cents, quantity, category=None)."""
    def _make(name="Emulsion 1L", unit_price_cents=4500, quantity=10, category="Paint"):
        product = Product(
            name=name,
            category=category,
            unit_price_cents=unit_price_cents,
            total_quantity=quantity,
            remaining_quantity=quantity,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def buyer(db_session):
    party = Party(kind="BUYER", name="Ramesh Traders", phone="9800000001", address="Main Bazaar")
    db_session.add(party)
    db_session.commit()
    return party


@pytest.fixture(scope='function')
def supplier(db_session):
    party = Party(kind="SUPPLIER", name="Asian Paints Depot", phone="9800000002", company_name="APD Ltd")
    db_session.add(party)
    db_session.commit()
    return party


@pytest.fixture(scope='function')
def transport(app, db_session):
    """httpx transport that calls the Flask app in-process."""
    return httpx.WSGITransport(app=app)


@pytest.fixture(scope='function')
def api(transport, salesman):
    """StorefrontClient logged in as the salesman."""
    session = login(BASE_URL, SALESMAN_EMAIL, PASSWORD, transport=transport)
    with StorefrontClient(BASE_URL, session, transport=transport) as storefront:
        yield storefront
