"""
Pytest fixtures for margarita backend tests.

Provides the in-memory application, a wiped database per test, reference
data (location, customer, material, procedure, supplier) and a costed product.
"""

from decimal import Decimal

import pytest

from margarita import create_app
from margarita.extensions import db
from margarita.models import Category, Customer, Location, Material, Procedure, Supplier
from margarita.services.auth_service import create_user
from margarita.services import products_service

DEFAULT_PASSWORD = "Password123"


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
def admin_user(db_session):
    return create_user(username="admin", password=DEFAULT_PASSWORD, role="ADMIN")


@pytest.fixture(scope='function')
def regular_user(db_session):
    return create_user(username="ana", password=DEFAULT_PASSWORD, role="USER")


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin", DEFAULT_PASSWORD))


@pytest.fixture(scope='function')
def user_headers(client, regular_user):
    return auth_headers(get_auth_token(client, "ana", DEFAULT_PASSWORD))


@pytest.fixture(scope='function')
def location(db_session):
    loc = Location(name="Workshop", is_active=True)
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Rings", is_active=True)
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def customer(db_session):
    cust = Customer(first_name="Maria", last_name="Lopez", email="maria@example.com", is_active=True)
    db_session.add(cust)
    db_session.commit()
    return cust


@pytest.fixture(scope='function')
def supplier(db_session):
    sup = Supplier(name="Silver Co", tin="B12345678", is_active=True)
    db_session.add(sup)
    db_session.commit()
    return sup


@pytest.fixture(scope='function')
def material(db_session):
    mat = Material(name="Silver wire", current_unit_cost=Decimal("5.00"), unit_of_measure="g", is_active=True)
    db_session.add(mat)
    db_session.commit()
    return mat


@pytest.fixture(scope='function')
def procedure(db_session):
    proc = Procedure(name="Polishing", is_active=True)
    db_session.add(proc)
    db_session.commit()
    return proc


@pytest.fixture(scope='function')
def product(db_session, category, material, procedure):
    """
    Ring costing 20.00: 2 x 5.00 material + 60 minutes at 7.00/h + 3.00 polishing.

    Suggested (and final) retail 60.00, wholesale 37.20; stock 10, alert 2.
    """
    return products_service.create_product(
        patch={
            "name": "Silver ring",
            "code": "RING-001",
            "category_id": category.id,
            "minutes_to_make": 60,
            "stock": 10,
            "low_stock_alert": 2,
        },
        materials=[{"material_id": material.id, "quantity": "2"}],
        procedures=[{"procedure_id": procedure.id, "cost": "3.00"}],
    )


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
