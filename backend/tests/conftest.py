"""
Pytest fixtures for dealership backend tests.

Provides the app on an in-memory database, a per-test table wipe, record
factories, and authenticated request headers.
"""

import pytest

from dealership import create_app
from dealership.extensions import db
from dealership.services import inventory_service, personnel_service
from dealership.time_utils import business_today


ADMIN_PASSWORD = "AdminPass123"
STAFF_PASSWORD = "StaffPass123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'AUTO_CLOSE_ON_STARTUP': False,
        'STRICT_PART_LOOKUP': False,
        'BCRYPT_ROUNDS': 4,
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
def make_part(db_session):
    """Factory: create a part with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = {
            "name": f"Test Part {counter['n']}",
            "part_number": f"TP-{counter['n']:05d}",
            "category": "Engine",
            "price": 1000,
            "min_stock": 0,
            "stock": 10,
        }
        fields.update(overrides)
        return inventory_service.create_part(**fields)

    return _make


@pytest.fixture(scope='function')
def technicians(db_session):
    """The three starting mechanics."""
    return [
        personnel_service.create_technician(name="Carlos Sainz", specialization="Master Mechanic", technician_id="T1"),
        personnel_service.create_technician(name="Dave Miller", specialization="Electrical Expert", technician_id="T2"),
        personnel_service.create_technician(name="Aslam Pervaiz", specialization="Engine Overhaul", technician_id="T3"),
    ]


@pytest.fixture(scope='function')
def admin_user(db_session):
    return personnel_service.create_user(
        name="Shop Admin",
        email="admin@shop.local",
        username="admin",
        password=ADMIN_PASSWORD,
        role="SUPER_ADMIN",
    )


@pytest.fixture(scope='function')
def staff_user(db_session):
    return personnel_service.create_user(
        name="Counter Staff",
        email="staff@shop.local",
        username="staff",
        password=STAFF_PASSWORD,
        role="USER",
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


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin", ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, "staff", STAFF_PASSWORD))


@pytest.fixture(scope='function')
def today():
    return business_today()
