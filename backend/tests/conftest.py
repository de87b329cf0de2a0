"""
Pytest fixtures for Tradebook backend tests.

Provides test database setup, users of both roles, and test client.
"""

import pytest
from tradebook import create_app
from tradebook.extensions import db
from tradebook.models import User, ROLE_ADMIN, ROLE_EMPLOYEE
from tradebook.services.auth_service import hash_password


ADMIN_PASSWORD = "Admin123!"
EMPLOYEE_PASSWORD = "Employee123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CONTAINER_COMMISSION_PERCENT': 5.0,
        'DEFAULT_DUE_DAYS': 10,
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
    """Create an admin user."""
    user = User(
        name="Admin",
        email="admin@tradebook.test",
        password_hash=hash_password(ADMIN_PASSWORD),
        role=ROLE_ADMIN,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def employee_user(db_session):
    """Create an employee user."""
    user = User(
        name="Employee",
        email="employee@tradebook.test",
        password_hash=hash_password(EMPLOYEE_PASSWORD),
        role=ROLE_EMPLOYEE,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email, ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def employee_headers(client, employee_user):
    return auth_headers(get_auth_token(client, employee_user.email, EMPLOYEE_PASSWORD))


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def create_sale(client, headers, **overrides) -> dict:
    """POST a sale with sensible defaults and return the JSON body."""
    payload = {
        'customer': 'Al Noor Trading',
        'product': 'Basmati Rice',
        'invoice_date': '2026-01-05',
        'due_date': '2099-12-31',
        'quantity': 10,
        'rate': 100,
    }
    payload.update(overrides)
    response = client.post('/api/sales', json=payload, headers=headers)
    assert response.status_code == 201, response.json
    return response.json['sale']
