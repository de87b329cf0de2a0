"""
Authentication tests.

Verifies:
- Login / logout / me
- Unauthenticated requests return 401
- Password change revokes other sessions
- Admin password verification
"""

from datetime import timedelta

import pytest

from conftest import ADMIN_PASSWORD, EMPLOYEE_PASSWORD, auth_headers, get_auth_token
from tradebook.models import SessionToken
from tradebook.services import auth_service
from tradebook.services.auth_service import PasswordValidationError


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/api/auth/me"),
        ("GET", "/api/customers"),
        ("GET", "/api/suppliers"),
        ("GET", "/api/sales"),
        ("GET", "/api/purchases"),
        ("GET", "/api/freight-invoices"),
        ("GET", "/api/dubai-clearance-invoices"),
        ("GET", "/api/container-statements"),
        ("GET", "/api/daily-ledger/2026-01-01"),
    ],
)
def test_requires_auth(client, db_session, method, path):
    resp = getattr(client, method.lower())(path)
    assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


def test_login_and_me(client, employee_user):
    resp = client.post("/api/auth/login", json={"email": "EMPLOYEE@tradebook.test", "password": EMPLOYEE_PASSWORD})
    assert resp.status_code == 200
    token = resp.json["token"]
    assert len(token) == 64

    me = client.get("/api/auth/me", headers=auth_headers(token))
    assert me.status_code == 200
    assert me.json["user"]["email"] == "employee@tradebook.test"
    assert "password_hash" not in me.json["user"]


def test_bad_credentials(client, employee_user):
    resp = client.post("/api/auth/login", json={"email": employee_user.email, "password": "Wrong123!"})
    assert resp.status_code == 401
    assert client.post("/api/auth/login", json={"email": employee_user.email}).status_code == 400


def test_deactivated_user_loses_access(client, db_session, employee_user):
    token = get_auth_token(client, employee_user.email, EMPLOYEE_PASSWORD)
    employee_user.is_active = False
    db_session.commit()
    assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401


def test_logout(client, employee_user):
    token = get_auth_token(client, employee_user.email, EMPLOYEE_PASSWORD)
    assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
    assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401


def test_idle_session_expires(client, db_session, employee_user):
    token = get_auth_token(client, employee_user.email, EMPLOYEE_PASSWORD)
    session = db_session.query(SessionToken).filter_by(user_id=employee_user.id).one()
    session.last_used_at = session.last_used_at - timedelta(hours=3)
    db_session.commit()
    assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401


def test_change_password(client, employee_user):
    old_token = get_auth_token(client, employee_user.email, EMPLOYEE_PASSWORD)

    weak = client.post("/api/auth/change-password", json={
        "current_password": EMPLOYEE_PASSWORD, "new_password": "short",
    }, headers=auth_headers(old_token))
    assert weak.status_code == 400

    resp = client.post("/api/auth/change-password", json={
        "current_password": EMPLOYEE_PASSWORD, "new_password": "Changed123!",
    }, headers=auth_headers(old_token))
    assert resp.status_code == 200

    assert client.get("/api/auth/me", headers=auth_headers(old_token)).status_code == 401
    assert client.get("/api/auth/me", headers=auth_headers(resp.json["token"])).status_code == 200
    assert get_auth_token(client, employee_user.email, "Changed123!") is not None


def test_verify_admin_password(client, admin_headers, employee_headers):
    ok = client.post("/api/auth/verify-admin-password", json={"password": ADMIN_PASSWORD}, headers=admin_headers)
    assert ok.status_code == 200
    assert ok.json["verified"] is True

    wrong = client.post("/api/auth/verify-admin-password", json={"password": "nope"}, headers=admin_headers)
    assert wrong.status_code == 403
    assert wrong.json["verified"] is False

    employee = client.post("/api/auth/verify-admin-password", json={"password": ADMIN_PASSWORD}, headers=employee_headers)
    assert employee.status_code == 403


@pytest.mark.parametrize("password", ["short1!", "alllower123!", "ALLUPPER123!", "NoDigits!!", "NoSpecial123"])
def test_weak_passwords(password):
    with pytest.raises(PasswordValidationError):
        auth_service.validate_password_strength(password)


def test_create_user_rejects_duplicates(db_session, employee_user):
    with pytest.raises(ValueError):
        auth_service.create_user("Someone", "Employee@tradebook.test", "Another123!")
    with pytest.raises(ValueError):
        auth_service.create_user("Someone", "new@tradebook.test", "Another123!", role="owner")
