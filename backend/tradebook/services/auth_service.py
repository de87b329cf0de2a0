# Overview: Password hashing, login and admin re-authentication.

"""
Authentication Service

WHY: Every invoice, edit and payment must be attributable. Uses bcrypt for
secure password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with upper/lower case, digit and special char
- Session tokens managed separately (see session_service.py)
- Destructive actions (payment reversal, invoice deletion) require the
  admin to re-enter their password; see authorize_admin_action
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass

import bcrypt
from sqlalchemy import or_

from ..extensions import db
from ..models import User, ROLE_ADMIN, ROLE_EMPLOYEE, VALID_ROLES
from ..time_utils import utcnow
from ..validation import NotFoundError
from . import session_service


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AdminAuthorizationError(Exception):
    """Raised when admin re-authentication fails."""
    pass


@dataclass(frozen=True)
class AdminAuthorization:
    """Proof that an admin re-entered their password for one request."""
    user_id: int
    token: str


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt (validated for strength first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = ROLE_EMPLOYEE,
    department: str | None = None,
    position: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValueError: blank name/email, unknown role, or email already used
        PasswordValidationError: password doesn't meet requirements
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email:
        raise ValueError("Name and email are required")
    if role not in VALID_ROLES:
        raise ValueError(f"Invalid role: {role}. Must be one of {', '.join(VALID_ROLES)}")

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ValueError("Email already exists")

    password_hash = hash_password(password)

    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        department=department,
        position=position,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise PasswordValidationError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()


def authorize_admin_action(user: User | None, password: str | None) -> AdminAuthorization:
    """
    Re-authenticate an admin for a destructive action.

    Returns an AdminAuthorization whose token the payment ledger accepts
    as proof of elevated authorization. Nothing is persisted.

    Raises AdminAuthorizationError when the user is not an active admin or
    the password does not match.
    """
    if user is None or not user.is_active or user.role != ROLE_ADMIN:
        raise AdminAuthorizationError("Admin privileges required")
    if not password or not verify_password(password, user.password_hash):
        raise AdminAuthorizationError("Invalid admin password")
    return AdminAuthorization(user_id=user.id, token=secrets.token_hex(16))


# =============================================================================
# User management (admin screens and own profile)
# =============================================================================

PROFILE_FIELDS = ("name", "email", "department", "position")
ADMIN_EDITABLE_FIELDS = PROFILE_FIELDS + ("role", "is_active", "password")


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def list_users(*, page: int, limit: int, search: str | None = None, include_inactive: bool = True) -> dict:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    if search and search.strip():
        like = f"%{search.strip()}%"
        query = query.filter(or_(User.name.ilike(like), User.email.ilike(like)))
    query = query.order_by(User.name.asc(), User.id.asc())

    total = query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    users = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "users": [u.to_dict() for u in users],
        "count": len(users),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def update_user(user: User, data: dict, *, allowed=ADMIN_EDITABLE_FIELDS, acting_user: User | None = None) -> User:
    """
    Apply an edit to a user account.

    `allowed` limits which keys may be sent (own profile vs admin edit).
    A new `password` is strength-checked and signs the user out everywhere.

    Raises:
        ValueError: unknown field, blank name/email, invalid role, email in use
        PasswordValidationError: new password too weak
    """
    if not isinstance(data, dict):
        raise ValueError("Invalid JSON payload")
    for key in data:
        if key not in allowed:
            raise ValueError(f"Field not allowed: {key}")

    changes = {}
    if "name" in data:
        changes["name"] = (data["name"] or "").strip()
        if not changes["name"]:
            raise ValueError("Name is required")
    if "email" in data:
        changes["email"] = (data["email"] or "").strip().lower()
        if not changes["email"]:
            raise ValueError("Email is required")
        taken = db.session.query(User).filter(User.email == changes["email"], User.id != user.id).first()
        if taken:
            raise ValueError("Email already exists")
    for key in ("department", "position"):
        if key in data:
            changes[key] = (data[key] or "").strip() or None
    if "role" in data:
        if data["role"] not in VALID_ROLES:
            raise ValueError(f"Invalid role: {data['role']}. Must be one of {', '.join(VALID_ROLES)}")
        if acting_user is not None and acting_user.id == user.id and data["role"] != ROLE_ADMIN:
            raise ValueError("Cannot remove your own admin role")
        changes["role"] = data["role"]
    if "is_active" in data:
        changes["is_active"] = bool(data["is_active"])
        if acting_user is not None and acting_user.id == user.id and not changes["is_active"]:
            raise ValueError("Cannot deactivate your own account")

    password_changed = bool(data.get("password"))
    if password_changed:
        changes["password_hash"] = hash_password(data["password"])

    # Nothing is assigned until every field has passed
    for key, value in changes.items():
        setattr(user, key, value)
    db.session.commit()
    if password_changed or not user.is_active:
        session_service.revoke_all_user_sessions(user.id)
    return user


def deactivate_user(user: User, *, acting_user: User) -> int:
    """
    Soft-delete a user. Invoices keep pointing at the account for
    attribution. Returns the number of sessions revoked.
    """
    if user.id == acting_user.id:
        raise ValueError("Cannot deactivate your own account")
    if not user.is_active:
        raise ValueError("User is already deactivated")
    user.is_active = False
    db.session.commit()
    return session_service.revoke_all_user_sessions(user.id)
