# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service, session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def require_auth(f):
    """
    Require a valid session token.

    Sets g.current_user to the authenticated User and g.session_token to
    the bearer token. Returns 401 when the header is missing, the token is
    invalid, expired or revoked, or the account is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = session_service.validate_session(token)
        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Restrict a route to admins. Must be applied after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "current_user"):
            return jsonify({"error": "Authentication required"}), 401
        if not g.current_user.is_admin:
            return jsonify({"error": "Admin privileges required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def admin_authorization():
    """
    Re-authenticate the current admin for a destructive action.

    The password comes from the JSON body (`admin_password`) or the
    X-Admin-Password header. Raises AdminAuthorizationError on failure.
    """
    data = request.get_json(silent=True) or {}
    password = data.get("admin_password") if isinstance(data, dict) else None
    password = password or request.headers.get("X-Admin-Password")
    return auth_service.authorize_admin_action(g.current_user, password)
