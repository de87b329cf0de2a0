# Overview: Flask API routes for login, logout and password management.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import AdminAuthorizationError, PasswordValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.warning("Failed login for %s from %s", email, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the caller's session token."""
    session_service.revoke_session(g.session_token)
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    """Edit own name, email, department or position. Role and status are admin-only."""
    try:
        user = auth_service.update_user(
            g.current_user,
            request.get_json(silent=True) or {},
            allowed=auth_service.PROFILE_FIELDS,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"user": user.to_dict(), "message": "Profile updated"}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """Change own password; every other session is signed out."""
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")
    if not all([current_password, new_password]):
        return jsonify({"error": "current_password and new_password required"}), 400

    try:
        auth_service.change_password(g.current_user, current_password, new_password)
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400

    session_service.revoke_all_user_sessions(g.current_user.id)
    _, token = session_service.create_session(
        user_id=g.current_user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify({"message": "Password changed", "token": token}), 200


@auth_bp.post("/verify-admin-password")
@require_auth
def verify_admin_password_route():
    """Check the admin password before a destructive action is offered."""
    data = request.get_json(silent=True) or {}
    try:
        auth_service.authorize_admin_action(g.current_user, data.get("password"))
    except AdminAuthorizationError as e:
        return jsonify({"error": str(e), "verified": False}), 403
    return jsonify({"verified": True}), 200
