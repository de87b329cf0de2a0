# Overview: Admin user management routes.

"""
User management for admins.

Users are never hard-deleted: DELETE deactivates the account and revokes
its sessions, so invoices and payments stay attributed.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service
from ..services.auth_service import PasswordValidationError
from ..decorators import require_auth, require_admin
from ..http_errors import SERVICE_ERRORS, error_response
from ..models import ROLE_EMPLOYEE
from ..validation import parse_pagination

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    """
    Query params:
    - page, limit
    - search: name or email substring
    - include_inactive: bool (default true)
    """
    page, limit = parse_pagination(
        request.args,
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    return jsonify(auth_service.list_users(
        page=page,
        limit=limit,
        search=request.args.get("search"),
        include_inactive=include_inactive,
    )), 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_admin
def get_user_route(user_id: int):
    try:
        return jsonify({"user": auth_service.get_user(user_id).to_dict()}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    """
    Request body:
    - name, email, password: required
    - role: admin | employee (default employee)
    - department, position: optional
    """
    data = request.get_json(silent=True) or {}
    if not all([data.get("name"), data.get("email"), data.get("password")]):
        return jsonify({"error": "name, email and password required"}), 400

    try:
        user = auth_service.create_user(
            data["name"],
            data["email"],
            data["password"],
            role=data.get("role") or ROLE_EMPLOYEE,
            department=data.get("department"),
            position=data.get("position"),
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("User %s created by %s", user.email, g.current_user.email)
    return jsonify({"user": user.to_dict(), "message": "User created successfully"}), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    """Edit name, email, role, department, position, is_active or password."""
    try:
        user = auth_service.get_user(user_id)
        user = auth_service.update_user(
            user,
            request.get_json(silent=True) or {},
            acting_user=g.current_user,
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "User updated successfully"}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: int):
    try:
        user = auth_service.get_user(user_id)
        revoked = auth_service.deactivate_user(user, acting_user=g.current_user)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    current_app.logger.info("User %s deactivated by %s", user.email, g.current_user.email)
    return jsonify({
        "message": f"User {user.email} deactivated",
        "sessions_revoked": revoked,
    }), 200
