# Overview: Flask API routes for container settlement statements.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import admin_authorization, require_admin, require_auth
from ..http_errors import SERVICE_ERRORS, error_response
from ..services import container_service
from ..services.container_service import statement_to_dict
from ..validation import parse_pagination


containers_bp = Blueprint("container_statements", __name__, url_prefix="/api/container-statements")


@containers_bp.get("")
@require_auth
def list_statements_route():
    page, limit = parse_pagination(
        request.args,
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )
    return container_service.list_statements(page=page, limit=limit, search=request.args.get("search"))


# A non-numeric id is looked up as a container number
@containers_bp.get("/container/<path:container_no>")
@containers_bp.get("/<container_no>")
@require_auth
def get_by_container_route(container_no: str):
    try:
        statement = container_service.get_statement_by_container(container_no)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"statement": statement_to_dict(statement)}


@containers_bp.get("/<int:statement_id>")
@require_auth
def get_statement_route(statement_id: int):
    try:
        statement = container_service.get_statement(statement_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"statement": statement_to_dict(statement)}


@containers_bp.post("")
@require_auth
def create_statement_route():
    """
    Body: container_no, products [{product, quantity, unit_price}],
    expenses [{description, amount}], commission_percent (optional).
    """
    data = request.get_json(silent=True) or {}
    try:
        statement = container_service.create_statement(data, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create container statement")
        return jsonify({"error": "Internal server error"}), 500
    return {"statement": statement_to_dict(statement)}, 201


@containers_bp.put("/<int:statement_id>")
@require_auth
def update_statement_route(statement_id: int):
    data = request.get_json(silent=True) or {}
    try:
        statement = container_service.update_statement(statement_id, data, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update container statement")
        return jsonify({"error": "Internal server error"}), 500
    return {"statement": statement_to_dict(statement)}


@containers_bp.post("/<int:statement_id>/expenses")
@require_auth
def add_expense_route(statement_id: int):
    data = request.get_json(silent=True) or {}
    try:
        statement = container_service.add_statement_expense(
            statement_id,
            description=data.get("description"),
            amount=data.get("amount"),
            user_id=g.current_user.id,
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"statement": statement_to_dict(statement)}, 201


@containers_bp.delete("/<int:statement_id>/expenses/<int:expense_id>")
@require_auth
def remove_expense_route(statement_id: int, expense_id: int):
    try:
        statement = container_service.remove_statement_expense(
            statement_id, expense_id, user_id=g.current_user.id
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"statement": statement_to_dict(statement)}


@containers_bp.delete("/<int:statement_id>")
@require_auth
@require_admin
def delete_statement_route(statement_id: int):
    """Delete a statement. Body: admin_password."""
    try:
        authorization = admin_authorization()
        container_service.delete_statement(
            statement_id, authorization=authorization.token, user_id=g.current_user.id
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete container statement")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"ok": True}), 200
