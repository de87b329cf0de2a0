# Overview: Flask API routes for container purchases.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_admin, require_auth
from ..http_errors import SERVICE_ERRORS, error_response
from ..models import Purchase
from ..services import purchase_service
from ..services.purchase_service import PURCHASE_POLICY
from ..validation import parse_pagination, validate_payload


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
def list_purchases_route():
    page, limit = parse_pagination(
        request.args,
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )
    try:
        return purchase_service.list_purchases(request.args, page=page, limit=limit)
    except SERVICE_ERRORS as e:
        return error_response(e)


@purchases_bp.get("/report")
@require_auth
def report_route():
    """Totals over container_no / supplier / product / start_date / end_date filters."""
    try:
        return {"report": purchase_service.purchase_report(request.args)}
    except SERVICE_ERRORS as e:
        return error_response(e)


@purchases_bp.get("/<int:purchase_id>")
@require_auth
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"purchase": purchase.to_dict()}


@purchases_bp.post("")
@require_auth
def create_purchase_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Purchase, payload=payload, policy=PURCHASE_POLICY, partial=False)
        purchase = purchase_service.create_purchase(patch=patch, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase")
        return jsonify({"error": "Internal server error"}), 500
    return {"purchase": purchase.to_dict()}, 201


@purchases_bp.put("/<int:purchase_id>")
@require_auth
def update_purchase_route(purchase_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Purchase, payload=payload, policy=PURCHASE_POLICY, partial=True)
        purchase = purchase_service.update_purchase(purchase_id, patch=patch, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase")
        return jsonify({"error": "Internal server error"}), 500
    return {"purchase": purchase.to_dict()}


@purchases_bp.delete("/<int:purchase_id>")
@require_auth
@require_admin
def delete_purchase_route(purchase_id: int):
    try:
        purchase_service.delete_purchase(purchase_id, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"ok": True}
