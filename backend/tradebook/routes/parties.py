# Overview: Flask API routes for customers and suppliers.

"""
Customers and suppliers share one set of routes, mounted twice.

Delete is a soft delete (is_active=False): invoices keep the party's name.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..http_errors import SERVICE_ERRORS, error_response
from ..models import Customer, Supplier
from ..services import party_service
from ..services.party_service import CUSTOMER_POLICY, SUPPLIER_POLICY
from ..validation import parse_pagination, validate_payload


def create_party_blueprint(name: str, model, policy, key: str) -> Blueprint:
    bp = Blueprint(name, __name__, url_prefix=f"/api/{name}")

    @bp.get("")
    @require_auth
    def list_route():
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
        include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
        return party_service.list_parties(
            model,
            page=page,
            limit=limit,
            search=request.args.get("search"),
            include_inactive=include_inactive,
        )

    @bp.get("/search")
    @require_auth
    def search_route():
        parties = party_service.search_parties(model, request.args.get("q", ""))
        return {"items": [p.to_dict() for p in parties]}

    @bp.get("/<int:party_id>")
    @require_auth
    def get_route(party_id: int):
        try:
            party = party_service.get_party(model, party_id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        return {key: party.to_dict()}

    @bp.post("")
    @require_auth
    def create_route():
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=model, payload=payload, policy=policy, partial=False)
            party = party_service.create_party(model, patch=patch, user_id=g.current_user.id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to create %s", key)
            return jsonify({"error": "Internal server error"}), 500
        return {key: party.to_dict()}, 201

    @bp.put("/<int:party_id>")
    @require_auth
    def update_route(party_id: int):
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=model, payload=payload, policy=policy, partial=True)
            party = party_service.update_party(model, party_id, patch=patch, user_id=g.current_user.id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to update %s", key)
            return jsonify({"error": "Internal server error"}), 500
        return {key: party.to_dict()}

    @bp.delete("/<int:party_id>")
    @require_auth
    def delete_route(party_id: int):
        try:
            party_service.deactivate_party(model, party_id, user_id=g.current_user.id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        return {"ok": True}

    return bp


customers_bp = create_party_blueprint("customers", Customer, CUSTOMER_POLICY, "customer")
suppliers_bp = create_party_blueprint("suppliers", Supplier, SUPPLIER_POLICY, "supplier")
