# Overview: Flask API routes for the four dual-currency invoice kinds.

"""
One blueprint factory, mounted once per InvoiceKind:

    /api/freight-invoices            (PKR, AED derived)
    /api/transport-invoices          (PKR, AED derived)
    /api/dubai-transport-invoices    (AED, PKR derived)
    /api/dubai-clearance-invoices    (AED, PKR derived)
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import admin_authorization, require_admin, require_auth
from ..domain import InvoiceKind
from ..http_errors import SERVICE_ERRORS, error_response
from ..models import DualCurrencyInvoice
from ..services import dual_currency_service
from ..services.dual_currency_service import AUTO_FIELDS, invoice_to_dict, policy_for
from ..validation import drop_blank, parse_pagination, validate_payload


def url_prefix(kind: InvoiceKind) -> str:
    return "/api/" + kind.value.replace("_", "-") + "-invoices"


def create_invoice_blueprint(kind: InvoiceKind) -> Blueprint:
    bp = Blueprint(f"{kind.value}_invoices", __name__, url_prefix=url_prefix(kind))
    policy = policy_for(kind)

    @bp.get("")
    @require_auth
    def list_route():
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
        try:
            return dual_currency_service.list_invoices(kind, request.args, page=page, limit=limit)
        except SERVICE_ERRORS as e:
            return error_response(e)

    @bp.get("/stats")
    @require_auth
    def stats_route():
        try:
            return {"stats": dual_currency_service.invoice_stats(kind, request.args)}
        except SERVICE_ERRORS as e:
            return error_response(e)

    @bp.get("/<int:invoice_id>")
    @require_auth
    def get_route(invoice_id: int):
        try:
            invoice = dual_currency_service.get_invoice(kind, invoice_id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        return {"invoice": invoice_to_dict(invoice, include_payments=True)}

    @bp.post("")
    @require_auth
    def create_route():
        payload = drop_blank(request.get_json(silent=True) or {}, AUTO_FIELDS)
        try:
            patch = validate_payload(model=DualCurrencyInvoice, payload=payload, policy=policy, partial=False)
            invoice = dual_currency_service.create_invoice(kind, patch=patch, user_id=g.current_user.id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to create %s invoice", kind.value)
            return jsonify({"error": "Internal server error"}), 500
        return {"invoice": invoice_to_dict(invoice)}, 201

    @bp.put("/<int:invoice_id>")
    @require_auth
    def update_route(invoice_id: int):
        payload = drop_blank(request.get_json(silent=True) or {}, ("invoice_number",))
        try:
            patch = validate_payload(model=DualCurrencyInvoice, payload=payload, policy=policy, partial=True)
            invoice = dual_currency_service.update_invoice(kind, invoice_id, patch=patch, user_id=g.current_user.id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to update %s invoice", kind.value)
            return jsonify({"error": "Internal server error"}), 500
        return {"invoice": invoice_to_dict(invoice)}

    @bp.delete("/<int:invoice_id>")
    @require_auth
    @require_admin
    def delete_route(invoice_id: int):
        try:
            authorization = admin_authorization()
            dual_currency_service.delete_invoice(
                kind, invoice_id, authorization=authorization.token, user_id=g.current_user.id
            )
        except SERVICE_ERRORS as e:
            return error_response(e)
        return {"ok": True}

    @bp.post("/<int:invoice_id>/payments")
    @require_auth
    def add_payment_route(invoice_id: int):
        data = request.get_json(silent=True) or {}
        try:
            invoice, payment = dual_currency_service.add_payment(
                kind, invoice_id, data=data, user_id=g.current_user.id
            )
        except SERVICE_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to add %s invoice payment", kind.value)
            return jsonify({"error": "Internal server error"}), 500
        return {"invoice": invoice_to_dict(invoice), "payment": payment.to_dict()}, 201

    @bp.get("/<int:invoice_id>/payments")
    @require_auth
    def list_payments_route(invoice_id: int):
        try:
            payments = dual_currency_service.list_payments(kind, invoice_id)
        except SERVICE_ERRORS as e:
            return error_response(e)
        return {"items": [p.to_dict() for p in payments]}

    @bp.delete("/<int:invoice_id>/payments/<int:payment_id>")
    @require_auth
    @require_admin
    def reverse_payment_route(invoice_id: int, payment_id: int):
        data = request.get_json(silent=True) or {}
        try:
            authorization = admin_authorization()
            invoice = dual_currency_service.reverse_invoice_payment(
                kind,
                invoice_id,
                payment_id,
                authorization=authorization.token,
                user_id=g.current_user.id,
                reason=data.get("reason"),
            )
        except SERVICE_ERRORS as e:
            return error_response(e)
        except Exception:
            current_app.logger.exception("Failed to reverse %s invoice payment", kind.value)
            return jsonify({"error": "Internal server error"}), 500
        return {"invoice": invoice_to_dict(invoice, include_payments=True)}

    return bp


invoice_blueprints = [create_invoice_blueprint(kind) for kind in InvoiceKind]
