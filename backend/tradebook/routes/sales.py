# Overview: Flask API routes for sales invoices and their payments.

# backend/tradebook/routes/sales.py
"""
Sales API routes.

Deleting an invoice or reversing a payment requires the admin to re-enter
their password (`admin_password` in the JSON body).
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import admin_authorization, require_admin, require_auth
from ..http_errors import SERVICE_ERRORS, error_response
from ..models import Sale
from ..services import sales_service
from ..services.sales_service import SALE_AUTO_FIELDS, SALE_POLICY, sale_to_dict
from ..validation import drop_blank, parse_pagination, validate_payload


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _pagination():
    return parse_pagination(
        request.args,
        default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
        max_limit=current_app.config["MAX_PAGE_SIZE"],
    )


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales invoices.

    Query params: search, customer, product, container_no, status,
    start_date, end_date, page, limit.
    """
    page, limit = _pagination()
    try:
        return sales_service.list_sales(request.args, page=page, limit=limit)
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.post("")
@require_auth
def create_sale_route():
    """Create a sales invoice. Blank invoice_number / due_date are generated."""
    payload = drop_blank(request.get_json(silent=True) or {}, SALE_AUTO_FIELDS)
    try:
        patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=False)
        sale = sales_service.create_sale(patch=patch, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"sale": sale_to_dict(sale)}), 201


@sales_bp.get("/customer-outstanding")
@require_auth
def customer_outstanding_route():
    """
    Outstanding balances grouped by customer (or product with group_by=product).

    Query params: group_by, search, min_amount, max_amount, status,
    sort_by, sort_order, page, limit.
    """
    page, limit = _pagination()
    try:
        query = sales_service.outstanding_query(request.args, page=page, limit=limit)
        return sales_service.customer_outstanding(query)
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.get("/statistics")
@require_auth
def statistics_route():
    try:
        return {"statistics": sales_service.sales_statistics(request.args)}
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.get("/products")
@require_auth
def products_route():
    return {"items": sales_service.list_products(request.args.get("search"))}


@sales_bp.get("/report")
@require_auth
def report_route():
    """
    Sales report.

    Query params: the list filters plus statuses, group_by
    (none|customer|supplier|status|month|week|container) and include_payments.
    """
    try:
        return {"report": sales_service.sales_report(request.args)}
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.get("/statistics/monthly")
@require_auth
def monthly_statistics_route():
    try:
        return {"statistics": sales_service.monthly_statistics(
            request.args.get("month"), request.args.get("year"),
        )}
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.get("/payments/recent")
@require_auth
def recent_payments_route():
    """Query params: limit (default 10), days (default 30)."""
    try:
        items = sales_service.recent_payments(request.args.get("limit"), request.args.get("days"))
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"items": items, "count": len(items)}


@sales_bp.get("/customer/<int:customer_id>")
@require_auth
def customer_sales_route(customer_id: int):
    try:
        return sales_service.customer_sales(customer_id)
    except SERVICE_ERRORS as e:
        return error_response(e)


@sales_bp.get("/autocomplete/<field>")
@require_auth
def autocomplete_route(field: str):
    try:
        suggestions = sales_service.autocomplete(field, request.args.get("search"))
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"field": field, "suggestions": suggestions}


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return jsonify({"sale": sale_to_dict(sale, include_payments=True)}), 200


@sales_bp.put("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    """Edit a sale; amounts are re-derived and must stay >= received."""
    payload = request.get_json(silent=True) or {}
    payload = drop_blank(payload, ("invoice_number",))
    try:
        patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=True)
        sale = sales_service.update_sale(sale_id, patch=patch, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"sale": sale_to_dict(sale)}), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_admin
def delete_sale_route(sale_id: int):
    try:
        authorization = admin_authorization()
        sales_service.delete_sale(sale_id, authorization=authorization.token, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"ok": True}), 200


@sales_bp.post("/<int:sale_id>/payments")
@require_auth
def add_payment_route(sale_id: int):
    """
    Record a payment.

    Body: amount, payment_type (partial|full), payment_method, payment_date,
    reference, notes. A full payment without amount settles the balance.
    """
    data = request.get_json(silent=True) or {}
    try:
        sale, payment = sales_service.add_sale_payment(sale_id, data=data, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add sale payment")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"sale": sale_to_dict(sale), "payment": payment.to_dict()}), 201


@sales_bp.get("/<int:sale_id>/payments")
@require_auth
def list_payments_route(sale_id: int):
    include_reversed = request.args.get("include_reversed", "true").lower() not in ("0", "false", "no")
    try:
        payments = sales_service.list_sale_payments(sale_id, include_reversed=include_reversed)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"items": [p.to_dict() for p in payments]}


@sales_bp.delete("/<int:sale_id>/payments/<int:payment_id>")
@require_auth
@require_admin
def reverse_payment_route(sale_id: int, payment_id: int):
    data = request.get_json(silent=True) or {}
    try:
        authorization = admin_authorization()
        sale = sales_service.reverse_sale_payment(
            sale_id,
            payment_id,
            authorization=authorization.token,
            user_id=g.current_user.id,
            reason=data.get("reason"),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reverse sale payment")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"sale": sale_to_dict(sale, include_payments=True)}), 200
