# Overview: Flask API routes for the daily cash/bank ledger.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_admin, require_auth
from ..http_errors import SERVICE_ERRORS, error_response
from ..services import daily_ledger_service


daily_ledger_bp = Blueprint("daily_ledger", __name__, url_prefix="/api/daily-ledger")


@daily_ledger_bp.get("/summary")
@require_auth
def summary_route():
    """Totals over start_date..end_date (inclusive)."""
    try:
        return {"summary": daily_ledger_service.ledger_summary(
            request.args.get("start_date"), request.args.get("end_date")
        )}
    except SERVICE_ERRORS as e:
        return error_response(e)


@daily_ledger_bp.delete("/entries/<int:entry_id>")
@require_auth
def delete_entry_route(entry_id: int):
    """Manual entries only; sales receipts go away with their payment."""
    try:
        daily_ledger_service.delete_entry(entry_id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"ok": True}


@daily_ledger_bp.get("/<ledger_date>")
@require_auth
def get_ledger_route(ledger_date: str):
    try:
        ledger = daily_ledger_service.get_ledger(ledger_date)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"ledger": ledger.to_dict(), "entries": [e.to_dict() for e in ledger.entries]}


@daily_ledger_bp.put("/<ledger_date>")
@require_auth
def save_opening_route(ledger_date: str):
    """Create the day's ledger or update opening_cash / opening_bank / notes."""
    data = request.get_json(silent=True) or {}
    try:
        ledger = daily_ledger_service.save_opening_balances(
            ledger_date,
            opening_cash=data.get("opening_cash"),
            opening_bank=data.get("opening_bank"),
            notes=data.get("notes"),
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save ledger")
        return jsonify({"error": "Internal server error"}), 500
    return {"ledger": ledger.to_dict()}


@daily_ledger_bp.get("/<ledger_date>/entries")
@require_auth
def list_entries_route(ledger_date: str):
    try:
        entries = daily_ledger_service.list_entries(ledger_date)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"items": [e.to_dict() for e in entries]}


@daily_ledger_bp.post("/<ledger_date>/entries")
@require_auth
def add_entry_route(ledger_date: str):
    """Body: type (receipt|payment), mode (cash|bank), description, amount."""
    data = request.get_json(silent=True) or {}
    try:
        entry = daily_ledger_service.add_entry(
            ledger_date,
            entry_type=data.get("type"),
            mode=data.get("mode"),
            description=data.get("description"),
            amount=data.get("amount"),
            user_id=g.current_user.id,
        )
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add ledger entry")
        return jsonify({"error": "Internal server error"}), 500
    return {"entry": entry.to_dict(), "ledger": entry.ledger.to_dict()}, 201


@daily_ledger_bp.post("/<ledger_date>/close")
@require_auth
@require_admin
def close_route(ledger_date: str):
    try:
        ledger = daily_ledger_service.close_ledger(ledger_date, user_id=g.current_user.id)
    except SERVICE_ERRORS as e:
        return error_response(e)
    return {"ledger": ledger.to_dict()}
