# Overview: Sales invoices: entry, edits, payments, reversals and rollups.

"""
Sales Invoice Service

WHY: Sales invoices are the main receivable. Amounts are derived from the
entry fields on every write; received/outstanding/status only ever change
through the payment ledger (domain.payments), which keeps

    outstanding_amount == final_amount - received_amount
    0 <= received_amount <= final_amount

CONCURRENCY: Every mutation re-reads the sale with lock_for_update inside
run_with_retry; the version_id column turns a lost race into a
StaleDataError that is retried against fresh state.
"""

from __future__ import annotations

import math
from datetime import date, timedelta

from flask import current_app
from sqlalchemy import or_

from ..domain import (
    GroupBy,
    InvoiceStatus,
    OutstandingInvoice,
    OutstandingQuery,
    ValidationError,
    aggregate_outstanding,
    apply_payment,
    compute_sales_amount,
    default_due_date,
    require_authorization,
    reverse_payment,
)
from ..extensions import db
from ..models import Customer, Sale, SalePayment
from ..time_utils import parse_iso_date, to_utc_z, today, utcnow
from ..validation import ModelValidationPolicy, NotFoundError
from .balances import PAYMENT_REVERSED, active_entries, balance_of, current_status, entry_of, status_clause
from .concurrency import lock_for_update, run_with_retry
from .daily_ledger_service import post_sales_receipt, remove_sales_receipt
from .document_service import resolve_invoice_number


SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "invoice_number", "customer", "customer_id", "supplier", "container_no",
        "product", "marka", "description", "invoice_date", "due_date",
        "quantity", "return_quantity", "rate", "vat_percentage", "discount",
    },
    required_on_create={"customer", "product", "invoice_date", "quantity", "rate"},
    blank_as_zero={"return_quantity", "vat_percentage", "discount"},
)

# Optional on create: blank means "generate" / "default"
SALE_AUTO_FIELDS = ("invoice_number", "due_date")

SALE_DOCUMENT_TYPE = "sale"
SALE_NUMBER_PREFIX = "INV"


def sale_to_dict(sale: Sale, include_payments: bool = False) -> dict:
    """Serialize with the status re-derived for today (overdue is date-driven)."""
    data = sale.to_dict()
    data["status"] = current_status(balance_of(sale, sale.final_amount, sale.received_amount))
    if include_payments:
        data["payments"] = [p.to_dict() for p in sale.payments]
    return data


def _get_locked(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def _link_customer(sale: Sale) -> None:
    if sale.customer_id is None:
        return
    customer = db.session.get(Customer, sale.customer_id)
    if not customer:
        raise ValidationError(f"Customer {sale.customer_id} not found")
    if not sale.customer:
        sale.customer = customer.ename


def _store_balance(sale: Sale, balance) -> None:
    sale.final_amount = balance.final_amount
    sale.received_amount = balance.received_amount
    sale.outstanding_amount = balance.outstanding_amount
    sale.last_payment_date = balance.last_payment_date
    sale.status = current_status(balance)


def _derive_amounts(sale: Sale) -> None:
    amounts = compute_sales_amount(sale.quantity, sale.rate, sale.vat_percentage, sale.discount)
    if amounts.final_amount <= 0:
        raise ValidationError("Invoice total must be greater than zero")

    balance = balance_of(sale, sale.final_amount or 0.0, sale.received_amount or 0.0)
    balance = balance.recalculate(amounts.final_amount)

    sale.subtotal = amounts.subtotal
    sale.vat_amount = amounts.vat_amount
    _store_balance(sale, balance)


def create_sale(*, patch: dict, user_id: int) -> Sale:
    """Create a sales invoice from a validated patch."""
    def _op():
        number = resolve_invoice_number(
            Sale, patch.get("invoice_number"),
            document_type=SALE_DOCUMENT_TYPE, prefix=SALE_NUMBER_PREFIX,
        )
        fields = {k: v for k, v in patch.items() if k != "invoice_number"}
        sale = Sale(
            **fields,
            invoice_number=number,
            received_amount=0.0,
            created_by_user_id=user_id,
            updated_by_user_id=user_id,
        )
        if sale.due_date is None:
            sale.due_date = default_due_date(sale.invoice_date, current_app.config["DEFAULT_DUE_DAYS"])
        _link_customer(sale)
        _derive_amounts(sale)

        db.session.add(sale)
        db.session.commit()
        return sale

    return run_with_retry(_op)


def update_sale(sale_id: int, *, patch: dict, user_id: int) -> Sale:
    """
    Apply an edit and re-run the calculator.

    Raises OverpaymentError if the new total falls below what has already
    been received.
    """
    def _op():
        sale = _get_locked(sale_id)
        changes = dict(patch)
        if "invoice_number" in changes:
            changes["invoice_number"] = resolve_invoice_number(
                Sale, changes["invoice_number"],
                document_type=SALE_DOCUMENT_TYPE, prefix=SALE_NUMBER_PREFIX,
                exclude_id=sale.id,
            )
        for key, value in changes.items():
            setattr(sale, key, value)
        if "invoice_date" in changes and "due_date" not in changes and sale.due_date < sale.invoice_date:
            sale.due_date = default_due_date(sale.invoice_date, current_app.config["DEFAULT_DUE_DAYS"])
        _link_customer(sale)
        _derive_amounts(sale)
        sale.updated_by_user_id = user_id
        db.session.commit()
        return sale

    return run_with_retry(_op)


def delete_sale(sale_id: int, *, authorization: str | None, user_id: int) -> None:
    """Hard-delete an invoice and its payments (admin re-authentication required)."""
    require_authorization(authorization, "delete an invoice")

    def _op():
        sale = _get_locked(sale_id)
        for payment in sale.payments:
            if payment.status != PAYMENT_REVERSED:
                remove_sales_receipt(payment.id)
        number = sale.invoice_number
        db.session.delete(sale)
        db.session.commit()
        current_app.logger.info("Sale %s deleted by user %s", number, user_id)

    run_with_retry(_op)


# =============================================================================
# Payments
# =============================================================================

def _payment_date(raw):
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return today()
    try:
        parsed = parse_iso_date(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid payment date: {raw}")
    return parsed


def add_sale_payment(sale_id: int, *, data: dict, user_id: int) -> tuple[Sale, SalePayment]:
    """
    Record a payment against a sale.

    Raises AlreadySettledError / OverpaymentError / ValidationError from the
    payment ledger; nothing is written when it refuses.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    payment_date = _payment_date(data.get("payment_date"))

    def _op():
        sale = _get_locked(sale_id)
        result = apply_payment(
            balance_of(sale, sale.final_amount, sale.received_amount),
            data.get("amount"),
            data.get("payment_type"),
            data.get("payment_method"),
            payment_date=payment_date,
            received_by=user_id,
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        entry = result.payment
        payment = SalePayment(
            amount=entry.amount,
            payment_type=entry.payment_type.value,
            payment_method=entry.payment_method.value,
            reference=entry.reference,
            notes=entry.notes,
            payment_date=entry.payment_date,
            received_by_user_id=user_id,
        )
        sale.payments.append(payment)
        _store_balance(sale, result.invoice)
        sale.updated_by_user_id = user_id
        db.session.flush()

        post_sales_receipt(sale=sale, payment=payment, user_id=user_id)
        db.session.commit()
        current_app.logger.info(
            "Payment %.2f applied to %s (outstanding %.2f)",
            payment.amount, sale.invoice_number, sale.outstanding_amount,
        )
        return sale, payment

    return run_with_retry(_op)


def reverse_sale_payment(
    sale_id: int,
    payment_id: int,
    *,
    authorization: str | None,
    user_id: int,
    reason: str | None = None,
) -> Sale:
    """Reverse one payment; the invoice is recomputed in the same commit."""
    def _op():
        sale = _get_locked(sale_id)
        payment = next((p for p in sale.payments if p.id == payment_id), None)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found on sale {sale_id}")

        updated = reverse_payment(
            balance_of(sale, sale.final_amount, sale.received_amount),
            entry_of(payment),
            authorization,
            remaining=active_entries(sale.payments, excluding=payment.id),
        )
        payment.status = PAYMENT_REVERSED
        payment.reversed_by_user_id = user_id
        payment.reversed_at = utcnow()
        payment.reversal_reason = (reason or "").strip() or None
        _store_balance(sale, updated)
        sale.updated_by_user_id = user_id

        remove_sales_receipt(payment.id)
        db.session.commit()
        current_app.logger.info(
            "Payment %s on %s reversed by user %s", payment.id, sale.invoice_number, user_id
        )
        return sale

    return run_with_retry(_op)


def list_sale_payments(sale_id: int, include_reversed: bool = True) -> list[SalePayment]:
    sale = get_sale(sale_id)
    if include_reversed:
        return list(sale.payments)
    return [p for p in sale.payments if p.status != PAYMENT_REVERSED]


# =============================================================================
# Listing and reporting
# =============================================================================

def _filtered_query(args):
    query = db.session.query(Sale)

    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            Sale.invoice_number.ilike(like),
            Sale.customer.ilike(like),
            Sale.product.ilike(like),
            Sale.container_no.ilike(like),
        ))
    customer = (args.get("customer") or "").strip()
    if customer:
        query = query.filter(Sale.customer.ilike(f"%{customer}%"))
    supplier = (args.get("supplier") or "").strip()
    if supplier:
        query = query.filter(Sale.supplier.ilike(f"%{supplier}%"))
    product = (args.get("product") or "").strip()
    if product:
        query = query.filter(Sale.product.ilike(f"%{product}%"))
    container_no = (args.get("container_no") or "").strip()
    if container_no:
        query = query.filter(Sale.container_no == container_no)

    status = (args.get("status") or "").strip()
    if status:
        query = query.filter(status_clause(
            Sale, InvoiceStatus.parse(status),
            final_col="final_amount", received_col="received_amount", on_date=today(),
        ))

    start = _optional_date(args.get("start_date"), "start_date")
    end = _optional_date(args.get("end_date"), "end_date")
    if start:
        query = query.filter(Sale.invoice_date >= start)
    if end:
        query = query.filter(Sale.invoice_date <= end)
    return query


def _optional_date(raw, name: str):
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}: {raw}")


def list_sales(args, *, page: int, limit: int) -> dict:
    base_query = _filtered_query(args).order_by(Sale.invoice_date.desc(), Sale.id.desc())

    total = base_query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    sales = base_query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [sale_to_dict(s) for s in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def _sale_status(sale: Sale) -> str:
    return current_status(balance_of(sale, sale.final_amount, sale.received_amount))


def _totals(sales) -> dict:
    return {
        "total_invoices": len(sales),
        "total_amount": round(sum(s.final_amount for s in sales), 2),
        "total_received": round(sum(s.received_amount for s in sales), 2),
        "total_outstanding": round(sum(s.outstanding_amount for s in sales), 2),
        "total_vat": round(sum(s.vat_amount for s in sales), 2),
        "total_quantity": sum(s.quantity for s in sales),
    }


def _status_counts(sales) -> dict:
    counts = {status.value: 0 for status in InvoiceStatus}
    for sale in sales:
        counts[_sale_status(sale)] += 1
    return counts


def sales_statistics(args) -> dict:
    sales = _filtered_query(args).all()
    stats = _totals(sales)
    stats["by_status"] = _status_counts(sales)
    return stats


def list_products(search: str | None = None) -> list[str]:
    """Distinct product names used on sales, for autocomplete."""
    return autocomplete("product", search, limit=None)


AUTOCOMPLETE_FIELDS = {
    "customer": Sale.customer,
    "supplier": Sale.supplier,
    "product": Sale.product,
    "container_no": Sale.container_no,
    "marka": Sale.marka,
}


def autocomplete(field: str, search: str | None = None, *, limit: int | None = 20) -> list[str]:
    """Distinct values already typed into one sales field."""
    column = AUTOCOMPLETE_FIELDS.get(field)
    if column is None:
        allowed = ", ".join(AUTOCOMPLETE_FIELDS)
        raise ValidationError(f"Invalid field: {field}. Must be one of {allowed}")
    query = db.session.query(column).distinct().filter(column.isnot(None))
    if search and search.strip():
        query = query.filter(column.ilike(f"%{search.strip()}%"))
    values = sorted(value for (value,) in query.all() if value)
    return values if limit is None else values[:limit]


# =============================================================================
# Reports
# =============================================================================

REPORT_GROUPS = ("none", "customer", "supplier", "status", "month", "week", "container")
_PERIOD_GROUPS = ("month", "week")
UNSPECIFIED = "Unspecified"


def _week_key(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


_GROUP_KEYS = {
    "customer": lambda s: s.customer,
    "supplier": lambda s: s.supplier or UNSPECIFIED,
    "container": lambda s: s.container_no or UNSPECIFIED,
    "status": _sale_status,
    "month": lambda s: s.invoice_date.strftime("%Y-%m"),
    "week": lambda s: _week_key(s.invoice_date),
}


def _flag(raw) -> bool:
    return str(raw or "").strip().lower() in ("1", "true", "yes")


def sales_report(args) -> dict:
    """
    Sales report over the list filters (search, customer, supplier, product,
    container_no, status, start_date, end_date).

    Extra params:
    - statuses: comma-separated list of derived statuses to keep
    - group_by: none | customer | supplier | status | month | week | container
    - include_payments: attach each invoice's payments

    Periods are ordered chronologically; other groups by total amount, largest first.
    """
    group_by = (args.get("group_by") or "none").strip().lower()
    if group_by not in REPORT_GROUPS:
        raise ValidationError(f"group_by must be one of {', '.join(REPORT_GROUPS)}")
    include_payments = _flag(args.get("include_payments"))

    sales = _filtered_query(args).order_by(Sale.invoice_date.asc(), Sale.id.asc()).all()
    raw_statuses = [part for part in (args.get("statuses") or "").split(",") if part.strip()]
    if raw_statuses:
        wanted = {InvoiceStatus.parse(part).value for part in raw_statuses}
        sales = [s for s in sales if _sale_status(s) in wanted]

    summary = _totals(sales)
    summary["by_status"] = _status_counts(sales)
    report = {
        "group_by": group_by,
        "start_date": args.get("start_date") or None,
        "end_date": args.get("end_date") or None,
        "generated_at": to_utc_z(utcnow()),
        "summary": summary,
    }

    if group_by == "none":
        report["items"] = [sale_to_dict(s, include_payments=include_payments) for s in sales]
        return report

    key_of = _GROUP_KEYS[group_by]
    grouped: dict[str, list[Sale]] = {}
    for sale in sales:
        grouped.setdefault(key_of(sale), []).append(sale)

    groups = [
        {
            "key": key,
            **_totals(members),
            "items": [sale_to_dict(s, include_payments=include_payments) for s in members],
        }
        for key, members in grouped.items()
    ]
    if group_by in _PERIOD_GROUPS:
        groups.sort(key=lambda g: g["key"])
    else:
        groups.sort(key=lambda g: (-g["total_amount"], g["key"]))
    report["groups"] = groups
    return report


def _int_arg(raw, name: str, default: int, *, minimum: int, maximum: int) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    if value < minimum or value > maximum:
        raise ValidationError(f"{name} must be between {minimum} and {maximum}")
    return value


def monthly_statistics(month=None, year=None) -> dict:
    """Invoiced and received totals for one calendar month (default: current)."""
    now = today()
    month = _int_arg(month, "month", now.month, minimum=1, maximum=12)
    year = _int_arg(year, "year", now.year, minimum=1900, maximum=9999)

    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)

    sales = db.session.query(Sale).filter(
        Sale.invoice_date >= start,
        Sale.invoice_date < end,
    ).all()
    payments = db.session.query(SalePayment).filter(
        SalePayment.status != PAYMENT_REVERSED,
        SalePayment.payment_date >= start,
        SalePayment.payment_date < end,
    ).all()

    stats = _totals(sales)
    stats["by_status"] = _status_counts(sales)
    return {
        "month": month,
        "year": year,
        "period": start.strftime("%Y-%m"),
        "sales": stats,
        "payments": {
            "count": len(payments),
            "total_received": round(sum(p.amount for p in payments), 2),
        },
    }


def recent_payments(limit=None, days=None) -> list[dict]:
    """Completed payments received within the last `days` days, newest first."""
    limit = _int_arg(limit, "limit", 10, minimum=1, maximum=100)
    days = _int_arg(days, "days", 30, minimum=0, maximum=3650)
    since = today() - timedelta(days=days)

    rows = db.session.query(SalePayment, Sale).join(Sale, SalePayment.sale_id == Sale.id).filter(
        SalePayment.status != PAYMENT_REVERSED,
        SalePayment.payment_date >= since,
    ).order_by(SalePayment.payment_date.desc(), SalePayment.id.desc()).limit(limit).all()

    items = []
    for payment, sale in rows:
        data = payment.to_dict()
        data["invoice_number"] = sale.invoice_number
        data["customer"] = sale.customer
        data["product"] = sale.product
        items.append(data)
    return items


def customer_sales(customer_id: int) -> dict:
    """
    All sales for a customer record, newest first.

    Matches the customer link, or the display name on sales entered
    without a link.
    """
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")

    sales = db.session.query(Sale).filter(or_(
        Sale.customer_id == customer.id,
        (Sale.customer_id.is_(None)) & (Sale.customer == customer.ename),
    )).order_by(Sale.invoice_date.desc(), Sale.id.desc()).all()

    return {
        "customer": customer.to_dict(),
        "items": [sale_to_dict(s) for s in sales],
        "summary": _totals(sales),
    }


def _optional_float(raw, name: str):
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(str(raw).strip().replace(",", ""))
    except ValueError:
        raise ValidationError(f"{name} must be a number")
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number")
    return value


def outstanding_query(args, *, page: int, limit: int) -> OutstandingQuery:
    """Build an aggregator query from request args."""
    raw_group = (args.get("group_by") or GroupBy.CUSTOMER.value).strip().lower()
    try:
        group_by = GroupBy(raw_group)
    except ValueError:
        raise ValidationError("group_by must be customer or product")

    status = (args.get("status") or "").strip()
    return OutstandingQuery(
        group_by=group_by,
        search=(args.get("search") or "").strip() or None,
        min_amount=_optional_float(args.get("min_amount"), "min_amount"),
        max_amount=_optional_float(args.get("max_amount"), "max_amount"),
        status=InvoiceStatus.parse(status) if status else None,
        sort_by=(args.get("sort_by") or "total_outstanding").strip(),
        sort_order=(args.get("sort_order") or "desc").strip().lower(),
        page=page,
        limit=limit,
    )


def customer_outstanding(query: OutstandingQuery) -> dict:
    on_date = today()
    invoices = [
        OutstandingInvoice(
            customer=s.customer,
            product=s.product,
            final_amount=s.final_amount,
            received_amount=s.received_amount,
            outstanding_amount=s.outstanding_amount,
            status=balance_of(s, s.final_amount, s.received_amount).status(on_date),
            due_date=s.due_date,
            last_payment_date=s.last_payment_date,
        )
        for s in db.session.query(Sale).order_by(Sale.id.asc()).all()
    ]
    return aggregate_outstanding(invoices, query).to_dict(query.group_by)


def refresh_statuses() -> int:
    """Persist re-derived statuses (overdue transitions). Returns rows changed."""
    changed = 0
    for sale in db.session.query(Sale).all():
        status = current_status(balance_of(sale, sale.final_amount, sale.received_amount))
        if sale.status != status:
            sale.status = status
            changed += 1
    db.session.commit()
    return changed
