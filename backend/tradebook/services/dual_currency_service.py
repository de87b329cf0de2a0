# Overview: Freight / transport / Dubai transport / Dubai clearance invoices.

"""
Dual-Currency Invoice Service

The four invoice kinds share one table and one code path, parameterized by
InvoiceKind. Each kind's balance lives in its source currency (PKR for
freight and transport, AED for the Dubai kinds); payments are taken in
that currency and the parallel currency columns are re-derived from the
stored conversion rate after every write.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..domain import (
    Currency,
    InvoiceBalance,
    InvoiceKind,
    InvoiceStatus,
    ValidationError,
    apply_payment,
    default_due_date,
    dual_balance,
    invoice_amounts,
    require_authorization,
    reverse_payment,
)
from ..extensions import db
from ..models import DualCurrencyInvoice, DualCurrencyPayment
from ..time_utils import parse_iso_date, today, utcnow
from ..validation import ModelValidationPolicy, NotFoundError
from .balances import PAYMENT_REVERSED, active_entries, current_status, entry_of, status_clause
from .concurrency import lock_for_update, run_with_retry
from .document_service import resolve_invoice_number


_COMMON_FIELDS = {
    "invoice_number", "agent", "container_no", "description",
    "invoice_date", "due_date", "conversion_rate",
}

AUTO_FIELDS = ("invoice_number", "due_date")


def source_field(kind: InvoiceKind) -> str:
    return f"amount_{kind.source_currency.value.lower()}"


def _paid_field(kind: InvoiceKind) -> str:
    return f"paid_amount_{kind.source_currency.value.lower()}"


def policy_for(kind: InvoiceKind) -> ModelValidationPolicy:
    """Only the source-currency amount is writable; the other is derived."""
    amount_field = source_field(kind)
    return ModelValidationPolicy(
        writable_fields=_COMMON_FIELDS | {amount_field},
        required_on_create={"agent", "invoice_date", "conversion_rate", amount_field},
    )


def _balance(invoice: DualCurrencyInvoice, kind: InvoiceKind) -> InvoiceBalance:
    return InvoiceBalance(
        final_amount=getattr(invoice, source_field(kind)) or 0.0,
        received_amount=getattr(invoice, _paid_field(kind)) or 0.0,
        due_date=invoice.due_date,
        last_payment_date=invoice.last_payment_date,
    )


def _store(invoice: DualCurrencyInvoice, kind: InvoiceKind, balance: InvoiceBalance) -> None:
    figures = dual_balance(kind, balance, invoice.conversion_rate)
    invoice.amount_pkr = figures.amount.pkr
    invoice.amount_aed = figures.amount.aed
    invoice.paid_amount_pkr = figures.paid.pkr
    invoice.paid_amount_aed = figures.paid.aed
    invoice.outstanding_amount_pkr = figures.outstanding.pkr
    invoice.outstanding_amount_aed = figures.outstanding.aed
    invoice.last_payment_date = balance.last_payment_date
    invoice.status = current_status(balance)


def invoice_to_dict(invoice: DualCurrencyInvoice, include_payments: bool = False) -> dict:
    kind = InvoiceKind(invoice.kind)
    data = invoice.to_dict(include_payments=include_payments)
    data["status"] = current_status(_balance(invoice, kind))
    data["currency"] = kind.source_currency.value
    return data


def get_invoice(kind: InvoiceKind, invoice_id: int) -> DualCurrencyInvoice:
    invoice = db.session.query(DualCurrencyInvoice).filter_by(id=invoice_id, kind=kind.value).first()
    if not invoice:
        raise NotFoundError(f"{kind.value.replace('_', ' ').title()} invoice {invoice_id} not found")
    return invoice


def _get_locked(kind: InvoiceKind, invoice_id: int) -> DualCurrencyInvoice:
    query = db.session.query(DualCurrencyInvoice).filter_by(id=invoice_id, kind=kind.value)
    invoice = lock_for_update(query).first()
    if not invoice:
        raise NotFoundError(f"{kind.value.replace('_', ' ').title()} invoice {invoice_id} not found")
    return invoice


def _resolve_number(kind: InvoiceKind, raw, exclude_id=None) -> str:
    return resolve_invoice_number(
        DualCurrencyInvoice, raw,
        document_type=kind.value, prefix=kind.prefix,
        exclude_id=exclude_id, scope={"kind": kind.value},
    )


def create_invoice(kind: InvoiceKind, *, patch: dict, user_id: int) -> DualCurrencyInvoice:
    amount_field = source_field(kind)

    def _op():
        amounts = invoice_amounts(kind, patch[amount_field], patch["conversion_rate"])
        number = _resolve_number(kind, patch.get("invoice_number"))
        fields = {k: v for k, v in patch.items() if k not in ("invoice_number", amount_field)}
        invoice = DualCurrencyInvoice(
            **fields,
            kind=kind.value,
            invoice_number=number,
            created_by_user_id=user_id,
            updated_by_user_id=user_id,
        )
        if invoice.due_date is None:
            invoice.due_date = default_due_date(invoice.invoice_date, current_app.config["DEFAULT_DUE_DAYS"])
        source_amount = amounts.pkr if kind.source_currency is Currency.PKR else amounts.aed
        _store(invoice, kind, InvoiceBalance(final_amount=source_amount, due_date=invoice.due_date))

        db.session.add(invoice)
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def update_invoice(kind: InvoiceKind, invoice_id: int, *, patch: dict, user_id: int) -> DualCurrencyInvoice:
    """Edit an invoice; changing the amount or rate re-derives both currencies."""
    amount_field = source_field(kind)

    def _op():
        invoice = _get_locked(kind, invoice_id)
        changes = dict(patch)
        if "invoice_number" in changes:
            changes["invoice_number"] = _resolve_number(kind, changes["invoice_number"], exclude_id=invoice.id)
        for key, value in changes.items():
            setattr(invoice, key, value)

        amounts = invoice_amounts(kind, getattr(invoice, amount_field), invoice.conversion_rate)
        source_amount = amounts.pkr if kind.source_currency is Currency.PKR else amounts.aed
        balance = _balance(invoice, kind)
        _store(invoice, kind, balance.recalculate(source_amount))
        invoice.updated_by_user_id = user_id
        db.session.commit()
        return invoice

    return run_with_retry(_op)


def delete_invoice(kind: InvoiceKind, invoice_id: int, *, authorization: str | None, user_id: int) -> None:
    require_authorization(authorization, "delete an invoice")

    def _op():
        invoice = _get_locked(kind, invoice_id)
        number = invoice.invoice_number
        db.session.delete(invoice)
        db.session.commit()
        current_app.logger.info("%s invoice %s deleted by user %s", kind.value, number, user_id)

    run_with_retry(_op)


def add_payment(kind: InvoiceKind, invoice_id: int, *, data: dict, user_id: int):
    """Record a payment in the invoice's source currency."""
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    raw_date = data.get("payment_date")
    try:
        payment_date = parse_iso_date(raw_date) or today()
    except ValueError:
        raise ValidationError(f"Invalid payment date: {raw_date}")

    def _op():
        invoice = _get_locked(kind, invoice_id)
        result = apply_payment(
            _balance(invoice, kind),
            data.get("amount"),
            data.get("payment_type"),
            data.get("payment_method"),
            payment_date=payment_date,
            received_by=user_id,
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        entry = result.payment
        payment = DualCurrencyPayment(
            amount=entry.amount,
            currency=kind.source_currency.value,
            payment_type=entry.payment_type.value,
            payment_method=entry.payment_method.value,
            reference=entry.reference,
            notes=entry.notes,
            payment_date=entry.payment_date,
            received_by_user_id=user_id,
        )
        invoice.payments.append(payment)
        _store(invoice, kind, result.invoice)
        invoice.updated_by_user_id = user_id
        db.session.commit()
        current_app.logger.info(
            "Payment %.2f %s applied to %s invoice %s",
            payment.amount, payment.currency, kind.value, invoice.invoice_number,
        )
        return invoice, payment

    return run_with_retry(_op)


def reverse_invoice_payment(
    kind: InvoiceKind,
    invoice_id: int,
    payment_id: int,
    *,
    authorization: str | None,
    user_id: int,
    reason: str | None = None,
) -> DualCurrencyInvoice:
    def _op():
        invoice = _get_locked(kind, invoice_id)
        payment = next((p for p in invoice.payments if p.id == payment_id), None)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found on invoice {invoice_id}")

        updated = reverse_payment(
            _balance(invoice, kind),
            entry_of(payment),
            authorization,
            remaining=active_entries(invoice.payments, excluding=payment.id),
        )
        payment.status = PAYMENT_REVERSED
        payment.reversed_by_user_id = user_id
        payment.reversed_at = utcnow()
        payment.reversal_reason = (reason or "").strip() or None
        _store(invoice, kind, updated)
        invoice.updated_by_user_id = user_id
        db.session.commit()
        current_app.logger.info(
            "Payment %s on %s invoice %s reversed by user %s",
            payment.id, kind.value, invoice.invoice_number, user_id,
        )
        return invoice

    return run_with_retry(_op)


def list_payments(kind: InvoiceKind, invoice_id: int) -> list[DualCurrencyPayment]:
    return list(get_invoice(kind, invoice_id).payments)


def _filtered_query(kind: InvoiceKind, args):
    query = db.session.query(DualCurrencyInvoice).filter(DualCurrencyInvoice.kind == kind.value)

    search = (args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(
            DualCurrencyInvoice.invoice_number.ilike(like),
            DualCurrencyInvoice.agent.ilike(like),
            DualCurrencyInvoice.container_no.ilike(like),
        ))
    agent = (args.get("agent") or "").strip()
    if agent:
        query = query.filter(DualCurrencyInvoice.agent.ilike(f"%{agent}%"))

    status = (args.get("status") or "").strip()
    if status:
        query = query.filter(status_clause(
            DualCurrencyInvoice, InvoiceStatus.parse(status),
            final_col=source_field(kind), received_col=_paid_field(kind), on_date=today(),
        ))

    try:
        start = parse_iso_date(args.get("start_date"))
        end = parse_iso_date(args.get("end_date"))
    except ValueError:
        raise ValidationError("Invalid date range")
    if start:
        query = query.filter(DualCurrencyInvoice.invoice_date >= start)
    if end:
        query = query.filter(DualCurrencyInvoice.invoice_date <= end)
    return query


def list_invoices(kind: InvoiceKind, args, *, page: int, limit: int) -> dict:
    base_query = _filtered_query(kind, args).order_by(
        DualCurrencyInvoice.invoice_date.desc(), DualCurrencyInvoice.id.desc()
    )

    total = base_query.count()
    total_pages = (total + limit - 1) // limit if total > 0 else 1
    invoices = base_query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [invoice_to_dict(i) for i in invoices],
        "count": len(invoices),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def invoice_stats(kind: InvoiceKind, args) -> dict:
    invoices = _filtered_query(kind, args).all()
    counts = {status.value: 0 for status in InvoiceStatus}
    for invoice in invoices:
        counts[current_status(_balance(invoice, kind))] += 1

    def _total(field: str) -> float:
        return round(sum(getattr(i, field) for i in invoices), 2)

    return {
        "kind": kind.value,
        "currency": kind.source_currency.value,
        "total_invoices": len(invoices),
        "total_amount_pkr": _total("amount_pkr"),
        "total_amount_aed": _total("amount_aed"),
        "total_paid_pkr": _total("paid_amount_pkr"),
        "total_paid_aed": _total("paid_amount_aed"),
        "total_outstanding_pkr": _total("outstanding_amount_pkr"),
        "total_outstanding_aed": _total("outstanding_amount_aed"),
        "by_status": counts,
    }


def refresh_statuses() -> int:
    changed = 0
    for invoice in db.session.query(DualCurrencyInvoice).all():
        status = current_status(_balance(invoice, InvoiceKind(invoice.kind)))
        if invoice.status != status:
            invoice.status = status
            changed += 1
    db.session.commit()
    return changed
