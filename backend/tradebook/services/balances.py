# Overview: Mapping between invoice rows and the ledger's value objects.

from __future__ import annotations

from sqlalchemy import and_, not_

from ..domain import InvoiceBalance, InvoiceStatus, PaymentEntry, PaymentMethod, PaymentType
from ..time_utils import today

PAYMENT_COMPLETED = "COMPLETED"
PAYMENT_REVERSED = "REVERSED"


def balance_of(invoice, final_amount: float, received_amount: float) -> InvoiceBalance:
    return InvoiceBalance(
        final_amount=final_amount,
        received_amount=received_amount,
        due_date=invoice.due_date,
        last_payment_date=invoice.last_payment_date,
    )


def entry_of(payment) -> PaymentEntry:
    return PaymentEntry(
        id=payment.id,
        amount=payment.amount,
        payment_type=PaymentType.parse(payment.payment_type),
        payment_method=PaymentMethod.parse(payment.payment_method),
        payment_date=payment.payment_date,
        received_by=payment.received_by_user_id,
        reference=payment.reference,
        notes=payment.notes,
        reversed=payment.status == PAYMENT_REVERSED,
    )


def active_entries(payments, *, excluding=None) -> list[PaymentEntry]:
    return [
        entry_of(p) for p in payments
        if p.status == PAYMENT_COMPLETED and (excluding is None or p.id != excluding)
    ]


def current_status(balance: InvoiceBalance) -> str:
    return balance.status(today()).value


def status_clause(model, status: InvoiceStatus, *, final_col, received_col, on_date):
    """SQL filter matching derive_status() for `on_date`."""
    final = getattr(model, final_col)
    received = getattr(model, received_col)
    paid = and_(final > 0, received >= final)
    overdue = and_(not_(paid), model.due_date < on_date)
    if status is InvoiceStatus.PAID:
        return paid
    if status is InvoiceStatus.OVERDUE:
        return overdue
    if status is InvoiceStatus.PARTIALLY_PAID:
        return and_(not_(paid), not_(overdue), received > 0)
    return and_(not_(paid), not_(overdue), received <= 0)
