# Overview: Invoice status derivation (unpaid / partially_paid / paid / overdue).

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from .errors import ValidationError


class InvoiceStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"

    @classmethod
    def parse(cls, value) -> "InvoiceStatus":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"Invalid status: {value}. Must be one of {allowed}")


def _as_date(value: date | datetime | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    return value


def derive_status(
    final_amount: float,
    received_amount: float,
    due_date: date | datetime | None,
    today: date | datetime,
) -> InvoiceStatus:
    """
    Derive the display status of an invoice.

    - PAID when the full (non-zero) amount has been received. Terminal.
    - OVERDUE when anything is still owed and today is past the due date.
    - PARTIALLY_PAID when something but not everything has been received.
    - UNPAID otherwise.

    Nothing is persisted as a transition; callers re-derive on every
    read and write.
    """
    if final_amount > 0 and received_amount >= final_amount:
        return InvoiceStatus.PAID

    due = _as_date(due_date)
    if due is not None and _as_date(today) > due:
        return InvoiceStatus.OVERDUE

    if received_amount > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.UNPAID
