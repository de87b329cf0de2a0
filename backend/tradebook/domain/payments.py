# Overview: Payment application and reversal against an invoice balance.

"""
Payment Ledger

Applies payments to an immutable InvoiceBalance and reverses them.

INVARIANTS (hold after every call):
- outstanding_amount == final_amount - received_amount
- 0 <= received_amount <= final_amount
- received_amount == sum of non-reversed payments

Overshooting payments are rejected, never capped. A settled invoice takes
no further payments. Reversal requires an elevated-authorization token
that the caller obtained by re-authenticating an admin; the ledger only
checks that one was supplied.

Concurrency is the caller's job: read the invoice fresh, call these
functions, and commit the result atomically (version-stamped row).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Iterable

from .errors import (
    AlreadySettledError,
    OverpaymentError,
    UnauthorizedReversalError,
    ValidationError,
)
from .status import InvoiceStatus, derive_status


class PaymentType(str, Enum):
    PARTIAL = "partial"
    FULL = "full"

    @classmethod
    def parse(cls, value) -> "PaymentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid payment type: {value}. Must be partial or full")


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    CARD = "card"
    OTHER = "other"

    @classmethod
    def parse(cls, value) -> "PaymentMethod":
        if isinstance(value, cls):
            return value
        if value is None or str(value).strip() == "":
            return cls.CASH
        key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        key = _METHOD_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"Invalid payment method: {value}. Must be one of {allowed}")


_METHOD_ALIASES = {
    "cheque": "check",
    "bank": "bank_transfer",
    "transfer": "bank_transfer",
}


def _money(value: float) -> float:
    return round(value, 2)


@dataclass(frozen=True)
class InvoiceBalance:
    """Bookkeeping snapshot of one invoice, in its authoritative currency."""

    final_amount: float
    received_amount: float = 0.0
    due_date: date | None = None
    last_payment_date: date | None = None

    @property
    def outstanding_amount(self) -> float:
        return _money(self.final_amount - self.received_amount)

    @property
    def is_settled(self) -> bool:
        return self.outstanding_amount <= 0

    def status(self, today: date) -> InvoiceStatus:
        return derive_status(self.final_amount, self.received_amount, self.due_date, today)

    def recalculate(self, final_amount: float) -> "InvoiceBalance":
        """Apply a manual edit of the invoice total, keeping received intact."""
        final_amount = _money(final_amount)
        if final_amount < self.received_amount:
            raise OverpaymentError(
                f"Invoice total {final_amount:.2f} cannot be less than the "
                f"{self.received_amount:.2f} already received"
            )
        return replace(self, final_amount=final_amount)


@dataclass(frozen=True)
class PaymentEntry:
    amount: float
    payment_type: PaymentType
    payment_method: PaymentMethod
    payment_date: date
    received_by: int | str
    reference: str | None = None
    notes: str | None = None
    id: int | None = None
    reversed: bool = False


@dataclass(frozen=True)
class PaymentResult:
    invoice: InvoiceBalance
    payment: PaymentEntry


def _parse_amount(raw) -> float:
    # Payment amounts are financial input: reject rather than default to 0
    if isinstance(raw, bool):
        raise ValidationError("Payment amount must be a number")
    try:
        value = float(raw.strip().replace(",", "")) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Payment amount must be a number: {raw}")
    if not math.isfinite(value):
        raise ValidationError("Payment amount must be a finite number")
    return _money(value)


def _clean_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def apply_payment(
    invoice: InvoiceBalance,
    amount,
    payment_type=None,
    method=PaymentMethod.CASH,
    *,
    payment_date: date,
    received_by,
    reference=None,
    notes=None,
) -> PaymentResult:
    """
    Record a payment against an invoice.

    A FULL payment with no amount settles the outstanding balance. When the
    payment type is omitted it is FULL iff the amount settles the invoice.

    Raises:
        AlreadySettledError: nothing is outstanding
        ValidationError: non-positive amount, FULL that does not settle,
            missing payment date or receiver
        OverpaymentError: amount exceeds the outstanding balance
    """
    if invoice.is_settled:
        raise AlreadySettledError("Invoice is already paid")

    if payment_date is None:
        raise ValidationError("Payment date is required")
    if received_by is None or str(received_by).strip() == "":
        raise ValidationError("Receiving user is required")

    outstanding = invoice.outstanding_amount
    kind = PaymentType.parse(payment_type) if payment_type not in (None, "") else None

    if amount is None or (isinstance(amount, str) and not amount.strip()):
        if kind is not PaymentType.FULL:
            raise ValidationError("Payment amount is required")
        value = outstanding
    else:
        value = _parse_amount(amount)

    if value <= 0:
        raise ValidationError("Payment amount must be positive")
    if value > outstanding:
        raise OverpaymentError(
            f"Payment amount {value:.2f} exceeds outstanding balance {outstanding:.2f}"
        )

    if kind is None:
        kind = PaymentType.FULL if value == outstanding else PaymentType.PARTIAL
    elif kind is PaymentType.FULL and value < outstanding:
        raise ValidationError(
            f"A full payment must settle the outstanding balance of {outstanding:.2f}"
        )

    payment = PaymentEntry(
        amount=value,
        payment_type=kind,
        payment_method=PaymentMethod.parse(method),
        payment_date=payment_date,
        received_by=received_by,
        reference=_clean_text(reference),
        notes=_clean_text(notes),
    )
    updated = replace(
        invoice,
        received_amount=_money(invoice.received_amount + value),
        last_payment_date=payment_date,
    )
    return PaymentResult(invoice=updated, payment=payment)


def reverse_payment(
    invoice: InvoiceBalance,
    payment: PaymentEntry,
    authorization: str | None,
    *,
    remaining: Iterable[PaymentEntry] = (),
) -> InvoiceBalance:
    """
    Reverse a previously applied payment.

    `remaining` holds the invoice's other active payments; the latest of
    their dates becomes the new last payment date.

    Raises:
        UnauthorizedReversalError: no authorization token supplied
        ValidationError: payment already reversed or larger than received
    """
    if authorization is None or not str(authorization).strip():
        raise UnauthorizedReversalError("Admin authorization is required to reverse a payment")

    if payment.reversed:
        raise ValidationError("Payment has already been reversed")

    if _money(payment.amount) > _money(invoice.received_amount):
        raise ValidationError(
            f"Payment amount {payment.amount:.2f} exceeds received total "
            f"{invoice.received_amount:.2f}"
        )

    dates = [p.payment_date for p in remaining if not p.reversed and p.payment_date is not None]
    received = max(_money(invoice.received_amount - payment.amount), 0.0)

    return replace(
        invoice,
        received_amount=received,
        last_payment_date=max(dates) if dates else None,
    )


def require_authorization(authorization: str | None, action: str = "perform this action") -> None:
    """Guard for other elevated operations (e.g. hard-deleting an invoice)."""
    if authorization is None or not str(authorization).strip():
        raise UnauthorizedReversalError(f"Admin authorization is required to {action}")
