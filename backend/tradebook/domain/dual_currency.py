# Overview: PKR/AED invoice kinds and their parallel-currency figures.

"""
Dual-currency invoices (freight, transport, Dubai transport, Dubai
clearance) are one shape tagged by kind. Each kind has one authoritative
currency: the amount entered by the user, the currency payments are
recorded in, and the currency the balance is kept in. The other currency
is always derived from it through the stored conversion rate (PKR per AED).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .amounts import ConversionDirection, compute_dual_currency_amount, to_amount
from .errors import ValidationError
from .payments import InvoiceBalance


class Currency(str, Enum):
    PKR = "PKR"
    AED = "AED"


class InvoiceKind(str, Enum):
    FREIGHT = "freight"
    TRANSPORT = "transport"
    DUBAI_TRANSPORT = "dubai_transport"
    DUBAI_CLEARANCE = "dubai_clearance"

    @property
    def source_currency(self) -> Currency:
        if self in (InvoiceKind.FREIGHT, InvoiceKind.TRANSPORT):
            return Currency.PKR
        return Currency.AED

    @property
    def direction(self) -> ConversionDirection:
        if self.source_currency is Currency.PKR:
            return ConversionDirection.PKR_TO_AED
        return ConversionDirection.AED_TO_PKR

    @property
    def prefix(self) -> str:
        return {
            InvoiceKind.FREIGHT: "FRT",
            InvoiceKind.TRANSPORT: "TRN",
            InvoiceKind.DUBAI_TRANSPORT: "DTR",
            InvoiceKind.DUBAI_CLEARANCE: "DCL",
        }[self]


@dataclass(frozen=True)
class DualAmount:
    pkr: float
    aed: float


def _pair(kind: InvoiceKind, source_amount: float, conversion_rate: float) -> DualAmount:
    converted = round(compute_dual_currency_amount(source_amount, conversion_rate, kind.direction), 2)
    if kind.source_currency is Currency.PKR:
        return DualAmount(pkr=round(source_amount, 2), aed=converted)
    return DualAmount(pkr=converted, aed=round(source_amount, 2))


def invoice_amounts(kind: InvoiceKind, source_amount, conversion_rate) -> DualAmount:
    """
    Derive both currency amounts of a new or edited invoice.

    Unlike the bare calculator, a stored invoice needs a usable rate: a
    rate <= 0 would silently zero the derived currency.
    """
    amount = to_amount(source_amount)
    rate = to_amount(conversion_rate)
    if amount <= 0:
        raise ValidationError(f"amount_{kind.source_currency.value.lower()} must be positive")
    if rate <= 0:
        raise ValidationError("conversion_rate must be positive")
    return _pair(kind, amount, rate)


@dataclass(frozen=True)
class DualBalance:
    amount: DualAmount
    paid: DualAmount
    outstanding: DualAmount


def dual_balance(kind: InvoiceKind, balance: InvoiceBalance, conversion_rate) -> DualBalance:
    """
    Express a source-currency balance in both currencies.

    Only amount and paid are converted; outstanding is their difference in
    each currency, so amount - paid == outstanding holds on both sides.
    """
    amount = _pair(kind, balance.final_amount, conversion_rate)
    paid = _pair(kind, balance.received_amount, conversion_rate)
    return DualBalance(
        amount=amount,
        paid=paid,
        outstanding=DualAmount(
            pkr=round(amount.pkr - paid.pkr, 2),
            aed=round(amount.aed - paid.aed, 2),
        ),
    )
