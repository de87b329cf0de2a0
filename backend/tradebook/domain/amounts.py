# Overview: Pure derivation of monetary fields from entry-level inputs.

"""
Amount Calculator

Deterministic, side-effect-free functions that turn raw form input into the
derived amounts stored on invoices and purchases. Re-running them on edit
must always re-derive everything downstream.

NORMALIZATION:
- Blank, missing, NaN, infinite and non-numeric inputs are treated as 0.
- Negative inputs are treated as 0 (quantities, rates, percentages,
  discounts and cost components are never negative).
- Monetary results are rounded UP to whole cents, the same way the entry
  forms round them. Currency conversion results are left unrounded.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum


DEFAULT_DUE_DAYS = 10


class ConversionDirection(str, Enum):
    """Which amount was entered; the other one is derived."""

    PKR_TO_AED = "pkr_to_aed"  # rate is PKR per AED, AED = PKR / rate
    AED_TO_PKR = "aed_to_pkr"  # PKR = AED * rate


@dataclass(frozen=True)
class SalesAmount:
    subtotal: float
    vat_amount: float
    final_amount: float


@dataclass(frozen=True)
class PurchaseTotal:
    subtotal_pkr: float
    total_pkr: float
    total_aed: float


def to_amount(value, *, allow_negative: bool = False) -> float:
    """Coerce a raw numeric input to a float, falling back to 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    if number < 0 and not allow_negative:
        return 0.0
    return number


def ceil_to_cents(value: float) -> float:
    """Round up to two decimals, leaving whole numbers untouched."""
    if not math.isfinite(value) or float(value).is_integer():
        return float(value)
    # Rounding first keeps 1.1 (stored as 1.1000000000000001) from becoming 1.11
    return math.ceil(round(value * 100, 6)) / 100


def compute_sales_amount(quantity, rate, vat_percentage=0, discount=0) -> SalesAmount:
    """
    Derive sales invoice amounts.

    subtotal     = quantity * rate
    vat_amount   = subtotal * vat_percentage / 100
    final_amount = subtotal + vat_amount - discount
    """
    subtotal = ceil_to_cents(to_amount(quantity) * to_amount(rate))
    vat_amount = ceil_to_cents(subtotal * to_amount(vat_percentage) / 100)
    final_amount = ceil_to_cents(subtotal + vat_amount - to_amount(discount))
    return SalesAmount(subtotal=subtotal, vat_amount=vat_amount, final_amount=final_amount)


def compute_dual_currency_amount(amount, conversion_rate, direction: ConversionDirection) -> float:
    """
    Convert between PKR and AED.

    The conversion rate is always expressed as PKR per AED. A rate of zero or
    less yields 0 instead of dividing by zero.
    """
    rate = to_amount(conversion_rate)
    if rate <= 0:
        return 0.0

    source = to_amount(amount)
    direction = ConversionDirection(direction)
    if direction is ConversionDirection.PKR_TO_AED:
        return source / rate
    return source * rate


def compute_purchase_total(
    quantity,
    rate,
    transport=0,
    freight=0,
    e_form=0,
    miscellaneous=0,
    transfer_rate=0,
) -> PurchaseTotal:
    """
    Derive purchase totals (PKR costs converted to AED at transfer_rate).

    subtotal_pkr = quantity * rate
    total_pkr    = subtotal_pkr + transport + freight + e_form + miscellaneous
    total_aed    = total_pkr / transfer_rate (0 when transfer_rate <= 0)
    """
    subtotal_pkr = ceil_to_cents(to_amount(quantity) * to_amount(rate))
    total_pkr = ceil_to_cents(
        subtotal_pkr
        + to_amount(transport)
        + to_amount(freight)
        + to_amount(e_form)
        + to_amount(miscellaneous)
    )
    transfer = to_amount(transfer_rate)
    total_aed = ceil_to_cents(total_pkr / transfer) if transfer > 0 else 0.0
    return PurchaseTotal(subtotal_pkr=subtotal_pkr, total_pkr=total_pkr, total_aed=total_aed)


def default_due_date(invoice_date: date, days: int = DEFAULT_DUE_DAYS) -> date:
    return invoice_date + timedelta(days=days)
