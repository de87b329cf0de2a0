# Overview: Daily cash/bank ledger arithmetic.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .errors import ValidationError


class EntryType(str, Enum):
    RECEIPT = "receipt"
    PAYMENT = "payment"


class EntryMode(str, Enum):
    CASH = "cash"
    BANK = "bank"


class ReferenceType(str, Enum):
    MANUAL = "manual"
    SALES_PAYMENT = "sales_payment"


def parse_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of {allowed}")


@dataclass(frozen=True)
class Movement:
    entry_type: EntryType
    mode: EntryMode
    amount: float
    reference_type: ReferenceType = ReferenceType.MANUAL


@dataclass(frozen=True)
class LedgerTotals:
    receipts_cash: float
    receipts_bank: float
    payments_cash: float
    payments_bank: float
    auto_sales_inflow: float
    closing_cash: float
    closing_bank: float


def compute_ledger_totals(opening_cash: float, opening_bank: float, movements: Iterable[Movement]) -> LedgerTotals:
    """
    closing = opening + receipts - payments, per mode.

    auto_sales_inflow is the part of receipts that was posted automatically
    from sales payments; it is already included in the receipts.
    """
    sums = {(t, m): 0.0 for t in EntryType for m in EntryMode}
    auto_sales = 0.0
    for movement in movements:
        sums[(movement.entry_type, movement.mode)] += movement.amount
        if movement.entry_type is EntryType.RECEIPT and movement.reference_type is ReferenceType.SALES_PAYMENT:
            auto_sales += movement.amount

    receipts_cash = round(sums[(EntryType.RECEIPT, EntryMode.CASH)], 2)
    receipts_bank = round(sums[(EntryType.RECEIPT, EntryMode.BANK)], 2)
    payments_cash = round(sums[(EntryType.PAYMENT, EntryMode.CASH)], 2)
    payments_bank = round(sums[(EntryType.PAYMENT, EntryMode.BANK)], 2)

    return LedgerTotals(
        receipts_cash=receipts_cash,
        receipts_bank=receipts_bank,
        payments_cash=payments_cash,
        payments_bank=payments_bank,
        auto_sales_inflow=round(auto_sales, 2),
        closing_cash=round(opening_cash + receipts_cash - payments_cash, 2),
        closing_bank=round(opening_bank + receipts_bank - payments_bank, 2),
    )
