# Overview: Daily cash/bank book: opening balances, entries, closing.

"""
Daily Ledger Service

One ledger per calendar date. Totals are cached on the ledger row and
recomputed from its entries after every change. Closed ledgers are frozen.

Sales payments received in cash or by bank transfer post a `sales_payment`
receipt automatically (see post_sales_receipt); those entries can only be
removed by reversing the payment.
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..domain import (
    EntryMode,
    EntryType,
    Movement,
    PaymentMethod,
    ReferenceType,
    ValidationError,
    compute_ledger_totals,
)
from ..domain.amounts import to_amount
from ..domain.ledger import parse_enum
from ..extensions import db
from ..models import DailyLedger, LedgerEntry
from ..time_utils import parse_iso_date, utcnow
from ..validation import MAX_AMOUNT, ConflictError, NotFoundError
from .concurrency import lock_for_update, run_with_retry


_SALES_PAYMENT_MODES = {
    PaymentMethod.CASH: EntryMode.CASH,
    PaymentMethod.BANK_TRANSFER: EntryMode.BANK,
}


def _require_date(value) -> date:
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")
    if parsed is None:
        raise ValidationError("Date is required")
    return parsed


def _balance_input(raw, field_name: str) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return 0.0
    value = to_amount(raw, allow_negative=True)
    if value < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    if value > MAX_AMOUNT:
        raise ValidationError(f"{field_name} cannot exceed {MAX_AMOUNT:,.2f}")
    return round(value, 2)


def _ensure_open(ledger: DailyLedger) -> None:
    if ledger.is_closed:
        raise ConflictError(f"Ledger for {ledger.ledger_date.isoformat()} is closed")


def _refresh_totals(ledger: DailyLedger) -> None:
    movements = [
        Movement(
            entry_type=EntryType(e.entry_type),
            mode=EntryMode(e.mode),
            amount=e.amount,
            reference_type=ReferenceType(e.reference_type),
        )
        for e in ledger.entries
    ]
    totals = compute_ledger_totals(ledger.opening_cash or 0.0, ledger.opening_bank or 0.0, movements)
    ledger.receipts_cash = totals.receipts_cash
    ledger.receipts_bank = totals.receipts_bank
    ledger.payments_cash = totals.payments_cash
    ledger.payments_bank = totals.payments_bank
    ledger.auto_sales_inflow = totals.auto_sales_inflow
    ledger.closing_cash = totals.closing_cash
    ledger.closing_bank = totals.closing_bank


def _get_or_create(ledger_date: date) -> DailyLedger:
    ledger = lock_for_update(db.session.query(DailyLedger).filter_by(ledger_date=ledger_date)).first()
    if ledger is None:
        ledger = DailyLedger(ledger_date=ledger_date, opening_cash=0.0, opening_bank=0.0)
        db.session.add(ledger)
        db.session.flush()
    return ledger


def get_ledger(ledger_date) -> DailyLedger:
    ledger_date = _require_date(ledger_date)
    ledger = db.session.query(DailyLedger).filter_by(ledger_date=ledger_date).first()
    if not ledger:
        raise NotFoundError(f"No ledger for {ledger_date.isoformat()}")
    return ledger


def save_opening_balances(ledger_date, *, opening_cash=None, opening_bank=None, notes=None) -> DailyLedger:
    """Create the day's ledger or update its opening balances."""
    ledger_date = _require_date(ledger_date)
    cash = _balance_input(opening_cash, "opening_cash")
    bank = _balance_input(opening_bank, "opening_bank")

    def _op():
        ledger = _get_or_create(ledger_date)
        _ensure_open(ledger)
        ledger.opening_cash = cash
        ledger.opening_bank = bank
        if notes is not None:
            ledger.notes = str(notes).strip() or None
        _refresh_totals(ledger)
        db.session.commit()
        return ledger

    return run_with_retry(_op)


def add_entry(
    ledger_date,
    *,
    entry_type,
    mode,
    description,
    amount,
    user_id: int,
) -> LedgerEntry:
    """Add a manual receipt or payment. Creates the ledger if needed."""
    ledger_date = _require_date(ledger_date)
    kind = parse_enum(EntryType, entry_type, "type")
    entry_mode = parse_enum(EntryMode, mode, "mode")
    text = (description or "").strip() if isinstance(description, str) else ""
    if not text:
        raise ValidationError("Description is required")
    value = to_amount(amount)
    if value <= 0:
        raise ValidationError("Amount must be positive")
    if value > MAX_AMOUNT:
        raise ValidationError(f"Amount cannot exceed {MAX_AMOUNT:,.2f}")

    def _op():
        ledger = _get_or_create(ledger_date)
        _ensure_open(ledger)
        entry = LedgerEntry(
            entry_type=kind.value,
            mode=entry_mode.value,
            description=text,
            amount=round(value, 2),
            reference_type=ReferenceType.MANUAL.value,
            created_by_user_id=user_id,
        )
        ledger.entries.append(entry)
        db.session.flush()
        _refresh_totals(ledger)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def list_entries(ledger_date) -> list[LedgerEntry]:
    ledger_date = _require_date(ledger_date)
    return (
        db.session.query(LedgerEntry)
        .join(DailyLedger)
        .filter(DailyLedger.ledger_date == ledger_date)
        .order_by(LedgerEntry.id.asc())
        .all()
    )


def delete_entry(entry_id: int) -> None:
    def _op():
        entry = db.session.get(LedgerEntry, entry_id)
        if not entry:
            raise NotFoundError(f"Ledger entry {entry_id} not found")
        if entry.reference_type != ReferenceType.MANUAL.value:
            raise ValidationError("Automatic entries are removed by reversing their payment")
        ledger = lock_for_update(db.session.query(DailyLedger).filter_by(id=entry.ledger_id)).first()
        _ensure_open(ledger)
        ledger.entries.remove(entry)
        db.session.flush()
        _refresh_totals(ledger)
        db.session.commit()

    run_with_retry(_op)


def close_ledger(ledger_date, *, user_id: int) -> DailyLedger:
    ledger_date = _require_date(ledger_date)

    def _op():
        ledger = lock_for_update(db.session.query(DailyLedger).filter_by(ledger_date=ledger_date)).first()
        if not ledger:
            raise NotFoundError(f"No ledger for {ledger_date.isoformat()}")
        _ensure_open(ledger)
        _refresh_totals(ledger)
        ledger.is_closed = True
        ledger.closed_at = utcnow()
        ledger.closed_by_user_id = user_id
        db.session.commit()
        current_app.logger.info(
            "Closed ledger %s (cash %.2f, bank %.2f)",
            ledger_date.isoformat(), ledger.closing_cash, ledger.closing_bank,
        )
        return ledger

    return run_with_retry(_op)


def ledger_summary(start_date, end_date) -> dict:
    start = _require_date(start_date)
    end = _require_date(end_date)
    if start > end:
        raise ValidationError("start_date cannot be after end_date")

    ledgers = (
        db.session.query(DailyLedger)
        .filter(DailyLedger.ledger_date >= start, DailyLedger.ledger_date <= end)
        .order_by(DailyLedger.ledger_date.asc())
        .all()
    )
    fields = ("receipts_cash", "receipts_bank", "payments_cash", "payments_bank", "auto_sales_inflow")
    totals = {f: round(sum(getattr(l, f) or 0.0 for l in ledgers), 2) for f in fields}
    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "days": len(ledgers),
        "ledgers": [l.to_dict() for l in ledgers],
        "totals": totals,
        "opening_cash": ledgers[0].opening_cash if ledgers else 0.0,
        "opening_bank": ledgers[0].opening_bank if ledgers else 0.0,
        "closing_cash": ledgers[-1].closing_cash if ledgers else 0.0,
        "closing_bank": ledgers[-1].closing_bank if ledgers else 0.0,
    }


# =============================================================================
# Sales payment posting (called inside the payment's transaction)
# =============================================================================

def post_sales_receipt(*, sale, payment, user_id: int) -> LedgerEntry | None:
    """
    Post a sales payment as a receipt in its payment date's ledger.

    Skipped for methods that do not move cash or bank balances, and when
    that day's ledger is already closed. Does not commit.
    """
    mode = _SALES_PAYMENT_MODES.get(PaymentMethod.parse(payment.payment_method))
    if mode is None:
        return None

    ledger = _get_or_create(payment.payment_date)
    if ledger.is_closed:
        current_app.logger.warning(
            "Ledger %s is closed; payment %s on %s not posted",
            payment.payment_date.isoformat(), payment.id, sale.invoice_number,
        )
        return None

    entry = LedgerEntry(
        entry_type=EntryType.RECEIPT.value,
        mode=mode.value,
        description=f"Payment received for {sale.invoice_number} ({sale.customer})",
        amount=payment.amount,
        reference_type=ReferenceType.SALES_PAYMENT.value,
        reference_id=payment.id,
        created_by_user_id=user_id,
    )
    ledger.entries.append(entry)
    db.session.flush()
    _refresh_totals(ledger)
    return entry


def remove_sales_receipt(payment_id: int) -> bool:
    """Remove the receipt posted for a reversed sales payment. Does not commit."""
    entry = (
        db.session.query(LedgerEntry)
        .filter_by(reference_type=ReferenceType.SALES_PAYMENT.value, reference_id=payment_id)
        .first()
    )
    if entry is None:
        return False
    ledger = entry.ledger
    if ledger.is_closed:
        current_app.logger.warning(
            "Ledger %s is closed; receipt for payment %s kept",
            ledger.ledger_date.isoformat(), payment_id,
        )
        return False
    ledger.entries.remove(entry)
    db.session.flush()
    _refresh_totals(ledger)
    return True
