from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class DailyLedger(db.Model):
    """
    One cash book per calendar day.

    Receipt/payment/closing columns are cached totals over the day's
    entries, rewritten whenever an entry is added or removed. A closed
    ledger is frozen.
    """
    __tablename__ = "daily_ledgers"
    __table_args__ = (
        db.UniqueConstraint("ledger_date", name="uq_daily_ledgers_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ledger_date = db.Column(db.Date, nullable=False, index=True)

    opening_cash = db.Column(db.Float, nullable=False, default=0)
    opening_bank = db.Column(db.Float, nullable=False, default=0)
    receipts_cash = db.Column(db.Float, nullable=False, default=0)
    receipts_bank = db.Column(db.Float, nullable=False, default=0)
    payments_cash = db.Column(db.Float, nullable=False, default=0)
    payments_bank = db.Column(db.Float, nullable=False, default=0)
    auto_sales_inflow = db.Column(db.Float, nullable=False, default=0)
    closing_cash = db.Column(db.Float, nullable=False, default=0)
    closing_bank = db.Column(db.Float, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    is_closed = db.Column(db.Boolean, nullable=False, default=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    entries = db.relationship(
        "LedgerEntry",
        backref="ledger",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="LedgerEntry.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_iso_date(self.ledger_date),
            "opening_cash": self.opening_cash,
            "opening_bank": self.opening_bank,
            "receipts_cash": self.receipts_cash,
            "receipts_bank": self.receipts_bank,
            "payments_cash": self.payments_cash,
            "payments_bank": self.payments_bank,
            "auto_sales_inflow": self.auto_sales_inflow,
            "closing_cash": self.closing_cash,
            "closing_bank": self.closing_bank,
            "notes": self.notes,
            "is_closed": self.is_closed,
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LedgerEntry(db.Model):
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.Index("ix_ledger_entries_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ledger_id = db.Column(db.Integer, db.ForeignKey("daily_ledgers.id"), nullable=False, index=True)

    entry_type = db.Column(db.String(16), nullable=False)  # receipt, payment
    mode = db.Column(db.String(8), nullable=False)  # cash, bank
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Float, nullable=False)

    reference_type = db.Column(db.String(32), nullable=False, default="manual")  # manual, sales_payment
    reference_id = db.Column(db.Integer, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ledger_date": to_iso_date(self.ledger.ledger_date) if self.ledger else None,
            "type": self.entry_type,
            "mode": self.mode,
            "description": self.description,
            "amount": self.amount,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "created_by": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
