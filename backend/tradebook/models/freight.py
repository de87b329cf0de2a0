from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class DualCurrencyInvoice(db.Model):
    """
    Freight / transport / Dubai transport / Dubai clearance invoice.

    One table for the four structurally identical invoice types, tagged by
    `kind`. Each kind keeps its balance in one authoritative currency
    (see domain.dual_currency.InvoiceKind); the other currency's amount,
    paid and outstanding figures are derived with conversion_rate.
    """
    __tablename__ = "dual_currency_invoices"
    __table_args__ = (
        db.UniqueConstraint("kind", "invoice_number", name="uq_dual_invoices_kind_number"),
        db.Index("ix_dual_invoices_kind_status", "kind", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(32), nullable=False, index=True)
    invoice_number = db.Column(db.String(64), nullable=False)
    agent = db.Column(db.String(128), nullable=False, index=True)
    container_no = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)

    invoice_date = db.Column(db.Date, nullable=False, index=True)
    due_date = db.Column(db.Date, nullable=False)

    conversion_rate = db.Column(db.Float, nullable=False)  # PKR per AED
    amount_pkr = db.Column(db.Float, nullable=False, default=0)
    amount_aed = db.Column(db.Float, nullable=False, default=0)
    paid_amount_pkr = db.Column(db.Float, nullable=False, default=0)
    paid_amount_aed = db.Column(db.Float, nullable=False, default=0)
    outstanding_amount_pkr = db.Column(db.Float, nullable=False, default=0)
    outstanding_amount_aed = db.Column(db.Float, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)
    last_payment_date = db.Column(db.Date, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    payments = db.relationship(
        "DualCurrencyPayment",
        backref="invoice",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="DualCurrencyPayment.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind,
            "invoice_number": self.invoice_number,
            "agent": self.agent,
            "container_no": self.container_no,
            "description": self.description,
            "invoice_date": to_iso_date(self.invoice_date),
            "due_date": to_iso_date(self.due_date),
            "conversion_rate": self.conversion_rate,
            "amount_pkr": self.amount_pkr,
            "amount_aed": self.amount_aed,
            "paid_amount_pkr": self.paid_amount_pkr,
            "paid_amount_aed": self.paid_amount_aed,
            "outstanding_amount_pkr": self.outstanding_amount_pkr,
            "outstanding_amount_aed": self.outstanding_amount_aed,
            "status": self.status,
            "last_payment_date": to_iso_date(self.last_payment_date),
            "created_by": self.created_by_user_id,
            "updated_by": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class DualCurrencyPayment(db.Model):
    """Payment against a dual-currency invoice, in the invoice's source currency."""
    __tablename__ = "dual_currency_payments"
    __table_args__ = (
        db.Index("ix_dual_payments_invoice_status", "invoice_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("dual_currency_invoices.id"), nullable=False, index=True)

    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(3), nullable=False)  # PKR, AED
    payment_type = db.Column(db.String(16), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    payment_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="COMPLETED")  # COMPLETED, REVERSED
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    reversed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reversed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reversal_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": self.amount,
            "currency": self.currency,
            "payment_type": self.payment_type,
            "payment_method": self.payment_method,
            "reference": self.reference,
            "notes": self.notes,
            "payment_date": to_iso_date(self.payment_date),
            "status": self.status,
            "received_by": self.received_by_user_id,
            "reversed_by": self.reversed_by_user_id,
            "reversed_at": to_utc_z(self.reversed_at) if self.reversed_at else None,
            "reversal_reason": self.reversal_reason,
            "created_at": to_utc_z(self.created_at),
        }
