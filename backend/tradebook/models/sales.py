from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Sale(db.Model):
    """
    Sales invoice.

    Amounts are AED. subtotal / vat_amount / final_amount are derived from
    quantity, rate, vat_percentage and discount on every create and edit;
    received_amount / outstanding_amount / status are derived from the
    active payments.

    CONCURRENCY: version_id is an optimistic-lock counter; a payment racing
    another payment on the same invoice fails with StaleDataError and is
    retried on fresh state.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_sales_invoice_number"),
        db.Index("ix_sales_customer_status", "customer", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(64), nullable=False)

    # Denormalized display names (outstanding rollups group on these)
    customer = db.Column(db.String(128), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    supplier = db.Column(db.String(128), nullable=True)
    container_no = db.Column(db.String(64), nullable=True, index=True)
    product = db.Column(db.String(128), nullable=False, index=True)
    marka = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)

    invoice_date = db.Column(db.Date, nullable=False, index=True)
    due_date = db.Column(db.Date, nullable=False)

    # Entry inputs
    quantity = db.Column(db.Float, nullable=False, default=0)
    return_quantity = db.Column(db.Float, nullable=False, default=0)
    rate = db.Column(db.Float, nullable=False, default=0)
    vat_percentage = db.Column(db.Float, nullable=False, default=0)
    discount = db.Column(db.Float, nullable=False, default=0)

    # Derived amounts
    subtotal = db.Column(db.Float, nullable=False, default=0)
    vat_amount = db.Column(db.Float, nullable=False, default=0)
    final_amount = db.Column(db.Float, nullable=False, default=0)

    # Payment bookkeeping
    received_amount = db.Column(db.Float, nullable=False, default=0)
    outstanding_amount = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)
    last_payment_date = db.Column(db.Date, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    payments = db.relationship(
        "SalePayment",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SalePayment.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer": self.customer,
            "customer_id": self.customer_id,
            "supplier": self.supplier,
            "container_no": self.container_no,
            "product": self.product,
            "marka": self.marka,
            "description": self.description,
            "invoice_date": to_iso_date(self.invoice_date),
            "due_date": to_iso_date(self.due_date),
            "quantity": self.quantity,
            "return_quantity": self.return_quantity,
            "rate": self.rate,
            "vat_percentage": self.vat_percentage,
            "discount": self.discount,
            "subtotal": self.subtotal,
            "vat_amount": self.vat_amount,
            "final_amount": self.final_amount,
            "received_amount": self.received_amount,
            "outstanding_amount": self.outstanding_amount,
            "status": self.status,
            "last_payment_date": to_iso_date(self.last_payment_date),
            "created_by": self.created_by_user_id,
            "updated_by": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class SalePayment(db.Model):
    """
    Payment received against a sales invoice.

    Reversal does not delete the row: status becomes REVERSED and the
    invoice totals are recomputed from the remaining COMPLETED payments.
    """
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.Index("ix_sale_payments_sale_status", "sale_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    amount = db.Column(db.Float, nullable=False)
    payment_type = db.Column(db.String(16), nullable=False)  # partial, full
    payment_method = db.Column(db.String(32), nullable=False)  # cash, bank_transfer, check, card, other
    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    payment_date = db.Column(db.Date, nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="COMPLETED")  # COMPLETED, REVERSED
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    reversed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reversed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reversal_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "amount": self.amount,
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
