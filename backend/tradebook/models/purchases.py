from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Purchase(db.Model):
    """
    Container purchase costed in PKR and converted to AED.

    subtotal_pkr, total_pkr and total_aed are derived on every create and
    edit from quantity, rate, the cost components and transfer_rate
    (PKR per AED).
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_container_no", "container_no"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    container_no = db.Column(db.String(64), nullable=False)
    product = db.Column(db.String(128), nullable=False)
    supplier = db.Column(db.String(128), nullable=True)
    purchase_date = db.Column(db.Date, nullable=True, index=True)

    quantity = db.Column(db.Float, nullable=False, default=0)
    rate = db.Column(db.Float, nullable=False, default=0)  # PKR per unit
    transport = db.Column(db.Float, nullable=False, default=0)
    freight = db.Column(db.Float, nullable=False, default=0)
    e_form = db.Column(db.Float, nullable=False, default=0)
    miscellaneous = db.Column(db.Float, nullable=False, default=0)
    transfer_rate = db.Column(db.Float, nullable=False, default=0)  # PKR per AED

    subtotal_pkr = db.Column(db.Float, nullable=False, default=0)
    total_pkr = db.Column(db.Float, nullable=False, default=0)
    total_aed = db.Column(db.Float, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "container_no": self.container_no,
            "product": self.product,
            "supplier": self.supplier,
            "purchase_date": to_iso_date(self.purchase_date),
            "quantity": self.quantity,
            "rate": self.rate,
            "transport": self.transport,
            "freight": self.freight,
            "e_form": self.e_form,
            "miscellaneous": self.miscellaneous,
            "transfer_rate": self.transfer_rate,
            "subtotal_pkr": self.subtotal_pkr,
            "total_pkr": self.total_pkr,
            "total_aed": self.total_aed,
            "notes": self.notes,
            "created_by": self.created_by_user_id,
            "updated_by": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
