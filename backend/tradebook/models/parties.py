from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class _PartyMixin:
    """Columns shared by customers and suppliers (english/urdu names)."""

    id = db.Column(db.Integer, primary_key=True)

    ename = db.Column(db.String(128), nullable=False, index=True)
    uname = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    number = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def full_name(self) -> str:
        return f"{self.ename} ({self.uname})" if self.uname else self.ename

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "ename": self.ename,
            "uname": self.uname,
            "email": self.email,
            "number": self.number,
            "full_name": self.full_name,
            "is_active": self.is_active,
            "created_by": self.created_by_user_id,
            "updated_by": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Customer(_PartyMixin, db.Model):
    """
    Customer master data.

    Sales carry the customer's display name as well (denormalized), which
    is what outstanding balances are grouped by.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("ename", name="uq_customers_ename"),
        {"sqlite_autoincrement": True},
    )

    trn = db.Column(db.String(32), nullable=True)  # tax registration number
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        data = self._base_dict()
        data["trn"] = self.trn
        return data


class Supplier(_PartyMixin, db.Model):
    """Supplier master data. `marka` is the supplier's trade mark on goods."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("ename", name="uq_suppliers_ename"),
        {"sqlite_autoincrement": True},
    )

    marka = db.Column(db.String(64), nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        data = self._base_dict()
        data["marka"] = self.marka
        return data
