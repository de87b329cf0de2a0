from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ContainerStatement(db.Model):
    """
    Settlement statement for one shipping container.

    gross_sale / total_expenses / net_sale / total_quantity are cached
    results of the settlement computation; they are rewritten whenever a
    product or expense line changes.
    """
    __tablename__ = "container_statements"
    __table_args__ = (
        db.UniqueConstraint("container_no", name="uq_container_statements_container_no"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    container_no = db.Column(db.String(64), nullable=False, index=True)
    commission_percent = db.Column(db.Float, nullable=False, default=0)

    gross_sale = db.Column(db.Float, nullable=False, default=0)
    total_expenses = db.Column(db.Float, nullable=False, default=0)
    net_sale = db.Column(db.Float, nullable=False, default=0)
    total_quantity = db.Column(db.Float, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    product_lines = db.relationship(
        "ContainerProductLine",
        backref="statement",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ContainerProductLine.position",
    )
    expenses = db.relationship(
        "ContainerExpense",
        backref="statement",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ContainerExpense.position",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, grouped_products: list[dict] | None = None) -> dict:
        return {
            "id": self.id,
            "container_no": self.container_no,
            "commission_percent": self.commission_percent,
            "product_lines": [line.to_dict() for line in self.product_lines],
            "products": grouped_products if grouped_products is not None else [],
            "expenses": [expense.to_dict() for expense in self.expenses],
            "gross_sale": self.gross_sale,
            "total_expenses": self.total_expenses,
            "net_sale": self.net_sale,
            "total_quantity": self.total_quantity,
            "created_by": self.created_by_user_id,
            "updated_by": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class ContainerProductLine(db.Model):
    __tablename__ = "container_product_lines"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    statement_id = db.Column(db.Integer, db.ForeignKey("container_statements.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product = db.Column(db.String(128), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    amount = db.Column(db.Float, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product": self.product,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "amount": self.amount,
        }


class ContainerExpense(db.Model):
    """Itemised expense. Auto-generated rows (commission) are read-only."""
    __tablename__ = "container_expenses"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    statement_id = db.Column(db.Integer, db.ForeignKey("container_statements.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    is_auto_generated = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "is_auto_generated": self.is_auto_generated,
        }
