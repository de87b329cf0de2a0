# Overview: Container statement settlement (gross sale minus itemised expenses).

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .amounts import ceil_to_cents, to_amount
from .errors import ValidationError


DEFAULT_COMMISSION_PERCENT = 5.0


@dataclass(frozen=True)
class ProductLine:
    product: str
    quantity: float
    unit_price: float
    amount: float

    @classmethod
    def of(cls, product: str, quantity, unit_price) -> "ProductLine":
        name = (product or "").strip()
        if not name:
            raise ValidationError("Product name is required")
        qty = to_amount(quantity)
        price = to_amount(unit_price)
        if qty <= 0 or price <= 0:
            raise ValidationError("Quantity and unit price must be positive")
        return cls(product=name, quantity=qty, unit_price=price, amount=round(qty * price, 2))


@dataclass(frozen=True)
class GroupedProductLine:
    sr_no: int
    product: str
    quantity: float
    unit_price: float
    amount: float

    def to_dict(self) -> dict:
        return {
            "sr_no": self.sr_no,
            "product": self.product,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class ExpenseLine:
    description: str
    amount: float
    is_auto_generated: bool = False
    id: int | None = None


@dataclass(frozen=True)
class Settlement:
    gross_sale: float
    total_expenses: float
    net_sale: float
    total_quantity: float

    def to_dict(self) -> dict:
        return {
            "gross_sale": self.gross_sale,
            "total_expenses": self.total_expenses,
            "net_sale": self.net_sale,
            "total_quantity": self.total_quantity,
        }


def aggregate_product_lines(lines: Iterable[ProductLine]) -> tuple[GroupedProductLine, ...]:
    """
    Merge lines with identical (product, unit_price), summing quantity and
    amount. Rows are numbered from 1 in ascending unit price order; equal
    prices keep the order they were first seen in.
    """
    merged: dict[tuple[str, float], list[float]] = {}
    for line in lines:
        key = (line.product, line.unit_price)
        totals = merged.setdefault(key, [0.0, 0.0])
        totals[0] += line.quantity
        totals[1] += line.amount

    ordered = sorted(merged.items(), key=lambda item: item[0][1])
    return tuple(
        GroupedProductLine(
            sr_no=index,
            product=product,
            quantity=quantity,
            unit_price=unit_price,
            amount=round(amount, 2),
        )
        for index, ((product, unit_price), (quantity, amount)) in enumerate(ordered, start=1)
    )


def compute_settlement(
    grouped_lines: Iterable[GroupedProductLine],
    expenses: Iterable[ExpenseLine],
) -> Settlement:
    grouped_lines = list(grouped_lines)
    gross_sale = round(sum(line.amount for line in grouped_lines), 2)
    total_expenses = round(sum(expense.amount for expense in expenses), 2)
    return Settlement(
        gross_sale=gross_sale,
        total_expenses=total_expenses,
        net_sale=round(gross_sale - total_expenses, 2),
        total_quantity=sum(line.quantity for line in grouped_lines),
    )


def add_expense(
    expenses: Sequence[ExpenseLine],
    description: str,
    amount,
    *,
    is_auto_generated: bool = False,
) -> tuple[ExpenseLine, ...]:
    text = (description or "").strip()
    if not text:
        raise ValidationError("Expense description is required")
    value = to_amount(amount)
    if value <= 0:
        raise ValidationError("Expense amount must be positive")
    expense = ExpenseLine(description=text, amount=round(value, 2), is_auto_generated=is_auto_generated)
    return tuple(expenses) + (expense,)


def remove_expense(expenses: Sequence[ExpenseLine], expense_id: int) -> tuple[ExpenseLine, ...]:
    """Drop a manually entered expense. Auto-generated ones are read-only."""
    target = next((e for e in expenses if e.id == expense_id), None)
    if target is None:
        raise ValidationError(f"Expense {expense_id} not found")
    if target.is_auto_generated:
        raise ValidationError("Auto-generated expenses cannot be removed")
    return tuple(e for e in expenses if e.id != expense_id)


def commission_expense(gross_sale: float, percentage: float = DEFAULT_COMMISSION_PERCENT) -> ExpenseLine:
    return ExpenseLine(
        description=f"Commission {percentage:g}%",
        amount=ceil_to_cents(to_amount(gross_sale) * to_amount(percentage) / 100),
        is_auto_generated=True,
    )


def refresh_commission(
    expenses: Sequence[ExpenseLine],
    gross_sale: float,
    percentage: float = DEFAULT_COMMISSION_PERCENT,
) -> tuple[ExpenseLine, ...]:
    """Replace any auto-generated commission with one for the current gross sale."""
    manual = tuple(e for e in expenses if not e.is_auto_generated)
    if to_amount(percentage) <= 0 or to_amount(gross_sale) <= 0:
        return manual
    return (commission_expense(gross_sale, percentage),) + manual
