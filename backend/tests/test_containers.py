"""Container settlement: product grouping, expenses and commission."""

import pytest

from tradebook.domain import (
    ExpenseLine,
    ProductLine,
    ValidationError,
    add_expense,
    aggregate_product_lines,
    commission_expense,
    compute_settlement,
    refresh_commission,
    remove_expense,
)


def test_same_product_and_price_are_merged():
    lines = [ProductLine.of("Rice", 5, 10), ProductLine.of("Rice", 2.5, 10)]
    grouped = aggregate_product_lines(lines)
    assert len(grouped) == 1
    assert grouped[0].quantity == 7.5
    assert grouped[0].amount == 75

    expenses = add_expense((), "Clearing", 10)
    settlement = compute_settlement(grouped, expenses)
    assert settlement.gross_sale == 75
    assert settlement.total_expenses == 10
    assert settlement.net_sale == 65
    assert settlement.total_quantity == 7.5


def test_rows_are_numbered_by_unit_price():
    grouped = aggregate_product_lines([
        ProductLine.of("Rice", 1, 10),
        ProductLine.of("Sugar", 1, 5),
        ProductLine.of("Rice", 1, 12),
    ])
    assert [(g.sr_no, g.product, g.unit_price) for g in grouped] == [
        (1, "Sugar", 5), (2, "Rice", 10), (3, "Rice", 12),
    ]


@pytest.mark.parametrize("product,qty,price", [("", 1, 1), ("Rice", 0, 1), ("Rice", 1, -2)])
def test_invalid_product_lines(product, qty, price):
    with pytest.raises(ValidationError):
        ProductLine.of(product, qty, price)


def test_commission_is_refreshed():
    expenses = add_expense((), "Labour", 20)
    expenses = refresh_commission(expenses, 1000, 5)
    assert expenses[0].is_auto_generated
    assert expenses[0].amount == 50
    assert expenses[0].description == "Commission 5%"

    # A second refresh replaces rather than duplicates
    expenses = refresh_commission(expenses, 2000, 5)
    assert [e.amount for e in expenses if e.is_auto_generated] == [100]
    assert len(expenses) == 2


def test_zero_commission_drops_auto_row():
    expenses = (commission_expense(1000, 5), ExpenseLine("Labour", 20))
    assert refresh_commission(expenses, 1000, 0) == (ExpenseLine("Labour", 20),)


def test_remove_expense():
    expenses = (ExpenseLine("Commission 5%", 50, True, id=1), ExpenseLine("Labour", 20, id=2))
    assert remove_expense(expenses, 2) == (expenses[0],)
    with pytest.raises(ValidationError):
        remove_expense(expenses, 1)
    with pytest.raises(ValidationError):
        remove_expense(expenses, 99)


@pytest.mark.parametrize("description,amount", [("", 10), ("Labour", 0), ("Labour", "x")])
def test_invalid_expenses(description, amount):
    with pytest.raises(ValidationError):
        add_expense((), description, amount)
