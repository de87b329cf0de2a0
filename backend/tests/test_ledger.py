"""Daily ledger arithmetic."""

from tradebook.domain import EntryMode, EntryType, Movement, ReferenceType, compute_ledger_totals


def test_closing_balances():
    totals = compute_ledger_totals(1000, 500, [
        Movement(EntryType.RECEIPT, EntryMode.CASH, 200),
        Movement(EntryType.RECEIPT, EntryMode.CASH, 300, ReferenceType.SALES_PAYMENT),
        Movement(EntryType.PAYMENT, EntryMode.CASH, 100),
        Movement(EntryType.RECEIPT, EntryMode.BANK, 50),
    ])
    assert totals.receipts_cash == 500
    assert totals.payments_cash == 100
    assert totals.receipts_bank == 50
    assert totals.payments_bank == 0
    assert totals.auto_sales_inflow == 300
    assert totals.closing_cash == 1400
    assert totals.closing_bank == 550


def test_no_movements():
    totals = compute_ledger_totals(10, 20, [])
    assert (totals.closing_cash, totals.closing_bank) == (10, 20)


def test_only_manual_and_sales_entries_exist():
    # Sales receipts are the only automatic postings
    assert [t.value for t in ReferenceType] == ["manual", "sales_payment"]
