"""
Payment ledger tests.

Verifies:
- outstanding == final - received after every operation
- Overpayment is rejected, never capped
- Settled invoices refuse payments
- Reversal needs authorization and restores the balance
"""

from datetime import date

import pytest

from tradebook.domain import (
    AlreadySettledError,
    InvoiceBalance,
    InvoiceStatus,
    OverpaymentError,
    PaymentMethod,
    PaymentType,
    UnauthorizedReversalError,
    ValidationError,
    apply_payment,
    require_authorization,
    reverse_payment,
)


PAID_ON = date(2026, 1, 10)


def pay(balance, amount, payment_type=None, method="cash", when=PAID_ON):
    return apply_payment(balance, amount, payment_type, method, payment_date=when, received_by=1)


def assert_invariants(balance: InvoiceBalance):
    assert balance.outstanding_amount == round(balance.final_amount - balance.received_amount, 2)
    assert 0 <= balance.received_amount <= balance.final_amount


class TestApplyPayment:

    def test_partial_then_full(self):
        invoice = InvoiceBalance(final_amount=1000, due_date=date(2026, 2, 1))

        first = pay(invoice, 400)
        assert first.payment.payment_type is PaymentType.PARTIAL
        assert first.invoice.received_amount == 400
        assert first.invoice.outstanding_amount == 600
        assert first.invoice.status(PAID_ON) is InvoiceStatus.PARTIALLY_PAID
        assert_invariants(first.invoice)

        second = pay(first.invoice, 600)
        assert second.payment.payment_type is PaymentType.FULL
        assert second.invoice.outstanding_amount == 0
        assert second.invoice.status(PAID_ON) is InvoiceStatus.PAID
        assert_invariants(second.invoice)

        with pytest.raises(AlreadySettledError):
            pay(second.invoice, 1)

    def test_overpayment_is_rejected(self):
        invoice = InvoiceBalance(final_amount=1000, received_amount=400)
        with pytest.raises(OverpaymentError):
            pay(invoice, 600.01)

    def test_full_payment_without_amount_settles(self):
        invoice = InvoiceBalance(final_amount=1030, received_amount=30)
        result = pay(invoice, None, "full")
        assert result.payment.amount == 1000
        assert result.invoice.is_settled

    def test_full_payment_must_settle(self):
        invoice = InvoiceBalance(final_amount=1000)
        with pytest.raises(ValidationError):
            pay(invoice, 500, PaymentType.FULL)

    @pytest.mark.parametrize("amount", [0, -10, "abc", "", float("nan")])
    def test_bad_amounts(self, amount):
        with pytest.raises(ValidationError):
            pay(InvoiceBalance(final_amount=100), amount)

    def test_requires_date_and_receiver(self):
        invoice = InvoiceBalance(final_amount=100)
        with pytest.raises(ValidationError):
            apply_payment(invoice, 10, payment_date=None, received_by=1)
        with pytest.raises(ValidationError):
            apply_payment(invoice, 10, payment_date=PAID_ON, received_by="  ")

    def test_method_aliases(self):
        result = pay(InvoiceBalance(final_amount=5000), "1,000", method="Cheque")
        assert result.payment.payment_method is PaymentMethod.CHECK
        assert result.payment.amount == 1000

    def test_last_payment_date_tracks_latest_payment(self):
        first = pay(InvoiceBalance(final_amount=100), 10, when=date(2026, 1, 1))
        second = pay(first.invoice, 10, when=date(2026, 1, 5))
        assert second.invoice.last_payment_date == date(2026, 1, 5)


class TestReversePayment:

    def test_reversal_restores_balance(self):
        first = pay(InvoiceBalance(final_amount=1000), 400, when=date(2026, 1, 1))
        second = pay(first.invoice, 600, when=date(2026, 1, 5))

        restored = reverse_payment(second.invoice, second.payment, "token", remaining=[first.payment])
        assert restored.received_amount == 400
        assert restored.outstanding_amount == 600
        assert restored.last_payment_date == date(2026, 1, 1)
        assert_invariants(restored)

    def test_reversing_only_payment_clears_last_date(self):
        result = pay(InvoiceBalance(final_amount=50), 50)
        restored = reverse_payment(result.invoice, result.payment, "token")
        assert restored.received_amount == 0
        assert restored.last_payment_date is None

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_reversal_requires_authorization(self, token):
        result = pay(InvoiceBalance(final_amount=50), 20)
        with pytest.raises(UnauthorizedReversalError):
            reverse_payment(result.invoice, result.payment, token)

    def test_cannot_reverse_more_than_received(self):
        result = pay(InvoiceBalance(final_amount=50), 20)
        with pytest.raises(ValidationError):
            reverse_payment(InvoiceBalance(final_amount=50, received_amount=10), result.payment, "token")

    def test_require_authorization(self):
        require_authorization("token")
        with pytest.raises(UnauthorizedReversalError):
            require_authorization(None, "delete an invoice")


class TestRecalculate:

    def test_edit_keeps_received(self):
        balance = InvoiceBalance(final_amount=1000, received_amount=400)
        edited = balance.recalculate(1200)
        assert edited.received_amount == 400
        assert edited.outstanding_amount == 800

    def test_edit_below_received_is_rejected(self):
        balance = InvoiceBalance(final_amount=1000, received_amount=400)
        with pytest.raises(OverpaymentError):
            balance.recalculate(399.99)
