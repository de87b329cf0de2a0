"""
Amount calculator tests.

Verifies:
- Sales subtotal / VAT / final amount derivation and cent rounding
- Dual-currency conversion in both directions
- Purchase totals and AED conversion
- Blank / bad input normalization
"""

from datetime import date

import pytest

from tradebook.domain import (
    ConversionDirection,
    ceil_to_cents,
    compute_dual_currency_amount,
    compute_purchase_total,
    compute_sales_amount,
    default_due_date,
    to_amount,
)


class TestSalesAmount:

    def test_vat_and_discount(self):
        result = compute_sales_amount(10, 100, 5, 20)
        assert result.subtotal == 1000
        assert result.vat_amount == 50
        assert result.final_amount == 1030

    def test_no_vat_no_discount(self):
        result = compute_sales_amount(3, 12.5)
        assert result.subtotal == 37.5
        assert result.vat_amount == 0
        assert result.final_amount == 37.5

    def test_fractional_cents_round_up(self):
        # 3 * 0.335 = 1.005 -> 1.01
        result = compute_sales_amount(3, 0.335)
        assert result.subtotal == 1.01

    def test_blank_inputs_are_zero(self):
        result = compute_sales_amount("", None, "abc", "")
        assert result.subtotal == 0
        assert result.final_amount == 0

    def test_discount_larger_than_total_goes_negative(self):
        result = compute_sales_amount(1, 10, 0, 50)
        assert result.final_amount == -40


class TestDualCurrency:

    def test_pkr_to_aed(self):
        assert compute_dual_currency_amount(7600, 76, ConversionDirection.PKR_TO_AED) == 100

    def test_aed_to_pkr(self):
        assert compute_dual_currency_amount(100, 76, "aed_to_pkr") == 7600

    @pytest.mark.parametrize("rate", [0, -5, "", None])
    def test_unusable_rate_yields_zero(self, rate):
        assert compute_dual_currency_amount(1000, rate, ConversionDirection.PKR_TO_AED) == 0

    def test_round_trip_is_stable(self):
        aed = compute_dual_currency_amount(12345, 75.5, ConversionDirection.PKR_TO_AED)
        pkr = compute_dual_currency_amount(aed, 75.5, ConversionDirection.AED_TO_PKR)
        assert pkr == pytest.approx(12345)


class TestPurchaseTotal:

    def test_costs_are_added_and_converted(self):
        result = compute_purchase_total(100, 50, transport=500, freight=300, e_form=100, miscellaneous=100, transfer_rate=75)
        assert result.subtotal_pkr == 5000
        assert result.total_pkr == 6000
        assert result.total_aed == 80

    def test_no_transfer_rate(self):
        result = compute_purchase_total(2, 10)
        assert result.total_pkr == 20
        assert result.total_aed == 0


class TestHelpers:

    @pytest.mark.parametrize("raw,expected", [
        ("1,250.50", 1250.5),
        (" 7 ", 7.0),
        (-3, 0.0),
        (float("nan"), 0.0),
        (float("inf"), 0.0),
        (True, 0.0),
    ])
    def test_to_amount(self, raw, expected):
        assert to_amount(raw) == expected

    def test_to_amount_allows_negative_when_asked(self):
        assert to_amount("-3", allow_negative=True) == -3

    def test_ceil_to_cents_keeps_exact_values(self):
        assert ceil_to_cents(1.1) == 1.1
        assert ceil_to_cents(2.0) == 2.0
        assert ceil_to_cents(2.001) == 2.01

    def test_default_due_date(self):
        assert default_due_date(date(2026, 1, 25)) == date(2026, 2, 4)
        assert default_due_date(date(2026, 1, 25), 30) == date(2026, 2, 24)
