"""Tests for exact currency arithmetic."""

from decimal import Decimal

import pytest

from src.core.exceptions import InvalidArgumentError
from src.core.money import (
    CENTS,
    MAX_AMOUNT,
    ZERO,
    from_cents,
    line_total,
    parse_amount,
    ratio,
    sum_money,
    to_cents,
    to_money,
)


class TestToMoney:
    @pytest.mark.parametrize("raw, expected", [
        (100, Decimal("100.00")),
        ("19.99", Decimal("19.99")),
        (" 7.5 ", Decimal("7.50")),
        (0.1, Decimal("0.10")),
        (Decimal("3"), Decimal("3.00")),
    ])
    def test_accepts_common_inputs(self, raw, expected):
        assert to_money(raw) == expected
        assert to_money(raw).as_tuple().exponent == -2

    @pytest.mark.parametrize("raw", ["NaN", "Infinity", float("inf"), "abc", "1.005", True, None])
    def test_rejects_bad_inputs(self, raw):
        with pytest.raises(ValueError):
            to_money(raw)

    def test_repeated_addition_does_not_drift(self):
        total = ZERO
        for _ in range(10):
            total += to_money(0.1)
        assert total == Decimal("1.00")
        assert sum_money([to_money("0.10")] * 1000) == Decimal("100.00")


class TestParseAmount:
    def test_positive_amount(self):
        assert parse_amount("150.25") == Decimal("150.25")

    @pytest.mark.parametrize("raw", [0, "0.00", -1, "-0.01"])
    def test_non_positive_rejected(self, raw):
        with pytest.raises(InvalidArgumentError) as exc:
            parse_amount(raw, "amount")
        assert exc.value.status_code == 400
        assert exc.value.details["field"] == "amount"

    def test_zero_allowed_when_requested(self):
        assert parse_amount(0, "unit_price", allow_zero=True) == ZERO

    def test_negative_rejected_even_when_zero_allowed(self):
        with pytest.raises(InvalidArgumentError):
            parse_amount("-5", "unit_price", allow_zero=True)

    def test_non_finite_rejected(self):
        with pytest.raises(InvalidArgumentError):
            parse_amount(Decimal("Infinity"))


class TestAmountBounds:
    @pytest.mark.parametrize("raw", ["1e30", "100000000000000000000", MAX_AMOUNT + CENTS, -MAX_AMOUNT - CENTS])
    def test_out_of_range_is_a_value_error(self, raw):
        with pytest.raises(ValueError):
            to_money(raw)

    def test_maximum_is_accepted_and_fits_cents_column(self):
        assert to_money(MAX_AMOUNT) == MAX_AMOUNT
        assert to_cents(MAX_AMOUNT) < 2**63 - 1

    @pytest.mark.parametrize("raw", ["1e30", "1E+27", "100000000000000000000"])
    def test_huge_amount_is_invalid_argument(self, raw):
        with pytest.raises(InvalidArgumentError) as exc:
            parse_amount(raw)
        assert exc.value.details["field"] == "amount"

    def test_huge_line_total(self):
        with pytest.raises(ValueError):
            line_total(10**27, Decimal("50.00"))
        with pytest.raises(ValueError):
            line_total(2, MAX_AMOUNT)


def test_line_total():
    assert line_total(3, Decimal("12.50")) == Decimal("37.50")


def test_ratio_handles_zero_denominator():
    assert ratio(Decimal("60.00"), Decimal("100.00")) == Decimal("0.6000")
    assert ratio(ZERO, ZERO) == Decimal("0.0000")


def test_cents_conversion_is_exact():
    assert to_cents(Decimal("1234.56")) == 123456
    assert from_cents(123456) == Decimal("1234.56")
    assert from_cents(0) == ZERO
