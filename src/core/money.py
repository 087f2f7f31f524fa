"""Exact currency arithmetic.

All ledger amounts are ``Decimal`` values quantized to cents. Floats are only
accepted at the boundary and are converted through their shortest ``repr`` so
``0.1`` becomes ``Decimal("0.10")`` rather than its binary expansion.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from src.core.exceptions import InvalidArgumentError

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
# Keeps every stored amount and invoice total well inside a signed 64-bit cents column
MAX_AMOUNT = Decimal("999999999999.99")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Convert ``value`` to a two-place Decimal.

    Raises ``ValueError`` for booleans, unparsable text, non-finite numbers,
    magnitudes above ``MAX_AMOUNT`` and values carrying more precision than a cent.
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a currency amount")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"'{value}' is not a valid amount") from None
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError("Amount must be finite")
    if abs(amount) > MAX_AMOUNT:
        raise ValueError(f"Amount exceeds the maximum of {MAX_AMOUNT}")
    try:
        quantized = amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError("Amount is out of range") from None
    if quantized != amount:
        raise ValueError("Amount cannot have more than two decimal places")
    return quantized


def parse_amount(
    value: Decimal | int | float | str,
    field: str = "amount",
    *,
    allow_zero: bool = False,
) -> Decimal:
    """Parse a caller-supplied amount, raising ``InvalidArgumentError`` on bad input."""
    try:
        amount = to_money(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid {field}: {e}", details={"field": field}) from None

    if amount < ZERO or (amount == ZERO and not allow_zero):
        qualifier = "non-negative" if allow_zero else "positive"
        raise InvalidArgumentError(
            f"{field} must be {qualifier}, got {amount}",
            details={"field": field},
        )
    return amount


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    """Price a line item; raises ``ValueError`` when it would exceed ``MAX_AMOUNT``."""
    try:
        total = (unit_price * quantity).quantize(CENTS)
    except InvalidOperation:
        raise ValueError("Line total is out of range") from None
    if abs(total) > MAX_AMOUNT:
        raise ValueError(f"Line total exceeds the maximum of {MAX_AMOUNT}")
    return total


def sum_money(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO).quantize(CENTS)


def ratio(numerator: Decimal, denominator: Decimal, places: int = 4) -> Decimal:
    """Return ``numerator / denominator`` rounded half-up; zero when the denominator is zero."""
    exponent = Decimal(1).scaleb(-places)
    if denominator == 0:
        return Decimal(0).quantize(exponent)
    return (numerator / denominator).quantize(exponent, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    return int(to_money(amount) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENTS)
