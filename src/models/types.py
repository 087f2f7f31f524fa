"""Column types shared by the ledger models."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

from src.core.money import from_cents, to_cents


class MoneyType(TypeDecorator):
    """Stores a two-place Decimal as integer cents.

    Keeps amounts exact on backends without a native decimal type (SQLite) and
    lets ``SUM`` aggregate in integer arithmetic.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_cents(value)

    def process_result_value(self, value, dialect) -> Decimal | None:
        if value is None:
            return None
        return from_cents(int(value))
