"""Racing payments against the same invoice from independent sessions."""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from src.billing import lifecycle, payments, store
from src.billing.transactions import atomic
from src.core.exceptions import ConcurrencyConflictError, ConflictError, InvalidArgumentError
from src.core.money import ZERO
from src.models.invoice import InvoiceStatus
from src.models.payment import PaymentMethod


async def _pay_in_own_session(session_factory, invoice_id, amount):
    async with session_factory() as session:
        return await payments.process_payment(
            session,
            invoice_id,
            amount=Decimal(amount),
            method=PaymentMethod.CARD,
            processed_by="cashier-2",
        )


async def _issued(make_invoice, db):
    invoice = await make_invoice()
    return await lifecycle.finalize_invoice(db, invoice.id)


@pytest.mark.asyncio
async def test_only_one_full_payment_wins(make_invoice, db, session_factory):
    invoice = await _issued(make_invoice, db)

    results = await asyncio.gather(
        _pay_in_own_session(session_factory, invoice.id, "100.00"),
        _pay_in_own_session(session_factory, invoice.id, "100.00"),
        return_exceptions=True,
    )

    succeeded = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], (ConflictError, InvalidArgumentError))

    async with session_factory() as session:
        final = await store.get_invoice(session, invoice.id)
    assert final.status == InvoiceStatus.PAID
    assert final.paid_amount == final.total_amount
    assert final.balance == ZERO
    assert len(final.payments) == 1


@pytest.mark.asyncio
async def test_racing_partial_payments_never_overdraw(make_invoice, db, session_factory):
    invoice = await _issued(make_invoice, db)

    results = await asyncio.gather(
        _pay_in_own_session(session_factory, invoice.id, "60.00"),
        _pay_in_own_session(session_factory, invoice.id, "60.00"),
        return_exceptions=True,
    )

    failed = [r for r in results if isinstance(r, Exception)]
    assert len(failed) == 1
    assert isinstance(failed[0], (ConflictError, InvalidArgumentError))

    async with session_factory() as session:
        final = await store.get_invoice(session, invoice.id)
    assert final.status == InvoiceStatus.PARTIAL
    assert final.paid_amount == Decimal("60.00")
    assert final.balance == Decimal("40.00")


@pytest.mark.asyncio
async def test_atomic_gives_up_after_repeated_conflicts(db):
    calls = []

    async def always_stale():
        calls.append(1)
        raise StaleDataError("row changed underneath us")

    with pytest.raises(ConcurrencyConflictError) as exc:
        await atomic(db, always_stale, name="always_stale", attempts=3)
    assert len(calls) == 3
    assert exc.value.kind == "conflict"
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_atomic_does_not_retry_domain_errors(db):
    calls = []

    async def rejected():
        calls.append(1)
        raise InvalidArgumentError("nope")

    with pytest.raises(InvalidArgumentError):
        await atomic(db, rejected, name="rejected")
    assert len(calls) == 1
