"""Invoice store: loading, filtering and numbering invoices."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.config import settings
from src.core.exceptions import NotFoundError
from src.models.invoice import (
    OPEN_STATUSES,
    Invoice,
    InvoiceSequence,
    InvoiceStatus,
    utcnow,
)
from src.models.payment import Payment


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open UTC datetime range covering ``start`` through ``end`` inclusive."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper


def invoice_query() -> Select:
    return select(Invoice).options(
        selectinload(Invoice.charges),
        selectinload(Invoice.payments).selectinload(Payment.refunds),
    )


async def get_invoice(db: AsyncSession, invoice_id: str, *, for_update: bool = False) -> Invoice:
    query = invoice_query().where(Invoice.id == invoice_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update(of=Invoice)
    result = await db.execute(query)
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


async def get_invoice_by_number(db: AsyncSession, invoice_number: str) -> Invoice:
    result = await db.execute(invoice_query().where(Invoice.invoice_number == invoice_number))
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice", invoice_number)
    return invoice


async def get_payment(db: AsyncSession, payment_id: str) -> Payment:
    result = await db.execute(
        select(Payment)
        .options(selectinload(Payment.refunds))
        .where(Payment.id == payment_id)
        .execution_options(populate_existing=True)
    )
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFoundError("Payment", payment_id)
    return payment


async def list_invoices(
    db: AsyncSession,
    *,
    patient_id: str | None = None,
    status: InvoiceStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
    today: date | None = None,
) -> tuple[list[Invoice], int]:
    """Return one page of invoices, newest first, and the total match count.

    ``status=OVERDUE`` selects open invoices whose due date has passed. The date
    range applies to the issued date, so drafts never match a range filter.
    """
    conditions = []
    if patient_id:
        conditions.append(Invoice.patient_id == patient_id)

    if status == InvoiceStatus.OVERDUE:
        conditions.extend([
            Invoice.status.in_(list(OPEN_STATUSES)),
            Invoice.due_date.is_not(None),
            Invoice.due_date < (today or date.today()),
        ])
    elif status:
        conditions.append(Invoice.status == status)

    if start_date:
        conditions.append(Invoice.issued_date >= day_bounds(start_date, start_date)[0])
    if end_date:
        conditions.append(Invoice.issued_date < day_bounds(end_date, end_date)[1])

    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(
            Invoice.invoice_number.ilike(pattern),
            Invoice.patient_name.ilike(pattern),
            Invoice.patient_id.ilike(pattern),
        ))

    total = await db.scalar(select(func.count(Invoice.id)).where(*conditions))

    query = invoice_query().where(*conditions).order_by(Invoice.created_at.desc(), Invoice.id)
    query = query.limit(limit or settings.default_page_size).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all()), total or 0


async def next_invoice_number(db: AsyncSession, now: datetime | None = None) -> str:
    """Reserve the next number in the current month's sequence.

    The increment is flushed inside the caller's transaction; a concurrent
    creator either trips the sequence row's version check or the unique
    invoice-number constraint and is replayed.
    """
    period = (now or utcnow()).strftime("%y%m")
    sequence = await db.get(InvoiceSequence, period, with_for_update=True, populate_existing=True)
    if sequence is None:
        sequence = InvoiceSequence(period=period, last_value=0)
        db.add(sequence)
    sequence.last_value += 1
    await db.flush()
    return f"{settings.invoice_number_prefix}{period}{sequence.last_value:04d}"
