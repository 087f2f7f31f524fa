"""Read-only billing aggregates."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.billing.store import day_bounds
from src.core.exceptions import InvalidArgumentError
from src.core.money import ZERO, ratio, sum_money
from src.models.invoice import OPEN_STATUSES, Invoice, InvoiceStatus
from src.models.payment import Payment, Refund
from src.schemas import (
    AnalyticsPeriod,
    AnalyticsSummary,
    BillingAnalytics,
    InvoiceFigures,
    PatientBillingSummary,
    PatientBillingTotals,
)


async def billing_analytics(
    db: AsyncSession,
    start_date: date,
    end_date: date,
    today: date | None = None,
) -> BillingAnalytics:
    """Aggregate invoices issued (or, for drafts, created) between two dates inclusive.

    Cancelled invoices are counted in the status breakdown but excluded from the
    money totals. OVERDUE is counted separately from the stored status it overlaps.
    """
    if start_date > end_date:
        raise InvalidArgumentError("start_date must not be after end_date")
    today = today or date.today()
    lower, upper = day_bounds(start_date, end_date)

    invoice_date = func.coalesce(Invoice.issued_date, Invoice.created_at)
    in_range = and_(invoice_date >= lower, invoice_date < upper)

    status_breakdown = {s.value: 0 for s in InvoiceStatus}
    result = await db.execute(
        select(Invoice.status, func.count(Invoice.id)).where(in_range).group_by(Invoice.status)
    )
    for status, count in result.all():
        status_breakdown[status.value] = count

    status_breakdown[InvoiceStatus.OVERDUE.value] = await db.scalar(
        select(func.count(Invoice.id)).where(
            in_range,
            Invoice.status.in_(list(OPEN_STATUSES)),
            Invoice.due_date.is_not(None),
            Invoice.due_date < today,
        )
    ) or 0

    totals = (await db.execute(
        select(
            func.count(Invoice.id),
            func.coalesce(func.sum(Invoice.total_amount), 0),
            func.coalesce(func.sum(Invoice.paid_amount), 0),
            func.coalesce(func.sum(Invoice.balance), 0),
        ).where(in_range, Invoice.status != InvoiceStatus.CANCELLED)
    )).one()
    total_invoices, total_amount, total_paid, total_outstanding = totals

    payments_by_method: dict[str, Decimal] = {}
    result = await db.execute(
        select(Payment.method, func.sum(Payment.amount))
        .where(Payment.processed_at >= lower, Payment.processed_at < upper)
        .group_by(Payment.method)
    )
    for method, amount in result.all():
        payments_by_method[method.value] = amount or ZERO

    total_refunded = await db.scalar(
        select(func.coalesce(func.sum(Refund.amount), 0)).where(
            Refund.approved_at >= lower, Refund.approved_at < upper
        )
    )

    return BillingAnalytics(
        period=AnalyticsPeriod(start_date=start_date, end_date=end_date),
        summary=AnalyticsSummary(
            total_invoices=total_invoices or 0,
            total_amount=total_amount or ZERO,
            total_paid=total_paid or ZERO,
            total_outstanding=total_outstanding or ZERO,
            total_refunded=total_refunded or ZERO,
            collection_rate=ratio(total_paid or ZERO, total_amount or ZERO),
        ),
        status_breakdown=status_breakdown,
        payments_by_method=payments_by_method,
    )


async def patient_summary(
    db: AsyncSession, patient_id: str, today: date | None = None
) -> PatientBillingSummary:
    today = today or date.today()
    result = await db.execute(
        select(Invoice)
        .where(Invoice.patient_id == patient_id)
        .order_by(Invoice.created_at.desc())
    )
    invoices = list(result.scalars().all())

    open_invoices = [inv for inv in invoices if inv.status in OPEN_STATUSES]
    return PatientBillingSummary(
        patient_id=patient_id,
        invoices=[InvoiceFigures.model_validate(inv) for inv in invoices],
        summary=PatientBillingTotals(
            total_invoices=len(invoices),
            total_outstanding=sum_money(inv.balance for inv in open_invoices),
            total_paid=sum_money(inv.paid_amount for inv in invoices),
            pending_invoices=sum(1 for inv in invoices if inv.status == InvoiceStatus.PENDING),
            overdue_invoices=sum(
                1 for inv in open_invoices
                if inv.display_status(today) == InvoiceStatus.OVERDUE
            ),
        ),
    )
