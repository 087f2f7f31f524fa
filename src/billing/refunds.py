"""Refund processor: reversing all or part of a completed payment."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import store
from src.billing.transactions import atomic
from src.core.exceptions import ConflictError, InvalidArgumentError
from src.core.logging import log
from src.core.money import ZERO, parse_amount
from src.models.invoice import Invoice, InvoiceStatus, utcnow
from src.models.payment import Payment, PaymentStatus, Refund, RefundStatus


def _status_after_refund(invoice: Invoice) -> InvoiceStatus:
    """PARTIAL while anything remains paid, PENDING once nothing does; CANCELLED stays CANCELLED."""
    if invoice.status == InvoiceStatus.CANCELLED:
        return InvoiceStatus.CANCELLED
    return InvoiceStatus.PARTIAL if invoice.paid_amount > ZERO else InvoiceStatus.PENDING


async def process_refund(
    db: AsyncSession,
    payment_id: str,
    *,
    amount: Decimal,
    reason: str,
    processed_by: str,
    notes: str | None = None,
) -> tuple[Refund, Payment, Invoice]:
    """Approve a refund immediately and give the amount back to the invoice balance.

    Cumulative refunds are bounded by what is still refundable on the payment,
    so a payment can never be refunded for more than it brought in.
    """
    amount = parse_amount(amount, "amount")

    async def operation() -> Refund:
        payment = await store.get_payment(db, payment_id)
        invoice = await store.get_invoice(db, payment.invoice_id, for_update=True)
        if payment.status != PaymentStatus.COMPLETED:
            raise ConflictError(
                "Can only refund completed payments",
                details={"payment_id": payment.id, "status": payment.status.value},
            )
        refundable = payment.refundable_amount
        if amount > refundable:
            raise InvalidArgumentError(
                f"Refund amount ({amount}) exceeds refundable amount ({refundable}) "
                f"of payment {payment.id}",
                details={"amount": str(amount), "refundable": str(refundable)},
            )

        refund = Refund(
            invoice_id=payment.invoice_id,
            patient_id=payment.patient_id,
            amount=amount,
            reason=reason,
            notes=notes,
            status=RefundStatus.APPROVED,
            approved_by=processed_by,
            approved_at=utcnow(),
        )
        payment.refunds.append(refund)
        if amount == refundable:
            payment.status = PaymentStatus.REFUNDED

        invoice.adjust_paid(-amount)
        invoice.status = _status_after_refund(invoice)
        invoice.paid_date = None
        await db.flush()
        return refund

    refund = await atomic(db, operation, name="process_refund")
    payment = await store.get_payment(db, payment_id)
    invoice = await store.get_invoice(db, payment.invoice_id)
    log.info(
        f"Refund {refund.id} of {amount} approved by {processed_by} on payment {payment_id}; "
        f"invoice {invoice.invoice_number} balance {invoice.balance}, status {invoice.status.value}"
    )
    return refund, payment, invoice
