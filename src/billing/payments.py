"""Payment processor: applying money against an invoice's balance."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import store
from src.billing.transactions import atomic
from src.core.exceptions import ConflictError, InvalidArgumentError
from src.core.logging import log
from src.core.money import ZERO, parse_amount, sum_money
from src.models.invoice import Invoice, InvoiceStatus, utcnow
from src.models.payment import Payment, PaymentMethod, PaymentStatus
from src.schemas import (
    InvoiceFigures,
    PaymentHistoryResponse,
    PaymentHistorySummary,
    PaymentResponse,
    PaymentStatusResponse,
)

UNPAYABLE_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED})


async def process_payment(
    db: AsyncSession,
    invoice_id: str,
    *,
    amount: Decimal,
    method: PaymentMethod,
    processed_by: str,
    reference: str | None = None,
    notes: str | None = None,
) -> tuple[Payment, Invoice]:
    """Record a completed payment and move the invoice to PARTIAL or PAID.

    The balance check and the balance update happen in the same transaction
    against a version-checked invoice row, so two payments racing for the same
    balance cannot both succeed.
    """
    amount = parse_amount(amount, "amount")

    async def operation() -> Payment:
        invoice = await store.get_invoice(db, invoice_id, for_update=True)
        if invoice.status == InvoiceStatus.PAID:
            raise ConflictError("Invoice is already fully paid", details={"status": invoice.status.value})
        if invoice.status == InvoiceStatus.CANCELLED:
            raise ConflictError(
                "Cannot process payment for cancelled invoice",
                details={"status": invoice.status.value},
            )
        if amount > invoice.balance:
            raise InvalidArgumentError(
                f"Payment amount ({amount}) exceeds remaining balance ({invoice.balance})",
                details={"amount": str(amount), "balance": str(invoice.balance)},
            )

        payment = Payment(
            patient_id=invoice.patient_id,
            amount=amount,
            method=method,
            reference=reference,
            processed_by=processed_by,
            status=PaymentStatus.COMPLETED,
            notes=notes,
            processed_at=utcnow(),
            refunds=[],
        )
        invoice.payments.append(payment)
        invoice.adjust_paid(amount)
        if invoice.balance == ZERO:
            invoice.status = InvoiceStatus.PAID
            invoice.paid_date = utcnow()
        else:
            invoice.status = InvoiceStatus.PARTIAL
        await db.flush()
        return payment

    payment = await atomic(db, operation, name="process_payment")
    invoice = await store.get_invoice(db, invoice_id)
    log.info(
        f"Payment {payment.id} of {amount} ({method.value}) applied to invoice "
        f"{invoice.invoice_number}; balance {invoice.balance}, status {invoice.status.value}"
    )
    payment = next(p for p in invoice.payments if p.id == payment.id)
    return payment, invoice


def check_payment_status_for_service(invoice: Invoice) -> PaymentStatusResponse:
    """Gate for clinical modules: a service may proceed only on a fully paid invoice."""
    status = invoice.status
    if status == InvoiceStatus.PAID:
        message = "Invoice fully paid. Service can proceed."
    elif status == InvoiceStatus.PARTIAL:
        message = (
            f"Partial payment received. Outstanding balance: {invoice.balance}. "
            "Full payment required before service."
        )
    elif status == InvoiceStatus.PENDING:
        message = f"Payment required before service. Total amount due: {invoice.balance}"
    else:
        message = f"Invoice status: {status.value}. Payment verification required."

    return PaymentStatusResponse(
        invoice_id=invoice.id,
        can_proceed=status == InvoiceStatus.PAID,
        payment_status=status,
        balance=invoice.balance,
        message=message,
    )


def payment_history(invoice: Invoice) -> PaymentHistoryResponse:
    payments = [PaymentResponse.model_validate(p) for p in invoice.payments]
    return PaymentHistoryResponse(
        invoice=InvoiceFigures.model_validate(invoice),
        payments=payments,
        summary=PaymentHistorySummary(
            total_payments=len(payments),
            total_amount_paid=invoice.paid_amount,
            total_refunded=sum_money(p.refunded_amount for p in payments),
            remaining_balance=invoice.balance,
            payment_status=invoice.status,
        ),
    )
