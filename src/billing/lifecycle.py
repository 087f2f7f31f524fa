"""Invoice lifecycle: DRAFT -> PENDING -> PARTIAL -> PAID, with CANCELLED on the side.

OVERDUE is never stored; it is derived from the due date when invoices are read.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.billing import store
from src.billing.charges import apply_charge, build_charge
from src.billing.transactions import atomic
from src.clients.catalog import CatalogClient
from src.clients.patients import PatientsClient
from src.core.exceptions import ConflictError, InvalidStateError
from src.core.logging import log
from src.core.money import ZERO
from src.models.invoice import Invoice, InvoiceStatus, utcnow
from src.schemas import InvoiceCreate, InvoiceUpdate


async def create_invoice(
    db: AsyncSession,
    patients: PatientsClient,
    catalog: CatalogClient,
    request: InvoiceCreate,
) -> Invoice:
    """Create a DRAFT invoice for a known patient with optional initial charges."""
    patient = await patients.resolve_patient(request.patient_id)
    services = [await catalog.resolve_service(item.service_id) for item in request.charges]

    async def operation() -> Invoice:
        charges = [
            build_charge(
                service,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for service, item in zip(services, request.charges)
        ]
        invoice = Invoice(
            invoice_number=await store.next_invoice_number(db),
            patient_id=patient.id,
            patient_name=patient.name,
            status=InvoiceStatus.DRAFT,
            total_amount=ZERO,
            paid_amount=ZERO,
            balance=ZERO,
            due_date=request.due_date,
            notes=request.notes,
            charges=[],
            payments=[],
        )
        for charge in charges:
            apply_charge(invoice, charge)
        db.add(invoice)
        await db.flush()
        return invoice

    # A colliding invoice number surfaces as a unique-constraint violation
    invoice = await atomic(
        db, operation, name="create_invoice", retry_on=(StaleDataError, IntegrityError)
    )
    log.info(
        f"Invoice {invoice.invoice_number} created for patient {patient.id} "
        f"with {len(request.charges)} charges, total {invoice.total_amount}"
    )
    return await store.get_invoice(db, invoice.id)


async def update_invoice(db: AsyncSession, invoice_id: str, changes: InvoiceUpdate) -> Invoice:
    """Change due date or notes; money fields are never touched here."""
    fields = changes.model_dump(exclude_unset=True)

    async def operation() -> Invoice:
        invoice = await store.get_invoice(db, invoice_id, for_update=True)
        for name, value in fields.items():
            setattr(invoice, name, value)
        await db.flush()
        return invoice

    await atomic(db, operation, name="update_invoice")
    return await store.get_invoice(db, invoice_id)


async def finalize_invoice(db: AsyncSession, invoice_id: str) -> Invoice:
    async def operation() -> Invoice:
        invoice = await store.get_invoice(db, invoice_id, for_update=True)
        if invoice.status != InvoiceStatus.DRAFT:
            raise InvalidStateError(
                f"Only draft invoices can be finalized (invoice is {invoice.status.value})",
                details={"status": invoice.status.value},
            )
        if not invoice.charges:
            raise InvalidStateError("Cannot finalize invoice without charges")

        invoice.status = InvoiceStatus.PENDING
        invoice.issued_date = utcnow()
        await db.flush()
        return invoice

    invoice = await atomic(db, operation, name="finalize_invoice")
    log.info(f"Invoice {invoice.invoice_number} finalized, {invoice.balance} due")
    return await store.get_invoice(db, invoice_id)


async def cancel_invoice(db: AsyncSession, invoice_id: str, reason: str | None = None) -> Invoice:
    """Cancel an unpaid or partially paid invoice.

    Payments already applied are left in place; refunds have to be issued
    against them separately.
    """
    async def operation() -> Invoice:
        invoice = await store.get_invoice(db, invoice_id, for_update=True)
        if invoice.status == InvoiceStatus.PAID:
            raise InvalidStateError("Cannot cancel a paid invoice")
        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidStateError("Invoice is already cancelled")

        if reason:
            invoice.notes = f"{invoice.notes or ''}\nCancelled: {reason}".strip()
        invoice.status = InvoiceStatus.CANCELLED
        await db.flush()
        return invoice

    invoice = await atomic(db, operation, name="cancel_invoice")
    log.info(f"Invoice {invoice.invoice_number} cancelled with {invoice.paid_amount} already paid")
    return await store.get_invoice(db, invoice_id)


async def delete_invoice(db: AsyncSession, invoice_id: str) -> None:
    """Delete an invoice that never took money, together with its charges."""
    async def operation() -> str:
        invoice = await store.get_invoice(db, invoice_id, for_update=True)
        if invoice.payments or invoice.status in (InvoiceStatus.PARTIAL, InvoiceStatus.PAID):
            raise ConflictError(
                "Invoices with payment history cannot be deleted; cancel it instead",
                details={"invoice_id": invoice.id, "status": invoice.status.value},
            )
        for charge in list(invoice.charges):
            await db.delete(charge)
        await db.delete(invoice)
        await db.flush()
        return invoice.invoice_number

    invoice_number = await atomic(db, operation, name="delete_invoice")
    log.info(f"Invoice {invoice_number} deleted")
