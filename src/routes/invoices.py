"""Invoice routes for the billing ledger."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import charges, lifecycle, payments, store
from src.clients.catalog import CatalogClient
from src.clients.patients import PatientsClient
from src.config import settings
from src.database import get_db
from src.models.invoice import InvoiceStatus
from src.schemas import (
    CancelInvoiceRequest,
    ChargeCreate,
    ChargeResponse,
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceUpdate,
    PaymentCreate,
    PaymentHistoryResponse,
    PaymentResponse,
    PaymentResult,
    PaymentStatusResponse,
)

router = APIRouter(tags=["invoices"])
patients = PatientsClient()
catalog = CatalogClient()


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
async def create_invoice(request: InvoiceCreate, db: AsyncSession = Depends(get_db)):
    """Create a draft invoice for a patient, optionally with initial charges."""
    return await lifecycle.create_invoice(db, patients, catalog, request)


@router.get("/invoices", response_model=InvoiceListResponse)
async def list_invoices(
    patient_id: str | None = None,
    status: InvoiceStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List invoices, newest first, filtered by patient, status, issue date or text."""
    invoices, total = await store.list_invoices(
        db,
        patient_id=patient_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        search=search,
        limit=limit,
        offset=offset,
    )
    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(inv) for inv in invoices],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/invoices/by-number/{invoice_number}", response_model=InvoiceResponse)
async def get_invoice_by_number(invoice_number: str, db: AsyncSession = Depends(get_db)):
    return await store.get_invoice_by_number(db, invoice_number)


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str, db: AsyncSession = Depends(get_db)):
    """Get a single invoice with its charges and payments."""
    return await store.get_invoice(db, invoice_id)


@router.patch("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(invoice_id: str, changes: InvoiceUpdate, db: AsyncSession = Depends(get_db)):
    """Update the due date or notes of an invoice."""
    return await lifecycle.update_invoice(db, invoice_id, changes)


@router.delete("/invoices/{invoice_id}", status_code=204)
async def delete_invoice(invoice_id: str, db: AsyncSession = Depends(get_db)):
    await lifecycle.delete_invoice(db, invoice_id)
    return Response(status_code=204)


@router.post("/invoices/{invoice_id}/finalize", response_model=InvoiceResponse)
async def finalize_invoice(invoice_id: str, db: AsyncSession = Depends(get_db)):
    return await lifecycle.finalize_invoice(db, invoice_id)


@router.post("/invoices/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: str,
    request: CancelInvoiceRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    reason = request.reason if request else None
    return await lifecycle.cancel_invoice(db, invoice_id, reason)


@router.post("/invoices/{invoice_id}/charges", response_model=ChargeResponse, status_code=201)
async def add_charge(invoice_id: str, request: ChargeCreate, db: AsyncSession = Depends(get_db)):
    return await charges.add_charge(
        db,
        catalog,
        invoice_id,
        service_id=request.service_id,
        description=request.description,
        quantity=request.quantity,
        unit_price=request.unit_price,
    )


@router.delete("/invoices/{invoice_id}/charges/{charge_id}", response_model=InvoiceResponse)
async def remove_charge(invoice_id: str, charge_id: str, db: AsyncSession = Depends(get_db)):
    return await charges.remove_charge(db, invoice_id, charge_id)


@router.post("/invoices/{invoice_id}/payments", response_model=PaymentResult, status_code=201)
async def process_payment(invoice_id: str, request: PaymentCreate, db: AsyncSession = Depends(get_db)):
    """Apply a payment against the invoice's outstanding balance."""
    payment, invoice = await payments.process_payment(
        db,
        invoice_id,
        amount=request.amount,
        method=request.method,
        processed_by=request.processed_by,
        reference=request.reference,
        notes=request.notes,
    )
    return PaymentResult(
        payment=PaymentResponse.model_validate(payment),
        invoice=InvoiceResponse.model_validate(invoice),
        message=f"Payment processed successfully. New balance: {invoice.balance}",
    )


@router.get("/invoices/{invoice_id}/payment-status", response_model=PaymentStatusResponse)
async def check_payment_status(invoice_id: str, db: AsyncSession = Depends(get_db)):
    """Tell clinical modules whether service delivery may proceed."""
    invoice = await store.get_invoice(db, invoice_id)
    return payments.check_payment_status_for_service(invoice)


@router.get("/invoices/{invoice_id}/payment-history", response_model=PaymentHistoryResponse)
async def get_payment_history(invoice_id: str, db: AsyncSession = Depends(get_db)):
    invoice = await store.get_invoice(db, invoice_id)
    return payments.payment_history(invoice)
