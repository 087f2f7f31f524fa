"""Payment and refund routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import refunds, store
from src.database import get_db
from src.schemas import (
    InvoiceResponse,
    PaymentResponse,
    RefundCreate,
    RefundResponse,
    RefundResult,
)

router = APIRouter(tags=["payments"])


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str, db: AsyncSession = Depends(get_db)):
    """Get a payment with the refunds issued against it."""
    return await store.get_payment(db, payment_id)


@router.post("/payments/{payment_id}/refunds", response_model=RefundResult, status_code=201)
async def process_refund(payment_id: str, request: RefundCreate, db: AsyncSession = Depends(get_db)):
    """Refund all or part of a completed payment."""
    refund, payment, invoice = await refunds.process_refund(
        db,
        payment_id,
        amount=request.amount,
        reason=request.reason,
        processed_by=request.processed_by,
        notes=request.notes,
    )
    return RefundResult(
        refund=RefundResponse.model_validate(refund),
        payment=PaymentResponse.model_validate(payment),
        invoice=InvoiceResponse.model_validate(invoice),
        message=f"Refund processed successfully. Amount: {refund.amount}",
    )
