"""Pydantic schemas for the billing ledger."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, computed_field

from src.models.invoice import InvoiceStatus, derive_display_status
from src.models.payment import PaymentMethod, PaymentStatus, RefundStatus

# Sign and precision are checked by the ledger so they surface as invalid_argument
AmountIn = Annotated[Decimal, Field(allow_inf_nan=False)]


# Requests

class ChargeCreate(BaseModel):
    service_id: str = Field(min_length=1)
    description: str | None = None
    quantity: int = Field(1, ge=1, le=100_000)
    unit_price: AmountIn | None = None

    model_config = {"extra": "forbid"}


class InvoiceCreate(BaseModel):
    patient_id: str = Field(min_length=1)
    due_date: date | None = None
    notes: str | None = None
    charges: list[ChargeCreate] = []

    model_config = {"extra": "forbid"}


class InvoiceUpdate(BaseModel):
    """Non-financial fields only."""

    due_date: date | None = None
    notes: str | None = None

    model_config = {"extra": "forbid"}


class CancelInvoiceRequest(BaseModel):
    reason: str | None = None


class PaymentCreate(BaseModel):
    amount: AmountIn
    method: PaymentMethod
    reference: str | None = Field(None, max_length=100)
    processed_by: str = Field(min_length=1, max_length=100)
    notes: str | None = None

    model_config = {"extra": "forbid"}


class RefundCreate(BaseModel):
    amount: AmountIn
    reason: str = Field(min_length=1)
    processed_by: str = Field(min_length=1, max_length=100)
    notes: str | None = None

    model_config = {"extra": "forbid"}


# Responses

class ChargeResponse(BaseModel):
    id: str
    invoice_id: str
    service_id: str
    description: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class RefundResponse(BaseModel):
    id: str
    payment_id: str
    invoice_id: str
    amount: Decimal
    reason: str
    notes: str | None = None
    status: RefundStatus
    approved_by: str
    approved_at: datetime

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    id: str
    invoice_id: str
    patient_id: str
    amount: Decimal
    method: PaymentMethod
    reference: str | None = None
    processed_by: str
    status: PaymentStatus
    notes: str | None = None
    processed_at: datetime
    refunded_amount: Decimal
    refundable_amount: Decimal
    refunds: list[RefundResponse] = []

    model_config = {"from_attributes": True}


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    patient_id: str
    patient_name: str
    status: InvoiceStatus
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    issued_date: datetime | None = None
    due_date: date | None = None
    paid_date: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    charges: list[ChargeResponse] = []
    payments: list[PaymentResponse] = []

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def display_status(self) -> InvoiceStatus:
        return derive_display_status(self.status, self.due_date)


class InvoiceListResponse(BaseModel):
    items: list[InvoiceResponse]
    total: int
    limit: int
    offset: int


class PaymentResult(BaseModel):
    payment: PaymentResponse
    invoice: InvoiceResponse
    message: str


class RefundResult(BaseModel):
    refund: RefundResponse
    payment: PaymentResponse
    invoice: InvoiceResponse
    message: str


class PaymentStatusResponse(BaseModel):
    invoice_id: str
    can_proceed: bool
    payment_status: InvoiceStatus
    balance: Decimal
    message: str


class InvoiceFigures(BaseModel):
    id: str
    invoice_number: str
    total_amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: InvoiceStatus
    issued_date: datetime | None = None
    due_date: date | None = None

    model_config = {"from_attributes": True}


class PaymentHistorySummary(BaseModel):
    total_payments: int
    total_amount_paid: Decimal
    total_refunded: Decimal
    remaining_balance: Decimal
    payment_status: InvoiceStatus


class PaymentHistoryResponse(BaseModel):
    invoice: InvoiceFigures
    payments: list[PaymentResponse]
    summary: PaymentHistorySummary


class AnalyticsPeriod(BaseModel):
    start_date: date
    end_date: date


class AnalyticsSummary(BaseModel):
    total_invoices: int
    total_amount: Decimal
    total_paid: Decimal
    total_outstanding: Decimal
    total_refunded: Decimal
    collection_rate: Decimal


class BillingAnalytics(BaseModel):
    period: AnalyticsPeriod
    summary: AnalyticsSummary
    status_breakdown: dict[str, int]
    payments_by_method: dict[str, Decimal]


class PatientBillingTotals(BaseModel):
    total_invoices: int
    total_outstanding: Decimal
    total_paid: Decimal
    pending_invoices: int
    overdue_invoices: int


class PatientBillingSummary(BaseModel):
    patient_id: str
    invoices: list[InvoiceFigures]
    summary: PatientBillingTotals
