"""Billing summary routes."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import analytics
from src.database import get_db
from src.schemas import BillingAnalytics, PatientBillingSummary

router = APIRouter(tags=["analytics"])


@router.get("/billing/analytics", response_model=BillingAnalytics)
async def billing_analytics(start_date: date, end_date: date, db: AsyncSession = Depends(get_db)):
    """Invoice and payment totals for a date range (inclusive)."""
    return await analytics.billing_analytics(db, start_date, end_date)


@router.get("/patients/{patient_id}/billing-summary", response_model=PatientBillingSummary)
async def patient_billing_summary(patient_id: str, db: AsyncSession = Depends(get_db)):
    return await analytics.patient_summary(db, patient_id)
