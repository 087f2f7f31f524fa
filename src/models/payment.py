"""Payment and refund models for the billing ledger."""

from datetime import datetime
from decimal import Decimal
import enum

from sqlalchemy import String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.money import sum_money
from src.database import Base
from src.models.invoice import Invoice, generate_id, utcnow
from src.models.types import MoneyType


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    INSURANCE = "insurance"
    CREDIT = "credit"


class PaymentStatus(str, enum.Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class RefundStatus(str, enum.Enum):
    # Refunds are approved synchronously; there is no pending queue
    APPROVED = "approved"


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate_id("pay"))
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id"), index=True)
    patient_id: Mapped[str] = mapped_column(String(64), index=True)
    amount: Mapped[Decimal] = mapped_column(MoneyType())
    method: Mapped[PaymentMethod] = mapped_column(SQLEnum(PaymentMethod, native_enum=False, length=20))
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processed_by: Mapped[str] = mapped_column(String(100))
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, native_enum=False, length=20),
        default=PaymentStatus.COMPLETED,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    invoice: Mapped["Invoice"] = relationship(back_populates="payments")
    refunds: Mapped[list["Refund"]] = relationship(
        back_populates="payment", order_by="Refund.approved_at"
    )

    @property
    def refunded_amount(self) -> Decimal:
        return sum_money(
            r.amount for r in self.refunds if r.status == RefundStatus.APPROVED
        )

    @property
    def refundable_amount(self) -> Decimal:
        return self.amount - self.refunded_amount

    def __repr__(self) -> str:
        return f"<Payment {self.id} {self.amount} {self.status.value}>"


class Refund(Base):
    __tablename__ = "refunds"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate_id("ref"))
    payment_id: Mapped[str] = mapped_column(ForeignKey("payments.id"), index=True)
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id"), index=True)
    patient_id: Mapped[str] = mapped_column(String(64), index=True)
    amount: Mapped[Decimal] = mapped_column(MoneyType())
    reason: Mapped[str] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[RefundStatus] = mapped_column(
        SQLEnum(RefundStatus, native_enum=False, length=20),
        default=RefundStatus.APPROVED,
    )
    approved_by: Mapped[str] = mapped_column(String(100))
    approved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    payment: Mapped["Payment"] = relationship(back_populates="refunds")
