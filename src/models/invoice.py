"""Invoice models for the billing ledger."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
import enum
import uuid

from sqlalchemy import (
    String,
    Text,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.money import ZERO
from src.database import Base
from src.models.types import MoneyType

if TYPE_CHECKING:
    from src.models.payment import Payment


def generate_id(prefix: str):
    return lambda: f"{prefix}_{uuid.uuid4().hex[:12]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    # Display only; derived from due date, never stored
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


OPEN_STATUSES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.PARTIAL})


def derive_display_status(
    status: InvoiceStatus, due_date: date | None, today: date | None = None
) -> InvoiceStatus:
    """Open invoices past their due date display as OVERDUE."""
    today = today or date.today()
    if status in OPEN_STATUSES and due_date and due_date < today:
        return InvoiceStatus.OVERDUE
    return status


class Invoice(Base):
    """A patient's bill: charges in, payments out, one running balance."""

    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate_id("inv"))
    invoice_number: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    patient_id: Mapped[str] = mapped_column(String(64), index=True)
    patient_name: Mapped[str] = mapped_column(String(200), default="")

    status: Mapped[InvoiceStatus] = mapped_column(
        SQLEnum(InvoiceStatus, native_enum=False, length=20),
        default=InvoiceStatus.DRAFT,
        index=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(MoneyType(), default=ZERO)
    paid_amount: Mapped[Decimal] = mapped_column(MoneyType(), default=ZERO)
    balance: Mapped[Decimal] = mapped_column(MoneyType(), default=ZERO)

    issued_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Charges are deleted explicitly by the lifecycle, never nulled out by the ORM
    charges: Mapped[list["Charge"]] = relationship(
        back_populates="invoice", order_by="Charge.created_at", passive_deletes="all"
    )
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="invoice", order_by="desc(Payment.processed_at)"
    )

    __mapper_args__ = {"version_id_col": version}

    def adjust_total(self, delta: Decimal) -> None:
        """Apply a charge delta; balance follows the total."""
        self.total_amount = self.total_amount + delta
        self.balance = self.total_amount - self.paid_amount

    def adjust_paid(self, delta: Decimal) -> None:
        """Apply a payment (positive) or refund (negative) delta."""
        self.paid_amount = self.paid_amount + delta
        self.balance = self.total_amount - self.paid_amount

    def display_status(self, today: date | None = None) -> InvoiceStatus:
        return derive_display_status(self.status, self.due_date, today)

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} {self.status.value} ({self.balance})>"


class Charge(Base):
    """A line item priced at the moment it was added."""

    __tablename__ = "charges"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=generate_id("chg"))
    invoice_id: Mapped[str] = mapped_column(ForeignKey("invoices.id"), index=True)
    service_id: Mapped[str] = mapped_column(String(64))
    description: Mapped[str] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(MoneyType())
    total_price: Mapped[Decimal] = mapped_column(MoneyType())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    invoice: Mapped["Invoice"] = relationship(back_populates="charges")


class InvoiceSequence(Base):
    """Last invoice number issued per YYMM period."""

    __tablename__ = "invoice_sequences"

    period: Mapped[str] = mapped_column(String(4), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
