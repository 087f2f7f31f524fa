"""Charge manager: line items on mutable invoices."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import store
from src.billing.transactions import atomic
from src.clients.catalog import CatalogClient, ServiceRef
from src.core.exceptions import InvalidArgumentError, InvalidStateError, NotFoundError
from src.core.logging import log
from src.core.money import MAX_AMOUNT, line_total, parse_amount
from src.models.invoice import Charge, Invoice, InvoiceStatus

# Finalized (PENDING) invoices stay editable until money is received
CHARGEABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.PENDING})
MAX_QUANTITY = 100_000


def ensure_chargeable(invoice: Invoice, action: str) -> None:
    if invoice.status not in CHARGEABLE_STATUSES:
        raise InvalidStateError(
            f"Cannot {action} a {invoice.status.value} invoice",
            details={"invoice_id": invoice.id, "status": invoice.status.value},
        )


def build_charge(
    service: ServiceRef,
    *,
    description: str | None = None,
    quantity: int = 1,
    unit_price: Decimal | None = None,
) -> Charge:
    """Price a line item, defaulting to the catalog's current price."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_QUANTITY:
        raise InvalidArgumentError(
            f"quantity must be an integer between 1 and {MAX_QUANTITY}, got {quantity}",
            details={"field": "quantity"},
        )
    if unit_price is None:
        price = service.current_price
    else:
        price = parse_amount(unit_price, "unit_price", allow_zero=True)

    try:
        total = line_total(quantity, price)
    except ValueError as e:
        raise InvalidArgumentError(str(e), details={"field": "quantity"}) from None

    return Charge(
        service_id=service.id,
        description=description or service.name,
        quantity=quantity,
        unit_price=price,
        total_price=total,
    )


def apply_charge(invoice: Invoice, charge: Charge) -> None:
    """Attach ``charge`` and grow the invoice total, keeping it within ``MAX_AMOUNT``."""
    if invoice.total_amount + charge.total_price > MAX_AMOUNT:
        raise InvalidArgumentError(
            f"Invoice total cannot exceed {MAX_AMOUNT}",
            details={"invoice_id": invoice.id, "field": "quantity"},
        )
    invoice.charges.append(charge)
    invoice.adjust_total(charge.total_price)


async def add_charge(
    db: AsyncSession,
    catalog: CatalogClient,
    invoice_id: str,
    *,
    service_id: str,
    description: str | None = None,
    quantity: int = 1,
    unit_price: Decimal | None = None,
) -> Charge:
    service = await catalog.resolve_service(service_id)

    async def operation() -> Charge:
        invoice = await store.get_invoice(db, invoice_id, for_update=True)
        ensure_chargeable(invoice, "add charges to")
        charge = build_charge(
            service, description=description, quantity=quantity, unit_price=unit_price
        )
        apply_charge(invoice, charge)
        await db.flush()
        return charge

    charge = await atomic(db, operation, name="add_charge")
    log.info(f"Charge {charge.id} ({charge.total_price}) added to invoice {invoice_id}")
    return charge


async def remove_charge(db: AsyncSession, invoice_id: str, charge_id: str) -> Invoice:
    async def operation() -> Invoice:
        invoice = await store.get_invoice(db, invoice_id, for_update=True)
        charge = next((c for c in invoice.charges if c.id == charge_id), None)
        if charge is None:
            raise NotFoundError("Charge", charge_id)
        ensure_chargeable(invoice, "remove charges from")

        invoice.adjust_total(-charge.total_price)
        await db.delete(charge)
        await db.flush()
        return invoice

    await atomic(db, operation, name="remove_charge")
    log.info(f"Charge {charge_id} removed from invoice {invoice_id}")
    return await store.get_invoice(db, invoice_id)
