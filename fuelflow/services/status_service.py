"""
Sale and invoice status derivation.

Sale lifecycle: Pending LPO -> LPO Received -> Invoiced -> Paid.
Manual transitions may set any status; whenever payments change the engine
re-derives the status from what has actually been paid:

- Paid      iff payments cover the sale total (within PAYMENT_TOLERANCE)
- Invoiced  when not covered and the sale was already Invoiced or Paid
- unchanged otherwise

Invoice status is owned by the allocation engine: Paid iff allocations cover
the invoice total, Generated otherwise.

The service does not lock; callers hold the sale/invoice locks.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.models.invoice import Invoice, InvoiceStatus
from fuelflow.models.sale import Sale, SaleStatus
from fuelflow.repositories.cashbook_repo import AllocationRepository
from fuelflow.repositories.sale_repo import InvoiceRepository, PaymentRepository, SaleRepository
from fuelflow.utils.money import ZERO, is_settled, sum_money

logger = logging.getLogger(__name__)

INVOICE_DATE_STATUSES = (SaleStatus.INVOICED, SaleStatus.PAID)


def derive_sale_status(current: str, total_paid: Decimal, total_amount: Decimal) -> str:
    """Status implied by the payments received against a sale."""
    if total_paid > ZERO and is_settled(total_paid, total_amount):
        return SaleStatus.PAID.value
    if current in INVOICE_DATE_STATUSES:
        return SaleStatus.INVOICED.value
    return current


def derive_invoice_status(allocated: Decimal, total_amount: Decimal) -> str:
    if allocated > ZERO and is_settled(allocated, total_amount):
        return InvoiceStatus.PAID.value
    return InvoiceStatus.GENERATED.value


def status_changes(sale: Sale, new_status: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Fields to $set when moving a sale to new_status.

    Entering Invoiced or Paid stamps invoice_date once; leaving never clears it.
    """
    changes: Dict[str, Any] = {"sale_status": SaleStatus(new_status).value}
    if new_status in INVOICE_DATE_STATUSES and sale.invoice_date is None:
        changes["invoice_date"] = now or datetime.now(timezone.utc)
    return changes


class StatusService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.sales = SaleRepository(db)
        self.invoices = InvoiceRepository(db)
        self.payments = PaymentRepository(db)
        self.allocations = AllocationRepository(db)

    async def total_paid(self, sale_id: str) -> Decimal:
        payments = await self.payments.list_by_sale(sale_id)
        return sum_money(p.amount_received for p in payments)

    async def set_sale_status(self, sale: Sale, new_status: str) -> Sale:
        if sale.sale_status == new_status and (
            new_status not in INVOICE_DATE_STATUSES or sale.invoice_date is not None
        ):
            return sale
        updated = await self.sales.update_fields(sale.id, status_changes(sale, new_status))
        logger.info("Sale %s status %s -> %s", sale.id, sale.sale_status, new_status)
        return updated or sale

    async def refresh_sale_status(self, sale_id: str) -> Optional[Sale]:
        """Re-derive a sale's status from its remaining payments."""
        sale = await self.sales.get(sale_id)
        if sale is None:
            return None
        paid = await self.total_paid(sale_id)
        new_status = derive_sale_status(sale.sale_status, paid, sale.total_amount)
        return await self.set_sale_status(sale, new_status)

    async def refresh_invoice_status(self, invoice_id: str) -> Optional[Invoice]:
        """Re-derive an invoice's status from its allocations, in either direction."""
        invoice = await self.invoices.get(invoice_id)
        if invoice is None:
            return None
        allocated = await self.allocations.allocated_for_invoice(invoice_id)
        new_status = derive_invoice_status(allocated, invoice.total_amount)
        if new_status == invoice.status:
            return invoice
        logger.info("Invoice %s status %s -> %s", invoice.invoice_number, invoice.status, new_status)
        return await self.invoices.update_fields(invoice_id, {"status": new_status})
