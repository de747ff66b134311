"""
Payment allocation engine.

An allocation assigns part of one cashbook receipt to one invoice. Two caps
hold at all times and are enforced, never clamped:

- per invoice: sum of allocations <= invoice total_amount
- per entry:   sum of allocations <= entry amount

Both sums are read and the allocation written while holding the entry and
invoice locks, so concurrent allocations cannot jointly exceed either cap.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import transaction
from fuelflow.models.cashbook import CashbookPaymentAllocation
from fuelflow.models.client import Client
from fuelflow.models.invoice import InvoiceStatus
from fuelflow.repositories.cashbook_repo import AllocationRepository, CashbookRepository
from fuelflow.repositories.client_repo import AccountHeadRepository, ClientRepository
from fuelflow.repositories.sale_repo import InvoiceRepository, SaleRepository
from fuelflow.schemas.allocation import AllocationDetail, PendingInvoice
from fuelflow.services.status_service import StatusService
from fuelflow.utils.ledger_validation import (
    LedgerValidationError,
    NotFoundError,
    OverAllocationError,
    require_positive,
)
from fuelflow.utils.locks import entity_locks, lock_key
from fuelflow.utils.money import ZERO, NumberLike, format_amount, to_decimal

logger = logging.getLogger(__name__)


class AllocationService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.entries = CashbookRepository(db)
        self.allocations = AllocationRepository(db)
        self.invoices = InvoiceRepository(db)
        self.sales = SaleRepository(db)
        self.clients = ClientRepository(db)
        self.heads = AccountHeadRepository(db)
        self.status = StatusService(db)

    async def create_allocation(
        self,
        cashbook_entry_id: str,
        invoice_id: str,
        amount_allocated: NumberLike
    ) -> CashbookPaymentAllocation:
        amount = to_decimal(amount_allocated, "amount_allocated")
        require_positive(amount, "amount_allocated")

        async with entity_locks.hold([
            lock_key("cashbook", cashbook_entry_id),
            lock_key("invoice", invoice_id),
        ]):
            async with transaction(self.db):
                return await self.apply_allocation(cashbook_entry_id, invoice_id, amount)

    async def apply_allocation(
        self,
        cashbook_entry_id: str,
        invoice_id: str,
        amount: Decimal
    ) -> CashbookPaymentAllocation:
        """
        Validate both caps, insert the allocation and re-derive the invoice status.

        The caller must hold the cashbook and invoice locks.
        """
        entry = await self.entries.get(cashbook_entry_id)
        if entry is None:
            raise NotFoundError("Cashbook entry", cashbook_entry_id)
        if not entry.is_inflow or entry.is_pending:
            raise LedgerValidationError(
                "Only settled inflow cashbook entries can be allocated to invoices"
            )

        remaining_on_entry = entry.amount - await self.allocations.allocated_for_entry(entry.id)
        if amount > remaining_on_entry:
            logger.warning(
                "Rejected allocation of %s from entry %s: %s unallocated",
                amount, entry.id, remaining_on_entry
            )
            raise OverAllocationError(
                f"Cannot allocate {format_amount(amount)}. Only "
                f"{format_amount(remaining_on_entry)} remains unallocated in this cashbook entry.",
                remaining_on_entry
            )

        invoice = await self.invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)

        pending_on_invoice = invoice.total_amount - await self.allocations.allocated_for_invoice(invoice.id)
        if amount > pending_on_invoice:
            logger.warning(
                "Rejected allocation of %s to invoice %s: %s pending",
                amount, invoice.invoice_number, pending_on_invoice
            )
            raise OverAllocationError(
                f"Cannot allocate {format_amount(amount)}. Invoice "
                f"{invoice.invoice_number} only has {format_amount(pending_on_invoice)} pending.",
                pending_on_invoice
            )

        allocation = await self.allocations.insert(CashbookPaymentAllocation(
            cashbook_entry_id=entry.id,
            invoice_id=invoice.id,
            amount_allocated=amount
        ))
        await self.status.refresh_invoice_status(invoice.id)
        logger.info(
            "Allocated %s from entry %s to invoice %s",
            allocation.amount_allocated, entry.id, invoice.invoice_number
        )
        return allocation

    async def get_allocations_by_entry(self, cashbook_entry_id: str) -> List[AllocationDetail]:
        entry = await self.entries.get(cashbook_entry_id)
        if entry is None:
            raise NotFoundError("Cashbook entry", cashbook_entry_id)

        details = []
        for allocation in await self.allocations.list_by_entry(cashbook_entry_id):
            invoice = await self.invoices.get(allocation.invoice_id)
            details.append(AllocationDetail(
                **allocation.model_dump(),
                invoice_number=invoice.invoice_number if invoice else None,
                invoice_status=invoice.status if invoice else None,
                transaction_date=entry.transaction_date
            ))
        return details

    async def get_allocations_by_invoice(self, invoice_id: str) -> List[AllocationDetail]:
        invoice = await self.invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)

        details = []
        for allocation in await self.allocations.list_by_invoice(invoice_id):
            entry = await self.entries.get(allocation.cashbook_entry_id)
            details.append(AllocationDetail(
                **allocation.model_dump(),
                invoice_number=invoice.invoice_number,
                invoice_status=invoice.status,
                transaction_date=entry.transaction_date if entry else None
            ))
        return details

    async def get_pending_invoices_for_allocation(
        self,
        account_head_id: Optional[str] = None
    ) -> List[PendingInvoice]:
        """
        Generated invoices that still have a balance to allocate, oldest first.

        With an account head, only the invoices of the client linked to that
        head are returned; a head linked to no client has none.
        """
        if account_head_id:
            head = await self.heads.get(account_head_id)
            if head is None:
                raise NotFoundError("Account head", account_head_id)
            if head.client_id is None:
                return []
            sales = await self.sales.list_by_client(head.client_id)
            sale_ids = [sale.id for sale in sales]
            invoices = [
                inv for inv in await self.invoices.list_by_sales(sale_ids)
                if inv.status == InvoiceStatus.GENERATED.value
            ]
        else:
            invoices = await self.invoices.list_generated()

        pending = []
        clients: Dict[str, Optional[Client]] = {}
        for invoice in invoices:
            allocated = await self.allocations.allocated_for_invoice(invoice.id)
            remaining = invoice.total_amount - allocated
            if remaining <= ZERO:
                continue

            sale = await self.sales.get(invoice.sale_id)
            if sale is None:
                continue
            if sale.client_id not in clients:
                clients[sale.client_id] = await self.clients.get(sale.client_id)
            client = clients[sale.client_id]

            pending.append(PendingInvoice(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                invoice_date=invoice.invoice_date,
                sale_id=sale.id,
                lpo_number=invoice.lpo_number or sale.lpo_number,
                client_id=sale.client_id,
                client_name=client.name if client else "",
                total_amount=invoice.total_amount,
                allocated_amount=allocated,
                pending_amount=remaining
            ))
        return pending
