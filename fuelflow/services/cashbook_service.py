"""
Cashbook ledger.

A flat log of money movements. The realized balance counts only settled
entries; pending entries are debts owed to or by the company until a
settlement entry closes them.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.core.config import settings
from fuelflow.models.cashbook import (
    AllocationStatus,
    CashbookEntry,
    ReferenceType,
    TransactionType,
)
from fuelflow.repositories.cashbook_repo import AllocationRepository, CashbookRepository
from fuelflow.repositories.client_repo import AccountHeadRepository, ClientRepository
from fuelflow.repositories.sale_repo import InvoiceRepository, SaleRepository
from fuelflow.schemas.cashbook import (
    CashbookEntryCreate,
    CashbookEntryListItem,
    OverdueClient,
    OverdueInvoice,
    TransactionSummary,
)
from fuelflow.services.cascade_service import CascadeService
from fuelflow.utils.ledger_validation import (
    ConflictError,
    LedgerValidationError,
    NotFoundError,
    OverAllocationError,
    require_fields,
    require_positive,
)
from fuelflow.utils.locks import entity_locks, lock_key
from fuelflow.utils.money import ZERO, format_amount, quantize_money, sum_money

logger = logging.getLogger(__name__)


def allocation_status(allocated: Decimal, amount: Decimal) -> AllocationStatus:
    if allocated <= ZERO:
        return AllocationStatus.UNALLOCATED
    if allocated < amount:
        return AllocationStatus.PARTIALLY_ALLOCATED
    return AllocationStatus.FULLY_ALLOCATED


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CashbookService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.entries = CashbookRepository(db)
        self.allocations = AllocationRepository(db)
        self.heads = AccountHeadRepository(db)
        self.clients = ClientRepository(db)
        self.sales = SaleRepository(db)
        self.invoices = InvoiceRepository(db)
        self.cascade = CascadeService(db)

    async def validate_entry(self, entry: CashbookEntry) -> None:
        """Field, amount, direction and account head checks shared by every writer."""
        require_fields(
            {
                "transaction_type": entry.transaction_type,
                "account_head_id": entry.account_head_id,
                "description": entry.description,
            },
            ["transaction_type", "account_head_id", "description"]
        )
        require_positive(entry.amount, "amount")

        expected = TransactionType(entry.transaction_type).expected_inflow
        if expected is not None and expected != entry.is_inflow:
            raise LedgerValidationError(
                f"{entry.transaction_type} must be an "
                f"{'inflow' if expected else 'outflow'}"
            )

        if await self.heads.get(entry.account_head_id) is None:
            raise LedgerValidationError(f"Unknown account head: {entry.account_head_id}")

    async def record_entry(self, entry: CashbookEntry) -> CashbookEntry:
        await self.validate_entry(entry)
        entry = await self.entries.insert(entry)
        logger.info(
            "Recorded %s %s of %s%s",
            entry.transaction_type,
            "inflow" if entry.is_inflow else "outflow",
            entry.amount,
            " (pending)" if entry.is_pending else ""
        )
        return entry

    async def create_entry(self, entry_in: CashbookEntryCreate) -> CashbookEntry:
        entry = CashbookEntry(**entry_in.model_dump(), reference_type=ReferenceType.MANUAL)
        return await self.record_entry(entry)

    async def update_entry(self, entry_id: str, entry_in: CashbookEntryCreate) -> CashbookEntry:
        """
        Replace a manual entry's fields.

        Entries written by a workflow (payment, stock, debt settlement) are
        changed only through that workflow.
        """
        async with entity_locks.hold([lock_key("cashbook", entry_id)]):
            entry = await self.get_entry(entry_id)
            if entry.is_linked:
                raise ConflictError(
                    f"Cashbook entry {entry_id} is linked to a {entry.reference_type} "
                    f"and cannot be edited directly"
                )

            updated = CashbookEntry(**{
                **entry.model_dump(),
                **entry_in.model_dump(),
            })
            await self.validate_entry(updated)

            allocated = await self.allocations.allocated_for_entry(entry_id)
            if allocated > ZERO:
                if not updated.is_inflow or updated.is_pending:
                    raise LedgerValidationError(
                        f"Cashbook entry {entry_id} has {format_amount(allocated)} allocated "
                        f"to invoices and must stay a settled inflow"
                    )
                if updated.amount < allocated:
                    raise OverAllocationError(
                        f"Amount {format_amount(updated.amount)} is below the "
                        f"{format_amount(allocated)} already allocated from this entry",
                        updated.amount - allocated
                    )
            if await self.entries.list_by_reference(ReferenceType.DEBT_PAYMENT.value, entry_id) and updated.is_pending:
                raise ConflictError(f"Cashbook entry {entry_id} has been settled and cannot be made pending")

            await self.entries.replace(updated)

        logger.info("Updated cashbook entry %s", entry_id)
        return updated

    async def delete_entry(self, entry_id: str) -> bool:
        return await self.cascade.delete_cashbook_entry(entry_id)

    async def get_entry(self, entry_id: str) -> CashbookEntry:
        entry = await self.entries.get(entry_id)
        if entry is None:
            raise NotFoundError("Cashbook entry", entry_id)
        return entry

    async def list_entries(self) -> List[CashbookEntryListItem]:
        """All entries, newest first, with allocation status on inflows."""
        items = []
        for entry in await self.entries.list_entries():
            item = CashbookEntryListItem.model_validate(entry)
            if entry.is_inflow:
                allocated = await self.allocations.allocated_for_entry(entry.id)
                item.allocated_amount = allocated
                item.allocation_status = allocation_status(allocated, entry.amount)
            items.append(item)
        return items

    async def get_cash_balance(self) -> Decimal:
        inflow = await self.entries.total(is_inflow=True)
        outflow = await self.entries.total(is_inflow=False)
        return quantize_money(inflow - outflow)

    async def get_transaction_summary(self) -> TransactionSummary:
        inflow = await self.entries.total(is_inflow=True)
        outflow = await self.entries.total(is_inflow=False)
        pending = await self.entries.total(is_pending=True)
        return TransactionSummary(
            total_inflow=inflow,
            total_outflow=outflow,
            pending_debts=pending,
            available_balance=inflow - outflow
        )

    async def get_pending_debts(self) -> List[CashbookEntry]:
        return await self.entries.list_pending()

    async def get_supplier_outstanding_balance(self, account_head_id: str) -> Decimal:
        """What the company still owes under one account head."""
        if await self.heads.get(account_head_id) is None:
            raise NotFoundError("Account head", account_head_id)
        entries = await self.entries.find({
            "account_head_id": account_head_id,
            "is_pending": True,
            "is_inflow": False,
        })
        return sum_money(e.amount for e in entries)

    async def get_client_outstanding_balance(self, client_id: str) -> Decimal:
        """Unallocated remainder of a client's unpaid invoices."""
        if await self.clients.get(client_id) is None:
            raise NotFoundError("Client", client_id)
        sales = await self.sales.list_by_client(client_id)
        invoices = await self.invoices.list_by_sales([s.id for s in sales])
        outstanding = ZERO
        for invoice in invoices:
            allocated = await self.allocations.allocated_for_invoice(invoice.id)
            if invoice.total_amount > allocated:
                outstanding += invoice.total_amount - allocated
        return quantize_money(outstanding)

    async def get_overdue_client_invoices(
        self,
        days: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[OverdueClient]:
        """Clients with invoices unpaid for more than `days`, largest balance first."""
        if days is None:
            days = settings.OVERDUE_DAYS
        if days < 0:
            raise LedgerValidationError(f"days must not be negative, got {days}")
        now = _as_utc(now or datetime.now(timezone.utc))
        cutoff = now - timedelta(days=days)

        grouped: Dict[str, OverdueClient] = {}
        for invoice in await self.invoices.list_generated():
            invoice_date = _as_utc(invoice.invoice_date)
            if invoice_date >= cutoff:
                continue
            allocated = await self.allocations.allocated_for_invoice(invoice.id)
            pending = invoice.total_amount - allocated
            if pending <= ZERO:
                continue
            sale = await self.sales.get(invoice.sale_id)
            if sale is None:
                continue

            group = grouped.get(sale.client_id)
            if group is None:
                client = await self.clients.get(sale.client_id)
                group = OverdueClient(
                    client_id=sale.client_id,
                    client_name=client.name if client else "",
                    total_pending=ZERO,
                    invoices=[]
                )
                grouped[sale.client_id] = group
            group.invoices.append(OverdueInvoice(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                invoice_date=invoice.invoice_date,
                total_amount=invoice.total_amount,
                pending_amount=pending,
                days_outstanding=(now - invoice_date).days
            ))
            group.total_pending = group.total_pending + pending

        return sorted(grouped.values(), key=lambda g: g.total_pending, reverse=True)
