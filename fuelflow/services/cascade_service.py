"""
Cascade consistency manager.

Deletes run children-first (allocations, then cashbook entries, then payments,
invoices and finally the parent) so that an interrupted cascade only leaves
parents that can safely be deleted again. Every conflict check runs before
the first delete. Statuses affected by removed payments or allocations are
re-derived at the end. Where the server supports it the writes of one
cascade commit as a single transaction.
"""

import logging
from typing import Iterable, List, Set

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import transaction
from fuelflow.models.cashbook import CashbookEntry, ReferenceType
from fuelflow.models.sale import Sale, SaleStatus
from fuelflow.repositories.cashbook_repo import AllocationRepository, CashbookRepository
from fuelflow.repositories.client_repo import (
    AccountHeadRepository,
    ClientRepository,
    ProjectRepository,
)
from fuelflow.repositories.sale_repo import (
    InvoiceRepository,
    PaymentRepository,
    SaleRepository,
    StockRepository,
)
from fuelflow.services.status_service import StatusService
from fuelflow.utils.ledger_validation import ConflictError, NotFoundError
from fuelflow.utils.locks import entity_locks, lock_key

logger = logging.getLogger(__name__)


class CascadeService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.clients = ClientRepository(db)
        self.projects = ProjectRepository(db)
        self.heads = AccountHeadRepository(db)
        self.sales = SaleRepository(db)
        self.invoices = InvoiceRepository(db)
        self.payments = PaymentRepository(db)
        self.stock = StockRepository(db)
        self.entries = CashbookRepository(db)
        self.allocations = AllocationRepository(db)
        self.status = StatusService(db)

    async def sale_lock_keys(self, sale_id: str) -> List[str]:
        """Keys for a sale, its invoices and the cashbook entries of its payments."""
        keys = [lock_key("sale", sale_id)]
        for invoice in await self.invoices.list_by_sale(sale_id):
            keys.append(lock_key("invoice", invoice.id))
        for payment in await self.payments.list_by_sale(sale_id):
            for entry in await self.entries.list_by_reference(ReferenceType.PAYMENT.value, payment.id):
                keys.append(lock_key("cashbook", entry.id))
        return keys

    # Helpers (callers hold the locks)

    async def _entry_lock_keys(self, entry: CashbookEntry) -> List[str]:
        keys = [lock_key("cashbook", entry.id)]
        for allocation in await self.allocations.list_by_entry(entry.id):
            keys.append(lock_key("invoice", allocation.invoice_id))
        if entry.reference_type == ReferenceType.PAYMENT.value and entry.reference_id:
            payment = await self.payments.get(entry.reference_id)
            if payment is not None:
                keys.append(lock_key("sale", payment.sale_id))
        if entry.reference_type == ReferenceType.DEBT_PAYMENT.value:
            keys.append(lock_key("cashbook", entry.reference_id))
        return keys

    async def _ensure_no_settlements(self, entry: CashbookEntry) -> None:
        settlements = await self.entries.list_by_reference(
            ReferenceType.DEBT_PAYMENT.value, entry.id
        )
        if settlements:
            raise ConflictError(
                f"Cashbook entry {entry.id} has {len(settlements)} settlement entr"
                f"{'y' if len(settlements) == 1 else 'ies'}; delete those first"
            )

    async def _purge_entry(self, entry: CashbookEntry) -> Set[str]:
        """Delete an entry and its allocations; return the invoices they paid."""
        affected = {a.invoice_id for a in await self.allocations.list_by_entry(entry.id)}
        await self.allocations.delete_by_entry(entry.id)
        await self.entries.delete(entry.id)

        if entry.reference_type == ReferenceType.DEBT_PAYMENT.value and entry.reference_id:
            await self._reopen_debt(entry.reference_id)
        return affected

    async def _reopen_debt(self, debt_id: str) -> None:
        remaining = await self.entries.list_by_reference(ReferenceType.DEBT_PAYMENT.value, debt_id)
        if remaining:
            return
        reopened = await self.entries.update_fields(debt_id, {"is_pending": True})
        if reopened is not None:
            logger.info("Re-opened debt %s after its settlement was deleted", debt_id)

    async def _purge_payment_entries(self, payment_id: str) -> Set[str]:
        affected: Set[str] = set()
        for entry in await self.entries.list_by_reference(ReferenceType.PAYMENT.value, payment_id):
            affected |= await self._purge_entry(entry)
        return affected

    async def _purge_sale(self, sale: Sale) -> Set[str]:
        """
        Delete a sale with its invoices, payments and their ledger rows.

        Returns invoices of other sales whose allocations were removed.
        """
        affected: Set[str] = set()
        invoices = await self.invoices.list_by_sale(sale.id)
        for invoice in invoices:
            await self.allocations.delete_by_invoice(invoice.id)

        for payment in await self.payments.list_by_sale(sale.id):
            affected |= await self._purge_payment_entries(payment.id)
        await self.payments.delete_many({"sale_id": sale.id})
        await self.invoices.delete_many({"sale_id": sale.id})
        await self.sales.delete(sale.id)

        return affected - {invoice.id for invoice in invoices}

    async def _refresh_invoices(self, invoice_ids: Iterable[str]) -> None:
        for invoice_id in invoice_ids:
            await self.status.refresh_invoice_status(invoice_id)

    # Public cascades

    async def delete_client(self, client_id: str) -> bool:
        client = await self.clients.get(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)

        sales = await self.sales.list_by_client(client_id)
        keys = [lock_key("client", client_id)]
        for sale in sales:
            keys += await self.sale_lock_keys(sale.id)

        async with entity_locks.hold(keys):
            sales = await self.sales.list_by_client(client_id)
            head = await self.heads.get_by_client(client_id)
            if head is not None:
                payment_ids = set()
                for sale in sales:
                    payment_ids |= {p.id for p in await self.payments.list_by_sale(sale.id)}
                foreign = [
                    e for e in await self.entries.list_by_account_head(head.id)
                    if not (e.reference_type == ReferenceType.PAYMENT.value
                            and e.reference_id in payment_ids)
                ]
                if foreign:
                    raise ConflictError(
                        f"Account head '{head.name}' still has {len(foreign)} cashbook "
                        f"entr{'y' if len(foreign) == 1 else 'ies'} not tied to this client's payments"
                    )

            async with transaction(self.db):
                affected: Set[str] = set()
                for sale in sales:
                    affected |= await self._purge_sale(sale)
                await self.projects.delete_by_client(client_id)
                await self.heads.delete_by_client(client_id)
                deleted = await self.clients.delete(client_id)
                await self._refresh_invoices(affected)

        logger.info("Deleted client %s with %d sale(s)", client_id, len(sales))
        return deleted

    async def delete_sale(self, sale_id: str) -> bool:
        if await self.sales.get(sale_id) is None:
            raise NotFoundError("Sale", sale_id)

        async with entity_locks.hold(await self.sale_lock_keys(sale_id)):
            sale = await self.sales.get(sale_id)
            if sale is None:
                raise NotFoundError("Sale", sale_id)
            async with transaction(self.db):
                affected = await self._purge_sale(sale)
                await self._refresh_invoices(affected)

        logger.info("Deleted sale %s", sale_id)
        return True

    async def delete_invoice(self, invoice_id: str) -> bool:
        invoice = await self.invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)

        async with entity_locks.hold([
            lock_key("sale", invoice.sale_id),
            lock_key("invoice", invoice_id),
        ]):
            payment_count = await self.payments.count({"sale_id": invoice.sale_id})
            if payment_count:
                raise ConflictError(
                    f"Invoice {invoice.invoice_number} has {payment_count} payment(s) "
                    f"recorded against its sale; delete them first"
                )

            async with transaction(self.db):
                await self.allocations.delete_by_invoice(invoice_id)
                deleted = await self.invoices.delete(invoice_id)
                sale = await self.sales.get(invoice.sale_id)
                if sale is not None:
                    await self.status.set_sale_status(sale, SaleStatus.LPO_RECEIVED.value)

        logger.info("Deleted invoice %s", invoice.invoice_number)
        return deleted

    async def delete_payment(self, payment_id: str) -> bool:
        payment = await self.payments.get(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)

        keys = [lock_key("sale", payment.sale_id)]
        for entry in await self.entries.list_by_reference(ReferenceType.PAYMENT.value, payment_id):
            keys += await self._entry_lock_keys(entry)

        async with entity_locks.hold(keys):
            async with transaction(self.db):
                affected = await self._purge_payment_entries(payment_id)
                deleted = await self.payments.delete(payment_id)
                await self._refresh_invoices(affected)
                await self.status.refresh_sale_status(payment.sale_id)

        logger.info("Deleted payment %s of sale %s", payment_id, payment.sale_id)
        return deleted

    async def delete_cashbook_entry(self, entry_id: str) -> bool:
        entry = await self.entries.get(entry_id)
        if entry is None:
            raise NotFoundError("Cashbook entry", entry_id)

        async with entity_locks.hold(await self._entry_lock_keys(entry)):
            entry = await self.entries.get(entry_id)
            if entry is None:
                raise NotFoundError("Cashbook entry", entry_id)
            await self._ensure_no_settlements(entry)

            async with transaction(self.db):
                affected = await self._purge_entry(entry)
                sale_id = None
                if entry.reference_type == ReferenceType.PAYMENT.value and entry.reference_id:
                    payment = await self.payments.get(entry.reference_id)
                    if payment is not None:
                        sale_id = payment.sale_id
                        await self.payments.delete(payment.id)
                await self._refresh_invoices(affected)
                if sale_id:
                    await self.status.refresh_sale_status(sale_id)

        logger.info("Deleted cashbook entry %s (%s)", entry_id, entry.transaction_type)
        return True

    async def delete_stock(self, stock_id: str) -> bool:
        if await self.stock.get(stock_id) is None:
            raise NotFoundError("Stock", stock_id)

        entries = await self.entries.list_by_reference(ReferenceType.STOCK.value, stock_id)
        keys = [lock_key("stock", stock_id)] + [lock_key("cashbook", e.id) for e in entries]
        async with entity_locks.hold(keys):
            entries = await self.entries.list_by_reference(ReferenceType.STOCK.value, stock_id)
            for entry in entries:
                await self._ensure_no_settlements(entry)
            async with transaction(self.db):
                for entry in entries:
                    await self._purge_entry(entry)
                deleted = await self.stock.delete(stock_id)

        logger.info("Deleted stock purchase %s", stock_id)
        return deleted
