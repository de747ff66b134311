import logging
from datetime import datetime
from typing import Collection, List

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import transaction
from fuelflow.models.cashbook import ReferenceType
from fuelflow.models.invoice import Invoice, InvoiceStatus
from fuelflow.models.sale import Sale, SaleStatus
from fuelflow.repositories.cashbook_repo import AllocationRepository, CashbookRepository
from fuelflow.repositories.sale_repo import InvoiceRepository, PaymentRepository, SaleRepository
from fuelflow.schemas.invoice import InvoiceBalanceResponse
from fuelflow.services.allocation_service import AllocationService
from fuelflow.services.cascade_service import CascadeService
from fuelflow.services.status_service import StatusService
from fuelflow.utils.ledger_validation import ConflictError, NotFoundError, require_fields
from fuelflow.utils.locks import entity_locks, lock_key

logger = logging.getLogger(__name__)


class InvoiceService:
    """One invoice per sale; its amounts are snapshots of the sale at creation."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.invoices = InvoiceRepository(db)
        self.sales = SaleRepository(db)
        self.payments = PaymentRepository(db)
        self.entries = CashbookRepository(db)
        self.allocations = AllocationRepository(db)
        self.allocator = AllocationService(db)
        self.status = StatusService(db)
        self.cascade = CascadeService(db)

    async def _ensure_number_free(self, invoice_number: str) -> None:
        if await self.invoices.get_by_number(invoice_number) is not None:
            raise ConflictError(f"Invoice number {invoice_number} already exists")

    async def _ensure_not_invoiced(self, sale: Sale) -> None:
        existing = await self.invoices.list_by_sale(sale.id)
        if existing:
            raise ConflictError(
                f"Sale {sale.id} already has invoice {existing[0].invoice_number}"
            )

    async def _ensure_keys_held(self, sale: Sale, held: Collection[str]) -> None:
        # A payment recorded between collecting the keys and taking the locks
        # brings a cashbook entry this operation does not hold.
        for key in await self.cascade.sale_lock_keys(sale.id):
            if key not in held:
                raise ConflictError(f"Sale {sale.id} received a payment while being invoiced; retry")

    async def _allocate_prior_payments(self, sale: Sale, invoice: Invoice) -> None:
        """Link payments recorded before invoicing to the new invoice, oldest first."""
        pending = invoice.total_amount
        for payment in await self.payments.list_by_sale(sale.id):
            entries = await self.entries.list_by_reference(ReferenceType.PAYMENT.value, payment.id)
            for entry in entries:
                if pending <= 0:
                    return
                unallocated = entry.amount - await self.allocations.allocated_for_entry(entry.id)
                amount = min(unallocated, pending)
                if amount <= 0:
                    continue
                await self.allocator.apply_allocation(entry.id, invoice.id, amount)
                pending -= amount
                logger.info(
                    "Allocated %s of earlier payment %s to invoice %s",
                    amount, payment.id, invoice.invoice_number
                )

    async def _issue(self, sale: Sale, invoice_number: str, invoice_date: datetime) -> Invoice:
        """
        Insert the invoice, move the sale to Invoiced and link earlier payments.

        Caller holds the sale lock and the locks on its payment entries.
        """
        invoice = await self.invoices.insert(Invoice(
            sale_id=sale.id,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            lpo_number=sale.lpo_number,
            total_amount=sale.total_amount,
            vat_amount=sale.vat_amount,
            status=InvoiceStatus.GENERATED
        ))
        sale = await self.status.set_sale_status(sale, SaleStatus.INVOICED.value)
        await self._allocate_prior_payments(sale, invoice)
        await self.status.refresh_sale_status(sale.id)
        logger.info("Issued invoice %s for sale %s (%s)", invoice_number, sale.id, invoice.total_amount)
        return await self.invoices.get(invoice.id) or invoice

    async def create_invoice(self, sale_id: str, invoice_number: str, invoice_date: datetime) -> Invoice:
        require_fields({"sale_id": sale_id, "invoice_number": invoice_number}, ["sale_id", "invoice_number"])
        invoice_number = invoice_number.strip()

        keys = await self.cascade.sale_lock_keys(sale_id)
        async with entity_locks.hold(keys):
            sale = await self.sales.get(sale_id)
            if sale is None:
                raise NotFoundError("Sale", sale_id)
            await self._ensure_not_invoiced(sale)
            await self._ensure_number_free(invoice_number)
            await self._ensure_keys_held(sale, keys)
            async with transaction(self.db):
                return await self._issue(sale, invoice_number, invoice_date)

    async def create_invoice_for_lpo(
        self,
        lpo_number: str,
        invoice_number: str,
        invoice_date: datetime
    ) -> List[Invoice]:
        """
        Invoice every LPO Received sale on an LPO.

        A single sale takes invoice_number as is; several sales get
        "<invoice_number>-1", "<invoice_number>-2", ... in sale date order.
        """
        require_fields(
            {"lpo_number": lpo_number, "invoice_number": invoice_number},
            ["lpo_number", "invoice_number"]
        )
        invoice_number = invoice_number.strip()

        sales = await self.sales.list_by_lpo(lpo_number, SaleStatus.LPO_RECEIVED.value)
        if not sales:
            raise NotFoundError("LPO Received sales for LPO", lpo_number)

        keys: List[str] = []
        for sale in sales:
            keys += await self.cascade.sale_lock_keys(sale.id)

        async with entity_locks.hold(keys):
            sales = [
                s for s in await self.sales.list_by_lpo(lpo_number, SaleStatus.LPO_RECEIVED.value)
                if lock_key("sale", s.id) in keys
            ]
            if not sales:
                raise NotFoundError("LPO Received sales for LPO", lpo_number)
            if len(sales) == 1:
                numbers = [invoice_number]
            else:
                numbers = [f"{invoice_number}-{i}" for i in range(1, len(sales) + 1)]

            for sale, number in zip(sales, numbers):
                await self._ensure_not_invoiced(sale)
                await self._ensure_number_free(number)
                await self._ensure_keys_held(sale, keys)

            invoices = []
            async with transaction(self.db):
                for sale, number in zip(sales, numbers):
                    invoices.append(await self._issue(sale, number, invoice_date))

        logger.info("Invoiced %d sale(s) for LPO %s", len(invoices), lpo_number)
        return invoices

    async def get_invoice(self, invoice_id: str) -> Invoice:
        invoice = await self.invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    async def get_invoice_balance(self, invoice: Invoice) -> InvoiceBalanceResponse:
        allocated = await self.allocations.allocated_for_invoice(invoice.id)
        return InvoiceBalanceResponse(
            **invoice.model_dump(),
            allocated_amount=allocated,
            pending_amount=invoice.total_amount - allocated
        )

    async def list_invoices(self) -> List[InvoiceBalanceResponse]:
        return [await self.get_invoice_balance(inv) for inv in await self.invoices.list_invoices()]

    async def delete_invoice(self, invoice_id: str) -> bool:
        return await self.cascade.delete_invoice(invoice_id)
