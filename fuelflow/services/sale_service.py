import logging
from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.models.sale import Sale, SaleStatus
from fuelflow.repositories.client_repo import ClientRepository, ProjectRepository
from fuelflow.repositories.sale_repo import InvoiceRepository, PaymentRepository, SaleRepository
from fuelflow.schemas.sale import SaleCreate, SaleFinancialsRequest, SaleUpdate
from fuelflow.services.cascade_service import CascadeService
from fuelflow.services.status_service import INVOICE_DATE_STATUSES, StatusService, status_changes
from fuelflow.utils.financials import SaleFinancials, compute_sale_financials
from fuelflow.utils.ledger_validation import (
    ConflictError,
    LedgerValidationError,
    NotFoundError,
    require_choice,
)
from fuelflow.utils.locks import entity_locks, lock_key

logger = logging.getLogger(__name__)


class SaleService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.sales = SaleRepository(db)
        self.invoices = InvoiceRepository(db)
        self.payments = PaymentRepository(db)
        self.clients = ClientRepository(db)
        self.projects = ProjectRepository(db)
        self.status = StatusService(db)
        self.cascade = CascadeService(db)

    @staticmethod
    def compute_financials(request: SaleFinancialsRequest) -> SaleFinancials:
        return compute_sale_financials(
            request.quantity_gallons,
            request.sale_price_per_gallon,
            request.purchase_price_per_gallon,
            request.vat_percentage
        )

    async def _check_references(self, client_id: str, project_id: Optional[str]) -> None:
        if await self.clients.get(client_id) is None:
            raise NotFoundError("Client", client_id)
        if project_id:
            project = await self.projects.get(project_id)
            if project is None:
                raise NotFoundError("Project", project_id)
            if project.client_id != client_id:
                raise LedgerValidationError(
                    f"Project {project.name} does not belong to client {client_id}"
                )

    async def create_sale(self, sale_in: SaleCreate) -> Sale:
        await self._check_references(sale_in.client_id, sale_in.project_id)
        financials = self.compute_financials(sale_in)

        sale = Sale(**sale_in.model_dump(), **financials.as_dict())
        if sale.sale_status in INVOICE_DATE_STATUSES:
            sale.invoice_date = datetime.now(timezone.utc)

        sale = await self.sales.insert(sale)
        logger.info("Created sale %s: %s gal, total %s", sale.id, sale.quantity_gallons, sale.total_amount)
        return sale

    async def update_sale(self, sale_id: str, sale_in: SaleUpdate) -> Sale:
        """
        Replace a sale's inputs and recompute every derived amount.

        Once invoiced the sale total is frozen: an invoice snapshots it and
        allocations are capped by it.
        """
        async with entity_locks.hold([lock_key("sale", sale_id)]):
            sale = await self.get_sale(sale_id)
            await self._check_references(sale_in.client_id, sale_in.project_id)
            financials = self.compute_financials(sale_in)

            invoices = await self.invoices.list_by_sale(sale_id)
            if invoices and financials.total_amount != sale.total_amount:
                raise ConflictError(
                    f"Sale {sale_id} is invoiced as {invoices[0].invoice_number}; "
                    f"delete the invoice before changing its amounts"
                )

            updated = Sale(**{
                **sale.model_dump(),
                **sale_in.model_dump(exclude={"sale_status"}),
                **financials.as_dict(),
            })
            if sale_in.sale_status is not None and sale_in.sale_status != sale.sale_status:
                for field, value in status_changes(sale, sale_in.sale_status).items():
                    setattr(updated, field, value)
            await self.sales.replace(updated)

            if financials.total_amount != sale.total_amount and await self.payments.count({"sale_id": sale_id}):
                updated = await self.status.refresh_sale_status(sale_id)

        logger.info("Updated sale %s", sale_id)
        return updated

    async def update_sale_status(self, sale_id: str, sale_status: str) -> Sale:
        """Manual transition; any status may be set."""
        require_choice(sale_status, [s.value for s in SaleStatus], "sale_status")
        async with entity_locks.hold([lock_key("sale", sale_id)]):
            sale = await self.get_sale(sale_id)
            return await self.status.set_sale_status(sale, sale_status)

    async def get_sale(self, sale_id: str) -> Sale:
        sale = await self.sales.get(sale_id)
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        return sale

    async def list_sales(
        self,
        status: Optional[str] = None,
        client_id: Optional[str] = None
    ) -> List[Sale]:
        if client_id:
            sales = await self.sales.list_by_client(client_id)
            return [s for s in sales if status is None or s.sale_status == status]
        return await self.sales.list_sales(status)

    async def delete_sale(self, sale_id: str) -> bool:
        return await self.cascade.delete_sale(sale_id)
