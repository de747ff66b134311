import logging
from decimal import Decimal
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import transaction
from fuelflow.models.cashbook import CashbookEntry, ReferenceType, TransactionType
from fuelflow.models.stock import Stock
from fuelflow.repositories.cashbook_repo import CashbookRepository
from fuelflow.repositories.client_repo import AccountHeadRepository
from fuelflow.repositories.sale_repo import SaleRepository, StockRepository
from fuelflow.schemas.stock import StockCreate
from fuelflow.services.cascade_service import CascadeService
from fuelflow.services.cashbook_service import CashbookService
from fuelflow.utils.financials import compute_stock_cost
from fuelflow.utils.ledger_validation import ConflictError, LedgerValidationError, NotFoundError
from fuelflow.utils.locks import entity_locks, lock_key
from fuelflow.utils.money import ZERO, to_decimal

logger = logging.getLogger(__name__)


class StockService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.stock = StockRepository(db)
        self.sales = SaleRepository(db)
        self.entries = CashbookRepository(db)
        self.heads = AccountHeadRepository(db)
        self.cashbook = CashbookService(db)
        self.cascade = CascadeService(db)

    def _purchase_entry(self, stock: Stock) -> CashbookEntry:
        return CashbookEntry(
            transaction_date=stock.purchase_date,
            transaction_type=TransactionType.STOCK_PURCHASE,
            category="Stock Purchase",
            account_head_id=stock.supplier_account_head_id,
            amount=stock.total_cost,
            is_inflow=False,
            is_pending=stock.on_credit,
            description=f"Purchase of {stock.quantity_gallons} gallons",
            reference_type=ReferenceType.STOCK,
            reference_id=stock.id
        )

    async def _build(self, stock_in: StockCreate) -> Stock:
        cost = compute_stock_cost(
            stock_in.quantity_gallons,
            stock_in.purchase_price_per_gallon,
            stock_in.vat_percentage
        )
        if stock_in.supplier_account_head_id:
            if await self.heads.get(stock_in.supplier_account_head_id) is None:
                raise LedgerValidationError(
                    f"Unknown account head: {stock_in.supplier_account_head_id}"
                )
        elif stock_in.on_credit:
            raise LedgerValidationError("A supplier account head is required for credit purchases")
        return Stock(
            **stock_in.model_dump(),
            vat_amount=cost.vat_amount,
            total_cost=cost.total_cost
        )

    async def create_stock(self, stock_in: StockCreate) -> Stock:
        """Record a purchase; with a supplier it is mirrored by a Stock Purchase outflow."""
        stock = await self._build(stock_in)
        async with transaction(self.db):
            stock = await self.stock.insert(stock)
            if stock.supplier_account_head_id and stock.total_cost > ZERO:
                await self.cashbook.record_entry(self._purchase_entry(stock))
        logger.info("Recorded stock purchase %s: %s gal", stock.id, stock.quantity_gallons)
        return stock

    async def get_stock(self, stock_id: str) -> Stock:
        stock = await self.stock.get(stock_id)
        if stock is None:
            raise NotFoundError("Stock", stock_id)
        return stock

    async def list_stock(self) -> List[Stock]:
        return await self.stock.list_stock()

    async def update_stock(self, stock_id: str, stock_in: StockCreate) -> Stock:
        """
        Replace a purchase and its mirrored cashbook entry.

        Once the credit has been paid the purchase is locked.
        """
        existing = await self.get_stock(stock_id)
        linked = await self.entries.list_by_reference(ReferenceType.STOCK.value, stock_id)
        keys = [lock_key("stock", stock_id)] + [lock_key("cashbook", e.id) for e in linked]

        async with entity_locks.hold(keys):
            linked = await self.entries.list_by_reference(ReferenceType.STOCK.value, stock_id)
            for entry in linked:
                if await self.entries.list_by_reference(ReferenceType.DEBT_PAYMENT.value, entry.id):
                    raise ConflictError(
                        f"Stock purchase {stock_id} has already been paid and cannot be changed"
                    )

            stock = await self._build(stock_in)
            stock.id = existing.id
            stock.created_at = existing.created_at

            async with transaction(self.db):
                for entry in linked:
                    await self.entries.delete(entry.id)
                await self.stock.replace(stock)
                if stock.supplier_account_head_id and stock.total_cost > ZERO:
                    await self.cashbook.record_entry(self._purchase_entry(stock))

        logger.info("Updated stock purchase %s", stock_id)
        return stock

    async def delete_stock(self, stock_id: str) -> bool:
        return await self.cascade.delete_stock(stock_id)

    async def get_current_stock_level(self) -> Decimal:
        """Gallons purchased minus gallons sold."""
        purchased = sum((to_decimal(s.quantity_gallons) for s in await self.stock.list_stock()), Decimal("0"))
        sold = sum((to_decimal(s.quantity_gallons) for s in await self.sales.list_sales()), Decimal("0"))
        return purchased - sold
