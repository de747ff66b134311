from typing import List, Optional

from fuelflow.models.invoice import Invoice, InvoiceStatus
from fuelflow.models.payment import Payment
from fuelflow.models.sale import Sale
from fuelflow.models.stock import Stock
from fuelflow.repositories.base import MongoRepository


class SaleRepository(MongoRepository[Sale]):
    """Sale database operations."""

    collection_name = "sales"
    model = Sale

    async def list_sales(self, status: Optional[str] = None) -> List[Sale]:
        query = {"sale_status": status} if status else {}
        return await self.find(query, sort=[("sale_date", -1)])

    async def list_by_client(self, client_id: str) -> List[Sale]:
        return await self.find({"client_id": client_id}, sort=[("sale_date", -1)])

    async def list_by_lpo(self, lpo_number: str, status: str) -> List[Sale]:
        return await self.find(
            {"lpo_number": lpo_number, "sale_status": status},
            sort=[("sale_date", 1)]
        )

    async def count_by_project(self, project_id: str) -> int:
        return await self.count({"project_id": project_id})


class InvoiceRepository(MongoRepository[Invoice]):
    """Invoice database operations."""

    collection_name = "invoices"
    model = Invoice

    async def list_invoices(self) -> List[Invoice]:
        return await self.find(sort=[("created_at", -1)])

    async def list_by_sale(self, sale_id: str) -> List[Invoice]:
        return await self.find({"sale_id": sale_id}, sort=[("created_at", 1)])

    async def list_by_sales(self, sale_ids: List[str]) -> List[Invoice]:
        return await self.find({"sale_id": {"$in": sale_ids}}, sort=[("invoice_date", 1)])

    async def list_generated(self) -> List[Invoice]:
        return await self.find(
            {"status": InvoiceStatus.GENERATED.value},
            sort=[("invoice_date", 1)]
        )

    async def get_by_number(self, invoice_number: str) -> Optional[Invoice]:
        return await self.find_one({"invoice_number": invoice_number})


class PaymentRepository(MongoRepository[Payment]):
    """Payment database operations."""

    collection_name = "payments"
    model = Payment

    async def list_payments(self) -> List[Payment]:
        return await self.find(sort=[("created_at", -1)])

    async def list_by_sale(self, sale_id: str) -> List[Payment]:
        return await self.find({"sale_id": sale_id}, sort=[("payment_date", 1)])


class StockRepository(MongoRepository[Stock]):
    """Stock purchase database operations."""

    collection_name = "stock"
    model = Stock

    async def list_stock(self) -> List[Stock]:
        return await self.find(sort=[("purchase_date", -1)])
