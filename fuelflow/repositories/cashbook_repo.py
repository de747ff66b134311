"""
CashbookRepository - ledger rows and their invoice allocations.

Sums are computed in Python over Decimal values: amounts are stored as
fixed 2-decimal strings, which keeps them exact but not summable by $sum.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from fuelflow.db.mongo import current_session
from fuelflow.models.cashbook import CashbookEntry, CashbookPaymentAllocation
from fuelflow.repositories.base import MongoRepository
from fuelflow.utils.money import sum_money


class CashbookRepository(MongoRepository[CashbookEntry]):
    """Cashbook entry database operations."""

    collection_name = "cashbook"
    model = CashbookEntry

    async def list_entries(self) -> List[CashbookEntry]:
        return await self.find(sort=[("transaction_date", -1), ("created_at", -1)])

    async def list_pending(self) -> List[CashbookEntry]:
        return await self.find({"is_pending": True}, sort=[("transaction_date", -1)])

    async def list_by_reference(self, reference_type: str, reference_id: str) -> List[CashbookEntry]:
        return await self.find({
            "reference_type": reference_type,
            "reference_id": reference_id
        })

    async def list_by_account_head(self, account_head_id: str) -> List[CashbookEntry]:
        return await self.find(
            {"account_head_id": account_head_id},
            sort=[("transaction_date", -1)]
        )

    async def delete_by_reference(self, reference_type: str, reference_id: str) -> int:
        return await self.delete_many({
            "reference_type": reference_type,
            "reference_id": reference_id
        })

    async def total(self, is_inflow: Optional[bool] = None, is_pending: bool = False) -> Decimal:
        """Sum of amounts matching the direction (any when None) and pending flag."""
        query: Dict[str, object] = {"is_pending": is_pending}
        if is_inflow is not None:
            query["is_inflow"] = is_inflow
        docs = await self.collection.find(query, {"amount": 1}, session=current_session()).to_list(None)
        return sum_money(doc["amount"] for doc in docs)


class AllocationRepository(MongoRepository[CashbookPaymentAllocation]):
    """Cashbook payment allocation database operations."""

    collection_name = "cashbook_payment_allocations"
    model = CashbookPaymentAllocation

    async def list_by_entry(self, cashbook_entry_id: str) -> List[CashbookPaymentAllocation]:
        return await self.find(
            {"cashbook_entry_id": cashbook_entry_id},
            sort=[("created_at", -1)]
        )

    async def list_by_invoice(self, invoice_id: str) -> List[CashbookPaymentAllocation]:
        return await self.find(
            {"invoice_id": invoice_id},
            sort=[("created_at", -1)]
        )

    async def allocated_for_entry(self, cashbook_entry_id: str) -> Decimal:
        allocations = await self.list_by_entry(cashbook_entry_id)
        return sum_money(a.amount_allocated for a in allocations)

    async def allocated_for_invoice(self, invoice_id: str) -> Decimal:
        allocations = await self.list_by_invoice(invoice_id)
        return sum_money(a.amount_allocated for a in allocations)

    async def delete_by_entry(self, cashbook_entry_id: str) -> int:
        return await self.delete_many({"cashbook_entry_id": cashbook_entry_id})

    async def delete_by_invoice(self, invoice_id: str) -> int:
        return await self.delete_many({"invoice_id": invoice_id})
