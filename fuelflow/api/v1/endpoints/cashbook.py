from typing import List, Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.schemas.allocation import AllocationDetail
from fuelflow.schemas.cashbook import (
    CashBalanceResponse,
    CashbookEntryCreate,
    CashbookEntryListItem,
    CashbookEntryResponse,
    MarkDebtPaidRequest,
    OverdueClient,
    TransactionSummary,
)
from fuelflow.services.allocation_service import AllocationService
from fuelflow.services.cashbook_service import CashbookService
from fuelflow.services.debt_service import DebtService

router = APIRouter()


@router.post("/", response_model=CashbookEntryResponse)
async def create_entry(entry_in: CashbookEntryCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    entry = await CashbookService(db).create_entry(entry_in)
    return CashbookEntryResponse.model_validate(entry)


@router.get("/", response_model=List[CashbookEntryListItem])
async def list_entries(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await CashbookService(db).list_entries()


@router.get("/balance", response_model=CashBalanceResponse)
async def get_cash_balance(db: AsyncIOMotorDatabase = Depends(get_db)):
    """Settled inflows minus settled outflows"""
    return CashBalanceResponse(balance=await CashbookService(db).get_cash_balance())


@router.get("/summary", response_model=TransactionSummary)
async def get_transaction_summary(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await CashbookService(db).get_transaction_summary()


@router.get("/debts", response_model=List[CashbookEntryResponse])
async def get_pending_debts(db: AsyncIOMotorDatabase = Depends(get_db)):
    entries = await CashbookService(db).get_pending_debts()
    return [CashbookEntryResponse.model_validate(e) for e in entries]


@router.get("/overdue", response_model=List[OverdueClient])
async def get_overdue_client_invoices(days: Optional[int] = None, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await CashbookService(db).get_overdue_client_invoices(days)


@router.get("/{entry_id}", response_model=CashbookEntryResponse)
async def get_entry(entry_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    entry = await CashbookService(db).get_entry(entry_id)
    return CashbookEntryResponse.model_validate(entry)


@router.put("/{entry_id}", response_model=CashbookEntryResponse)
async def update_entry(
    entry_id: str,
    entry_in: CashbookEntryCreate,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    entry = await CashbookService(db).update_entry(entry_id, entry_in)
    return CashbookEntryResponse.model_validate(entry)


@router.delete("/{entry_id}")
async def delete_entry(entry_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await CashbookService(db).delete_entry(entry_id)
    return {"message": "Cashbook entry deleted successfully"}


@router.post("/{entry_id}/settle", response_model=CashbookEntryResponse)
async def mark_debt_as_paid(
    entry_id: str,
    request: MarkDebtPaidRequest,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Settle a pending entry; returns the settlement entry"""
    settlement = await DebtService(db).mark_debt_as_paid(
        entry_id, request.paid_amount, request.payment_method, request.payment_date
    )
    return CashbookEntryResponse.model_validate(settlement)


@router.get("/{entry_id}/allocations", response_model=List[AllocationDetail])
async def get_entry_allocations(entry_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await AllocationService(db).get_allocations_by_entry(entry_id)
