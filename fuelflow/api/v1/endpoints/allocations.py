from typing import List, Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.schemas.allocation import AllocationCreate, AllocationResponse, PendingInvoice
from fuelflow.services.allocation_service import AllocationService

router = APIRouter()


@router.post("/", response_model=AllocationResponse)
async def create_allocation(allocation_in: AllocationCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Allocate part of a cashbook receipt to an invoice"""
    allocation = await AllocationService(db).create_allocation(
        allocation_in.cashbook_entry_id,
        allocation_in.invoice_id,
        allocation_in.amount_allocated
    )
    return AllocationResponse.model_validate(allocation)


@router.get("/pending-invoices", response_model=List[PendingInvoice])
async def get_pending_invoices(
    account_head_id: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await AllocationService(db).get_pending_invoices_for_allocation(account_head_id)
