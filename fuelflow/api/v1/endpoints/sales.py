from typing import List, Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.models.sale import SaleStatus
from fuelflow.schemas.cashbook import OutstandingBalanceResponse
from fuelflow.schemas.sale import (
    SaleCreate,
    SaleFinancialsRequest,
    SaleFinancialsResponse,
    SaleResponse,
    SaleStatusUpdate,
    SaleUpdate,
)
from fuelflow.services.cashbook_service import CashbookService
from fuelflow.services.sale_service import SaleService

router = APIRouter()


@router.post("/financials", response_model=SaleFinancialsResponse)
async def compute_financials(request: SaleFinancialsRequest):
    """Preview the derived amounts of a sale without saving it"""
    financials = SaleService.compute_financials(request)
    return SaleFinancialsResponse(**financials.as_dict())


@router.post("/", response_model=SaleResponse)
async def create_sale(sale_in: SaleCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    sale = await SaleService(db).create_sale(sale_in)
    return SaleResponse.model_validate(sale)


@router.get("/", response_model=List[SaleResponse])
async def list_sales(
    status: Optional[SaleStatus] = None,
    client_id: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    sales = await SaleService(db).list_sales(status.value if status else None, client_id)
    return [SaleResponse.model_validate(s) for s in sales]


@router.get("/outstanding/{client_id}", response_model=OutstandingBalanceResponse)
async def get_client_outstanding(client_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Unallocated remainder of a client's invoices"""
    outstanding = await CashbookService(db).get_client_outstanding_balance(client_id)
    return OutstandingBalanceResponse(outstanding=outstanding)


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(sale_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    sale = await SaleService(db).get_sale(sale_id)
    return SaleResponse.model_validate(sale)


@router.put("/{sale_id}", response_model=SaleResponse)
async def update_sale(sale_id: str, sale_in: SaleUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    sale = await SaleService(db).update_sale(sale_id, sale_in)
    return SaleResponse.model_validate(sale)


@router.patch("/{sale_id}/status", response_model=SaleResponse)
async def update_sale_status(
    sale_id: str,
    status_in: SaleStatusUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    sale = await SaleService(db).update_sale_status(sale_id, status_in.sale_status.value)
    return SaleResponse.model_validate(sale)


@router.delete("/{sale_id}")
async def delete_sale(sale_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Delete a sale with its invoices, payments and their ledger rows"""
    await SaleService(db).delete_sale(sale_id)
    return {"message": "Sale deleted successfully"}
