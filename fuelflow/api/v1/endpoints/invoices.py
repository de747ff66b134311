from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.schemas.allocation import AllocationDetail
from fuelflow.schemas.invoice import (
    InvoiceBalanceResponse,
    InvoiceCreate,
    InvoiceForLpoCreate,
    InvoiceResponse,
)
from fuelflow.services.allocation_service import AllocationService
from fuelflow.services.invoice_service import InvoiceService

router = APIRouter()


@router.post("/", response_model=InvoiceResponse)
async def create_invoice(invoice_in: InvoiceCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    invoice = await InvoiceService(db).create_invoice(
        invoice_in.sale_id, invoice_in.invoice_number, invoice_in.invoice_date
    )
    return InvoiceResponse.model_validate(invoice)


@router.post("/lpo", response_model=List[InvoiceResponse])
async def create_invoice_for_lpo(invoice_in: InvoiceForLpoCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Invoice every LPO Received sale on one LPO"""
    invoices = await InvoiceService(db).create_invoice_for_lpo(
        invoice_in.lpo_number, invoice_in.invoice_number, invoice_in.invoice_date
    )
    return [InvoiceResponse.model_validate(i) for i in invoices]


@router.get("/", response_model=List[InvoiceBalanceResponse])
async def list_invoices(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await InvoiceService(db).list_invoices()


@router.get("/{invoice_id}", response_model=InvoiceBalanceResponse)
async def get_invoice(invoice_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    service = InvoiceService(db)
    invoice = await service.get_invoice(invoice_id)
    return await service.get_invoice_balance(invoice)


@router.get("/{invoice_id}/allocations", response_model=List[AllocationDetail])
async def get_invoice_allocations(invoice_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await AllocationService(db).get_allocations_by_invoice(invoice_id)


@router.delete("/{invoice_id}")
async def delete_invoice(invoice_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await InvoiceService(db).delete_invoice(invoice_id)
    return {"message": "Invoice deleted successfully"}
