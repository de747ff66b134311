from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.schemas.client import AccountHeadCreate, AccountHeadResponse
from fuelflow.schemas.cashbook import OutstandingBalanceResponse
from fuelflow.services.account_head_service import AccountHeadService
from fuelflow.services.cashbook_service import CashbookService

router = APIRouter()


@router.post("/", response_model=AccountHeadResponse)
async def create_account_head(head_in: AccountHeadCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    head = await AccountHeadService(db).create_account_head(
        head_in.name, head_in.type.value, head_in.client_id
    )
    return AccountHeadResponse.model_validate(head)


@router.get("/", response_model=List[AccountHeadResponse])
async def list_account_heads(db: AsyncIOMotorDatabase = Depends(get_db)):
    heads = await AccountHeadService(db).list_account_heads()
    return [AccountHeadResponse.model_validate(h) for h in heads]


@router.get("/{account_head_id}/outstanding", response_model=OutstandingBalanceResponse)
async def get_supplier_outstanding(account_head_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Pending outflows still owed under this account head"""
    outstanding = await CashbookService(db).get_supplier_outstanding_balance(account_head_id)
    return OutstandingBalanceResponse(outstanding=outstanding)
