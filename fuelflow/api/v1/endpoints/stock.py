from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.schemas.stock import StockCreate, StockLevelResponse, StockResponse
from fuelflow.services.stock_service import StockService

router = APIRouter()


@router.post("/", response_model=StockResponse)
async def create_stock(stock_in: StockCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    stock = await StockService(db).create_stock(stock_in)
    return StockResponse.model_validate(stock)


@router.get("/", response_model=List[StockResponse])
async def list_stock(db: AsyncIOMotorDatabase = Depends(get_db)):
    return [StockResponse.model_validate(s) for s in await StockService(db).list_stock()]


@router.get("/level", response_model=StockLevelResponse)
async def get_stock_level(db: AsyncIOMotorDatabase = Depends(get_db)):
    """Gallons purchased minus gallons sold"""
    return StockLevelResponse(quantity_gallons=await StockService(db).get_current_stock_level())


@router.put("/{stock_id}", response_model=StockResponse)
async def update_stock(stock_id: str, stock_in: StockCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    stock = await StockService(db).update_stock(stock_id, stock_in)
    return StockResponse.model_validate(stock)


@router.delete("/{stock_id}")
async def delete_stock(stock_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await StockService(db).delete_stock(stock_id)
    return {"message": "Stock purchase deleted successfully"}
