from typing import List, Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.schemas.payment import PaymentCreate, PaymentResponse
from fuelflow.services.payment_service import PaymentService

router = APIRouter()


@router.post("/", response_model=PaymentResponse)
async def create_payment(payment_in: PaymentCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Record a client payment, its cashbook inflow and, for an invoiced sale, its allocation"""
    payment = await PaymentService(db).create_payment(
        payment_in.sale_id,
        payment_in.amount_received,
        payment_in.payment_date,
        payment_in.payment_method.value,
        payment_in.cheque_number
    )
    return PaymentResponse.model_validate(payment)


@router.get("/", response_model=List[PaymentResponse])
async def list_payments(sale_id: Optional[str] = None, db: AsyncIOMotorDatabase = Depends(get_db)):
    payments = await PaymentService(db).list_payments(sale_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(payment_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    payment = await PaymentService(db).get_payment(payment_id)
    return PaymentResponse.model_validate(payment)


@router.delete("/{payment_id}")
async def delete_payment(payment_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await PaymentService(db).delete_payment(payment_id)
    return {"message": "Payment deleted successfully"}
