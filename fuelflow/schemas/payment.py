from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from fuelflow.models.base import Money
from fuelflow.models.payment import PaymentMethod


class PaymentCreate(BaseModel):
    sale_id: str
    amount_received: Money
    payment_date: datetime
    payment_method: PaymentMethod
    cheque_number: Optional[str] = None


class PaymentResponse(PaymentCreate):
    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
