from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from fuelflow.models.base import Money, Quantity


class StockCreate(BaseModel):
    purchase_date: datetime
    quantity_gallons: Quantity
    purchase_price_per_gallon: Quantity
    vat_percentage: Quantity = Decimal("5.00")
    supplier_account_head_id: Optional[str] = None
    on_credit: bool = False


class StockResponse(StockCreate):
    id: str
    vat_amount: Money
    total_cost: Money
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockLevelResponse(BaseModel):
    quantity_gallons: Quantity
