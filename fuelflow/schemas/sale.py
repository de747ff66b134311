from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from fuelflow.models.base import Money, Quantity
from fuelflow.models.sale import SaleStatus


class SaleFinancialsRequest(BaseModel):
    quantity_gallons: Quantity
    sale_price_per_gallon: Quantity
    purchase_price_per_gallon: Quantity
    vat_percentage: Quantity = Decimal("5.00")


class SaleFinancialsResponse(BaseModel):
    subtotal: Money
    vat_amount: Money
    total_amount: Money
    cogs: Money
    gross_profit: Money


class SaleBase(SaleFinancialsRequest):
    client_id: str
    project_id: Optional[str] = None
    sale_date: datetime
    lpo_number: Optional[str] = None
    lpo_received_date: Optional[datetime] = None
    lpo_due_date: Optional[datetime] = None


class SaleCreate(SaleBase):
    sale_status: SaleStatus = SaleStatus.PENDING_LPO


class SaleUpdate(SaleBase):
    """Full replacement of a sale's inputs; derived amounts are recomputed."""
    sale_status: Optional[SaleStatus] = None


class SaleStatusUpdate(BaseModel):
    sale_status: SaleStatus


class SaleResponse(SaleBase, SaleFinancialsResponse):
    id: str
    sale_status: SaleStatus
    invoice_date: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
