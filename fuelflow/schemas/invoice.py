from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fuelflow.models.base import Money
from fuelflow.models.invoice import InvoiceStatus


class InvoiceCreate(BaseModel):
    sale_id: str
    invoice_number: str
    invoice_date: datetime


class InvoiceForLpoCreate(BaseModel):
    lpo_number: str
    invoice_number: str
    invoice_date: datetime


class InvoiceResponse(BaseModel):
    id: str
    sale_id: str
    invoice_number: str
    invoice_date: datetime
    lpo_number: Optional[str] = None
    total_amount: Money
    vat_amount: Money
    status: InvoiceStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceBalanceResponse(InvoiceResponse):
    allocated_amount: Money = Field(default=Decimal("0.00"))
    pending_amount: Money = Field(default=Decimal("0.00"))
