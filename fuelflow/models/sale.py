"""
Sale model - one fuel delivery to a client.

Design principles:
- quantity, prices and VAT rate are the only inputs
- subtotal, vat_amount, total_amount, cogs, gross_profit are always derived
  from those four inputs together, never patched one at a time
- Status: Pending LPO -> LPO Received -> Invoiced -> Paid
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from fuelflow.models.base import DocumentId, Money, MongoModel, Quantity


class SaleStatus(str, Enum):
    PENDING_LPO = "Pending LPO"
    LPO_RECEIVED = "LPO Received"
    INVOICED = "Invoiced"
    PAID = "Paid"


class Sale(MongoModel):
    client_id: DocumentId
    project_id: Optional[DocumentId] = None
    sale_date: datetime

    # Inputs
    quantity_gallons: Quantity
    sale_price_per_gallon: Quantity
    purchase_price_per_gallon: Quantity
    vat_percentage: Quantity = Decimal("5.00")

    # LPO tracking
    lpo_number: Optional[str] = None
    lpo_received_date: Optional[datetime] = None
    lpo_due_date: Optional[datetime] = None
    invoice_date: Optional[datetime] = None
    sale_status: SaleStatus = SaleStatus.PENDING_LPO

    # Derived
    subtotal: Money = Field(default=Decimal("0.00"))
    vat_amount: Money = Field(default=Decimal("0.00"))
    total_amount: Money = Field(default=Decimal("0.00"))
    cogs: Money = Field(default=Decimal("0.00"))
    gross_profit: Money = Field(default=Decimal("0.00"))
