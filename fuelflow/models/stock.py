from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from fuelflow.models.base import DocumentId, Money, MongoModel, Quantity


class Stock(MongoModel):
    """
    Fuel bought from a supplier.

    When a supplier account head is set, the purchase is mirrored by one
    outflow cashbook entry; on_credit purchases leave that entry pending.
    """
    purchase_date: datetime
    quantity_gallons: Quantity
    purchase_price_per_gallon: Quantity
    vat_percentage: Quantity = Decimal("5.00")
    vat_amount: Money = Field(default=Decimal("0.00"))
    total_cost: Money = Field(default=Decimal("0.00"))
    supplier_account_head_id: Optional[DocumentId] = None
    on_credit: bool = False
