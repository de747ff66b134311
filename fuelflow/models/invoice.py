from datetime import datetime
from enum import Enum
from typing import Optional

from fuelflow.models.base import DocumentId, Money, MongoModel


class InvoiceStatus(str, Enum):
    GENERATED = "Generated"
    PAID = "Paid"


class Invoice(MongoModel):
    """
    Invoice for exactly one sale.

    total_amount and vat_amount are snapshots of the sale at creation time.
    status is owned by the allocation engine: Paid iff allocations cover the
    total.
    """
    sale_id: DocumentId
    invoice_number: str
    invoice_date: datetime
    lpo_number: Optional[str] = None
    total_amount: Money
    vat_amount: Money
    status: InvoiceStatus = InvoiceStatus.GENERATED
