from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from fuelflow.models.base import Money
from fuelflow.models.invoice import InvoiceStatus


class AllocationCreate(BaseModel):
    cashbook_entry_id: str
    invoice_id: str
    amount_allocated: Money


class AllocationResponse(AllocationCreate):
    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AllocationDetail(AllocationResponse):
    """Allocation joined with the invoice it pays."""
    invoice_number: Optional[str] = None
    invoice_status: Optional[InvoiceStatus] = None
    transaction_date: Optional[datetime] = None


class PendingInvoice(BaseModel):
    invoice_id: str
    invoice_number: str
    invoice_date: datetime
    sale_id: str
    lpo_number: Optional[str] = None
    client_id: str
    client_name: str
    total_amount: Money
    allocated_amount: Money
    pending_amount: Money
