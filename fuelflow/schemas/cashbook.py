from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fuelflow.models.base import Money
from fuelflow.models.cashbook import AllocationStatus, ReferenceType, TransactionType


class CashbookEntryCreate(BaseModel):
    transaction_date: datetime
    transaction_type: TransactionType
    category: Optional[str] = None
    account_head_id: str
    amount: Money
    is_inflow: bool
    is_pending: bool = False
    description: str
    counterparty: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class CashbookEntryResponse(CashbookEntryCreate):
    id: str
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CashbookEntryListItem(CashbookEntryResponse):
    allocated_amount: Money = Field(default=Decimal("0.00"))
    allocation_status: Optional[AllocationStatus] = None


class CashBalanceResponse(BaseModel):
    balance: Money


class TransactionSummary(BaseModel):
    total_inflow: Money
    total_outflow: Money
    pending_debts: Money
    available_balance: Money


class MarkDebtPaidRequest(BaseModel):
    paid_amount: Money
    payment_method: str
    payment_date: datetime


class OutstandingBalanceResponse(BaseModel):
    outstanding: Money


class OverdueInvoice(BaseModel):
    invoice_id: str
    invoice_number: str
    invoice_date: datetime
    total_amount: Money
    pending_amount: Money
    days_outstanding: int


class OverdueClient(BaseModel):
    client_id: str
    client_name: str
    total_pending: Money
    invoices: List[OverdueInvoice]
