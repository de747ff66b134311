"""
Cashbook model - the flat company ledger.

Design principles:
- amount is always positive; direction lives only in is_inflow
- is_pending marks a debt/credit recorded before cash moved; pending rows
  are excluded from the realized balance
- every transaction kind declares the direction it must have
- allocations link inflow entries to the invoices they pay
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from fuelflow.models.base import DocumentId, Money, MongoModel


class TransactionType(str, Enum):
    SALE_REVENUE = "Sale Revenue"
    INVESTMENT = "Investment"
    OTHER_INCOME = "Other Income"
    DEBT_COLLECTION = "Debt Collection"
    STOCK_PURCHASE = "Stock Purchase"
    STOCK_PAYMENT = "Stock Payment"
    SUPPLIER_PAYMENT = "Supplier Payment"
    EXPENSE = "Expense"
    WITHDRAWAL = "Withdrawal"
    OTHER = "Other"

    @property
    def expected_inflow(self) -> Optional[bool]:
        """True for inflow kinds, False for outflow kinds, None when either is fine."""
        return _EXPECTED_INFLOW[self]

    def settlement_type(self, is_inflow: bool) -> "TransactionType":
        """Kind of the entry that settles a pending entry of this kind."""
        if self is TransactionType.STOCK_PURCHASE:
            return TransactionType.STOCK_PAYMENT
        if is_inflow:
            return TransactionType.DEBT_COLLECTION
        return TransactionType.SUPPLIER_PAYMENT


_EXPECTED_INFLOW = {
    TransactionType.SALE_REVENUE: True,
    TransactionType.INVESTMENT: True,
    TransactionType.OTHER_INCOME: True,
    TransactionType.DEBT_COLLECTION: True,
    TransactionType.STOCK_PURCHASE: False,
    TransactionType.STOCK_PAYMENT: False,
    TransactionType.SUPPLIER_PAYMENT: False,
    TransactionType.EXPENSE: False,
    TransactionType.WITHDRAWAL: False,
    TransactionType.OTHER: None,
}


class ReferenceType(str, Enum):
    PAYMENT = "payment"
    STOCK = "stock"
    DEBT_PAYMENT = "debt_payment"
    MANUAL = "manual"


class AllocationStatus(str, Enum):
    UNALLOCATED = "Unallocated"
    PARTIALLY_ALLOCATED = "Partially Allocated"
    FULLY_ALLOCATED = "Fully Allocated"


class CashbookEntry(MongoModel):
    """
    One money movement.

    Invariants:
    - amount > 0
    - sum of allocations referencing this entry <= amount
    - entries with a reference_type other than manual are owned by the
      workflow that created them and are not edited directly
    """
    transaction_date: datetime
    transaction_type: TransactionType
    category: Optional[str] = None
    account_head_id: DocumentId
    amount: Money
    is_inflow: bool
    is_pending: bool = False
    description: str = ""
    counterparty: Optional[str] = None
    payment_method: Optional[str] = None
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[DocumentId] = None
    notes: Optional[str] = None

    @property
    def is_linked(self) -> bool:
        return self.reference_type not in (None, ReferenceType.MANUAL)


class CashbookPaymentAllocation(MongoModel):
    """Part of a cashbook receipt assigned to one invoice."""
    cashbook_entry_id: DocumentId
    invoice_id: DocumentId
    amount_allocated: Money
