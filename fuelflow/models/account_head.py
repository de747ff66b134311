"""
AccountHead model - named grouping tag for cashbook entries.

Not a chart of accounts: there is no debit/credit balancing per head.
Client heads carry an explicit client_id so renames never break the link.
"""

from enum import Enum
from typing import Optional

from fuelflow.models.base import DocumentId, MongoModel


class AccountHeadType(str, Enum):
    CLIENT = "Client"
    SUPPLIER = "Supplier"
    EXPENSE = "Expense"
    REVENUE = "Revenue"
    OTHER = "Other"


class AccountHead(MongoModel):
    name: str
    type: AccountHeadType
    client_id: Optional[DocumentId] = None
