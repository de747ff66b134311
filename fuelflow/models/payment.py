from datetime import datetime
from enum import Enum
from typing import Optional

from fuelflow.models.base import DocumentId, Money, MongoModel


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CHEQUE = "Cheque"
    BANK_TRANSFER = "Bank Transfer"


class Payment(MongoModel):
    """Client receipt against one sale. Mirrored by exactly one cashbook inflow."""
    sale_id: DocumentId
    payment_date: datetime
    amount_received: Money
    payment_method: PaymentMethod
    cheque_number: Optional[str] = None
