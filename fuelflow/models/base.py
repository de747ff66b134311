from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Optional

from bson import ObjectId
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)

from fuelflow.utils.ledger_validation import LedgerValidationError
from fuelflow.utils.money import format_money, quantize_money, to_decimal


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stringify_id(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


def _parse_decimal(value: Any) -> Decimal:
    # pydantic only reports ValueError/AssertionError as validation errors
    try:
        return to_decimal(value, field="value")
    except LedgerValidationError as exc:
        raise ValueError(str(exc)) from exc


DocumentId = Annotated[str, BeforeValidator(_stringify_id)]

# Currency: parsed exactly, held at 2 places, stored and returned as "1234.50".
Money = Annotated[
    Decimal,
    BeforeValidator(_parse_decimal),
    AfterValidator(quantize_money),
    PlainSerializer(format_money, return_type=str),
]

# Quantities, unit prices and rates keep the precision they were entered with.
Quantity = Annotated[
    Decimal,
    BeforeValidator(_parse_decimal),
    PlainSerializer(str, return_type=str),
]


class MongoModel(BaseModel):
    """
    Base for stored documents.

    `_id` is an ObjectId in MongoDB and a hex string on the model; foreign
    keys are stored as hex strings.
    """
    id: Optional[DocumentId] = Field(default=None, alias="_id")
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        from_attributes=True
    )

    def to_document(self) -> dict:
        """Serialize for insertion (money as strings, enums as values, no _id)."""
        return self.model_dump(by_alias=True, exclude={"id"})
