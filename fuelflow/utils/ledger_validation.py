"""Ledger exceptions and field validation helpers."""
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional


class LedgerError(Exception):
    """Base class for business-rule failures raised by the ledger core."""
    pass


class LedgerValidationError(LedgerError):
    """Missing or malformed field, non-positive amount, unknown account head."""
    pass


class NotFoundError(LedgerError):
    """A referenced client, sale, invoice, payment or entry does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class OverAllocationError(LedgerError):
    """An allocation would exceed the entry amount or the invoice total."""

    def __init__(self, message: str, remaining: Decimal):
        self.remaining = remaining
        super().__init__(message)


class ConflictError(LedgerError):
    """The operation clashes with existing dependent records."""
    pass


class InvalidStateError(LedgerError):
    """The record is not in a state that allows the operation."""
    pass


def require_fields(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    """
    Ensure every named field is present and not blank.

    Raises LedgerValidationError listing all missing fields at once.
    """
    missing = []
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    if missing:
        raise LedgerValidationError(f"Missing required fields: {', '.join(missing)}")


def require_positive(value: Decimal, field: str = "amount") -> None:
    if value <= 0:
        raise LedgerValidationError(f"{field} must be a positive number, got {value}")


def require_non_negative(value: Decimal, field: str) -> None:
    if value < 0:
        raise LedgerValidationError(f"{field} must not be negative, got {value}")


def require_choice(value: Optional[str], choices: Iterable[str], field: str) -> None:
    allowed = list(choices)
    if value not in allowed:
        raise LedgerValidationError(
            f"Invalid {field} '{value}'. Allowed: {', '.join(allowed)}"
        )
