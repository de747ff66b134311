"""
Exact decimal helpers for currency.

Money never passes through binary floats:
- inputs are parsed with Decimal(str(value))
- outputs are quantized to 2 places with ROUND_HALF_UP
- amounts leave the service as fixed 2-decimal strings
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Union

from fuelflow.core.config import settings
from fuelflow.utils.ledger_validation import LedgerValidationError

NumberLike = Union[Decimal, int, float, str]

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: NumberLike, field: str = "amount") -> Decimal:
    """Parse a number-like value into a finite Decimal."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise LedgerValidationError(f"{field} must be a number, got {value!r}")
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise LedgerValidationError(f"{field} must be a number, got {value!r}")
    if not result.is_finite():
        raise LedgerValidationError(f"{field} must be a finite number, got {value!r}")
    return result


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: NumberLike) -> str:
    """Render an amount as a fixed 2-decimal string, e.g. '3675.00'."""
    return str(quantize_money(to_decimal(value)))


def format_amount(value: NumberLike) -> str:
    """Money with its currency for messages, e.g. '3675.00 AED'."""
    return f"{format_money(value)} {settings.CURRENCY}"


def sum_money(values: Iterable[NumberLike]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return quantize_money(total)


def is_settled(paid: Decimal, total: Decimal, tolerance: Decimal | None = None) -> bool:
    """True when the shortfall of `paid` against `total` is below the tolerance."""
    if tolerance is None:
        tolerance = settings.PAYMENT_TOLERANCE
    return total - paid < tolerance
