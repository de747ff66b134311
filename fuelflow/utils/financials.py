"""
Sale and stock financial calculations.

Rounding policy: every derived amount is rounded half-up to 2 places, and
totals are built from the already rounded parts so that
total_amount == subtotal + vat_amount holds exactly.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from fuelflow.core.config import settings
from fuelflow.utils.ledger_validation import (
    LedgerValidationError,
    require_non_negative,
    require_positive,
)
from fuelflow.utils.money import HUNDRED, NumberLike, format_money, quantize_money, to_decimal


@dataclass(frozen=True)
class SaleFinancials:
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    cogs: Decimal
    gross_profit: Decimal

    def as_dict(self) -> Dict[str, Decimal]:
        return {
            "subtotal": self.subtotal,
            "vat_amount": self.vat_amount,
            "total_amount": self.total_amount,
            "cogs": self.cogs,
            "gross_profit": self.gross_profit,
        }

    def as_strings(self) -> Dict[str, str]:
        return {key: format_money(value) for key, value in self.as_dict().items()}


@dataclass(frozen=True)
class StockCost:
    subtotal: Decimal
    vat_amount: Decimal
    total_cost: Decimal


def _vat_rate(vat_percentage: Optional[NumberLike]) -> Decimal:
    if vat_percentage is None:
        vat_percentage = settings.DEFAULT_VAT_PERCENTAGE
    rate = to_decimal(vat_percentage, "vat_percentage")
    require_non_negative(rate, "vat_percentage")
    if rate > HUNDRED:
        raise LedgerValidationError(f"vat_percentage must be at most 100, got {rate}")
    return rate


def compute_sale_financials(
    quantity_gallons: NumberLike,
    sale_price_per_gallon: NumberLike,
    purchase_price_per_gallon: NumberLike,
    vat_percentage: Optional[NumberLike] = None,
) -> SaleFinancials:
    """
    Derive the five monetary fields of a sale from its four inputs.

    Always recomputes from scratch; calling it twice with the same inputs
    yields identical results.
    """
    quantity = to_decimal(quantity_gallons, "quantity_gallons")
    sale_price = to_decimal(sale_price_per_gallon, "sale_price_per_gallon")
    purchase_price = to_decimal(purchase_price_per_gallon, "purchase_price_per_gallon")
    rate = _vat_rate(vat_percentage)

    require_positive(quantity, "quantity_gallons")
    require_positive(sale_price, "sale_price_per_gallon")
    require_non_negative(purchase_price, "purchase_price_per_gallon")

    subtotal = quantize_money(quantity * sale_price)
    # Every sale invoices to a positive total.
    if subtotal <= 0:
        raise LedgerValidationError(
            f"Sale subtotal rounds to {format_money(subtotal)}; it must be at least 0.01"
        )
    vat_amount = quantize_money(subtotal * rate / HUNDRED)
    cogs = quantize_money(quantity * purchase_price)

    return SaleFinancials(
        subtotal=subtotal,
        vat_amount=vat_amount,
        total_amount=subtotal + vat_amount,
        cogs=cogs,
        gross_profit=subtotal - cogs,
    )


def compute_stock_cost(
    quantity_gallons: NumberLike,
    purchase_price_per_gallon: NumberLike,
    vat_percentage: Optional[NumberLike] = None,
) -> StockCost:
    quantity = to_decimal(quantity_gallons, "quantity_gallons")
    price = to_decimal(purchase_price_per_gallon, "purchase_price_per_gallon")
    rate = _vat_rate(vat_percentage)

    require_positive(quantity, "quantity_gallons")
    require_non_negative(price, "purchase_price_per_gallon")

    subtotal = quantize_money(quantity * price)
    vat_amount = quantize_money(subtotal * rate / HUNDRED)
    return StockCost(subtotal=subtotal, vat_amount=vat_amount, total_cost=subtotal + vat_amount)
