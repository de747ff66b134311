from decimal import Decimal

import pytest

from fuelflow.models.cashbook import TransactionType
from fuelflow.repositories.cashbook_repo import CashbookRepository
from fuelflow.services.cascade_service import CascadeService
from fuelflow.services.cashbook_service import CashbookService
from fuelflow.services.debt_service import DebtService
from fuelflow.utils.ledger_validation import (
    ConflictError,
    InvalidStateError,
    LedgerValidationError,
    NotFoundError,
)

from tests.conftest import JAN_15


@pytest.mark.asyncio
async def test_settling_stock_purchase_debt(test_db, make_entry, supplier_head):
    debt = await make_entry(
        "14250.00",
        TransactionType.STOCK_PURCHASE,
        is_inflow=False,
        is_pending=True,
        account_head_id=supplier_head.id,
        description="5000 gal diesel on credit"
    )
    settlement = await DebtService(test_db).mark_debt_as_paid(debt.id, "14250.00", "Bank Transfer", JAN_15)

    original = await CashbookRepository(test_db).get(debt.id)
    assert original.is_pending is False
    assert settlement.transaction_type == "Stock Payment"
    assert settlement.is_inflow is False
    assert settlement.is_pending is False
    assert settlement.amount == Decimal("14250.00")
    assert settlement.account_head_id == supplier_head.id
    assert settlement.reference_type == "debt_payment"
    assert settlement.reference_id == debt.id
    assert await CashbookService(test_db).get_pending_debts() == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind, is_inflow, expected",
    [
        (TransactionType.EXPENSE, False, "Supplier Payment"),
        (TransactionType.OTHER, False, "Supplier Payment"),
        (TransactionType.INVESTMENT, True, "Debt Collection"),
        (TransactionType.OTHER, True, "Debt Collection"),
    ]
)
async def test_settlement_kind_follows_debt(test_db, make_entry, kind, is_inflow, expected):
    debt = await make_entry("100.00", kind, is_inflow=is_inflow, is_pending=True)

    settlement = await DebtService(test_db).mark_debt_as_paid(debt.id, "100.00", "Cash", JAN_15)

    assert settlement.transaction_type == expected
    assert settlement.is_inflow is is_inflow


@pytest.mark.asyncio
async def test_settling_twice_is_invalid(test_db, make_entry):
    debt = await make_entry("100.00", TransactionType.OTHER_INCOME, is_pending=True)
    service = DebtService(test_db)
    await service.mark_debt_as_paid(debt.id, "100.00", "Cash", JAN_15)

    with pytest.raises(InvalidStateError):
        await service.mark_debt_as_paid(debt.id, "100.00", "Cash", JAN_15)


@pytest.mark.asyncio
async def test_rejects_bad_requests(test_db, make_entry):
    debt = await make_entry("100.00", TransactionType.OTHER_INCOME, is_pending=True)
    service = DebtService(test_db)

    with pytest.raises(LedgerValidationError):
        await service.mark_debt_as_paid(debt.id, "0", "Cash", JAN_15)
    with pytest.raises(NotFoundError):
        await service.mark_debt_as_paid("65a000000000000000000000", "10", "Cash", JAN_15)
    assert (await CashbookRepository(test_db).get(debt.id)).is_pending is True


@pytest.mark.asyncio
async def test_paid_amount_may_differ_from_debt(test_db, make_entry, caplog):
    debt = await make_entry("100.00", TransactionType.OTHER_INCOME, is_pending=True)

    settlement = await DebtService(test_db).mark_debt_as_paid(debt.id, "90.00", "Cash", JAN_15)

    assert settlement.amount == Decimal("90.00")
    assert "settled with a payment of 90.00" in caplog.text


@pytest.mark.asyncio
async def test_deleting_settlement_reopens_debt(test_db, make_entry):
    debt = await make_entry("100.00", TransactionType.OTHER_INCOME, is_pending=True)
    settlement = await DebtService(test_db).mark_debt_as_paid(debt.id, "100.00", "Cash", JAN_15)
    cascade = CascadeService(test_db)

    with pytest.raises(ConflictError):
        await cascade.delete_cashbook_entry(debt.id)

    await cascade.delete_cashbook_entry(settlement.id)

    assert (await CashbookRepository(test_db).get(debt.id)).is_pending is True
    assert await cascade.delete_cashbook_entry(debt.id) is True
