import logging
from datetime import datetime

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import transaction
from fuelflow.models.cashbook import CashbookEntry, ReferenceType, TransactionType
from fuelflow.repositories.cashbook_repo import CashbookRepository
from fuelflow.services.cashbook_service import CashbookService
from fuelflow.utils.ledger_validation import (
    InvalidStateError,
    NotFoundError,
    require_fields,
    require_positive,
)
from fuelflow.utils.locks import entity_locks, lock_key
from fuelflow.utils.money import NumberLike, to_decimal

logger = logging.getLogger(__name__)


class DebtService:
    """Closes pending cashbook entries with an offsetting settlement entry."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.entries = CashbookRepository(db)
        self.cashbook = CashbookService(db)

    async def mark_debt_as_paid(
        self,
        entry_id: str,
        paid_amount: NumberLike,
        payment_method: str,
        payment_date: datetime
    ) -> CashbookEntry:
        """
        Settle a pending entry.

        The settlement keeps the debt's direction and account head and takes
        the kind that settles the debt's kind. paid_amount is recorded as
        given, even when it differs from the debt.
        """
        amount = to_decimal(paid_amount, "paid_amount")
        require_positive(amount, "paid_amount")
        require_fields({"payment_method": payment_method}, ["payment_method"])

        async with entity_locks.hold([lock_key("cashbook", entry_id)]):
            debt = await self.entries.get(entry_id)
            if debt is None:
                raise NotFoundError("Cashbook entry", entry_id)
            if not debt.is_pending:
                raise InvalidStateError(f"Cashbook entry {entry_id} is not pending")

            if amount != debt.amount:
                logger.warning(
                    "Debt %s of %s settled with a payment of %s",
                    entry_id, debt.amount, amount
                )

            kind = TransactionType(debt.transaction_type).settlement_type(debt.is_inflow)
            settlement = CashbookEntry(
                transaction_date=payment_date,
                transaction_type=kind,
                category=debt.category,
                account_head_id=debt.account_head_id,
                amount=amount,
                is_inflow=debt.is_inflow,
                is_pending=False,
                description=f"Payment for: {debt.description}",
                counterparty=debt.counterparty,
                payment_method=payment_method,
                reference_type=ReferenceType.DEBT_PAYMENT,
                reference_id=debt.id
            )
            await self.cashbook.validate_entry(settlement)

            async with transaction(self.db):
                await self.entries.update_fields(entry_id, {"is_pending": False})
                settlement = await self.entries.insert(settlement)

        logger.info(
            "Settled debt %s with %s entry %s of %s",
            entry_id, settlement.transaction_type, settlement.id, amount
        )
        return settlement
