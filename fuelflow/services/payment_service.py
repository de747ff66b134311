import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import transaction
from fuelflow.models.cashbook import CashbookEntry, ReferenceType, TransactionType
from fuelflow.models.payment import Payment, PaymentMethod
from fuelflow.repositories.cashbook_repo import AllocationRepository, CashbookRepository
from fuelflow.repositories.client_repo import ClientRepository
from fuelflow.repositories.sale_repo import InvoiceRepository, PaymentRepository, SaleRepository
from fuelflow.services.account_head_service import AccountHeadService
from fuelflow.services.allocation_service import AllocationService
from fuelflow.services.cascade_service import CascadeService
from fuelflow.services.status_service import StatusService
from fuelflow.utils.ledger_validation import (
    LedgerValidationError,
    NotFoundError,
    OverAllocationError,
    require_choice,
    require_positive,
)
from fuelflow.utils.locks import entity_locks, lock_key
from fuelflow.utils.money import NumberLike, format_amount, to_decimal

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Client payments against sales.

    Recording a payment writes, in order: the payment, its cashbook inflow and,
    when the sale has exactly one invoice, an allocation of the full amount to
    that invoice. The sale status is re-derived afterwards, all in one
    transaction where the server supports it.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.payments = PaymentRepository(db)
        self.sales = SaleRepository(db)
        self.invoices = InvoiceRepository(db)
        self.clients = ClientRepository(db)
        self.entries = CashbookRepository(db)
        self.allocations = AllocationRepository(db)
        self.account_heads = AccountHeadService(db)
        self.allocator = AllocationService(db)
        self.status = StatusService(db)
        self.cascade = CascadeService(db)

    async def create_payment(
        self,
        sale_id: str,
        amount_received: NumberLike,
        payment_date: datetime,
        payment_method: str,
        cheque_number: Optional[str] = None
    ) -> Payment:
        amount = to_decimal(amount_received, "amount_received")
        require_positive(amount, "amount_received")
        require_choice(payment_method, [m.value for m in PaymentMethod], "payment_method")
        if payment_method == PaymentMethod.CHEQUE.value and not (cheque_number or "").strip():
            raise LedgerValidationError("cheque_number is required for cheque payments")

        sale = await self.sales.get(sale_id)
        if sale is None:
            raise NotFoundError("Sale", sale_id)
        invoices = await self.invoices.list_by_sale(sale_id)

        keys = [lock_key("sale", sale_id)] + [lock_key("invoice", inv.id) for inv in invoices]
        async with entity_locks.hold(keys):
            sale = await self.sales.get(sale_id)
            if sale is None:
                raise NotFoundError("Sale", sale_id)
            client = await self.clients.get(sale.client_id)
            if client is None:
                raise NotFoundError("Client", sale.client_id)

            invoices = await self.invoices.list_by_sale(sale_id)
            target = invoices[0] if len(invoices) == 1 else None
            if target is not None:
                pending = target.total_amount - await self.allocations.allocated_for_invoice(target.id)
                if amount > pending:
                    logger.warning(
                        "Rejected payment of %s for sale %s: invoice %s has %s pending",
                        amount, sale_id, target.invoice_number, pending
                    )
                    raise OverAllocationError(
                        f"Payment of {format_amount(amount)} exceeds the "
                        f"{format_amount(pending)} pending on invoice {target.invoice_number}",
                        pending
                    )

            async with transaction(self.db):
                head = await self.account_heads.ensure_client_head(client)

                payment = await self.payments.insert(Payment(
                    sale_id=sale_id,
                    payment_date=payment_date,
                    amount_received=amount,
                    payment_method=payment_method,
                    cheque_number=cheque_number
                ))
                entry = await self.entries.insert(CashbookEntry(
                    transaction_date=payment_date,
                    transaction_type=TransactionType.SALE_REVENUE,
                    category="Payment Received",
                    account_head_id=head.id,
                    amount=amount,
                    is_inflow=True,
                    is_pending=False,
                    description=f"Payment received from {client.name} for LPO {sale.lpo_number or 'N/A'}",
                    counterparty=client.name,
                    payment_method=payment_method,
                    reference_type=ReferenceType.PAYMENT,
                    reference_id=payment.id
                ))
                if target is not None:
                    await self.allocator.apply_allocation(entry.id, target.id, amount)

                await self.status.refresh_sale_status(sale_id)

        logger.info("Recorded payment %s of %s for sale %s", payment.id, amount, sale_id)
        return payment

    async def get_payment(self, payment_id: str) -> Payment:
        payment = await self.payments.get(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def list_payments(self, sale_id: Optional[str] = None) -> List[Payment]:
        if sale_id:
            return await self.payments.list_by_sale(sale_id)
        return await self.payments.list_payments()

    async def delete_payment(self, payment_id: str) -> bool:
        return await self.cascade.delete_payment(payment_id)
