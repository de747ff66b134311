from datetime import datetime, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import create_indexes
from fuelflow.models.account_head import AccountHeadType
from fuelflow.models.cashbook import CashbookEntry, ReferenceType, TransactionType
from fuelflow.models.client import Client
from fuelflow.models.sale import SaleStatus
from fuelflow.repositories.cashbook_repo import CashbookRepository
from fuelflow.repositories.client_repo import AccountHeadRepository
from fuelflow.schemas.client import ClientCreate
from fuelflow.schemas.sale import SaleCreate
from fuelflow.services.account_head_service import AccountHeadService
from fuelflow.services.client_service import ClientService
from fuelflow.services.invoice_service import InvoiceService
from fuelflow.services.sale_service import SaleService

JAN_15 = datetime(2024, 1, 15, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def test_db() -> AsyncIOMotorDatabase:
    """In-memory Motor database, fresh for every test."""
    client = AsyncMongoMockClient()
    db = client[f"fuelflow_test_{uuid4().hex}"]
    await create_indexes(db)
    yield db


@pytest_asyncio.fixture
async def acme(test_db) -> Client:
    """A client with its account head."""
    return await ClientService(test_db).create_client(
        ClientCreate(name="Acme Construction", contact_person="R. Nair", phone_number="050 123 4567")
    )


@pytest_asyncio.fixture
async def acme_head(test_db, acme):
    return await AccountHeadRepository(test_db).get_by_client(acme.id)


@pytest_asyncio.fixture
async def supplier_head(test_db):
    return await AccountHeadService(test_db).create_account_head(
        "Gulf Fuel Supply", AccountHeadType.SUPPLIER.value
    )


@pytest_asyncio.fixture
async def expense_head(test_db):
    return await AccountHeadService(test_db).create_account_head(
        "Office Rent", AccountHeadType.EXPENSE.value
    )


@pytest.fixture
def make_sale(test_db, acme):
    """Factory for sales of `acme`; defaults give a 3675.00 total."""
    async def _make(
        quantity="1000",
        sale_price="3.50",
        purchase_price="2.85",
        lpo_number="LPO-001",
        status=SaleStatus.LPO_RECEIVED,
        client_id=None
    ):
        return await SaleService(test_db).create_sale(SaleCreate(
            client_id=client_id or acme.id,
            sale_date=JAN_15,
            quantity_gallons=quantity,
            sale_price_per_gallon=sale_price,
            purchase_price_per_gallon=purchase_price,
            vat_percentage="5",
            lpo_number=lpo_number,
            lpo_received_date=JAN_15,
            sale_status=status
        ))
    return _make


@pytest.fixture
def make_invoice(test_db, make_sale):
    """Factory for an invoiced sale; returns (sale, invoice)."""
    async def _make(invoice_number, sale_price="3.50", **sale_kwargs):
        sale = await make_sale(sale_price=sale_price, lpo_number=f"LPO-{invoice_number}", **sale_kwargs)
        invoice = await InvoiceService(test_db).create_invoice(sale.id, invoice_number, JAN_15)
        return sale, invoice
    return _make


@pytest.fixture
def make_entry(test_db, acme_head):
    """Factory for cashbook rows written straight to the repository."""
    async def _make(
        amount,
        transaction_type=TransactionType.OTHER_INCOME,
        is_inflow=True,
        is_pending=False,
        account_head_id=None,
        description="Bank receipt"
    ):
        return await CashbookRepository(test_db).insert(CashbookEntry(
            transaction_date=JAN_15,
            transaction_type=transaction_type,
            account_head_id=account_head_id or acme_head.id,
            amount=amount,
            is_inflow=is_inflow,
            is_pending=is_pending,
            description=description,
            reference_type=ReferenceType.MANUAL
        ))
    return _make
