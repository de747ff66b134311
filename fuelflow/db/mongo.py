import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession, AsyncIOMotorDatabase

from fuelflow.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None
    # Multi-document transactions need a replica set or a sharded cluster.
    transactions: bool = False

mongodb = MongoDatabase()

_session: ContextVar[Optional[AsyncIOMotorClientSession]] = ContextVar("mongo_session", default=None)


async def supports_transactions(client: AsyncIOMotorClient) -> bool:
    """True when the server is a replica set member or a mongos router."""
    hello = await client.admin.command("hello")
    return "setName" in hello or hello.get("msg") == "isdbgrid"

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    if settings.MONGODB_TRANSACTIONS is None:
        mongodb.transactions = await supports_transactions(mongodb.client)
    else:
        mongodb.transactions = settings.MONGODB_TRANSACTIONS

    await create_indexes(mongodb.db)
    logger.info(
        "Connected to MongoDB: %s (transactions %s)",
        settings.DATABASE_NAME,
        "on" if mongodb.transactions else "off"
    )

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

def current_session() -> Optional[AsyncIOMotorClientSession]:
    """Session of the transaction running in this task, if any."""
    return _session.get()

@asynccontextmanager
async def transaction(db: AsyncIOMotorDatabase) -> AsyncIterator[Optional[AsyncIOMotorClientSession]]:
    """
    Run the enclosed repository calls in one multi-document transaction.

    Repositories pick the session up through current_session(). A nested
    block joins the outer transaction. Without transaction support this
    yields None and the writes run one by one, in the order the services
    issue them, under the entity locks.
    """
    active = _session.get()
    if active is not None or not mongodb.transactions:
        yield active
        return

    async with await db.client.start_session() as session:
        async with session.start_transaction():
            token = _session.set(session)
            try:
                yield session
            finally:
                _session.reset(token)

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    await db["account_heads"].create_index("name", unique=True)
    await db["account_heads"].create_index("client_id")

    await db["projects"].create_index("client_id")

    await db["sales"].create_index("client_id")
    await db["sales"].create_index([("lpo_number", 1), ("sale_status", 1)])

    await db["invoices"].create_index("invoice_number", unique=True)
    await db["invoices"].create_index("sale_id")

    await db["payments"].create_index("sale_id")

    # Cashbook indexes
    await db["cashbook"].create_index([("reference_type", 1), ("reference_id", 1)])
    await db["cashbook"].create_index([("is_pending", 1), ("is_inflow", 1)])
    await db["cashbook"].create_index("account_head_id")

    await db["cashbook_payment_allocations"].create_index("cashbook_entry_id")
    await db["cashbook_payment_allocations"].create_index("invoice_id")

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
