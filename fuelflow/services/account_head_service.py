import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.models.account_head import AccountHead, AccountHeadType
from fuelflow.models.client import Client
from fuelflow.repositories.client_repo import AccountHeadRepository, ClientRepository
from fuelflow.utils.ledger_validation import (
    ConflictError,
    LedgerValidationError,
    NotFoundError,
    require_choice,
)

logger = logging.getLogger(__name__)


class AccountHeadService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.heads = AccountHeadRepository(db)
        self.clients = ClientRepository(db)

    async def create_account_head(
        self,
        name: str,
        type: str,
        client_id: Optional[str] = None
    ) -> AccountHead:
        name = (name or "").strip()
        if not name:
            raise LedgerValidationError("Missing required fields: name")
        require_choice(type, [t.value for t in AccountHeadType], "type")

        if client_id is not None and await self.clients.get(client_id) is None:
            raise NotFoundError("Client", client_id)
        if await self.heads.get_by_name(name) is not None:
            raise ConflictError(f"Account head '{name}' already exists")

        head = await self.heads.insert(AccountHead(name=name, type=type, client_id=client_id))
        logger.info("Created account head %s (%s)", head.name, head.type)
        return head

    async def get_account_head(self, head_id: str) -> AccountHead:
        head = await self.heads.get(head_id)
        if head is None:
            raise NotFoundError("Account head", head_id)
        return head

    async def list_account_heads(self) -> List[AccountHead]:
        return await self.heads.list_heads()

    async def ensure_client_head(self, client: Client) -> AccountHead:
        """
        Return the account head linked to a client, creating it if missing.

        An unlinked Client head with the client's name is adopted; a head with
        that name linked to someone else is a conflict.
        """
        head = await self.heads.get_by_client(client.id)
        if head is not None:
            return head

        existing = await self.heads.get_by_name(client.name)
        if existing is not None:
            if existing.client_id is None and existing.type == AccountHeadType.CLIENT.value:
                logger.info("Linking account head %s to client %s", existing.name, client.id)
                return await self.heads.update_fields(existing.id, {"client_id": client.id})
            raise ConflictError(f"Account head '{client.name}' belongs to another party")

        return await self.heads.insert(AccountHead(
            name=client.name,
            type=AccountHeadType.CLIENT,
            client_id=client.id
        ))
