from typing import List, Optional

from fuelflow.models.account_head import AccountHead
from fuelflow.models.client import Client, Project
from fuelflow.repositories.base import MongoRepository


class ClientRepository(MongoRepository[Client]):
    """Client database operations."""

    collection_name = "clients"
    model = Client

    async def list_clients(self) -> List[Client]:
        return await self.find(sort=[("name", 1)])


class ProjectRepository(MongoRepository[Project]):
    """Project database operations."""

    collection_name = "projects"
    model = Project

    async def list_by_client(self, client_id: str) -> List[Project]:
        return await self.find({"client_id": client_id}, sort=[("created_at", -1)])

    async def delete_by_client(self, client_id: str) -> int:
        return await self.delete_many({"client_id": client_id})


class AccountHeadRepository(MongoRepository[AccountHead]):
    """Account head database operations."""

    collection_name = "account_heads"
    model = AccountHead

    async def list_heads(self) -> List[AccountHead]:
        return await self.find(sort=[("name", 1)])

    async def get_by_name(self, name: str) -> Optional[AccountHead]:
        return await self.find_one({"name": name})

    async def get_by_client(self, client_id: str) -> Optional[AccountHead]:
        return await self.find_one({"client_id": client_id})

    async def delete_by_client(self, client_id: str) -> int:
        return await self.delete_many({"client_id": client_id})
