import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import transaction
from fuelflow.models.account_head import AccountHead, AccountHeadType
from fuelflow.models.client import Client, Project
from fuelflow.repositories.client_repo import (
    AccountHeadRepository,
    ClientRepository,
    ProjectRepository,
)
from fuelflow.repositories.sale_repo import SaleRepository
from fuelflow.schemas.client import ClientCreate, ClientUpdate, ProjectCreate, ProjectUpdate
from fuelflow.utils.ledger_validation import ConflictError, LedgerValidationError, NotFoundError
from fuelflow.utils.locks import entity_locks, lock_key

logger = logging.getLogger(__name__)


class ClientService:
    """Clients, their account heads and their projects."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.clients = ClientRepository(db)
        self.projects = ProjectRepository(db)
        self.heads = AccountHeadRepository(db)
        self.sales = SaleRepository(db)

    async def create_client(self, client_in: ClientCreate) -> Client:
        """Create a client together with its Client account head."""
        name = client_in.name.strip()
        if not name:
            raise LedgerValidationError("Missing required fields: name")
        if await self.heads.get_by_name(name) is not None:
            raise ConflictError(f"Account head '{name}' already exists")

        async with transaction(self.db):
            client = await self.clients.insert(Client(**{**client_in.model_dump(), "name": name}))
            await self.heads.insert(AccountHead(
                name=name,
                type=AccountHeadType.CLIENT,
                client_id=client.id
            ))
        logger.info("Created client %s (%s)", client.name, client.id)
        return client

    async def get_client(self, client_id: str) -> Client:
        client = await self.clients.get(client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    async def list_clients(self) -> List[Client]:
        return await self.clients.list_clients()

    async def update_client(self, client_id: str, client_in: ClientUpdate) -> Client:
        """Update contact details; a rename carries over to the linked account head."""
        async with entity_locks.hold([lock_key("client", client_id)]):
            client = await self.get_client(client_id)
            update_data = client_in.model_dump(exclude_unset=True, exclude_none=True)

            new_name = update_data.get("name")
            if new_name is not None:
                new_name = new_name.strip()
                if not new_name:
                    raise LedgerValidationError("Missing required fields: name")
                update_data["name"] = new_name

            head = await self.heads.get_by_client(client_id)
            if new_name and new_name != client.name:
                clash = await self.heads.get_by_name(new_name)
                if clash is not None and (head is None or clash.id != head.id):
                    raise ConflictError(f"Account head '{new_name}' already exists")

            if not update_data:
                return client
            async with transaction(self.db):
                updated = await self.clients.update_fields(client_id, update_data)

                if new_name and new_name != client.name:
                    if head is None:
                        await self.heads.insert(AccountHead(
                            name=new_name,
                            type=AccountHeadType.CLIENT,
                            client_id=client_id
                        ))
                    else:
                        await self.heads.update_fields(head.id, {"name": new_name})
                    logger.info("Renamed client %s: %s -> %s", client_id, client.name, new_name)
                return updated

    # Projects

    async def create_project(self, project_in: ProjectCreate) -> Project:
        await self.get_client(project_in.client_id)
        if not project_in.name.strip():
            raise LedgerValidationError("Missing required fields: name")
        project = await self.projects.insert(Project(**project_in.model_dump()))
        logger.info("Created project %s for client %s", project.name, project.client_id)
        return project

    async def get_project(self, project_id: str) -> Project:
        project = await self.projects.get(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def list_projects(self, client_id: Optional[str] = None) -> List[Project]:
        if client_id:
            return await self.projects.list_by_client(client_id)
        return await self.projects.find(sort=[("created_at", -1)])

    async def update_project(self, project_id: str, project_in: ProjectUpdate) -> Project:
        project = await self.get_project(project_id)
        update_data = project_in.model_dump(exclude_unset=True, exclude_none=True, mode="json")
        if "name" in update_data and not update_data["name"].strip():
            raise LedgerValidationError("Missing required fields: name")
        if not update_data:
            return project
        return await self.projects.update_fields(project_id, update_data)

    async def delete_project(self, project_id: str) -> bool:
        await self.get_project(project_id)
        sale_count = await self.sales.count_by_project(project_id)
        if sale_count:
            raise ConflictError(
                f"Project is referenced by {sale_count} sale(s) and cannot be deleted"
            )
        deleted = await self.projects.delete(project_id)
        logger.info("Deleted project %s", project_id)
        return deleted
