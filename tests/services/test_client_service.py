import pytest

from fuelflow.models.account_head import AccountHeadType
from fuelflow.repositories.client_repo import AccountHeadRepository
from fuelflow.schemas.client import ClientCreate, ClientUpdate, ProjectCreate, ProjectUpdate
from fuelflow.services.account_head_service import AccountHeadService
from fuelflow.services.client_service import ClientService
from fuelflow.services.sale_service import SaleService
from fuelflow.utils.ledger_validation import (
    ConflictError,
    LedgerValidationError,
    NotFoundError,
)


@pytest.mark.asyncio
class TestClients:
    async def test_create_client_creates_linked_head(self, test_db, acme):
        head = await AccountHeadRepository(test_db).get_by_client(acme.id)

        assert head.name == "Acme Construction"
        assert head.type == "Client"

    async def test_name_clash_with_existing_head(self, test_db, acme):
        with pytest.raises(ConflictError):
            await ClientService(test_db).create_client(ClientCreate(name="Acme Construction"))

    async def test_blank_name(self, test_db):
        with pytest.raises(LedgerValidationError):
            await ClientService(test_db).create_client(ClientCreate(name="   "))

    async def test_rename_carries_over_to_head(self, test_db, acme):
        updated = await ClientService(test_db).update_client(acme.id, ClientUpdate(name="Acme Group"))

        assert updated.name == "Acme Group"
        assert updated.contact_person == "R. Nair"
        head = await AccountHeadRepository(test_db).get_by_client(acme.id)
        assert head.name == "Acme Group"

    async def test_rename_onto_taken_head(self, test_db, acme, supplier_head):
        with pytest.raises(ConflictError):
            await ClientService(test_db).update_client(acme.id, ClientUpdate(name=supplier_head.name))

    async def test_get_and_list(self, test_db, acme):
        service = ClientService(test_db)
        await service.create_client(ClientCreate(name="Beta Roads"))

        assert (await service.get_client(acme.id)).name == "Acme Construction"
        assert [c.name for c in await service.list_clients()] == ["Acme Construction", "Beta Roads"]
        with pytest.raises(NotFoundError):
            await service.get_client("65a000000000000000000000")


@pytest.mark.asyncio
class TestProjects:
    async def test_project_lifecycle(self, test_db, acme):
        service = ClientService(test_db)
        project = await service.create_project(ProjectCreate(client_id=acme.id, name="Tower B", location="Dubai"))

        updated = await service.update_project(project.id, ProjectUpdate(status="Completed"))
        assert updated.status == "Completed"
        assert [p.id for p in await service.list_projects(acme.id)] == [project.id]

        assert await service.delete_project(project.id) is True
        assert await service.list_projects() == []

    async def test_project_in_use_cannot_be_deleted(self, test_db, acme, make_sale):
        service = ClientService(test_db)
        project = await service.create_project(ProjectCreate(client_id=acme.id, name="Tower B"))
        sale = await make_sale()
        await test_db["sales"].update_one({"client_id": acme.id}, {"$set": {"project_id": project.id}})
        assert (await SaleService(test_db).get_sale(sale.id)).project_id == project.id

        with pytest.raises(ConflictError):
            await service.delete_project(project.id)

    async def test_project_needs_existing_client(self, test_db):
        with pytest.raises(NotFoundError):
            await ClientService(test_db).create_project(
                ProjectCreate(client_id="65a000000000000000000000", name="Ghost")
            )


@pytest.mark.asyncio
class TestAccountHeads:
    async def test_unique_names(self, test_db, supplier_head):
        with pytest.raises(ConflictError):
            await AccountHeadService(test_db).create_account_head(
                supplier_head.name, AccountHeadType.EXPENSE.value
            )

    async def test_invalid_type(self, test_db):
        with pytest.raises(LedgerValidationError):
            await AccountHeadService(test_db).create_account_head("Misc", "Liability")

    async def test_unlinked_client_head_is_adopted(self, test_db, acme):
        heads = AccountHeadRepository(test_db)
        await heads.delete_by_client(acme.id)
        orphan = await AccountHeadService(test_db).create_account_head(
            "Acme Construction", AccountHeadType.CLIENT.value
        )

        head = await AccountHeadService(test_db).ensure_client_head(acme)

        assert head.id == orphan.id
        assert head.client_id == acme.id
