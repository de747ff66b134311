from typing import List, Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from fuelflow.db.mongo import get_db
from fuelflow.schemas.client import (
    ClientCreate,
    ClientResponse,
    ClientUpdate,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from fuelflow.services.cascade_service import CascadeService
from fuelflow.services.client_service import ClientService

router = APIRouter()
projects_router = APIRouter()


@router.post("/", response_model=ClientResponse)
async def create_client(client_in: ClientCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Create a client and its account head"""
    client = await ClientService(db).create_client(client_in)
    return ClientResponse.model_validate(client)


@router.get("/", response_model=List[ClientResponse])
async def list_clients(db: AsyncIOMotorDatabase = Depends(get_db)):
    clients = await ClientService(db).list_clients()
    return [ClientResponse.model_validate(c) for c in clients]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    client = await ClientService(db).get_client(client_id)
    return ClientResponse.model_validate(client)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    client_in: ClientUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    client = await ClientService(db).update_client(client_id, client_in)
    return ClientResponse.model_validate(client)


@router.delete("/{client_id}")
async def delete_client(client_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Delete a client with its sales, invoices, payments, projects and account head"""
    await CascadeService(db).delete_client(client_id)
    return {"message": "Client deleted successfully"}


@projects_router.post("/", response_model=ProjectResponse)
async def create_project(project_in: ProjectCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    project = await ClientService(db).create_project(project_in)
    return ProjectResponse.model_validate(project)


@projects_router.get("/", response_model=List[ProjectResponse])
async def list_projects(client_id: Optional[str] = None, db: AsyncIOMotorDatabase = Depends(get_db)):
    projects = await ClientService(db).list_projects(client_id)
    return [ProjectResponse.model_validate(p) for p in projects]


@projects_router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    project_in: ProjectUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    project = await ClientService(db).update_project(project_id, project_in)
    return ProjectResponse.model_validate(project)


@projects_router.delete("/{project_id}")
async def delete_project(project_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    await ClientService(db).delete_project(project_id)
    return {"message": "Project deleted successfully"}
