from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from fuelflow.models.account_head import AccountHeadType
from fuelflow.models.client import ProjectStatus


class ClientBase(BaseModel):
    name: str
    contact_person: str = ""
    phone_number: str = ""
    email: str = ""
    address: str = ""


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    contact_person: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class ClientResponse(ClientBase):
    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectBase(BaseModel):
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectCreate(ProjectBase):
    client_id: str


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    status: Optional[ProjectStatus] = None


class ProjectResponse(ProjectBase):
    id: str
    client_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountHeadCreate(BaseModel):
    name: str
    type: AccountHeadType
    client_id: Optional[str] = None


class AccountHeadResponse(AccountHeadCreate):
    id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
