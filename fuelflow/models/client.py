from enum import Enum
from typing import Optional

from fuelflow.models.base import DocumentId, MongoModel


class ProjectStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"


class Client(MongoModel):
    name: str
    contact_person: str = ""
    phone_number: str = ""
    email: str = ""
    address: str = ""


class Project(MongoModel):
    client_id: DocumentId
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: ProjectStatus = ProjectStatus.ACTIVE
