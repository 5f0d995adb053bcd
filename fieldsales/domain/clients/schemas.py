"""Client domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ...schemas import Area, Client, ClientClassification


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    name: str
    contact_person: str
    contact_role: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    area: Optional[Area] = None
    category: Optional[str] = None
    classification: Optional[ClientClassification] = None
    notes: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class ClientUpdate(BaseModel):
    """Schema for updating an existing client; the prospecting counter is not editable"""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    contact_person: Optional[str] = None
    contact_role: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    area: Optional[Area] = None
    category: Optional[str] = None
    classification: Optional[ClientClassification] = None
    notes: Optional[str] = None
    last_visit: Optional[date] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class ClientNotesUpdate(BaseModel):
    notes: str = ""


class ProspectingProgressResponse(BaseModel):
    count: int
    target: int
    fraction: float
    reached: bool


class ClientResponse(Client):
    """Client with its prospecting progress, as shown in the client list"""

    prospecting_target: int
    prospecting_fraction: float
