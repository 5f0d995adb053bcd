"""
Entity types held by the in-memory store

Entities are frozen pydantic models: every mutation produces a new instance
that replaces the old one by identifier, so readers holding a snapshot never
observe a half-applied change.
"""

import uuid
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Tete city centre, used when a client is added without coordinates
DEFAULT_LAT = -16.156
DEFAULT_LNG = 33.586


def generate_id() -> str:
    """Generate a unique identifier for a new entity"""
    return str(uuid.uuid4())


class Area(str, Enum):
    CIDADE = "Cidade"
    MARGEM = "Margem"
    MOATIZE = "Moatize"
    EMPRESA_MINEIRA = "Empresa Mineira"


class ClientClassification(str, Enum):
    COLD = "cold"
    WARM = "warm"
    HOT = "hot"
    CONTRACTED = "contracted"


class VisitStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (VisitStatus.COMPLETED, VisitStatus.CANCELLED)


class VisitType(str, Enum):
    PROSPECTING = "prospecting"
    FOLLOW_UP = "follow_up"
    TECHNICAL = "technical"

    @property
    def label(self) -> str:
        return {
            VisitType.PROSPECTING: "Prospecting",
            VisitType.FOLLOW_UP: "Follow-up",
            VisitType.TECHNICAL: "Technical",
        }[self]


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Entity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)


class Client(Entity):
    """Prospect or customer visited by the field sales team"""

    name: str
    contact_person: str
    contact_role: str = "Staff"
    phone: str = ""
    email: str = ""
    address: str = ""
    area: Area = Area.CIDADE
    category: str = "Geral"
    classification: ClientClassification = ClientClassification.COLD
    # Prospecting visits booked; target is 3 for display but never clamped
    prospecting_count: int = Field(default=0, ge=0)
    notes: str = ""
    last_visit: Optional[date] = None
    lat: float = DEFAULT_LAT
    lng: float = DEFAULT_LNG


class Opportunity(BaseModel):
    """Service interest captured when a visit is completed"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    service: str
    description: str = ""
    estimate: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def default_description(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("description") and data.get("service"):
            data = {**data, "description": f"Interest in {data['service']}"}
        return data


class Visit(Entity):
    """A scheduled visit to one client"""

    client_id: str
    scheduled_date: date
    scheduled_time: time
    type: VisitType
    status: VisitStatus = VisitStatus.SCHEDULED
    notes: str = ""
    # Set semantics, insertion order kept for display
    planned_services: tuple[str, ...] = ()
    # Only populated on completion
    opportunities: tuple[Opportunity, ...] = ()

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.scheduled_date, self.scheduled_time)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class Task(Entity):
    """Free-standing to-do item, not linked to the visit lifecycle"""

    title: str
    due_date: date
    priority: TaskPriority = TaskPriority.MEDIUM
    completed: bool = False
    related_client_id: Optional[str] = None
