"""Visit domain schemas - request bodies for lifecycle intents"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel

from ...schemas import VisitStatus, VisitType


class VisitCreate(BaseModel):
    """Schema for scheduling a visit; missing date/time is reported by the service"""

    client_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[time] = None
    type: VisitType = VisitType.PROSPECTING
    planned_services: list[str] = []
    notes: str = ""


class OpportunityCreate(BaseModel):
    service: str
    description: Optional[str] = None
    estimate: Optional[float] = None


class VisitComplete(BaseModel):
    opportunities: list[OpportunityCreate] = []


class VisitStatusUpdate(BaseModel):
    status: VisitStatus
