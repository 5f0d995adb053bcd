"""Visit router - FastAPI endpoints for the visit lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...schemas import Visit, VisitStatus
from ...services.sync_service import MutationResponse
from ...session import FieldSession, get_session
from .schemas import VisitComplete, VisitCreate, VisitStatusUpdate
from .service import VisitService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/visits", tags=["Visits"])


def get_visit_service(session: FieldSession = Depends(get_session)) -> VisitService:
    """Dependency injection for VisitService"""
    return session.visits


@router.get("", response_model=list[Visit])
async def get_visits(
    on_date: Optional[date] = Query(None, alias="date"),
    status: Optional[VisitStatus] = Query(None),
    client_id: Optional[str] = Query(None),
    service: VisitService = Depends(get_visit_service),
):
    """List visits ordered by date and time"""
    return service.list_visits(on_date=on_date, status=status, client_id=client_id)


@router.get("/{visit_id}", response_model=Visit)
async def get_visit(visit_id: str, service: VisitService = Depends(get_visit_service)):
    return service.get_visit(visit_id)


@router.post("", response_model=MutationResponse[Visit], status_code=201)
async def schedule_visit(data: VisitCreate, service: VisitService = Depends(get_visit_service)):
    """Schedule a visit; prospecting visits bump the client's prospecting counter"""
    result = service.schedule_visit(
        client_id=data.client_id,
        scheduled_date=data.scheduled_date,
        scheduled_time=data.scheduled_time,
        visit_type=data.type,
        planned_services=data.planned_services,
        notes=data.notes,
    )
    return MutationResponse[Visit].from_result(result)


@router.post("/{visit_id}/complete", response_model=MutationResponse[Visit])
async def complete_visit(
    visit_id: str,
    data: VisitComplete,
    service: VisitService = Depends(get_visit_service),
    session: FieldSession = Depends(get_session),
):
    """Mark a scheduled visit as completed with the opportunities found"""
    result = service.complete_visit(
        visit_id, [o.model_dump(exclude_none=True) for o in data.opportunities]
    )
    session.notifications.push("Visit completed! Good work.", "success")
    return MutationResponse[Visit].from_result(result)


@router.patch("/{visit_id}/status", response_model=MutationResponse[Visit])
async def update_visit_status(
    visit_id: str, data: VisitStatusUpdate, service: VisitService = Depends(get_visit_service)
):
    """Generic status transition (cancellation)"""
    result = service.update_visit_status(visit_id, data.status)
    return MutationResponse[Visit].from_result(result)


@router.delete("/{visit_id}", response_model=MutationResponse[Visit])
async def delete_visit(visit_id: str, service: VisitService = Depends(get_visit_service)):
    result = service.delete_visit(visit_id)
    return MutationResponse[Visit].from_result(result)
