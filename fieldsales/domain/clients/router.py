"""Client router - FastAPI endpoints for client operations"""

import logging

from fastapi import APIRouter, Depends

from ...schemas import Client
from ...services.sync_service import MutationResponse
from ...session import FieldSession, get_session
from .schemas import (
    ClientCreate,
    ClientNotesUpdate,
    ClientResponse,
    ClientUpdate,
    ProspectingProgressResponse,
)
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(session: FieldSession = Depends(get_session)) -> ClientService:
    """Dependency injection for ClientService"""
    return session.clients


def to_response(client: Client, service: ClientService) -> ClientResponse:
    progress = service.prospecting_progress(client.id)
    return ClientResponse(
        **client.model_dump(),
        prospecting_target=progress.target,
        prospecting_fraction=progress.fraction,
    )


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[ClientResponse])
async def get_clients(service: ClientService = Depends(get_client_service)):
    """Get all clients with their prospecting progress"""
    return [to_response(c, service) for c in service.get_clients()]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: str, service: ClientService = Depends(get_client_service)):
    return to_response(service.get_client(client_id), service)


@router.post("", response_model=MutationResponse[Client], status_code=201)
async def create_client(
    data: ClientCreate,
    service: ClientService = Depends(get_client_service),
    session: FieldSession = Depends(get_session),
):
    """Add a new client; the prospecting counter always starts at zero"""
    result = service.create_client(data)
    session.notifications.push("Client added successfully!", "success")
    return MutationResponse[Client].from_result(result)


@router.patch("/{client_id}", response_model=MutationResponse[Client])
async def update_client(
    client_id: str, data: ClientUpdate, service: ClientService = Depends(get_client_service)
):
    return MutationResponse[Client].from_result(service.update_client(client_id, data))


@router.put("/{client_id}/notes", response_model=MutationResponse[Client])
async def update_client_notes(
    client_id: str, data: ClientNotesUpdate, service: ClientService = Depends(get_client_service)
):
    return MutationResponse[Client].from_result(service.update_client_notes(client_id, data.notes))


@router.delete("/{client_id}", response_model=MutationResponse[Client])
async def delete_client(client_id: str, service: ClientService = Depends(get_client_service)):
    """Delete a client (its visits are kept)"""
    return MutationResponse[Client].from_result(service.delete_client(client_id))


@router.get("/{client_id}/progress", response_model=ProspectingProgressResponse)
async def get_prospecting_progress(
    client_id: str, service: ClientService = Depends(get_client_service)
):
    progress = service.prospecting_progress(client_id)
    return ProspectingProgressResponse(
        count=progress.count,
        target=progress.target,
        fraction=progress.fraction,
        reached=progress.reached,
    )
