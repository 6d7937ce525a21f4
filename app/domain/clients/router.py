"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.realtime_service import ConnectionManager, get_connection_manager
from ..services.schemas import ServiceResponse
from ..vehicles.schemas import VehicleResponse
from .schemas import ClientCreate, ClientResponse, ClientUpdate
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


@router.get("", response_model=list[ClientResponse])
async def get_clients(
    search: Optional[str] = Query(None, description="Filter by name"),
    service: ClientService = Depends(get_client_service),
):
    return service.get_clients(search)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: int, service: ClientService = Depends(get_client_service)):
    return service.get_client(client_id)


@router.get("/{client_id}/vehicles", response_model=list[VehicleResponse])
async def get_client_vehicles(client_id: int, service: ClientService = Depends(get_client_service)):
    return service.get_client_vehicles(client_id)


@router.get("/{client_id}/services", response_model=list[ServiceResponse])
async def get_client_services(client_id: int, service: ClientService = Depends(get_client_service)):
    return service.get_client_services(client_id)


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(
    data: ClientCreate,
    response: Response,
    service: ClientService = Depends(get_client_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Create a client (idempotent on sync_id)"""
    client, created = service.create_client(data)
    body = ClientResponse.model_validate(client)
    if created:
        await manager.notify_change("clients", "CREATED", record=body.model_dump(mode="json"))
    else:
        response.status_code = 200
    return body


@router.api_route("/{client_id}", methods=["PUT", "PATCH"], response_model=ClientResponse)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    service: ClientService = Depends(get_client_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    client = service.update_client(client_id, data)
    body = ClientResponse.model_validate(client)
    await manager.notify_change("clients", "UPDATED", record=body.model_dump(mode="json"))
    return body


@router.delete("/{client_id}", status_code=204)
async def delete_client(
    client_id: int,
    service: ClientService = Depends(get_client_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    service.delete_client(client_id)
    await manager.notify_change("clients", "DELETED", record_id=client_id)
    return Response(status_code=204)
