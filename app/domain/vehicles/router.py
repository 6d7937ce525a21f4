"""Vehicle router - FastAPI endpoints for vehicle operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.realtime_service import ConnectionManager, get_connection_manager
from .schemas import VehicleCreate, VehicleResponse, VehicleUpdate
from .service import VehicleService

router = APIRouter(prefix="/api/vehicles", tags=["Vehicles"])


def get_vehicle_service(db: Session = Depends(get_db)) -> VehicleService:
    """Dependency injection for VehicleService"""
    return VehicleService(db)


@router.get("", response_model=list[VehicleResponse])
async def get_vehicles(
    client_id: Optional[int] = Query(None),
    service: VehicleService = Depends(get_vehicle_service),
):
    return service.get_vehicles(client_id)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(vehicle_id: int, service: VehicleService = Depends(get_vehicle_service)):
    return service.get_vehicle(vehicle_id)


@router.post("", response_model=VehicleResponse, status_code=201)
async def create_vehicle(
    data: VehicleCreate,
    response: Response,
    service: VehicleService = Depends(get_vehicle_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    vehicle, created = service.create_vehicle(data)
    body = VehicleResponse.model_validate(vehicle)
    if created:
        await manager.notify_change("vehicles", "CREATED", record=body.model_dump(mode="json"))
    else:
        response.status_code = 200
    return body


@router.api_route("/{vehicle_id}", methods=["PUT", "PATCH"], response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: int,
    data: VehicleUpdate,
    service: VehicleService = Depends(get_vehicle_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    vehicle = service.update_vehicle(vehicle_id, data)
    body = VehicleResponse.model_validate(vehicle)
    await manager.notify_change("vehicles", "UPDATED", record=body.model_dump(mode="json"))
    return body


@router.delete("/{vehicle_id}", status_code=204)
async def delete_vehicle(
    vehicle_id: int,
    service: VehicleService = Depends(get_vehicle_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    service.delete_vehicle(vehicle_id)
    await manager.notify_change("vehicles", "DELETED", record_id=vehicle_id)
    return Response(status_code=204)
