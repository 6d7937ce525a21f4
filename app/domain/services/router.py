"""Service router - FastAPI endpoints for work orders"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.realtime_service import ConnectionManager, get_connection_manager
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate
from .service import WorkOrderService

router = APIRouter(prefix="/api/services", tags=["Services"])


def get_work_order_service(db: Session = Depends(get_db)) -> WorkOrderService:
    """Dependency injection for WorkOrderService"""
    return WorkOrderService(db)


@router.get("", response_model=list[ServiceResponse])
async def get_services(
    client_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    technician_id: Optional[int] = Query(None),
    service: WorkOrderService = Depends(get_work_order_service),
):
    return service.get_services(client_id, status, technician_id)


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: int, service: WorkOrderService = Depends(get_work_order_service)):
    return service.get_service(service_id)


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    response: Response,
    service: WorkOrderService = Depends(get_work_order_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    work_order, created = service.create_service(data)
    body = ServiceResponse.model_validate(work_order)
    if created:
        await manager.notify_change("services", "CREATED", record=body.model_dump(mode="json"))
    else:
        response.status_code = 200
    return body


@router.api_route("/{service_id}", methods=["PUT", "PATCH"], response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    service: WorkOrderService = Depends(get_work_order_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    work_order = service.update_service(service_id, data)
    body = ServiceResponse.model_validate(work_order)
    await manager.notify_change("services", "UPDATED", record=body.model_dump(mode="json"))
    return body


@router.delete("/{service_id}", status_code=204)
async def delete_service(
    service_id: int,
    service: WorkOrderService = Depends(get_work_order_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    service.delete_service(service_id)
    await manager.notify_change("services", "DELETED", record_id=service_id)
    return Response(status_code=204)
