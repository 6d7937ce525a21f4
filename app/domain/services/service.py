"""Work order service - Business logic for service operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Client, Service, Vehicle
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


def compute_total(price: Optional[float], displacement_fee: Optional[float]) -> Optional[float]:
    """Total charged for a work order: price plus the displacement fee for on-site jobs"""
    if price is None:
        return None
    return round(price + (displacement_fee or 0), 2)


class WorkOrderService:
    """Service layer for work order business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def _check_references(self, client_id: int, vehicle_id: int) -> None:
        if not self.db.query(Client.id).filter(Client.id == client_id).first():
            raise HTTPException(status_code=400, detail=f"Client {client_id} does not exist")
        vehicle = self.db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
        if not vehicle:
            raise HTTPException(status_code=400, detail=f"Vehicle {vehicle_id} does not exist")
        if vehicle.client_id != client_id:
            raise HTTPException(
                status_code=400, detail=f"Vehicle {vehicle_id} does not belong to client {client_id}"
            )

    def get_services(
        self,
        client_id: Optional[int] = None,
        status: Optional[str] = None,
        technician_id: Optional[int] = None,
    ) -> list[Service]:
        return self.repo.get_services(self.db, client_id, status, technician_id)

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service_by_id(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def create_service(self, data: ServiceCreate) -> tuple[Service, bool]:
        """Open a work order; replays with a known sync_id return the stored one"""
        if data.sync_id:
            existing = self.repo.get_service_by_sync_id(self.db, data.sync_id)
            if existing:
                logger.info(f"♻️ Service create replayed for sync_id {data.sync_id}, returning id {existing.id}")
                return existing, False

        self._check_references(data.client_id, data.vehicle_id)

        service_data = data.model_dump()
        if service_data.get("total") is None:
            service_data["total"] = compute_total(data.price, data.displacement_fee)

        service = self.repo.create_service(self.db, **service_data)
        logger.info(f"✅ Service created: ID={service.id}, type={service.service_type}")
        return service, True

    def update_service(self, service_id: int, data: ServiceUpdate) -> Service:
        service = self.get_service(service_id)
        updates = data.model_dump(exclude_unset=True)

        client_id = updates.get("client_id") or service.client_id
        vehicle_id = updates.get("vehicle_id") or service.vehicle_id
        if "client_id" in updates or "vehicle_id" in updates:
            self._check_references(client_id, vehicle_id)

        if ("price" in updates or "displacement_fee" in updates) and "total" not in updates:
            updates["total"] = compute_total(
                updates.get("price", service.price),
                updates.get("displacement_fee", service.displacement_fee),
            )

        if updates.get("status") and updates["status"] != service.status:
            logger.info(f"🔄 Service {service_id} status: {service.status} → {updates['status']}")

        return self.repo.update_service(self.db, service, **updates)

    def delete_service(self, service_id: int) -> None:
        service = self.get_service(service_id)
        self.repo.delete_service(self.db, service)
        logger.info(f"🗑️ Service deleted: ID={service_id}")
