"""Vehicle service - Business logic for vehicle operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Client, Service, Vehicle
from .repository import VehicleRepository
from .schemas import VehicleCreate, VehicleUpdate

logger = logging.getLogger(__name__)


class VehicleService:
    """Service layer for vehicle business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = VehicleRepository()

    def _require_client(self, client_id: int) -> None:
        if not self.db.query(Client.id).filter(Client.id == client_id).first():
            raise HTTPException(status_code=400, detail=f"Client {client_id} does not exist")

    def get_vehicles(self, client_id: Optional[int] = None) -> list[Vehicle]:
        return self.repo.get_vehicles(self.db, client_id)

    def get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = self.repo.get_vehicle_by_id(self.db, vehicle_id)
        if not vehicle:
            raise HTTPException(status_code=404, detail="Vehicle not found")
        return vehicle

    def create_vehicle(self, data: VehicleCreate) -> tuple[Vehicle, bool]:
        """Create a vehicle; replays with a known sync_id return the stored one"""
        if data.sync_id:
            existing = self.repo.get_vehicle_by_sync_id(self.db, data.sync_id)
            if existing:
                logger.info(f"♻️ Vehicle create replayed for sync_id {data.sync_id}, returning id {existing.id}")
                return existing, False

        self._require_client(data.client_id)
        vehicle = self.repo.create_vehicle(self.db, **data.model_dump())
        logger.info(f"✅ Vehicle created: ID={vehicle.id} for client {vehicle.client_id}")
        return vehicle, True

    def update_vehicle(self, vehicle_id: int, data: VehicleUpdate) -> Vehicle:
        vehicle = self.get_vehicle(vehicle_id)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("client_id") is not None:
            self._require_client(updates["client_id"])
        return self.repo.update_vehicle(self.db, vehicle, **updates)

    def delete_vehicle(self, vehicle_id: int) -> None:
        vehicle = self.get_vehicle(vehicle_id)
        in_use = self.db.query(Service.id).filter(Service.vehicle_id == vehicle_id).first()
        if in_use:
            raise HTTPException(status_code=409, detail="Vehicle has services and cannot be deleted")
        self.repo.delete_vehicle(self.db, vehicle)
        logger.info(f"🗑️ Vehicle deleted: ID={vehicle_id}")
