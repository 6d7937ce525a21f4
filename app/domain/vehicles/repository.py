"""Vehicle repository - Database operations for vehicles"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Vehicle


class VehicleRepository:
    """Repository for vehicle database operations"""

    @staticmethod
    def get_vehicles(db: Session, client_id: Optional[int] = None) -> list[Vehicle]:
        query = db.query(Vehicle)
        if client_id is not None:
            query = query.filter(Vehicle.client_id == client_id)
        return query.order_by(Vehicle.id).all()

    @staticmethod
    def get_vehicle_by_id(db: Session, vehicle_id: int) -> Optional[Vehicle]:
        return db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()

    @staticmethod
    def get_vehicle_by_sync_id(db: Session, sync_id: str) -> Optional[Vehicle]:
        return db.query(Vehicle).filter(Vehicle.sync_id == sync_id).first()

    @staticmethod
    def create_vehicle(db: Session, **vehicle_data) -> Vehicle:
        vehicle = Vehicle(**vehicle_data)
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle

    @staticmethod
    def update_vehicle(db: Session, vehicle: Vehicle, **updates) -> Vehicle:
        for key, value in updates.items():
            if hasattr(vehicle, key):
                setattr(vehicle, key, value)

        db.commit()
        db.refresh(vehicle)
        return vehicle

    @staticmethod
    def delete_vehicle(db: Session, vehicle: Vehicle) -> None:
        db.delete(vehicle)
        db.commit()
