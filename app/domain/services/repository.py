"""Service repository - Database operations for work orders"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Service


class ServiceRepository:
    """Repository for work order database operations"""

    @staticmethod
    def get_services(
        db: Session,
        client_id: Optional[int] = None,
        status: Optional[str] = None,
        technician_id: Optional[int] = None,
    ) -> list[Service]:
        query = db.query(Service)
        if client_id is not None:
            query = query.filter(Service.client_id == client_id)
        if status:
            query = query.filter(Service.status == status)
        if technician_id is not None:
            query = query.filter(Service.technician_id == technician_id)
        return query.order_by(Service.created_at.desc(), Service.id.desc()).all()

    @staticmethod
    def get_service_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_service_by_sync_id(db: Session, sync_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.sync_id == sync_id).first()

    @staticmethod
    def create_service(db: Session, **service_data) -> Service:
        service = Service(**service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            if hasattr(service, key):
                setattr(service, key, value)

        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = db.query(Service.status, func.count(Service.id)).group_by(Service.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def revenue(db: Session, statuses: tuple[str, ...]) -> float:
        total = db.query(func.sum(Service.total)).filter(Service.status.in_(statuses)).scalar()
        return float(total or 0)
