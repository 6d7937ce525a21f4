"""Client repository - Database operations for clients"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client, Service, Vehicle


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_clients(db: Session, search: Optional[str] = None) -> list[Client]:
        """Get all clients, optionally filtered by name"""
        query = db.query(Client)
        if search:
            query = query.filter(Client.name.ilike(f"%{search}%"))
        return query.order_by(Client.name).all()

    @staticmethod
    def get_client_by_id(db: Session, client_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id).first()

    @staticmethod
    def get_client_by_sync_id(db: Session, sync_id: str) -> Optional[Client]:
        return db.query(Client).filter(Client.sync_id == sync_id).first()

    @staticmethod
    def create_client(db: Session, **client_data) -> Client:
        client = Client(**client_data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        """Update a client with provided fields"""
        for key, value in updates.items():
            if hasattr(client, key):
                setattr(client, key, value)

        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        """Delete a client (vehicles, services and budgets cascade)"""
        db.delete(client)
        db.commit()

    @staticmethod
    def get_client_vehicles(db: Session, client_id: int) -> list[Vehicle]:
        return db.query(Vehicle).filter(Vehicle.client_id == client_id).order_by(Vehicle.id).all()

    @staticmethod
    def get_client_services(db: Session, client_id: int) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.client_id == client_id)
            .order_by(Service.created_at.desc(), Service.id.desc())
            .all()
        )
