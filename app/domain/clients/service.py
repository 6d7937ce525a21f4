"""Client service - Business logic for client operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Client, Service, Vehicle
from .repository import ClientRepository
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def get_clients(self, search: Optional[str] = None) -> list[Client]:
        return self.repo.get_clients(self.db, search)

    def get_client(self, client_id: int) -> Client:
        client = self.repo.get_client_by_id(self.db, client_id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def create_client(self, data: ClientCreate) -> tuple[Client, bool]:
        """
        Create a client.

        Returns (client, created). A create replayed with a sync_id that is
        already stored returns the existing client with created=False.
        """
        if data.sync_id:
            existing = self.repo.get_client_by_sync_id(self.db, data.sync_id)
            if existing:
                logger.info(f"♻️ Client create replayed for sync_id {data.sync_id}, returning id {existing.id}")
                return existing, False

        client = self.repo.create_client(self.db, **data.model_dump())
        logger.info(f"✅ Client created: ID={client.id}")
        return client, True

    def update_client(self, client_id: int, data: ClientUpdate) -> Client:
        client = self.get_client(client_id)
        updates = data.model_dump(exclude_unset=True)
        return self.repo.update_client(self.db, client, **updates)

    def delete_client(self, client_id: int) -> None:
        client = self.get_client(client_id)
        self.repo.delete_client(self.db, client)
        logger.info(f"🗑️ Client deleted: ID={client_id}")

    def get_client_vehicles(self, client_id: int) -> list[Vehicle]:
        self.get_client(client_id)
        return self.repo.get_client_vehicles(self.db, client_id)

    def get_client_services(self, client_id: int) -> list[Service]:
        self.get_client(client_id)
        return self.repo.get_client_services(self.db, client_id)
