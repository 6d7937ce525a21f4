"""
Local offline database models
One table per mirrored server entity, the pending request log and a key/value meta table
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

LocalBase = declarative_base()

# Pending operation states; successful operations are deleted rather than marked done
STATUS_PENDING = "pending"
STATUS_IN_FLIGHT = "in_flight"
STATUS_FAILED = "failed"

OPERATION_TYPES = ("create", "update", "delete")
HTTP_METHODS = ("POST", "PUT", "PATCH", "DELETE")

# Body fields that point at another mirrored table (rewritten when that table's ids are reconciled)
FOREIGN_KEYS = {
    "clients": {},
    "vehicles": {"client_id": "clients"},
    "services": {"client_id": "clients", "vehicle_id": "vehicles"},
    "budgets": {"client_id": "clients"},
}

# Keys that belong to the local record itself, never to its payload
RECORD_KEYS = ("id", "sync_id", "_isOffline", "_pendingSync")


class LocalRecordMixin:
    # Positive ids come from the server; negative ids are temporary and assigned offline
    id = Column(Integer, primary_key=True, autoincrement=False)
    sync_id = Column(String(36), unique=True, index=True, nullable=True)
    payload = Column(JSON, nullable=False, default=dict)
    is_offline = Column(Boolean, default=False, nullable=False)
    pending_sync = Column(Boolean, default=False, nullable=False)
    last_sync = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            **(self.payload or {}),
            "id": self.id,
            "sync_id": self.sync_id,
            "_isOffline": bool(self.is_offline),
            "_pendingSync": bool(self.pending_sync),
        }


class LocalClient(LocalRecordMixin, LocalBase):
    __tablename__ = "clients"
    entity_type = "client"


class LocalVehicle(LocalRecordMixin, LocalBase):
    __tablename__ = "vehicles"
    entity_type = "vehicle"


class LocalService(LocalRecordMixin, LocalBase):
    __tablename__ = "services"
    entity_type = "service"


class LocalBudget(LocalRecordMixin, LocalBase):
    __tablename__ = "budgets"
    entity_type = "budget"


ENTITY_MODELS = {model.__tablename__: model for model in (LocalClient, LocalVehicle, LocalService, LocalBudget)}
ENTITY_TABLES = {model.entity_type: name for name, model in ENTITY_MODELS.items()}


class PendingRequest(LocalBase):
    """A deferred mutation, replayed against the API in ascending id order"""

    __tablename__ = "pending_requests"
    # AUTOINCREMENT keeps ids monotonic even after the queue has been emptied
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String(500), nullable=False)
    method = Column(String(10), nullable=False)
    body = Column(JSON, nullable=True)
    operation_type = Column(String(10), nullable=False)
    table_name = Column(String(50), nullable=False, index=True)
    resource_id = Column(Integer, nullable=False, index=True)
    resource_sync_id = Column(String(36), nullable=True)
    status = Column(String(20), default=STATUS_PENDING, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class StoreMeta(LocalBase):
    __tablename__ = "store_meta"

    key = Column(String(50), primary_key=True)
    value = Column(String(255), nullable=False)
