from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Service status workflow: pending → in_progress → completed → aguardando_aprovacao → faturado → pago
SERVICE_STATUSES = (
    "pending",
    "in_progress",
    "completed",
    "aguardando_aprovacao",
    "faturado",
    "pago",
)
LOCATION_TYPES = ("client_location", "workshop")


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    # Correlation key generated by offline clients; replayed creates are matched on it
    sync_id = Column(String(36), unique=True, index=True, nullable=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    vehicles = relationship("Vehicle", back_populates="client", cascade="all, delete-orphan")
    services = relationship("Service", back_populates="client", cascade="all, delete-orphan")
    budgets = relationship("Budget", back_populates="client", cascade="all, delete-orphan")


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)
    sync_id = Column(String(36), unique=True, index=True, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    color = Column(String(50), nullable=True)
    license_plate = Column(String(20), nullable=True)
    vin = Column(String(17), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    client = relationship("Client", back_populates="vehicles")
    services = relationship("Service", back_populates="vehicle")


class Service(Base):
    """Work order for a vehicle, performed at the workshop or at the client's location"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    sync_id = Column(String(36), unique=True, index=True, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    technician_id = Column(Integer, nullable=True, index=True)
    service_type = Column(String(100), nullable=False)
    status = Column(String(50), default="pending", nullable=False, index=True)
    description = Column(Text, nullable=True)
    scheduled_date = Column(DateTime, nullable=True)
    start_date = Column(DateTime, nullable=True)
    completion_date = Column(DateTime, nullable=True)
    location_type = Column(String(50), default="workshop", nullable=False)
    address = Column(Text, nullable=True)
    price = Column(Float, nullable=True)
    displacement_fee = Column(Float, default=0)
    total = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    client = relationship("Client", back_populates="services")
    vehicle = relationship("Vehicle", back_populates="services")


class Budget(Base):
    """Estimate with a damage map of the vehicle's panels"""

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, index=True)
    sync_id = Column(String(36), unique=True, index=True, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    vehicle_info = Column(String(255), nullable=False, default="")
    date = Column(DateTime, server_default=func.now())
    total_aw = Column(Float, default=0)
    total_value = Column(Float, default=0)
    note = Column(Text, nullable=True)
    plate = Column(String(20), nullable=True)
    chassis_number = Column(String(50), nullable=True)
    # {"capo": {"size20": 3, "size30": 0, "size40": 1, "isAluminum": false, ...}, ...}
    damaged_parts = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    client = relationship("Client", back_populates="budgets")
