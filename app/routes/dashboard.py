from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..domain.services.repository import ServiceRepository
from ..models import Client

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])

# Work orders that count towards revenue
BILLABLE_STATUSES = ("completed", "faturado", "pago")


@router.get("/stats")
async def get_dashboard_stats(db: Session = Depends(get_db)):
    """Service counts per status, billable revenue and client count"""
    by_status = ServiceRepository.count_by_status(db)
    return {
        "total_services": sum(by_status.values()),
        "services_by_status": by_status,
        "total_revenue": ServiceRepository.revenue(db, BILLABLE_STATUSES),
        "total_clients": db.query(func.count(Client.id)).scalar() or 0,
    }
