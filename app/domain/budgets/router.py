"""Budget router - FastAPI endpoints for estimates"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.realtime_service import ConnectionManager, get_connection_manager
from .schemas import BudgetCreate, BudgetResponse, BudgetUpdate
from .service import BudgetService

router = APIRouter(prefix="/api/budgets", tags=["Budgets"])


def get_budget_service(db: Session = Depends(get_db)) -> BudgetService:
    """Dependency injection for BudgetService"""
    return BudgetService(db)


@router.get("", response_model=list[BudgetResponse])
async def get_budgets(
    client_id: Optional[int] = Query(None),
    service: BudgetService = Depends(get_budget_service),
):
    return service.get_budgets(client_id)


@router.get("/{budget_id}", response_model=BudgetResponse)
async def get_budget(budget_id: int, service: BudgetService = Depends(get_budget_service)):
    return service.get_budget(budget_id)


@router.post("", response_model=BudgetResponse, status_code=201)
async def create_budget(
    data: BudgetCreate,
    response: Response,
    service: BudgetService = Depends(get_budget_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    budget, created = service.create_budget(data)
    body = BudgetResponse.model_validate(budget)
    if created:
        await manager.notify_change("budgets", "CREATED", record=body.model_dump(mode="json"))
    else:
        response.status_code = 200
    return body


@router.api_route("/{budget_id}", methods=["PUT", "PATCH"], response_model=BudgetResponse)
async def update_budget(
    budget_id: int,
    data: BudgetUpdate,
    service: BudgetService = Depends(get_budget_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    budget = service.update_budget(budget_id, data)
    body = BudgetResponse.model_validate(budget)
    await manager.notify_change("budgets", "UPDATED", record=body.model_dump(mode="json"))
    return body


@router.delete("/{budget_id}", status_code=204)
async def delete_budget(
    budget_id: int,
    service: BudgetService = Depends(get_budget_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    service.delete_budget(budget_id)
    await manager.notify_change("budgets", "DELETED", record_id=budget_id)
    return Response(status_code=204)
