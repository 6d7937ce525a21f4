"""Budget service - Business logic for estimates"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Budget, Client
from .repository import BudgetRepository
from .schemas import BudgetCreate, BudgetUpdate

logger = logging.getLogger(__name__)


class BudgetService:
    """Service layer for estimate business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BudgetRepository()

    def _require_client(self, client_id: int) -> None:
        if not self.db.query(Client.id).filter(Client.id == client_id).first():
            raise HTTPException(status_code=400, detail=f"Client {client_id} does not exist")

    def get_budgets(self, client_id: Optional[int] = None) -> list[Budget]:
        return self.repo.get_budgets(self.db, client_id)

    def get_budget(self, budget_id: int) -> Budget:
        budget = self.repo.get_budget_by_id(self.db, budget_id)
        if not budget:
            raise HTTPException(status_code=404, detail="Budget not found")
        return budget

    def create_budget(self, data: BudgetCreate) -> tuple[Budget, bool]:
        if data.sync_id:
            existing = self.repo.get_budget_by_sync_id(self.db, data.sync_id)
            if existing:
                logger.info(f"♻️ Budget create replayed for sync_id {data.sync_id}, returning id {existing.id}")
                return existing, False

        self._require_client(data.client_id)

        # JSON column stores plain dicts; drop unset date so the server default applies
        budget_data = data.model_dump(exclude_none=True)
        budget = self.repo.create_budget(self.db, **budget_data)
        logger.info(f"✅ Budget created: ID={budget.id}, total={budget.total_value}")
        return budget, True

    def update_budget(self, budget_id: int, data: BudgetUpdate) -> Budget:
        budget = self.get_budget(budget_id)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("client_id") is not None:
            self._require_client(updates["client_id"])
        return self.repo.update_budget(self.db, budget, **updates)

    def delete_budget(self, budget_id: int) -> None:
        budget = self.get_budget(budget_id)
        self.repo.delete_budget(self.db, budget)
        logger.info(f"🗑️ Budget deleted: ID={budget_id}")
