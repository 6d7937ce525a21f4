"""Budget repository - Database operations for estimates"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Budget


class BudgetRepository:
    """Repository for estimate database operations"""

    @staticmethod
    def get_budgets(db: Session, client_id: Optional[int] = None) -> list[Budget]:
        query = db.query(Budget)
        if client_id is not None:
            query = query.filter(Budget.client_id == client_id)
        return query.order_by(Budget.date.desc(), Budget.id.desc()).all()

    @staticmethod
    def get_budget_by_id(db: Session, budget_id: int) -> Optional[Budget]:
        return db.query(Budget).filter(Budget.id == budget_id).first()

    @staticmethod
    def get_budget_by_sync_id(db: Session, sync_id: str) -> Optional[Budget]:
        return db.query(Budget).filter(Budget.sync_id == sync_id).first()

    @staticmethod
    def create_budget(db: Session, **budget_data) -> Budget:
        budget = Budget(**budget_data)
        db.add(budget)
        db.commit()
        db.refresh(budget)
        return budget

    @staticmethod
    def update_budget(db: Session, budget: Budget, **updates) -> Budget:
        for key, value in updates.items():
            if hasattr(budget, key):
                setattr(budget, key, value)

        db.commit()
        db.refresh(budget)
        return budget

    @staticmethod
    def delete_budget(db: Session, budget: Budget) -> None:
        db.delete(budget)
        db.commit()
