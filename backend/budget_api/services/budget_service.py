"""Budget management service."""

import uuid
from datetime import date
from decimal import Decimal

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.models.budget import Budget
from budget_api.models.transaction import Transaction
from budget_api.schemas.budget import BudgetCreate, BudgetSummary, BudgetUpdate, DashboardSummary
from budget_api.services.identity_client import IdentityUser
from budget_api.services.ownership import OwnershipGuard
from budget_api.services.updates import apply_partial_update

logger = structlog.get_logger()

NULLABLE_FIELDS = frozenset({"end_date", "description"})


class BudgetService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.guard = OwnershipGuard(db)

    async def list_budgets(self, user: IdentityUser) -> list[Budget]:
        """List the user's budgets, newest first."""
        result = await self.db.execute(
            select(Budget).where(Budget.user_id == user.id).order_by(Budget.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_budget(self, budget_id: uuid.UUID, user: IdentityUser) -> Budget:
        return await self.guard.budget(user.id, budget_id)

    async def create_budget(self, data: BudgetCreate, user: IdentityUser) -> Budget:
        budget = Budget(
            user_id=user.id,
            name=data.name,
            amount=data.amount,
            period=data.period,
            start_date=data.start_date or date.today(),
            end_date=data.end_date,
            description=data.description or None,
        )
        self.db.add(budget)
        await self.db.flush()
        await self.db.refresh(budget)
        logger.info("budget_created", budget_id=str(budget.id), user_id=user.id)
        return budget

    async def update_budget(self, budget_id: uuid.UUID, data: BudgetUpdate, user: IdentityUser) -> Budget:
        budget = await self.guard.budget(user.id, budget_id)
        apply_partial_update(budget, data, nullable=NULLABLE_FIELDS)
        await self.db.flush()
        await self.db.refresh(budget)
        return budget

    async def delete_budget(self, budget_id: uuid.UUID, user: IdentityUser) -> None:
        """Delete a budget together with its transactions."""
        budget = await self.guard.budget(user.id, budget_id)
        await self.db.delete(budget)
        await self.db.flush()
        logger.info("budget_deleted", budget_id=str(budget_id), user_id=user.id)

    async def get_summary(self, budget_id: uuid.UUID, user: IdentityUser) -> BudgetSummary:
        """Running sums for one budget: spent = expenses - income."""
        budget = await self.guard.budget(user.id, budget_id)
        expenses, income, count = await self._transaction_totals(Transaction.budget_id == budget.id)

        spent = expenses - income
        amount = budget.amount
        return BudgetSummary(
            budget_id=budget.id,
            amount=amount,
            total_expenses=expenses,
            total_income=income,
            total_spent=spent,
            remaining=amount - spent,
            percentage_used=round(float(spent / amount * 100), 2),
            transaction_count=count,
        )

    async def get_dashboard(self, user: IdentityUser) -> DashboardSummary:
        result = await self.db.execute(
            select(func.count(Budget.id), func.coalesce(func.sum(Budget.amount), 0)).where(
                Budget.user_id == user.id
            )
        )
        budget_count, total_budget = result.one()
        expenses, income, _ = await self._transaction_totals(Transaction.user_id == user.id)

        total_budget = Decimal(str(total_budget))
        spent = expenses - income
        return DashboardSummary(
            budget_count=budget_count,
            total_budget=total_budget,
            total_spent=spent,
            total_remaining=total_budget - spent,
        )

    async def _transaction_totals(self, condition) -> tuple[Decimal, Decimal, int]:
        """Return (expenses, income, count) for the transactions matching ``condition``."""
        result = await self.db.execute(
            select(
                func.coalesce(
                    func.sum(case((Transaction.type == "expense", Transaction.amount), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(case((Transaction.type == "income", Transaction.amount), else_=0)), 0
                ),
                func.count(Transaction.id),
            ).where(condition)
        )
        expenses, income, count = result.one()
        return Decimal(str(expenses)), Decimal(str(income)), count
