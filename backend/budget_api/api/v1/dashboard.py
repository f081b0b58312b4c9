"""Dashboard API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.api.deps import get_current_user, get_db
from budget_api.schemas.budget import DashboardSummary
from budget_api.services.budget_service import BudgetService
from budget_api.services.identity_client import IdentityUser

router = APIRouter()


@router.get("", response_model=DashboardSummary)
async def get_dashboard(
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Totals across all of the user's budgets."""
    service = BudgetService(db)
    return await service.get_dashboard(current_user)
