"""Budget API routes."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.api.deps import get_current_user, get_db
from budget_api.schemas.budget import BudgetCreate, BudgetResponse, BudgetSummary, BudgetUpdate
from budget_api.schemas.common import SuccessResponse
from budget_api.services.budget_service import BudgetService
from budget_api.services.identity_client import IdentityUser

router = APIRouter()


@router.get("", response_model=list[BudgetResponse])
async def list_budgets(
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the current user's budgets."""
    service = BudgetService(db)
    return await service.list_budgets(current_user)


@router.post("", response_model=BudgetResponse, status_code=201)
async def create_budget(
    data: BudgetCreate,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a budget. ``start_date`` defaults to today."""
    service = BudgetService(db)
    return await service.create_budget(data, current_user)


@router.get("/{budget_id}", response_model=BudgetResponse)
async def get_budget(
    budget_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = BudgetService(db)
    return await service.get_budget(budget_id, current_user)


@router.get("/{budget_id}/summary", response_model=BudgetSummary)
async def get_budget_summary(
    budget_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Spent, remaining and percentage used for one budget."""
    service = BudgetService(db)
    return await service.get_summary(budget_id, current_user)


@router.patch("/{budget_id}", response_model=BudgetResponse)
async def update_budget(
    budget_id: uuid.UUID,
    data: BudgetUpdate,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update only the fields present in the body."""
    service = BudgetService(db)
    return await service.update_budget(budget_id, data, current_user)


@router.delete("/{budget_id}", response_model=SuccessResponse)
async def delete_budget(
    budget_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a budget and its transactions."""
    service = BudgetService(db)
    await service.delete_budget(budget_id, current_user)
    return SuccessResponse()
