"""Category API routes."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.api.deps import get_current_user, get_db
from budget_api.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from budget_api.schemas.common import SuccessResponse
from budget_api.services.category_service import CategoryService
from budget_api.services.identity_client import IdentityUser

router = APIRouter()


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the current user's categories by name."""
    service = CategoryService(db)
    return await service.list_categories(current_user)


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a category (409 if the name is already taken by this user)."""
    service = CategoryService(db)
    return await service.create_category(data, current_user)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = CategoryService(db)
    return await service.get_category(category_id, current_user)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    data: CategoryUpdate,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = CategoryService(db)
    return await service.update_category(category_id, data, current_user)


@router.delete("/{category_id}", response_model=SuccessResponse)
async def delete_category(
    category_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a category (409 while transactions still use it)."""
    service = CategoryService(db)
    await service.delete_category(category_id, current_user)
    return SuccessResponse()
