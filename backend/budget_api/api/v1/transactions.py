"""Transaction API routes, nested under a budget."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.api.deps import get_current_user, get_db
from budget_api.schemas.common import SuccessResponse
from budget_api.schemas.transaction import TransactionCreate, TransactionResponse, TransactionUpdate
from budget_api.services.identity_client import IdentityUser
from budget_api.services.transaction_service import TransactionService

router = APIRouter()


@router.get("", response_model=list[TransactionResponse])
async def list_transactions(
    budget_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the transactions recorded against a budget."""
    service = TransactionService(db)
    return await service.list_transactions(budget_id, current_user)


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    budget_id: uuid.UUID,
    data: TransactionCreate,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a transaction. ``type`` defaults to expense, ``category`` to "other"."""
    service = TransactionService(db)
    return await service.create_transaction(budget_id, data, current_user)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    budget_id: uuid.UUID,
    transaction_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = TransactionService(db)
    return await service.get_transaction(budget_id, transaction_id, current_user)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    budget_id: uuid.UUID,
    transaction_id: uuid.UUID,
    data: TransactionUpdate,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = TransactionService(db)
    return await service.update_transaction(budget_id, transaction_id, data, current_user)


@router.delete("/{transaction_id}", response_model=SuccessResponse)
async def delete_transaction(
    budget_id: uuid.UUID,
    transaction_id: uuid.UUID,
    current_user: IdentityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = TransactionService(db)
    await service.delete_transaction(budget_id, transaction_id, current_user)
    return SuccessResponse()
