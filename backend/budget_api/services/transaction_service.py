"""Transaction management service.

Transactions live under a budget; every operation first confirms that the
budget belongs to the requesting user.
"""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.models.transaction import DEFAULT_CATEGORY, Transaction
from budget_api.schemas.transaction import TransactionCreate, TransactionUpdate
from budget_api.services.identity_client import IdentityUser
from budget_api.services.ownership import OwnershipGuard, parse_category_id
from budget_api.services.updates import apply_partial_update

logger = structlog.get_logger()

NULLABLE_FIELDS = frozenset({"notes"})


def _normalize_category(value: str | None) -> str:
    category_id = parse_category_id(value)
    if category_id is not None:
        return str(category_id)
    return value or DEFAULT_CATEGORY


class TransactionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.guard = OwnershipGuard(db)

    async def list_transactions(self, budget_id: uuid.UUID, user: IdentityUser) -> list[Transaction]:
        """List a budget's transactions, most recent date first."""
        await self.guard.budget(user.id, budget_id)
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.budget_id == budget_id)
            .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_transaction(
        self, budget_id: uuid.UUID, transaction_id: uuid.UUID, user: IdentityUser
    ) -> Transaction:
        return await self.guard.transaction(user.id, budget_id, transaction_id)

    async def create_transaction(
        self, budget_id: uuid.UUID, data: TransactionCreate, user: IdentityUser
    ) -> Transaction:
        budget = await self.guard.budget(user.id, budget_id)
        await self.guard.category_reference(user.id, data.category)

        transaction = Transaction(
            budget_id=budget.id,
            user_id=user.id,
            description=data.description,
            amount=data.amount,
            type=data.type,
            category=_normalize_category(data.category),
            date=data.date,
            notes=data.notes or None,
        )
        self.db.add(transaction)
        await self.db.flush()
        await self.db.refresh(transaction)
        logger.info(
            "transaction_created",
            transaction_id=str(transaction.id),
            budget_id=str(budget.id),
            user_id=user.id,
        )
        return transaction

    async def update_transaction(
        self,
        budget_id: uuid.UUID,
        transaction_id: uuid.UUID,
        data: TransactionUpdate,
        user: IdentityUser,
    ) -> Transaction:
        transaction = await self.guard.transaction(user.id, budget_id, transaction_id)
        if data.category:
            await self.guard.category_reference(user.id, data.category)
            data = data.model_copy(update={"category": _normalize_category(data.category)})

        apply_partial_update(transaction, data, nullable=NULLABLE_FIELDS)
        await self.db.flush()
        await self.db.refresh(transaction)
        return transaction

    async def delete_transaction(
        self, budget_id: uuid.UUID, transaction_id: uuid.UUID, user: IdentityUser
    ) -> None:
        transaction = await self.guard.transaction(user.id, budget_id, transaction_id)
        await self.db.delete(transaction)
        await self.db.flush()
        logger.info("transaction_deleted", transaction_id=str(transaction_id), user_id=user.id)
