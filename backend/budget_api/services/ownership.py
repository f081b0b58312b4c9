"""Ownership guard.

Every lookup filters on the record id *and* the requesting user in the same
query. A record that does not exist and a record owned by someone else both
come back as ``NotFoundError``, never as a 403, so one user cannot probe for
another user's ids.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.core.exceptions import ConflictError, NotFoundError
from budget_api.models.budget import Budget
from budget_api.models.category import Category
from budget_api.models.transaction import Transaction


def parse_category_id(value: str | None) -> uuid.UUID | None:
    """Return the id when a transaction's category field refers to a category row."""
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


class OwnershipGuard:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def budget(self, user_id: str, budget_id: uuid.UUID) -> Budget:
        result = await self.db.execute(
            select(Budget).where(Budget.id == budget_id, Budget.user_id == user_id)
        )
        budget = result.scalar_one_or_none()
        if budget is None:
            raise NotFoundError("Budget")
        return budget

    async def transaction(
        self, user_id: str, budget_id: uuid.UUID, transaction_id: uuid.UUID
    ) -> Transaction:
        """Transitive check: the budget must be the user's, the transaction the budget's."""
        await self.budget(user_id, budget_id)
        result = await self.db.execute(
            select(Transaction).where(
                Transaction.id == transaction_id,
                Transaction.budget_id == budget_id,
            )
        )
        transaction = result.scalar_one_or_none()
        if transaction is None:
            raise NotFoundError("Transaction")
        return transaction

    async def category(self, user_id: str, category_id: uuid.UUID) -> Category:
        result = await self.db.execute(
            select(Category).where(Category.id == category_id, Category.user_id == user_id)
        )
        category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundError("Category")
        return category

    async def category_reference(self, user_id: str, value: str | None) -> None:
        """A category field holding an id must point at one of the user's categories."""
        category_id = parse_category_id(value)
        if category_id is not None:
            await self.category(user_id, category_id)

    async def category_unused(self, category: Category) -> None:
        result = await self.db.execute(
            select(Transaction.id).where(Transaction.category == str(category.id)).limit(1)
        )
        if result.first() is not None:
            raise ConflictError("Cannot delete a category that is used by transactions")
