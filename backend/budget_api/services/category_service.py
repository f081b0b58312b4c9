"""Category management service."""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from budget_api.config import settings
from budget_api.core.exceptions import ConflictError
from budget_api.models.category import Category
from budget_api.schemas.category import CategoryCreate, CategoryUpdate
from budget_api.services.identity_client import IdentityUser
from budget_api.services.ownership import OwnershipGuard

logger = structlog.get_logger()

DUPLICATE_NAME = "A category with that name already exists"


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.guard = OwnershipGuard(db)

    async def list_categories(self, user: IdentityUser) -> list[Category]:
        result = await self.db.execute(
            select(Category).where(Category.user_id == user.id).order_by(Category.name)
        )
        return list(result.scalars().all())

    async def get_category(self, category_id: uuid.UUID, user: IdentityUser) -> Category:
        return await self.guard.category(user.id, category_id)

    async def create_category(self, data: CategoryCreate, user: IdentityUser) -> Category:
        """Create a category; names are unique per user."""
        await self._ensure_name_available(user.id, data.name)

        category = Category(
            user_id=user.id,
            name=data.name,
            color=data.color or settings.default_category_color,
        )
        self.db.add(category)
        await self._flush_unique(category)
        logger.info("category_created", category_id=str(category.id), user_id=user.id)
        return category

    async def update_category(
        self, category_id: uuid.UUID, data: CategoryUpdate, user: IdentityUser
    ) -> Category:
        category = await self.guard.category(user.id, category_id)
        update_data = data.model_dump(exclude_unset=True)

        name = update_data.get("name")
        if name and name != category.name:
            await self._ensure_name_available(user.id, name)
            category.name = name
        if "color" in update_data:
            category.color = update_data["color"] or settings.default_category_color

        await self._flush_unique(category)
        return category

    async def delete_category(self, category_id: uuid.UUID, user: IdentityUser) -> None:
        """Delete a category unless a transaction still refers to it."""
        category = await self.guard.category(user.id, category_id)
        await self.guard.category_unused(category)
        await self.db.delete(category)
        await self.db.flush()
        logger.info("category_deleted", category_id=str(category_id), user_id=user.id)

    async def _ensure_name_available(self, user_id: str, name: str) -> None:
        result = await self.db.execute(
            select(Category.id).where(Category.user_id == user_id, Category.name == name)
        )
        if result.first() is not None:
            raise ConflictError(DUPLICATE_NAME)

    async def _flush_unique(self, category: Category) -> None:
        # A concurrent insert can slip past the name check; the unique constraint catches it
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(DUPLICATE_NAME) from e
        await self.db.refresh(category)
