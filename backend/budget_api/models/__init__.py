"""SQLAlchemy models."""

from budget_api.models.base import Base
from budget_api.models.budget import Budget
from budget_api.models.category import Category
from budget_api.models.transaction import Transaction

__all__ = [
    "Base",
    "Budget",
    "Category",
    "Transaction",
]
