"""Budget schemas for request/response validation."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from budget_api.models.budget import BudgetPeriod


class BudgetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    period: BudgetPeriod
    start_date: date | None = None  # defaults to today
    end_date: date | None = None
    description: str | None = None


class BudgetUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    period: BudgetPeriod | None = None
    start_date: date | None = None
    end_date: date | None = None  # explicit null clears it
    description: str | None = None  # explicit null clears it


class BudgetResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    name: str
    amount: float
    period: str
    start_date: date
    end_date: date | None = None
    description: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class BudgetSummary(BaseModel):
    """Running sums over a budget's transactions."""

    budget_id: uuid.UUID
    amount: float
    total_expenses: float
    total_income: float
    total_spent: float  # expenses minus income
    remaining: float
    percentage_used: float
    transaction_count: int


class DashboardSummary(BaseModel):
    budget_count: int
    total_budget: float
    total_spent: float
    total_remaining: float
