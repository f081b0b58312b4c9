"""Transaction schemas for request/response validation."""

import datetime as dt
import uuid
from decimal import Decimal

from pydantic import BaseModel, Field

from budget_api.models.transaction import TransactionType


class TransactionCreate(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    type: TransactionType = "expense"
    category: str | None = Field(default=None, max_length=100)  # category id or label, defaults to "other"
    date: dt.date
    notes: str | None = None


class TransactionUpdate(BaseModel):
    description: str | None = Field(default=None, min_length=1, max_length=500)
    amount: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    type: TransactionType | None = None
    category: str | None = Field(default=None, min_length=1, max_length=100)
    date: dt.date | None = None
    notes: str | None = None  # explicit null clears it


class TransactionResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    budget_id: uuid.UUID
    description: str
    amount: float
    type: str
    category: str
    date: dt.date
    notes: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime | None = None

    model_config = {"from_attributes": True}
