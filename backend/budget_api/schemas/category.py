"""Category schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    color: str | None = Field(default=None, pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    color: str | None = Field(default=None, pattern=HEX_COLOR)  # explicit null resets to the default color

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    name: str
    color: str
    created_at: datetime

    model_config = {"from_attributes": True}
