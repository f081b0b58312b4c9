"""Transaction model."""

import datetime
import uuid
from decimal import Decimal
from typing import Literal, get_args

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_api.models.base import Base, TimestampMixin

TransactionType = Literal["expense", "income"]
TRANSACTION_TYPES = get_args(TransactionType)
DEFAULT_CATEGORY = "other"


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    budget_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False
    )
    # Either a category id or a free-form label such as "other"
    category: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_CATEGORY)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False, default="expense")  # expense, income
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    budget = relationship("Budget", back_populates="transactions")

    __table_args__ = (
        CheckConstraint(f"type IN {TRANSACTION_TYPES!r}", name="ck_transactions_type"),
        Index("idx_transactions_budget_date", "budget_id", "date"),
        Index("idx_transactions_category", "category"),
    )
