"""Budget model."""

import uuid
from datetime import date
from decimal import Decimal
from typing import Literal, get_args

from sqlalchemy import CheckConstraint, Date, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_api.models.base import Base, TimestampMixin

BudgetPeriod = Literal["monthly", "yearly", "custom"]
BUDGET_PERIODS = get_args(BudgetPeriod)


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)  # identity provider user id
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False)  # monthly, yearly, custom
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    transactions = relationship(
        "Transaction", back_populates="budget", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_budgets_amount_positive"),
        CheckConstraint(f"period IN {BUDGET_PERIODS!r}", name="ck_budgets_period"),
    )
