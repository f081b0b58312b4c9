"""Python client for the Budget Tracker API."""

from budget_api.client.api import BudgetApiError, BudgetClient
from budget_api.client.session import (
    FileSessionStore,
    SessionState,
    SessionStatus,
    SessionTokens,
    SessionTransitionError,
)

__all__ = [
    "BudgetApiError",
    "BudgetClient",
    "FileSessionStore",
    "SessionState",
    "SessionStatus",
    "SessionTokens",
    "SessionTransitionError",
]
