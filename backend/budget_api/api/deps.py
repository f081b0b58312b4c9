"""Shared API dependencies."""

from budget_api.core.database import get_db
from budget_api.core.security import get_current_user, get_identity_client

__all__ = ["get_db", "get_current_user", "get_identity_client"]
