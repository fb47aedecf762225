"""PostgreSQL database layer for SOS Ksar.

Provides SQLAlchemy models and the async client used by repositories.
"""

from .models import (
    Account,
    AuthSession,
    BaseModel,
    Inventory,
    Report,
    User,
)

__all__ = [
    "Account",
    "AuthSession",
    "BaseModel",
    "Inventory",
    "Report",
    "User",
]
