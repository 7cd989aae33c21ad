"""
Kernel Data Models

Core SQLAlchemy models for the identity kernel.
"""

from storeauth.kernel.models.base import Base, TimestampMixin
from storeauth.kernel.models.user import User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "UserRole",
]
