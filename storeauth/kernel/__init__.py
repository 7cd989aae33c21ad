"""
Kernel Layer

Foundational components shared by every surface:
- Identity models (user accounts, roles)
- Identity Core (credential lifecycle)

Architectural Invariants:
- No direct database access from the API layer; everything goes through the credential store
- Every multi-field change is a single committed write
"""

from storeauth.kernel.models import Base, TimestampMixin, User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "UserRole",
]
