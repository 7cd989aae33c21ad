"""
User model for identity management.

One row per account. Lifecycle state is not stored in its own column; it is
derived from ``is_verified``, ``password_hash`` and ``pending_email`` (see
``storeauth.kernel.identity.state``).
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from storeauth.kernel.models.base import Base, TimestampMixin


class UserRole(str, Enum):
    """User roles in the system."""
    ADMIN = "ADMIN"
    USER = "USER"


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    pending_email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    # Null until the first verification link sets a password
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        String(20),
        default=UserRole.USER,
        nullable=False,
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    # Bookkeeping copy of the latest email-change token
    email_verification_token: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    email_token_expiry: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def role_value(self) -> str:
        # role may be enum or str when loaded from SQLite
        return self.role.value if hasattr(self.role, "value") else str(self.role)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
