"""
Credential store: the only path from the lifecycle to the users table.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storeauth.kernel.identity.errors import ConflictError, EmailTakenError, NotFoundError
from storeauth.kernel.models.user import User, UserRole
from storeauth.logging_config import get_logger

logger = get_logger(__name__)

# Columns the lifecycle is allowed to write through ``update``
UPDATABLE_FIELDS = frozenset({
    "email",
    "pending_email",
    "password_hash",
    "is_verified",
    "is_active",
    "last_login",
    "email_verification_token",
    "email_token_expiry",
})


def normalize_email(email: str) -> str:
    return email.lower().strip()


class CredentialStore(ABC):
    """Single-row CRUD over identity records. Each write is durable on return."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def find_by_id(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    async def create(self, name: str, email: str) -> User:
        """Insert an unverified USER. Raises ConflictError on a duplicate email."""
        pass

    @abstractmethod
    async def update(self, user_id: int, **fields: Any) -> User:
        """Apply ``fields`` in one write. Raises NotFoundError or EmailTakenError."""
        pass


class SqlAlchemyCredentialStore(CredentialStore):
    """
    CredentialStore backed by an async SQLAlchemy session.

    Every ``create``/``update`` is its own transaction: the row is flushed,
    committed and returned. Reads always hit the database so callers see
    the latest committed state rather than a cached copy.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_email(self, email: str) -> Optional[User]:
        query = (
            select(User)
            .where(User.email == normalize_email(email))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> Optional[User]:
        query = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(self, name: str, email: str) -> User:
        user = User(
            name=name.strip(),
            email=normalize_email(email),
            is_verified=False,
            is_active=True,
            role=UserRole.USER,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            # Lost a race with another registration for the same address
            await self.session.rollback()
            raise ConflictError() from exc
        # Load server-generated id and timestamps
        await self.session.refresh(user)
        return user

    async def update(self, user_id: int, **fields: Any) -> User:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        user = await self.find_by_id(user_id)
        if user is None:
            raise NotFoundError()

        for name, value in fields.items():
            if name in ("email", "pending_email") and value is not None:
                value = normalize_email(value)
            setattr(user, name, value)

        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Update rejected by unique constraint", extra={"user_id": user_id})
            raise EmailTakenError() from exc
        await self.session.refresh(user)
        return user
