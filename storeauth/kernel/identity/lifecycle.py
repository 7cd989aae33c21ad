"""
Identity lifecycle: registration, verification, login, password reset and
email change over one mutable account row.

Every read-then-decide sequence re-reads the row through the store instead
of trusting token claims, and every multi-field change is a single
``store.update`` call. Notifications are sent only after the write is
committed.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

from storeauth.config import Settings
from storeauth.kernel.identity.errors import (
    AccountDeactivatedError,
    AlreadyVerifiedError,
    ConflictError,
    EmailTakenError,
    ExpiredLinkError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidOrExpiredError,
    InvalidPasswordError,
    NoOpChangeError,
    NotFoundError,
    PasswordRequiredError,
)
from storeauth.kernel.identity.notifications import NotificationGateway, best_effort
from storeauth.kernel.identity.password import PasswordHasher
from storeauth.kernel.identity.store import CredentialStore, normalize_email
from storeauth.kernel.identity.tokens import (
    Clock,
    EmailChangeClaims,
    SessionClaims,
    SubjectClaims,
    TokenCodec,
    TokenExpiredError,
    TokenInvalidError,
    utc_now,
)
from storeauth.kernel.models.user import User, UserRole
from storeauth.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class IdentityConfig:
    """Signing keys, token lifetimes and link settings for the lifecycle."""

    registration_key: str
    reset_key: str
    session_key: str
    registration_ttl: timedelta = timedelta(hours=1)
    reset_ttl: timedelta = timedelta(minutes=15)
    session_ttl: timedelta = timedelta(days=7)
    algorithm: str = "HS256"
    frontend_url: str = "http://localhost:3000"
    brand_name: str = "TCG Store"

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityConfig":
        return cls(
            registration_key=settings.jwt_secret_verify,
            reset_key=settings.jwt_secret_reset,
            session_key=settings.jwt_secret_session,
            registration_ttl=timedelta(minutes=settings.verification_token_ttl_minutes),
            reset_ttl=timedelta(minutes=settings.reset_token_ttl_minutes),
            session_ttl=timedelta(days=settings.session_token_ttl_days),
            algorithm=settings.algorithm,
            frontend_url=settings.frontend_url.rstrip("/"),
            brand_name=settings.brand_name,
        )


class UserProfile(BaseModel):
    """Public view of an account; never carries the password digest."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    pending_email: Optional[str] = None
    role: UserRole
    is_verified: bool
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


@dataclass
class LoginResult:
    user: UserProfile
    access_token: str
    expires_in: int
    token_type: str = "bearer"


class VerificationFlow(str, Enum):
    REGISTRATION = "registration"
    EMAIL_CHANGE = "email_change"


@dataclass
class VerificationResult:
    flow: VerificationFlow
    user: UserProfile


class ResendOutcome(str, Enum):
    """Which address a resend-email-verification request mailed."""
    NEW_EMAIL = "new_email"
    CURRENT_EMAIL = "current_email"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _minutes(ttl: timedelta) -> int:
    return int(ttl.total_seconds() // 60)


class IdentityLifecycle:
    """
    Orchestrates the account state machine.

    States are derived from flags (see ``state.derive_state``):
    UNVERIFIED -> ACTIVE <-> EMAIL_CHANGE_PENDING.
    """

    def __init__(
        self,
        store: CredentialStore,
        gateway: NotificationGateway,
        config: IdentityConfig,
        hasher: Optional[PasswordHasher] = None,
        codec: Optional[TokenCodec] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.config = config
        self.hasher = hasher or PasswordHasher()
        self._clock = clock or utc_now
        self.codec = codec or TokenCodec(algorithm=config.algorithm, clock=self._clock)

    def _now(self) -> datetime:
        return self._clock()

    def _link(self, path: str, token: str) -> str:
        return f"{self.config.frontend_url}{path}/{quote(token, safe='')}"

    def _template_data(self, user: User, **extra: Any) -> dict[str, Any]:
        data = {
            "userName": user.name,
            "brandName": self.config.brand_name,
            "currentYear": self._now().year,
        }
        data.update(extra)
        return data

    def _subject(self, text: str) -> str:
        return f"{text} - {self.config.brand_name}"

    async def _require_user(self, subject_id: int) -> User:
        user = await self.store.find_by_id(subject_id)
        if user is None:
            raise NotFoundError()
        return user

    async def _ensure_email_free(self, email: str, owner_id: int) -> None:
        other = await self.store.find_by_email(email)
        if other is not None and other.id != owner_id:
            raise EmailTakenError()

    async def _send_registration_link(self, user: User) -> None:
        token = self.codec.issue(
            SubjectClaims(subject_id=user.id),
            self.config.registration_key,
            self.config.registration_ttl,
        )
        await self.gateway.send(
            user.email,
            self._subject("Verify Your Email"),
            "verify-email",
            self._template_data(
                user,
                verificationLink=self._link("/auth/register/verify-email", token),
                expiryMinutes=_minutes(self.config.registration_ttl),
            ),
        )

    async def _start_email_change(self, user: User, new_email: str) -> None:
        """Mint an email-change token; storing it supersedes any earlier one."""
        token = self.codec.issue(
            EmailChangeClaims(subject_id=user.id, new_email=new_email),
            self.config.registration_key,
            self.config.registration_ttl,
        )
        user = await self.store.update(
            user.id,
            pending_email=new_email,
            email_verification_token=token,
            email_token_expiry=self._now() + self.config.registration_ttl,
        )
        logger.info("Email change requested", extra={"user_id": user.id})
        await self.gateway.send(
            new_email,
            self._subject("Verify Your New Email"),
            "verify-new-email",
            self._template_data(
                user,
                newEmail=new_email,
                verificationLink=self._link("/auth/register/verify-email", token),
                expiryMinutes=_minutes(self.config.registration_ttl),
            ),
        )

    async def register(self, name: str, email: str) -> UserProfile:
        """
        Create an unverified account and mail its verification link.

        Raises:
            ConflictError: the address already belongs to an account
            DeliveryUnavailableError: the link could not be mailed
        """
        if await self.store.find_by_email(email) is not None:
            raise ConflictError()

        user = await self.store.create(name, email)
        logger.info("User registered", extra={"user_id": user.id})

        await self._send_registration_link(user)
        return UserProfile.model_validate(user)

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate with email and password and mint a session token.

        Unknown account, unverified account, missing password and wrong
        password all fail the same way. Deactivation is only reported once
        the password has been proven.
        """
        user = await self.store.find_by_email(email)
        if user is None or not user.is_verified or user.password_hash is None:
            raise InvalidCredentialsError()
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.info("Login refused for deactivated account", extra={"user_id": user.id})
            raise AccountDeactivatedError()

        changes: dict[str, Any] = {"last_login": self._now()}
        if self.hasher.needs_rehash(user.password_hash):
            changes["password_hash"] = self.hasher.hash(password)
        user = await self.store.update(user.id, **changes)

        token = self.codec.issue(
            SessionClaims(subject_id=user.id, role=user.role_value),
            self.config.session_key,
            self.config.session_ttl,
        )
        logger.info("Login succeeded", extra={"user_id": user.id})
        return LoginResult(
            user=UserProfile.model_validate(user),
            access_token=token,
            expires_in=int(self.config.session_ttl.total_seconds()),
        )

    async def forgot_password(self, email: str) -> None:
        """
        Mail a password-reset link. Stored state is left untouched.

        Reset tokens are not persisted, so every link stays valid until its
        own expiry.
        """
        user = await self.store.find_by_email(email)
        if user is None:
            raise NotFoundError()

        token = self.codec.issue(
            SubjectClaims(subject_id=user.id),
            self.config.reset_key,
            self.config.reset_ttl,
        )
        await self.gateway.send(
            user.email,
            self._subject("Reset Your Password"),
            "forgot-password",
            self._template_data(
                user,
                resetLink=self._link("/auth/reset-password", token),
                expiryMinutes=_minutes(self.config.reset_ttl),
            ),
        )
        logger.info("Password reset link sent", extra={"user_id": user.id})

    async def reset_password(self, new_password: str, subject_id: int) -> None:
        """Store a new password for a subject proven by a reset-scoped token."""
        user = await self._require_user(subject_id)
        await self.store.update(user.id, password_hash=self.hasher.hash(new_password))
        logger.info("Password reset", extra={"user_id": user.id})

    async def verify_email_and_set_password(self, token: str, password: str) -> VerificationResult:
        """
        Complete either a registration or an email change from a mailed link.

        The claim variant picks the flow; live account state decides whether
        an email-change link is still the current one.
        """
        try:
            claims = self.codec.verify(token, self.config.registration_key)
        except TokenExpiredError as exc:
            raise ExpiredLinkError() from exc
        except TokenInvalidError as exc:
            raise InvalidOrExpiredError() from exc

        user = await self.store.find_by_id(claims.subject_id)
        if user is None:
            raise InvalidOrExpiredError()

        if isinstance(claims, EmailChangeClaims):
            return await self._complete_email_change(user, claims, token, password)
        if isinstance(claims, SubjectClaims):
            return await self._complete_registration(user, password)
        # Session tokens are never signed with the registration key
        raise InvalidOrExpiredError()

    async def _complete_email_change(
        self,
        user: User,
        claims: EmailChangeClaims,
        token: str,
        password: str,
    ) -> VerificationResult:
        expiry = _as_utc(user.email_token_expiry)
        superseded = (
            user.pending_email is None
            or normalize_email(claims.new_email) != user.pending_email
            or (user.email_verification_token is not None and token != user.email_verification_token)
        )
        if superseded or expiry is None or expiry <= self._now():
            logger.info("Stale email-change link rejected", extra={"user_id": user.id})
            raise ExpiredLinkError()

        new_email = user.pending_email
        await self._ensure_email_free(new_email, user.id)

        old_email = user.email
        user = await self.store.update(
            user.id,
            email=new_email,
            password_hash=self.hasher.hash(password),
            pending_email=None,
            email_verification_token=None,
            email_token_expiry=None,
            is_verified=True,
        )
        logger.info("Email change completed", extra={"user_id": user.id})

        await best_effort(
            "email-changed-notification",
            self.gateway.send(
                old_email,
                self._subject("Email Address Changed"),
                "email-changed-notification",
                self._template_data(user, newEmail=new_email),
            ),
            user_id=user.id,
        )
        await best_effort(
            "email-update-success",
            self.gateway.send(
                new_email,
                self._subject("Email Address Successfully Updated"),
                "email-update-success",
                self._template_data(user),
            ),
            user_id=user.id,
        )
        return VerificationResult(flow=VerificationFlow.EMAIL_CHANGE, user=UserProfile.model_validate(user))

    async def _complete_registration(self, user: User, password: str) -> VerificationResult:
        if user.is_verified:
            raise AlreadyVerifiedError()

        user = await self.store.update(
            user.id,
            password_hash=self.hasher.hash(password),
            is_verified=True,
        )
        logger.info("Email verified", extra={"user_id": user.id})

        await best_effort(
            "welcome",
            self.gateway.send(
                user.email,
                f"Welcome to {self.config.brand_name}!",
                "welcome",
                self._template_data(user),
            ),
            user_id=user.id,
        )
        return VerificationResult(flow=VerificationFlow.REGISTRATION, user=UserProfile.model_validate(user))

    async def resend_verification(self, email: str) -> None:
        """Mail a fresh registration link to an unverified account."""
        user = await self.store.find_by_email(email)
        if user is None:
            raise NotFoundError()
        if user.is_verified:
            raise AlreadyVerifiedError()
        await self._send_registration_link(user)
        logger.info("Verification link resent", extra={"user_id": user.id})

    async def update_email(self, subject_id: int, current_password: str, new_email: str) -> None:
        """
        Start an email change. The current address keeps working until the
        link mailed to ``new_email`` is completed.
        """
        user = await self._require_user(subject_id)
        if user.password_hash is None:
            raise PasswordRequiredError()
        if not self.hasher.verify(current_password, user.password_hash):
            raise InvalidPasswordError()

        new_email = normalize_email(new_email)
        await self._ensure_email_free(new_email, user.id)
        if user.email == new_email:
            raise NoOpChangeError()

        await self._start_email_change(user, new_email)

    async def resend_email_verification(self, subject_id: int) -> ResendOutcome:
        """
        Re-mail whichever verification is outstanding: the pending email
        change first, otherwise the initial registration.

        A pending address claimed by another account since the request is
        still re-mailed; completion refuses it with ``EmailTakenError``.
        """
        user = await self._require_user(subject_id)

        if user.pending_email:
            await self._start_email_change(user, user.pending_email)
            return ResendOutcome.NEW_EMAIL

        if not user.is_verified:
            await self._send_registration_link(user)
            return ResendOutcome.CURRENT_EMAIL

        raise AlreadyVerifiedError("Email is already verified")

    async def get_current_user(self, subject_id: int) -> UserProfile:
        user = await self._require_user(subject_id)
        return UserProfile.model_validate(user)

    async def set_account_active(self, subject_id: int, active: bool, acting_admin_id: int) -> UserProfile:
        """Administrative activation toggle. Admins cannot toggle themselves."""
        if subject_id == acting_admin_id:
            raise ForbiddenError("You cannot change the active status of your own account")
        user = await self._require_user(subject_id)
        user = await self.store.update(user.id, is_active=active)
        logger.info(
            "Account %s",
            "activated" if active else "deactivated",
            extra={"user_id": user.id, "admin_id": acting_admin_id},
        )
        return UserProfile.model_validate(user)
