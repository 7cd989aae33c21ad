"""
FastAPI dependencies for authentication, authorization, and identity wiring.
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storeauth.config import Settings, get_settings
from storeauth.database import get_db
from storeauth.kernel.identity.captcha import TurnstileVerifier
from storeauth.kernel.identity.lifecycle import IdentityConfig, IdentityLifecycle
from storeauth.kernel.identity.notifications import NotificationGateway, build_notification_gateway
from storeauth.kernel.identity.store import SqlAlchemyCredentialStore
from storeauth.kernel.identity.tokens import (
    SessionClaims,
    SubjectClaims,
    TokenCodec,
    TokenExpiredError,
    TokenInvalidError,
)
from storeauth.kernel.models.user import UserRole


# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


@dataclass(frozen=True)
class AuthenticatedSubject:
    """Subject injected by the bearer gate; the lifecycle never sees raw headers."""

    subject_id: int
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def get_notification_gateway(settings: AppSettings) -> NotificationGateway:
    return build_notification_gateway(settings)


def get_identity_config(settings: AppSettings) -> IdentityConfig:
    return IdentityConfig.from_settings(settings)


def get_lifecycle(
    db: DbSession,
    gateway: Annotated[NotificationGateway, Depends(get_notification_gateway)],
    config: Annotated[IdentityConfig, Depends(get_identity_config)],
) -> IdentityLifecycle:
    """Build an IdentityLifecycle bound to this request's session."""
    return IdentityLifecycle(
        store=SqlAlchemyCredentialStore(db),
        gateway=gateway,
        config=config,
    )


Lifecycle = Annotated[IdentityLifecycle, Depends(get_lifecycle)]


def get_captcha_verifier(settings: AppSettings) -> TurnstileVerifier:
    return TurnstileVerifier.from_settings(settings)


Captcha = Annotated[TurnstileVerifier, Depends(get_captcha_verifier)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_bearer(
    credentials: Optional[HTTPAuthorizationCredentials],
    config: IdentityConfig,
    signing_key: str,
):
    if not credentials:
        raise _unauthorized("Not authenticated")
    codec = TokenCodec(algorithm=config.algorithm)
    try:
        return codec.verify(credentials.credentials, signing_key)
    except TokenExpiredError:
        raise _unauthorized("Token expired. Please login again")
    except TokenInvalidError:
        raise _unauthorized("Invalid token")


async def get_session_subject(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    config: Annotated[IdentityConfig, Depends(get_identity_config)],
) -> AuthenticatedSubject:
    """Verify a session bearer token or raise 401."""
    claims = _decode_bearer(credentials, config, config.session_key)
    if not isinstance(claims, SessionClaims):
        raise _unauthorized("Invalid token")
    return AuthenticatedSubject(subject_id=claims.subject_id, role=claims.role)


async def get_reset_subject(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    config: Annotated[IdentityConfig, Depends(get_identity_config)],
) -> AuthenticatedSubject:
    """Verify a password-reset bearer token or raise 401."""
    claims = _decode_bearer(credentials, config, config.reset_key)
    if not isinstance(claims, SubjectClaims):
        raise _unauthorized("Invalid token")
    return AuthenticatedSubject(subject_id=claims.subject_id)


CurrentSubject = Annotated[AuthenticatedSubject, Depends(get_session_subject)]
ResetSubject = Annotated[AuthenticatedSubject, Depends(get_reset_subject)]


async def require_admin(subject: CurrentSubject) -> AuthenticatedSubject:
    """Require the current subject to be an admin."""
    if not subject.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin only.",
        )
    return subject


AdminSubject = Annotated[AuthenticatedSubject, Depends(require_admin)]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
