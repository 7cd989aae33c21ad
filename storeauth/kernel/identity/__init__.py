"""
Identity Core - registration, verification, login, password reset and email change.
"""

from storeauth.kernel.identity.errors import ErrorKind, IdentityError
from storeauth.kernel.identity.password import PasswordHasher
from storeauth.kernel.identity.tokens import (
    EmailChangeClaims,
    SessionClaims,
    SubjectClaims,
    TokenCodec,
    TokenExpiredError,
    TokenInvalidError,
)
from storeauth.kernel.identity.state import AccountState, derive_state
from storeauth.kernel.identity.store import CredentialStore, SqlAlchemyCredentialStore
from storeauth.kernel.identity.notifications import (
    NotificationGateway,
    best_effort,
    build_notification_gateway,
)
from storeauth.kernel.identity.captcha import TurnstileVerifier
from storeauth.kernel.identity.lifecycle import (
    IdentityConfig,
    IdentityLifecycle,
    LoginResult,
    ResendOutcome,
    UserProfile,
    VerificationFlow,
    VerificationResult,
)

__all__ = [
    "ErrorKind",
    "IdentityError",
    "PasswordHasher",
    "EmailChangeClaims",
    "SessionClaims",
    "SubjectClaims",
    "TokenCodec",
    "TokenExpiredError",
    "TokenInvalidError",
    "AccountState",
    "derive_state",
    "CredentialStore",
    "SqlAlchemyCredentialStore",
    "NotificationGateway",
    "best_effort",
    "build_notification_gateway",
    "TurnstileVerifier",
    "IdentityConfig",
    "IdentityLifecycle",
    "LoginResult",
    "ResendOutcome",
    "UserProfile",
    "VerificationFlow",
    "VerificationResult",
]
