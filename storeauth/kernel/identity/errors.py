"""
Typed failures raised by the identity lifecycle.

Every failure carries a stable ``kind`` for client-side branching and a
message that is safe to show to the user. The HTTP layer maps ``status_code``
and ``kind`` straight into the response body.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Stable failure identifiers exposed to API clients."""

    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    EXPIRED = "expired"
    ALREADY_VERIFIED = "already_verified"
    PASSWORD_REQUIRED = "password_required"
    INVALID_PASSWORD = "invalid_password"
    EMAIL_TAKEN = "email_taken"
    NO_OP_CHANGE = "no_op_change"
    DELIVERY_UNAVAILABLE = "delivery_unavailable"
    FORBIDDEN = "forbidden"
    CAPTCHA_REQUIRED = "captcha_required"
    CAPTCHA_FAILED = "captcha_failed"
    CAPTCHA_UNAVAILABLE = "captcha_unavailable"


class IdentityError(Exception):
    """Base class for identity lifecycle failures."""

    kind: ErrorKind = ErrorKind.CONFLICT
    status_code: int = 400
    default_message: str = "Request could not be completed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.kind.value}


class ConflictError(IdentityError):
    kind = ErrorKind.CONFLICT
    status_code = 409
    default_message = "Email already used"


class NotFoundError(IdentityError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_message = "User not found"


class InvalidCredentialsError(IdentityError):
    # 400 rather than 401 so "no such user" and "wrong password" look alike
    kind = ErrorKind.INVALID_CREDENTIALS
    status_code = 400
    default_message = "Invalid credentials"


class AccountDeactivatedError(IdentityError):
    kind = ErrorKind.ACCOUNT_DEACTIVATED
    status_code = 403
    default_message = "Your account has been deactivated"


class InvalidOrExpiredError(IdentityError):
    kind = ErrorKind.INVALID_OR_EXPIRED
    status_code = 400
    default_message = "This link is invalid or has expired. Please request a new one."


class ExpiredLinkError(InvalidOrExpiredError):
    """Token is past its TTL, or was superseded by a newer request."""

    kind = ErrorKind.EXPIRED
    default_message = "This link has expired. Please request a new one."


class AlreadyVerifiedError(IdentityError):
    kind = ErrorKind.ALREADY_VERIFIED
    status_code = 400
    default_message = "User already verified"


class PasswordRequiredError(IdentityError):
    kind = ErrorKind.PASSWORD_REQUIRED
    status_code = 400
    default_message = "Password required for email update"


class InvalidPasswordError(IdentityError):
    kind = ErrorKind.INVALID_PASSWORD
    status_code = 400
    default_message = "Invalid password"


class EmailTakenError(IdentityError):
    kind = ErrorKind.EMAIL_TAKEN
    status_code = 409
    default_message = "Email already used by another account"


class NoOpChangeError(IdentityError):
    kind = ErrorKind.NO_OP_CHANGE
    status_code = 400
    default_message = "New email must be different from current email"


class DeliveryUnavailableError(IdentityError):
    kind = ErrorKind.DELIVERY_UNAVAILABLE
    status_code = 503
    default_message = "Email delivery is temporarily unavailable. Please try again later."


class ForbiddenError(IdentityError):
    kind = ErrorKind.FORBIDDEN
    status_code = 403
    default_message = "You are not allowed to perform this action"


class CaptchaRequiredError(IdentityError):
    kind = ErrorKind.CAPTCHA_REQUIRED
    status_code = 400
    default_message = "Captcha is required"


class CaptchaFailedError(IdentityError):
    kind = ErrorKind.CAPTCHA_FAILED
    status_code = 400
    default_message = "Captcha verification failed"


class CaptchaUnavailableError(IdentityError):
    kind = ErrorKind.CAPTCHA_UNAVAILABLE
    status_code = 503
    default_message = "Captcha verification unavailable"
