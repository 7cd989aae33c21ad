"""
Authentication schemas.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from storeauth.kernel.identity.lifecycle import UserProfile


def _check_password_strength(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


class CaptchaMixin(BaseModel):
    """Turnstile response token; ignored when the gate is disabled."""

    turnstile_token: Optional[str] = Field(None, alias="turnstileToken")

    model_config = {"populate_by_name": True}


class RegisterRequest(CaptchaMixin):
    """Account registration request. The password is chosen after verification."""
    
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class LoginRequest(CaptchaMixin):
    """User login request."""
    
    email: EmailStr
    password: str


class ForgotPasswordRequest(CaptchaMixin):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """New password; the subject comes from the reset bearer token."""
    
    password: str = Field(..., min_length=8, max_length=128)
    
    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class VerifyEmailRequest(BaseModel):
    """Mailed verification token plus the password to set."""
    
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)
    
    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class UpdateEmailRequest(BaseModel):
    """Email change request; confirmed by the current password."""
    
    password: str
    new_email: EmailStr = Field(..., alias="newEmail")

    model_config = {"populate_by_name": True}


class SetActiveRequest(BaseModel):
    is_active: bool = Field(..., alias="isActive")

    model_config = {"populate_by_name": True}


class LoginResponse(BaseModel):
    """Session token response."""
    
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


class VerifyEmailResponse(BaseModel):
    message: str
    flow: str
    user: UserProfile
