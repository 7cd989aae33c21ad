"""
Authentication endpoints.
"""

from fastapi import APIRouter, Request, status

from storeauth.api.deps import Captcha, CurrentSubject, Lifecycle, ResetSubject, get_client_ip
from storeauth.kernel.identity.lifecycle import ResendOutcome, UserProfile, VerificationFlow
from storeauth.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
    UpdateEmailRequest,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from storeauth.schemas.common import SuccessResponse

router = APIRouter()


@router.post("/register", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    data: RegisterRequest,
    lifecycle: Lifecycle,
    captcha: Captcha,
):
    """
    Register a new account.
    
    No password is taken here; it is set from the verification link.
    """
    await captcha.verify(data.turnstile_token, get_client_ip(request))
    user = await lifecycle.register(name=data.name, email=data.email)
    return SuccessResponse(
        message="Registration successful. Please check your email to verify your account.",
        data=user.model_dump(mode="json"),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    data: LoginRequest,
    lifecycle: Lifecycle,
    captcha: Captcha,
):
    """
    Authenticate user and return a session token.
    """
    await captcha.verify(data.turnstile_token, get_client_ip(request))
    result = await lifecycle.login(email=data.email, password=data.password)
    return LoginResponse(
        access_token=result.access_token,
        token_type=result.token_type,
        expires_in=result.expires_in,
        user=result.user,
    )


@router.post("/forgot-password", response_model=SuccessResponse)
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    lifecycle: Lifecycle,
    captcha: Captcha,
):
    await captcha.verify(data.turnstile_token, get_client_ip(request))
    await lifecycle.forgot_password(email=data.email)
    return SuccessResponse(message="Password reset link sent to your email")


@router.patch("/reset-password", response_model=SuccessResponse)
async def reset_password(
    data: ResetPasswordRequest,
    subject: ResetSubject,
    lifecycle: Lifecycle,
):
    """
    Set a new password. Requires the token from the reset link as bearer.
    """
    await lifecycle.reset_password(new_password=data.password, subject_id=subject.subject_id)
    return SuccessResponse(message="Password has been reset successfully")


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    subject: CurrentSubject,
    lifecycle: Lifecycle,
):
    """
    Get current user's profile.
    """
    return await lifecycle.get_current_user(subject.subject_id)


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    data: VerifyEmailRequest,
    lifecycle: Lifecycle,
):
    """
    Complete registration or an email change from a mailed link.
    
    Either way the password in the body becomes the account password.
    """
    result = await lifecycle.verify_email_and_set_password(token=data.token, password=data.password)
    if result.flow == VerificationFlow.EMAIL_CHANGE:
        message = "Email address updated successfully"
    else:
        message = "Email verified successfully. You can now log in."
    return VerifyEmailResponse(message=message, flow=result.flow.value, user=result.user)


@router.post("/resend-verification", response_model=SuccessResponse)
async def resend_verification(
    data: ResendVerificationRequest,
    lifecycle: Lifecycle,
):
    await lifecycle.resend_verification(email=data.email)
    return SuccessResponse(message="Verification email sent")


@router.patch("/update-email", response_model=SuccessResponse)
async def update_email(
    data: UpdateEmailRequest,
    subject: CurrentSubject,
    lifecycle: Lifecycle,
):
    """
    Request an email change. The current address stays valid until the
    link sent to the new address is used.
    """
    await lifecycle.update_email(
        subject_id=subject.subject_id,
        current_password=data.password,
        new_email=data.new_email,
    )
    return SuccessResponse(message="Verification email sent to your new email address")


@router.post("/resend-email-verification", response_model=SuccessResponse)
async def resend_email_verification(
    subject: CurrentSubject,
    lifecycle: Lifecycle,
):
    outcome = await lifecycle.resend_email_verification(subject.subject_id)
    if outcome == ResendOutcome.NEW_EMAIL:
        message = "Verification email sent to your new email address"
    else:
        message = "Verification email sent"
    return SuccessResponse(message=message, data={"target": outcome.value})
