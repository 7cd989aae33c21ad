"""
Administrative account endpoints.
"""

from fastapi import APIRouter

from storeauth.api.deps import AdminSubject, Lifecycle
from storeauth.kernel.identity.lifecycle import UserProfile
from storeauth.schemas.auth import SetActiveRequest

router = APIRouter()


@router.patch("/users/{user_id}/active", response_model=UserProfile)
async def set_user_active(
    user_id: int,
    data: SetActiveRequest,
    admin: AdminSubject,
    lifecycle: Lifecycle,
):
    """Activate or deactivate an account. Admins cannot target themselves."""
    return await lifecycle.set_account_active(
        subject_id=user_id,
        active=data.is_active,
        acting_admin_id=admin.subject_id,
    )
