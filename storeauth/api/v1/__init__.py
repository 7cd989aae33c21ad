"""
API v1 routes.
"""

from fastapi import APIRouter

from storeauth.api.v1 import admin, auth

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
