"""
USER ROUTER
File: learnify/users/user_router.py

Own profile and dashboard for any signed-in user; user management for admins.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.auth.dependencies import Principal, get_current_user, require_admin
from learnify.core.database import get_db
from learnify.core.errors import raise_for_result
from learnify.users.user_models import AdminUserUpdate, ProfileUpdate, UserRole
from learnify.users.user_service import UserService

router = APIRouter(tags=["Users"])


def get_user_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> UserService:
    return UserService(db)


# ==================== SELF ====================

@router.get("/profile")
async def get_profile_endpoint(
    user: Principal = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    result = raise_for_result(await service.get_profile(user.user_id))
    return {"success": True, "data": {"user": result.data}}


@router.put("/profile")
async def update_profile_endpoint(
    payload: ProfileUpdate,
    user: Principal = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    result = raise_for_result(await service.update_profile(user.user_id, payload))
    return {
        "success": True,
        "message": result.message,
        "data": {"user": result.data},
    }


@router.get("/dashboard")
async def dashboard_endpoint(
    user: Principal = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Enrollment statistics and recent activity of the caller"""
    result = await service.dashboard(user.user_id)
    return {"success": True, "data": result.data}


# ==================== ADMIN ====================

@router.get("")
async def list_users_endpoint(
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    admin: Principal = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    result = await service.list_users(
        role.value if role else None, is_active, search, page, limit
    )
    return {"success": True, "data": result.data}


@router.get("/{user_id}")
async def get_user_endpoint(
    user_id: str,
    admin: Principal = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    result = raise_for_result(await service.get_user(user_id))
    return {"success": True, "data": result.data}


@router.put("/{user_id}")
async def update_user_endpoint(
    user_id: str,
    payload: AdminUserUpdate,
    admin: Principal = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    result = raise_for_result(await service.update_user(user_id, payload))
    return {
        "success": True,
        "message": result.message,
        "data": {"user": result.data},
    }


@router.delete("/{user_id}")
async def delete_user_endpoint(
    user_id: str,
    admin: Principal = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Admin accounts cannot be deleted; the user's enrollments go with them"""
    result = raise_for_result(await service.delete_user(user_id))
    return {"success": True, "message": result.message}
