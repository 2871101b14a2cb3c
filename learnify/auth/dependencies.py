from typing import Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from learnify.auth.auth_utils import verify_bearer_token, optional_bearer_token
from learnify.core.database import get_db
from learnify.core.errors import AppException, ErrorKind


class Principal(BaseModel):
    """Authenticated caller attached to each request"""
    user_id: str
    role: str = "student"
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def _load_principal(db: AsyncIOMotorDatabase, user_id: str) -> Principal:
    user = await db.users.find_one({"user_id": user_id})
    if not user or not user.get("is_active", True):
        raise AppException(
            status_code=401,
            error_code=ErrorKind.UNAUTHORIZED.value,
            message="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Principal(
        user_id=user["user_id"],
        role=user.get("role", "student"),
        name=user.get("name"),
        email=user.get("email"),
    )


# ==================== DEPENDENCY FUNCTIONS ====================

async def get_current_user(
    token: dict = Depends(verify_bearer_token),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Principal:
    """
    Resolve the bearer token into a Principal.
    Role comes from the stored user, so demotions apply immediately.
    """
    return await _load_principal(db, token["sub"])


async def get_optional_user(
    token: Optional[dict] = Depends(optional_bearer_token),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> Optional[Principal]:
    if not token:
        return None
    return await _load_principal(db, token["sub"])


async def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    if not user.is_admin:
        raise AppException(
            status_code=403,
            error_code=ErrorKind.FORBIDDEN.value,
            message=f"User role {user.role} is not authorized to access this route",
        )
    return user
