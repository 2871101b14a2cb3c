"""
Accounts: registration, login, profiles and admin user management
"""

import logging
import re
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from learnify.auth.auth_utils import create_access_token, hash_password, verify_password
from learnify.core.database import new_id, utcnow, serialize_many
from learnify.core.errors import ErrorKind, ServiceResult
from learnify.core.stats import build_pagination, page_window
from learnify.enrollments.enrollment_service import EnrollmentService
from learnify.users.user_models import AdminUserUpdate, ProfileUpdate, UserDocument, UserRole

logger = logging.getLogger(__name__)

PRIVATE_FIELDS = ("_id", "password_hash")


def to_safe_user(user: Optional[dict]) -> Optional[dict]:
    if user is None:
        return None
    return {k: v for k, v in user.items() if k not in PRIVATE_FIELDS}


def _flatten_profile(profile_updates: dict) -> dict:
    """Partial profile writes touch only the provided sub-fields"""
    return {f"profile.{key}": value for key, value in profile_updates.items()}


class UserService:

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.enrollments = EnrollmentService(db)

    async def _with_counts(self, user: dict) -> dict:
        user["enrolled_courses_count"] = await self.db.enrollments.count_documents(
            {"student_id": user["user_id"]}
        )
        user["completed_courses_count"] = await self.db.enrollments.count_documents(
            {"student_id": user["user_id"], "progress": 100}
        )
        return user

    # ==================== AUTH ====================

    async def register(self, name: str, email: str, password: str) -> ServiceResult:
        if await self.db.users.count_documents({"email": email}, limit=1):
            return ServiceResult.fail(ErrorKind.CONFLICT, "User already exists with this email")

        now = utcnow()
        user = UserDocument(
            user_id=new_id("USR"),
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.STUDENT,
            created_at=now,
            updated_at=now,
        ).model_dump()

        try:
            await self.db.users.insert_one(user)
        except DuplicateKeyError:
            return ServiceResult.fail(ErrorKind.CONFLICT, "User already exists with this email")

        logger.info("User %s registered", user["user_id"])
        return ServiceResult.ok(
            data={"user": to_safe_user(user), "token": create_access_token(user)},
            message="User registered successfully",
            created=True,
        )

    async def login(self, email: str, password: str) -> ServiceResult:
        user = await self.db.users.find_one({"email": email})
        if not user or not verify_password(password, user.get("password_hash")):
            return ServiceResult.fail(ErrorKind.UNAUTHORIZED, "Invalid credentials")

        if not user.get("is_active", True):
            return ServiceResult.fail(ErrorKind.UNAUTHORIZED, "Account is deactivated")

        user = await self.db.users.find_one_and_update(
            {"user_id": user["user_id"]},
            {"$set": {"last_login": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        logger.info("User %s logged in", user["user_id"])
        return ServiceResult.ok(
            data={"user": to_safe_user(user), "token": create_access_token(user)},
            message="Login successful",
        )

    # ==================== SELF SERVICE ====================

    async def get_profile(self, user_id: str) -> ServiceResult:
        user = await self.db.users.find_one({"user_id": user_id})
        if not user:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "User not found")
        return ServiceResult.ok(data=await self._with_counts(to_safe_user(user)))

    async def update_profile(self, user_id: str, payload: ProfileUpdate) -> ServiceResult:
        updates = {}
        if payload.name:
            updates["name"] = payload.name
        if payload.profile is not None:
            updates.update(_flatten_profile(payload.profile.model_dump(exclude_unset=True)))
        updates["updated_at"] = utcnow()

        user = await self.db.users.find_one_and_update(
            {"user_id": user_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if not user:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "User not found")

        return ServiceResult.ok(
            data=await self._with_counts(to_safe_user(user)),
            message="Profile updated successfully",
        )

    async def dashboard(self, user_id: str) -> ServiceResult:
        return ServiceResult.ok(data=await self.enrollments.student_summary(user_id))

    # ==================== ADMIN ====================

    async def list_users(
        self,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> ServiceResult:
        page, limit, skip = page_window(page, limit)

        query = {}
        if role:
            query["role"] = role
        if is_active is not None:
            query["is_active"] = is_active
        if search:
            pattern = re.escape(search)
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"email": {"$regex": pattern, "$options": "i"}},
            ]

        cursor = self.db.users.find(query).sort("created_at", -1).skip(skip).limit(limit)
        users = [to_safe_user(u) for u in await cursor.to_list(length=limit)]
        for user in users:
            await self._with_counts(user)
        total = await self.db.users.count_documents(query)

        return ServiceResult.ok(data={
            "users": users,
            "pagination": build_pagination(page, limit, total),
        })

    async def get_user(self, user_id: str) -> ServiceResult:
        user = await self.db.users.find_one({"user_id": user_id})
        if not user:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "User not found")

        cursor = self.db.enrollments.find({"student_id": user_id}).sort("created_at", -1)
        enrollments = serialize_many(await cursor.to_list(length=None))
        courses = await self.db.courses.find(
            {"course_id": {"$in": [e["course_id"] for e in enrollments]}},
            {"_id": 0, "course_id": 1, "title": 1, "instructor": 1, "category": 1},
        ).to_list(length=None)
        by_course = {c["course_id"]: c for c in courses}
        for enrollment in enrollments:
            enrollment["course"] = by_course.get(enrollment["course_id"])

        return ServiceResult.ok(data={
            "user": await self._with_counts(to_safe_user(user)),
            "enrollments": enrollments,
        })

    async def update_user(self, user_id: str, payload: AdminUserUpdate) -> ServiceResult:
        updates = payload.model_dump(exclude_none=True, exclude={"profile"})
        if payload.profile is not None:
            updates.update(_flatten_profile(payload.profile.model_dump(exclude_unset=True)))
        updates["updated_at"] = utcnow()

        user = await self.db.users.find_one_and_update(
            {"user_id": user_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if not user:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "User not found")

        logger.info("User %s updated by admin: %s", user_id, sorted(updates))
        return ServiceResult.ok(data=to_safe_user(user), message="User updated successfully")

    async def delete_user(self, user_id: str) -> ServiceResult:
        user = await self.db.users.find_one({"user_id": user_id})
        if not user:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "User not found")

        if user.get("role") == UserRole.ADMIN.value:
            return ServiceResult.fail(ErrorKind.INVALID_INPUT, "Cannot delete admin users")

        removed = await self.db.enrollments.delete_many({"student_id": user_id})
        await self.db.users.delete_one({"user_id": user_id})
        logger.info("User %s deleted with %d enrollments", user_id, removed.deleted_count)
        return ServiceResult.ok(message="User deleted successfully")
