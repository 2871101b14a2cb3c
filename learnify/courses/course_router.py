"""
COURSE ROUTER
File: learnify/courses/course_router.py

Public catalog reads; authoring is restricted to administrators.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.auth.dependencies import Principal, get_optional_user, require_admin
from learnify.core.database import get_db
from learnify.core.errors import raise_for_result
from learnify.courses.course_models import CourseCreate, CourseUpdate
from learnify.courses.course_service import COURSE_PAGE_SIZE, CourseService

router = APIRouter(tags=["Courses"])


def get_course_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> CourseService:
    return CourseService(db)


# ==================== CATALOG ====================

@router.get("")
async def list_courses_endpoint(
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
    sort: str = "newest",
    page: int = 1,
    limit: int = COURSE_PAGE_SIZE,
    service: CourseService = Depends(get_course_service),
):
    """List active courses with filters"""
    result = await service.list_courses(category, difficulty, search, sort, page, limit)
    return {"success": True, "data": result.data}


@router.get("/{course_id}")
async def get_course_endpoint(
    course_id: str,
    user: Optional[Principal] = Depends(get_optional_user),
    service: CourseService = Depends(get_course_service),
):
    """Course detail; enrollment state is filled in for a signed-in viewer"""
    viewer_id = user.user_id if user else None
    result = raise_for_result(await service.get_course(course_id, viewer_id))
    return {"success": True, "data": result.data}


# ==================== AUTHORING ====================

@router.post("", status_code=201)
async def create_course_endpoint(
    payload: CourseCreate,
    admin: Principal = Depends(require_admin),
    service: CourseService = Depends(get_course_service),
):
    result = await service.create_course(payload, created_by=admin.user_id)
    return {
        "success": True,
        "message": result.message,
        "data": {"course": result.data},
    }


@router.put("/{course_id}")
async def update_course_endpoint(
    course_id: str,
    payload: CourseUpdate,
    admin: Principal = Depends(require_admin),
    service: CourseService = Depends(get_course_service),
):
    result = raise_for_result(await service.update_course(course_id, payload))
    return {
        "success": True,
        "message": result.message,
        "data": {"course": result.data},
    }


@router.delete("/{course_id}")
async def delete_course_endpoint(
    course_id: str,
    admin: Principal = Depends(require_admin),
    service: CourseService = Depends(get_course_service),
):
    result = raise_for_result(await service.delete_course(course_id))
    return {"success": True, "message": result.message}
