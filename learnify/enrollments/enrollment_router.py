"""
ENROLLMENT ROUTER
File: learnify/enrollments/enrollment_router.py

Enroll / re-enroll, progress updates, unenroll and enrollment lookups.
All routes require an authenticated user.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.auth.dependencies import Principal, get_current_user
from learnify.core.database import get_db
from learnify.core.errors import raise_for_result
from learnify.enrollments.enrollment_models import EnrollmentCreate, EnrollmentStatus, ProgressUpdate
from learnify.enrollments.enrollment_service import EnrollmentService

router = APIRouter(tags=["Enrollments"])


def get_enrollment_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> EnrollmentService:
    return EnrollmentService(db)


# ==================== ENROLLMENT ENDPOINTS ====================

@router.post("", status_code=201)
async def enroll_endpoint(
    payload: EnrollmentCreate,
    response: Response,
    user: Principal = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """
    Enroll in a course
    201 for a fresh enrollment, 200 when an inactive one is reactivated
    """
    result = raise_for_result(await service.enroll(user.user_id, payload.course_id))
    response.status_code = result.status_code
    return {
        "success": True,
        "message": result.message,
        "data": {"enrollment": result.data},
    }


@router.get("")
async def list_my_enrollments(
    status: Optional[EnrollmentStatus] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    page: int = 1,
    limit: int = 10,
    user: Principal = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Get the caller's enrollments, most recently accessed first"""
    result = await service.list_for_student(user.user_id, status, is_active, page, limit)
    return {"success": True, "data": result.data}


@router.get("/course/{course_id}")
async def get_enrollment_for_course(
    course_id: str,
    user: Principal = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Active enrollment of the caller in a course, or null"""
    result = await service.get_for_student_and_course(user.user_id, course_id)
    return {"success": True, "data": {"enrollment": result.data}}


@router.get("/{enrollment_id}")
async def get_enrollment_endpoint(
    enrollment_id: str,
    user: Principal = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Single enrollment (owner or admin)"""
    result = raise_for_result(
        await service.get_enrollment(enrollment_id, user.user_id, is_admin=user.is_admin)
    )
    return {"success": True, "data": {"enrollment": result.data}}


@router.put("/{enrollment_id}/progress")
async def update_progress_endpoint(
    enrollment_id: str,
    payload: ProgressUpdate,
    user: Principal = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    result = raise_for_result(
        await service.update_progress(
            enrollment_id,
            user.user_id,
            payload.progress,
            payload.completed_module_index,
        )
    )
    return {
        "success": True,
        "message": result.message,
        "data": {"enrollment": result.data},
    }


@router.delete("/{enrollment_id}")
async def unenroll_endpoint(
    enrollment_id: str,
    user: Principal = Depends(get_current_user),
    service: EnrollmentService = Depends(get_enrollment_service),
):
    """Soft delete: the enrollment is kept for reactivation"""
    result = raise_for_result(await service.unenroll(enrollment_id, user.user_id))
    return {"success": True, "message": result.message}
