"""
REVIEW ROUTER
File: learnify/reviews/review_router.py

Course reviews: authoring, helpful votes and reports.
Listing a course's reviews is public; everything else needs a token.
Moderation lives on the admin router.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.auth.dependencies import Principal, get_current_user
from learnify.core.database import get_db
from learnify.core.errors import raise_for_result
from learnify.reviews.review_models import ReportRequest, ReviewCreate, ReviewUpdate
from learnify.reviews.review_service import ReviewService

router = APIRouter(tags=["Reviews"])


def get_review_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


# ==================== PUBLIC ====================

@router.get("/course/{course_id}")
async def list_course_reviews(
    course_id: str,
    page: int = 1,
    limit: int = 10,
    rating: Optional[int] = None,
    sort: str = "newest",
    service: ReviewService = Depends(get_review_service),
):
    """Approved reviews of a course with rating stats"""
    result = await service.list_for_course(course_id, page, limit, rating, sort)
    return {"success": True, "data": result.data}


# ==================== AUTHOR ====================

@router.post("", status_code=201)
async def create_review_endpoint(
    payload: ReviewCreate,
    user: Principal = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    result = raise_for_result(
        await service.create_review(user.user_id, payload.course_id, payload.rating, payload.comment)
    )
    return {
        "success": True,
        "message": result.message,
        "data": {"review": result.data},
    }


@router.get("/my-reviews")
async def list_my_reviews(
    page: int = 1,
    limit: int = 10,
    user: Principal = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    result = await service.list_for_student(user.user_id, page, limit)
    return {"success": True, "data": result.data}


@router.put("/{review_id}")
async def update_review_endpoint(
    review_id: str,
    payload: ReviewUpdate,
    user: Principal = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    result = raise_for_result(
        await service.update_review(review_id, user.user_id, payload.rating, payload.comment)
    )
    return {
        "success": True,
        "message": result.message,
        "data": {"review": result.data},
    }


@router.delete("/{review_id}")
async def delete_review_endpoint(
    review_id: str,
    user: Principal = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    """Author or admin"""
    result = raise_for_result(
        await service.delete_review(review_id, user.user_id, is_admin=user.is_admin)
    )
    return {"success": True, "message": result.message}


# ==================== COMMUNITY ====================

@router.post("/{review_id}/helpful")
async def mark_helpful_endpoint(
    review_id: str,
    user: Principal = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    result = raise_for_result(await service.mark_helpful(review_id, user.user_id))
    return {"success": True, "message": result.message, "data": result.data}


@router.post("/{review_id}/report")
async def report_review_endpoint(
    review_id: str,
    payload: ReportRequest,
    user: Principal = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    result = raise_for_result(await service.report_review(review_id, user.user_id, payload.reason))
    return {"success": True, "message": result.message}
