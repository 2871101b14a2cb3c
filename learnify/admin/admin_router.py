"""
Admin API Router
Dashboard, analytics and review moderation. Every route requires the admin role.
"""

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.admin.analytics import get_course_analytics, get_dashboard_stats, get_user_analytics
from learnify.auth.dependencies import require_admin
from learnify.core.database import get_db
from learnify.core.errors import raise_for_result
from learnify.reviews.review_models import ModerationRequest
from learnify.reviews.review_service import ReviewService

router = APIRouter(tags=["Admin"], dependencies=[Depends(require_admin)])


# ============================================================================
# DASHBOARD & ANALYTICS
# ============================================================================

@router.get("/dashboard")
async def dashboard(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await get_dashboard_stats(db)}


@router.get("/analytics/users")
async def user_analytics(
    timeframe: int = Query(30, ge=1, le=3650, description="Window in days"),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "data": await get_user_analytics(db, timeframe)}


@router.get("/analytics/courses")
async def course_analytics(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await get_course_analytics(db)}


# ============================================================================
# REVIEW MODERATION
# ============================================================================

@router.get("/reported-reviews")
async def reported_reviews(
    page: int = 1,
    limit: int = 10,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await ReviewService(db).list_reported(page, limit)
    return {"success": True, "data": result.data}


@router.put("/reviews/{review_id}/moderate")
async def moderate_review(
    review_id: str,
    payload: ModerationRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """approve clears reports; reject leaves them for the record"""
    result = raise_for_result(await ReviewService(db).moderate(review_id, payload.action))
    return {
        "success": True,
        "message": result.message,
        "data": {"review": result.data},
    }
