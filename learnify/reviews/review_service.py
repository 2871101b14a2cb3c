"""
Review aggregation and moderation

Rating statistics are recomputed from approved reviews on every read; nothing
is rolled up onto the course document.
"""

import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from learnify import config
from learnify.core.database import new_id, utcnow, serialize_many
from learnify.core.errors import ErrorKind, ServiceResult
from learnify.core.stats import build_pagination, page_window, round_half_up
from learnify.reviews.review_models import ModerationAction, ReviewDocument, ReviewSort

logger = logging.getLogger(__name__)

SORT_OPTIONS = {
    ReviewSort.NEWEST: [("created_at", -1)],
    ReviewSort.OLDEST: [("created_at", 1)],
    ReviewSort.HIGHEST_RATING: [("rating", -1), ("created_at", -1)],
    ReviewSort.LOWEST_RATING: [("rating", 1), ("created_at", -1)],
    ReviewSort.MOST_HELPFUL: [("helpful_votes", -1), ("created_at", -1)],
}

MODERATION_PAST_TENSE = {
    ModerationAction.APPROVE: "approved",
    ModerationAction.REJECT: "rejected",
}


def resolve_sort(sort: Optional[str]) -> list:
    """Unknown or missing sort keys fall back to newest first"""
    try:
        return SORT_OPTIONS[ReviewSort(sort)]
    except ValueError:
        return SORT_OPTIONS[ReviewSort.NEWEST]


class ReviewService:

    def __init__(self, db: AsyncIOMotorDatabase, dedupe_helpful_votes: bool = None):
        self.db = db
        if dedupe_helpful_votes is None:
            dedupe_helpful_votes = config.DEDUPLICATE_HELPFUL_VOTES
        self.dedupe_helpful_votes = dedupe_helpful_votes

    # ==================== HELPERS ====================

    async def _present(self, reviews: List[dict], with_course: bool = True) -> List[dict]:
        """Attach author name and course title, hide voter ids"""
        student_ids = list({r["student_id"] for r in reviews})
        course_ids = list({r["course_id"] for r in reviews})

        students = await self.db.users.find(
            {"user_id": {"$in": student_ids}},
            {"_id": 0, "user_id": 1, "name": 1},
        ).to_list(length=None)
        by_student = {s["user_id"]: s for s in students}

        by_course = {}
        if with_course:
            courses = await self.db.courses.find(
                {"course_id": {"$in": course_ids}},
                {"_id": 0, "course_id": 1, "title": 1, "instructor": 1, "image": 1},
            ).to_list(length=None)
            by_course = {c["course_id"]: c for c in courses}

        for review in serialize_many(reviews):
            review.pop("helpful_voters", None)
            review["student"] = by_student.get(review["student_id"])
            if with_course:
                review["course"] = by_course.get(review["course_id"])
        return reviews

    async def _present_one(self, review: dict) -> dict:
        return (await self._present([review]))[0]

    # ==================== AUTHORING ====================

    async def create_review(self, student_id: str, course_id: str, rating: int, comment: str) -> ServiceResult:
        course = await self.db.courses.find_one({"course_id": course_id})
        if not course or not course.get("is_active", True):
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Course not found")

        enrollment = await self.db.enrollments.find_one({
            "student_id": student_id,
            "course_id": course_id,
            "is_active": True,
        })
        if not enrollment:
            return ServiceResult.fail(
                ErrorKind.PRECONDITION_FAILED,
                "You must be enrolled in this course to leave a review",
            )

        existing = await self.db.reviews.find_one({"student_id": student_id, "course_id": course_id})
        if existing:
            return ServiceResult.fail(ErrorKind.CONFLICT, "You have already reviewed this course")

        now = utcnow()
        review = ReviewDocument(
            review_id=new_id("REV"),
            student_id=student_id,
            course_id=course_id,
            rating=rating,
            comment=comment,
            created_at=now,
            updated_at=now,
        ).model_dump()
        await self.db.reviews.insert_one(review)

        logger.info("Review %s created for %s (rating %s)", review["review_id"], course_id, rating)
        return ServiceResult.ok(
            data=await self._present_one(review),
            message="Review created successfully",
            created=True,
        )

    async def update_review(self, review_id: str, requester_id: str, rating: int, comment: str) -> ServiceResult:
        review = await self.db.reviews.find_one({"review_id": review_id})
        if not review:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")

        if review["student_id"] != requester_id:
            return ServiceResult.fail(ErrorKind.FORBIDDEN, "Access denied")

        # Moderation state is deliberately left alone
        updated = await self.db.reviews.find_one_and_update(
            {"review_id": review_id},
            {"$set": {"rating": rating, "comment": comment, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return ServiceResult.ok(
            data=await self._present_one(updated),
            message="Review updated successfully",
        )

    async def delete_review(self, review_id: str, requester_id: str, is_admin: bool = False) -> ServiceResult:
        review = await self.db.reviews.find_one({"review_id": review_id})
        if not review:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")

        if review["student_id"] != requester_id and not is_admin:
            return ServiceResult.fail(ErrorKind.FORBIDDEN, "Access denied")

        await self.db.reviews.delete_one({"review_id": review_id})
        logger.info("Review %s deleted by %s", review_id, requester_id)
        return ServiceResult.ok(message="Review deleted successfully")

    # ==================== COMMUNITY SIGNALS ====================

    async def mark_helpful(self, review_id: str, voter_id: str) -> ServiceResult:
        if self.dedupe_helpful_votes:
            updated = await self.db.reviews.find_one_and_update(
                {"review_id": review_id, "helpful_voters": {"$ne": voter_id}},
                {"$inc": {"helpful_votes": 1}, "$addToSet": {"helpful_voters": voter_id}},
                return_document=ReturnDocument.AFTER,
            )
            if updated is None:
                if await self.db.reviews.count_documents({"review_id": review_id}, limit=1):
                    return ServiceResult.fail(
                        ErrorKind.CONFLICT, "You have already marked this review as helpful"
                    )
                return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")
        else:
            updated = await self.db.reviews.find_one_and_update(
                {"review_id": review_id},
                {"$inc": {"helpful_votes": 1}},
                return_document=ReturnDocument.AFTER,
            )
            if updated is None:
                return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")

        return ServiceResult.ok(
            data={"helpful_votes": updated["helpful_votes"]},
            message="Review marked as helpful",
        )

    async def report_review(self, review_id: str, reporter_id: str, reason: Optional[str]) -> ServiceResult:
        reason = (reason or "").strip()
        if not reason:
            return ServiceResult.fail(ErrorKind.INVALID_INPUT, "Report reason is required")

        review = await self.db.reviews.find_one({"review_id": review_id})
        if not review:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")

        already_reported = ServiceResult.fail(ErrorKind.CONFLICT, "You have already reported this review")
        if any(r.get("user_id") == reporter_id for r in review.get("reported_by", [])):
            return already_reported

        now = utcnow()
        result = await self.db.reviews.update_one(
            {"review_id": review_id, "reported_by.user_id": {"$ne": reporter_id}},
            {
                "$push": {"reported_by": {"user_id": reporter_id, "reason": reason, "reported_at": now}},
                "$set": {"last_reported_at": now},
            },
        )
        if result.modified_count == 0:
            return already_reported

        logger.info("Review %s reported by %s", review_id, reporter_id)
        return ServiceResult.ok(message="Review reported successfully")

    # ==================== MODERATION ====================

    async def moderate(self, review_id: str, action: Optional[str]) -> ServiceResult:
        try:
            action = ModerationAction(action)
        except ValueError:
            return ServiceResult.fail(ErrorKind.INVALID_INPUT, "Action must be either approve or reject")

        review = await self.db.reviews.find_one({"review_id": review_id})
        if not review:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")

        if action == ModerationAction.APPROVE:
            updates = {"is_approved": True, "reported_by": []}
        else:
            updates = {"is_approved": False}
        updates["updated_at"] = utcnow()

        updated = await self.db.reviews.find_one_and_update(
            {"review_id": review_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Review not found")

        logger.info("Review %s moderated: %s", review_id, action.value)
        return ServiceResult.ok(
            data=await self._present_one(updated),
            message=f"Review {MODERATION_PAST_TENSE[action]} successfully",
        )

    # ==================== STATISTICS ====================

    async def course_review_stats(self, course_id: str) -> dict:
        pipeline = [
            {"$match": {"course_id": course_id, "is_approved": True}},
            {
                "$group": {
                    "_id": "$course_id",
                    "average_rating": {"$avg": "$rating"},
                    "total_reviews": {"$sum": 1},
                }
            },
        ]
        results = await self.db.reviews.aggregate(pipeline).to_list(length=1)
        if not results:
            return {"average_rating": 0, "total_reviews": 0}
        return {
            "average_rating": round_half_up(results[0]["average_rating"]),
            "total_reviews": results[0]["total_reviews"],
        }

    async def platform_rating(self) -> dict:
        """Average over every approved review on the platform"""
        pipeline = [
            {"$match": {"is_approved": True}},
            {
                "$group": {
                    "_id": None,
                    "average_rating": {"$avg": "$rating"},
                    "total_reviews": {"$sum": 1},
                }
            },
        ]
        results = await self.db.reviews.aggregate(pipeline).to_list(length=1)
        if not results:
            return {"average_rating": 0, "total_reviews": 0}
        return {
            "average_rating": round_half_up(results[0]["average_rating"]),
            "total_reviews": results[0]["total_reviews"],
        }

    # ==================== LISTINGS ====================

    async def list_for_course(
        self,
        course_id: str,
        page: int = 1,
        limit: int = 10,
        rating: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> ServiceResult:
        """Approved reviews only"""
        page, limit, skip = page_window(page, limit)

        query = {"course_id": course_id, "is_approved": True}
        if rating:
            query["rating"] = rating

        cursor = self.db.reviews.find(query).sort(resolve_sort(sort)).skip(skip).limit(limit)
        reviews = await cursor.to_list(length=limit)
        total = await self.db.reviews.count_documents(query)

        return ServiceResult.ok(data={
            "reviews": await self._present(reviews, with_course=False),
            "stats": await self.course_review_stats(course_id),
            "pagination": build_pagination(page, limit, total),
        })

    async def list_for_student(self, student_id: str, page: int = 1, limit: int = 10) -> ServiceResult:
        page, limit, skip = page_window(page, limit)

        query = {"student_id": student_id}
        cursor = self.db.reviews.find(query).sort("created_at", -1).skip(skip).limit(limit)
        reviews = await cursor.to_list(length=limit)
        total = await self.db.reviews.count_documents(query)

        return ServiceResult.ok(data={
            "reviews": await self._present(reviews),
            "pagination": build_pagination(page, limit, total),
        })

    async def list_reported(self, page: int = 1, limit: int = 10) -> ServiceResult:
        """Reviews carrying at least one report, most recently reported first"""
        page, limit, skip = page_window(page, limit)

        query = {"reported_by": {"$exists": True, "$ne": []}}
        cursor = self.db.reviews.find(query).sort("last_reported_at", -1).skip(skip).limit(limit)
        reviews = await cursor.to_list(length=limit)
        total = await self.db.reviews.count_documents(query)

        reviews = await self._present(reviews)
        emails = await self.db.users.find(
            {"user_id": {"$in": [r["student_id"] for r in reviews]}},
            {"_id": 0, "user_id": 1, "email": 1},
        ).to_list(length=None)
        email_by_user = {u["user_id"]: u.get("email") for u in emails}
        for review in reviews:
            if review.get("student"):
                review["student"]["email"] = email_by_user.get(review["student_id"])

        return ServiceResult.ok(data={
            "reviews": reviews,
            "pagination": build_pagination(page, limit, total),
        })

    async def delete_for_course(self, course_id: str) -> int:
        """Hard-delete every review of a course being removed"""
        result = await self.db.reviews.delete_many({"course_id": course_id})
        return result.deleted_count
