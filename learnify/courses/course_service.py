"""
Course catalog

Public listing and detail views with rating and enrollment numbers derived
from the reviews and enrollments collections, plus admin-only authoring.
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from learnify.core.database import new_id, utcnow, serialize_mongo, serialize_many
from learnify.core.errors import ErrorKind, ServiceResult
from learnify.core.stats import build_pagination, page_window
from learnify.courses.course_models import CourseCreate, CourseDocument, CourseSort, CourseUpdate
from learnify.enrollments.enrollment_service import EnrollmentService
from learnify.reviews.review_service import ReviewService

logger = logging.getLogger(__name__)

COURSE_PAGE_SIZE = 12
RECENT_REVIEWS_LIMIT = 10

SORT_OPTIONS = {
    CourseSort.TITLE: [("title", 1)],
    CourseSort.NEWEST: [("created_at", -1)],
    CourseSort.OLDEST: [("created_at", 1)],
}


class CourseService:

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.reviews = ReviewService(db)
        self.enrollments = EnrollmentService(db)

    async def _with_stats(self, course: dict) -> dict:
        """rating, review_count and enrolled_students are never stored"""
        stats = await self.reviews.course_review_stats(course["course_id"])
        course["rating"] = stats["average_rating"]
        course["review_count"] = stats["total_reviews"]
        course["enrolled_students"] = await self.db.enrollments.count_documents(
            {"course_id": course["course_id"]}
        )
        return course

    # ==================== READS ====================

    async def list_courses(
        self,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = COURSE_PAGE_SIZE,
    ) -> ServiceResult:
        page, limit, skip = page_window(page, limit or COURSE_PAGE_SIZE)

        query = {"is_active": True}
        if category and category != "all":
            query["category"] = category
        if difficulty and difficulty != "all":
            query["difficulty"] = difficulty
        if search:
            query["$text"] = {"$search": search}

        try:
            sort_spec = SORT_OPTIONS[CourseSort(sort)]
        except ValueError:
            sort_spec = SORT_OPTIONS[CourseSort.NEWEST]

        cursor = self.db.courses.find(query).sort(sort_spec).skip(skip).limit(limit)
        courses = serialize_many(await cursor.to_list(length=limit))
        for course in courses:
            await self._with_stats(course)

        total = await self.db.courses.count_documents(query)
        categories = await self.db.courses.distinct("category", {"is_active": True})

        return ServiceResult.ok(data={
            "courses": courses,
            "categories": sorted(categories),
            "pagination": build_pagination(page, limit, total),
        })

    async def get_course(self, course_id: str, viewer_id: Optional[str] = None) -> ServiceResult:
        course = await self.db.courses.find_one({"course_id": course_id})
        if not course or not course.get("is_active", True):
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Course not found")

        course = await self._with_stats(serialize_mongo(course))

        recent = await self.reviews.list_for_course(course_id, page=1, limit=RECENT_REVIEWS_LIMIT)

        enrollment = None
        if viewer_id:
            enrollment = (await self.enrollments.get_for_student_and_course(viewer_id, course_id)).data

        return ServiceResult.ok(data={
            "course": course,
            "is_enrolled": enrollment is not None,
            "enrollment": enrollment,
            "reviews": recent.data["reviews"],
        })

    # ==================== AUTHORING (ADMIN) ====================

    async def create_course(self, payload: CourseCreate, created_by: Optional[str] = None) -> ServiceResult:
        now = utcnow()
        course = CourseDocument(
            course_id=new_id("COURSE"),
            created_by=created_by,
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        ).model_dump()
        await self.db.courses.insert_one(course)

        logger.info("Course %s created by %s", course["course_id"], created_by)
        return ServiceResult.ok(
            data=serialize_mongo(course),
            message="Course created successfully",
            created=True,
        )

    async def update_course(self, course_id: str, payload: CourseUpdate) -> ServiceResult:
        if not await self.db.courses.count_documents({"course_id": course_id}, limit=1):
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Course not found")

        updates = payload.model_dump(exclude_none=True)
        updates["updated_at"] = utcnow()

        course = await self.db.courses.find_one_and_update(
            {"course_id": course_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        return ServiceResult.ok(
            data=serialize_mongo(course),
            message="Course updated successfully",
        )

    async def delete_course(self, course_id: str) -> ServiceResult:
        """Deactivate when enrollments reference the course, otherwise remove it and its reviews"""
        course = await self.db.courses.find_one({"course_id": course_id})
        if not course:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Course not found")

        if await self.db.enrollments.count_documents({"course_id": course_id}):
            await self.db.courses.update_one(
                {"course_id": course_id},
                {"$set": {"is_active": False, "updated_at": utcnow()}},
            )
            logger.info("Course %s deactivated", course_id)
            return ServiceResult.ok(
                message="Course deactivated successfully (has active enrollments)"
            )

        await self.db.courses.delete_one({"course_id": course_id})
        removed = await self.reviews.delete_for_course(course_id)
        logger.info("Course %s deleted with %d reviews", course_id, removed)
        return ServiceResult.ok(message="Course deleted successfully")
