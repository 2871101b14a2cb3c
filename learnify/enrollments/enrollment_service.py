"""
Enrollment lifecycle: enroll / reactivate, progress and module completion,
soft-delete, and enrollment statistics.

Every statistic is recomputed from the enrollments collection on each call.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from learnify.core.database import new_id, utcnow, serialize_mongo, serialize_many
from learnify.core.errors import ErrorKind, ServiceResult
from learnify.core.stats import build_pagination, first_group, page_window
from learnify.enrollments.enrollment_models import EnrollmentDocument, EnrollmentStatus

logger = logging.getLogger(__name__)

COURSE_SUMMARY_PROJECTION = {
    "_id": 0,
    "course_id": 1,
    "title": 1,
    "instructor": 1,
    "difficulty": 1,
    "duration": 1,
    "category": 1,
    "image": 1,
}

EMPTY_STATS = {
    "total_enrollments": 0,
    "completed_enrollments": 0,
    "average_progress": 0,
}


def derive_completion_date(
    progress: int, current: Optional[datetime], now: datetime
) -> Optional[datetime]:
    """completion_date is set exactly while progress == 100; the first completion time sticks."""
    if progress == 100:
        return current or now
    return None


def with_derived_fields(enrollment: dict, now: datetime = None) -> dict:
    now = now or datetime.utcnow()
    enrollment["is_completed"] = enrollment.get("progress", 0) == 100
    start = enrollment.get("start_date")
    if start:
        days = abs((now - start).total_seconds()) / 86400
        enrollment["days_since_enrollment"] = math.ceil(days)
    return enrollment


class EnrollmentService:
    """Owns the student/course relationship"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    # ==================== HELPERS ====================

    async def _course_summaries(self, course_ids: List[str]) -> dict:
        cursor = self.db.courses.find(
            {"course_id": {"$in": list(set(course_ids))}}, COURSE_SUMMARY_PROJECTION
        )
        courses = await cursor.to_list(length=None)
        return {c["course_id"]: c for c in courses}

    async def _present(self, enrollments: List[dict]) -> List[dict]:
        """Attach course summaries and derived fields"""
        courses = await self._course_summaries([e["course_id"] for e in enrollments])
        now = datetime.utcnow()
        for enr in serialize_many(enrollments):
            enr["course"] = courses.get(enr["course_id"])
            with_derived_fields(enr, now)
        return enrollments

    async def _present_one(self, enrollment: Optional[dict]) -> Optional[dict]:
        if enrollment is None:
            return None
        return (await self._present([enrollment]))[0]

    # ==================== LIFECYCLE ====================

    async def enroll(self, student_id: str, course_id: str) -> ServiceResult:
        if not course_id:
            return ServiceResult.fail(ErrorKind.INVALID_INPUT, "Course ID is required")

        course = await self.db.courses.find_one({"course_id": course_id})
        if not course or not course.get("is_active", True):
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Course not found or inactive")

        existing = await self.db.enrollments.find_one({
            "student_id": student_id,
            "course_id": course_id,
        })

        if existing:
            if existing.get("is_active"):
                return ServiceResult.fail(ErrorKind.CONFLICT, "Already enrolled in this course")

            # Reactivate the same document; progress and module history stay
            now = utcnow()
            reactivated = await self.db.enrollments.find_one_and_update(
                {"enrollment_id": existing["enrollment_id"], "is_active": False},
                {"$set": {
                    "is_active": True,
                    "start_date": now,
                    "last_accessed_at": now,
                    "updated_at": now,
                }},
                return_document=ReturnDocument.AFTER,
            )
            if reactivated is None:
                return ServiceResult.fail(ErrorKind.CONFLICT, "Already enrolled in this course")

            logger.info("Student %s re-enrolled in %s", student_id, course_id)
            return ServiceResult.ok(
                data=await self._present_one(reactivated),
                message="Re-enrolled in course successfully",
            )

        now = utcnow()
        enrollment = EnrollmentDocument(
            enrollment_id=new_id("ENR"),
            student_id=student_id,
            course_id=course_id,
            start_date=now,
            last_accessed_at=now,
            created_at=now,
            updated_at=now,
        ).model_dump()

        try:
            await self.db.enrollments.insert_one(enrollment)
        except DuplicateKeyError:
            # Lost a race against a concurrent enroll for the same pair
            return ServiceResult.fail(ErrorKind.CONFLICT, "Already enrolled in this course")

        logger.info("Student %s enrolled in %s", student_id, course_id)
        return ServiceResult.ok(
            data=await self._present_one(enrollment),
            message="Enrolled in course successfully",
            created=True,
        )

    async def update_progress(
        self,
        enrollment_id: str,
        requester_id: str,
        progress: Optional[int],
        completed_module_index: Optional[int] = None,
    ) -> ServiceResult:
        if progress is None or progress < 0 or progress > 100:
            return ServiceResult.fail(ErrorKind.INVALID_INPUT, "Progress must be between 0 and 100")

        enrollment = await self.db.enrollments.find_one({"enrollment_id": enrollment_id})
        if not enrollment:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Enrollment not found")

        if enrollment["student_id"] != requester_id:
            return ServiceResult.fail(ErrorKind.FORBIDDEN, "Access denied")

        now = utcnow()
        previous_completion = enrollment.get("completion_date")
        completion_date = derive_completion_date(progress, previous_completion, now)

        await self.db.enrollments.update_one(
            {"enrollment_id": enrollment_id},
            {"$set": {
                "progress": progress,
                "completion_date": completion_date,
                "last_accessed_at": now,
                "updated_at": now,
            }},
        )

        if completed_module_index is not None:
            # Guarded push keeps module_index unique within the list
            await self.db.enrollments.update_one(
                {
                    "enrollment_id": enrollment_id,
                    "completed_modules.module_index": {"$ne": completed_module_index},
                },
                {"$push": {"completed_modules": {
                    "module_index": completed_module_index,
                    "completed_at": now,
                }}},
            )

        if completion_date and not previous_completion:
            logger.info("Enrollment %s completed", enrollment_id)

        updated = await self.db.enrollments.find_one({"enrollment_id": enrollment_id})
        return ServiceResult.ok(
            data=await self._present_one(updated),
            message="Progress updated successfully",
        )

    async def unenroll(self, enrollment_id: str, requester_id: str) -> ServiceResult:
        enrollment = await self.db.enrollments.find_one({"enrollment_id": enrollment_id})
        if not enrollment:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Enrollment not found")

        if enrollment["student_id"] != requester_id:
            return ServiceResult.fail(ErrorKind.FORBIDDEN, "Access denied")

        now = utcnow()
        await self.db.enrollments.update_one(
            {"enrollment_id": enrollment_id},
            {"$set": {"is_active": False, "last_accessed_at": now, "updated_at": now}},
        )
        logger.info("Enrollment %s deactivated", enrollment_id)
        return ServiceResult.ok(message="Unenrolled from course successfully")

    # ==================== READS ====================

    async def get_enrollment(self, enrollment_id: str, requester_id: str, is_admin: bool = False) -> ServiceResult:
        enrollment = await self.db.enrollments.find_one({"enrollment_id": enrollment_id})
        if not enrollment:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, "Enrollment not found")

        if enrollment["student_id"] != requester_id and not is_admin:
            return ServiceResult.fail(ErrorKind.FORBIDDEN, "Access denied")

        enrollment = await self._present_one(enrollment)
        enrollment["course"] = serialize_mongo(
            await self.db.courses.find_one({"course_id": enrollment["course_id"]})
        )
        enrollment["student"] = await self.db.users.find_one(
            {"user_id": enrollment["student_id"]},
            {"_id": 0, "user_id": 1, "name": 1, "email": 1},
        )
        return ServiceResult.ok(data=enrollment)

    async def get_for_student_and_course(self, student_id: str, course_id: str) -> ServiceResult:
        enrollment = await self.db.enrollments.find_one({
            "student_id": student_id,
            "course_id": course_id,
            "is_active": True,
        })
        return ServiceResult.ok(data=await self._present_one(enrollment))

    async def list_for_student(
        self,
        student_id: str,
        status: Optional[EnrollmentStatus] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> ServiceResult:
        page, limit, skip = page_window(page, limit)

        query = {"student_id": student_id}
        if status == EnrollmentStatus.COMPLETED:
            query["progress"] = 100
        elif status == EnrollmentStatus.IN_PROGRESS:
            query["progress"] = {"$lt": 100}

        if is_active is not None:
            query["is_active"] = is_active

        cursor = self.db.enrollments.find(query).sort("last_accessed_at", -1).skip(skip).limit(limit)
        enrollments = await cursor.to_list(length=limit)
        total = await self.db.enrollments.count_documents(query)

        return ServiceResult.ok(data={
            "enrollments": await self._present(enrollments),
            "pagination": build_pagination(page, limit, total),
        })

    # ==================== STATISTICS ====================

    async def aggregate_stats(self) -> dict:
        """Totals across every enrollment, active or not"""
        pipeline = [
            {
                "$group": {
                    "_id": None,
                    "total_enrollments": {"$sum": 1},
                    "completed_enrollments": {
                        "$sum": {"$cond": [{"$eq": ["$progress", 100]}, 1, 0]}
                    },
                    "average_progress": {"$avg": "$progress"},
                }
            }
        ]
        results = await self.db.enrollments.aggregate(pipeline).to_list(length=1)
        stats = first_group(results, EMPTY_STATS)
        if stats.get("average_progress") is None:
            stats["average_progress"] = 0
        return stats

    async def student_summary(self, student_id: str) -> dict:
        """Dashboard numbers for one student's active enrollments"""
        cursor = self.db.enrollments.find(
            {"student_id": student_id, "is_active": True}
        ).sort("last_accessed_at", -1)
        enrollments = await self._present(await cursor.to_list(length=None))

        total = len(enrollments)
        completed = sum(1 for e in enrollments if e.get("progress") == 100)
        average = 0
        if total:
            average = math.floor(sum(e.get("progress", 0) for e in enrollments) / total + 0.5)

        recent_activity = [
            {
                "type": "course_access",
                "course_title": (e.get("course") or {}).get("title"),
                "progress": e.get("progress", 0),
                "last_accessed": e.get("last_accessed_at"),
            }
            for e in enrollments[:5]
        ]

        return {
            "statistics": {
                "total_enrollments": total,
                "completed_courses": completed,
                "average_progress": average,
            },
            "enrollments": enrollments,
            "recent_activity": recent_activity,
        }
