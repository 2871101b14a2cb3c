"""
Analytics & Dashboard Stats for Admin Panel
Every number is recomputed from the collections on each request
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase

from learnify.core.stats import first_group, round_half_up
from learnify.enrollments.enrollment_service import EnrollmentService
from learnify.reviews.review_service import ReviewService

GROWTH_MONTHS = 6
TOP_COURSES_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 5

EMPTY_ENGAGEMENT = {
    "total_users": 0,
    "average_enrollments": 0,
    "average_completions": 0,
    "overall_progress": 0,
}


def _months_ago(now: datetime, months: int) -> datetime:
    """Midnight on the first day of the month `months` back"""
    year, month = now.year, now.month - months
    while month <= 0:
        month += 12
        year -= 1
    return now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


def _percent(part: int, whole: int) -> int:
    if not whole:
        return 0
    return math.floor(part / whole * 100 + 0.5)


# ============================================================================
# Per-course roll-ups
# ============================================================================

async def _enrollment_counts_by_course(db: AsyncIOMotorDatabase) -> Dict[str, dict]:
    rows = await db.enrollments.aggregate([
        {
            "$group": {
                "_id": "$course_id",
                "enrollment_count": {"$sum": 1},
                "completed_count": {
                    "$sum": {"$cond": [{"$eq": ["$progress", 100]}, 1, 0]}
                },
            }
        }
    ]).to_list(length=None)
    return {row["_id"]: row for row in rows}


async def _review_stats_by_course(db: AsyncIOMotorDatabase) -> Dict[str, dict]:
    rows = await db.reviews.aggregate([
        {
            "$group": {
                "_id": "$course_id",
                "average_rating": {"$avg": "$rating"},
                "review_count": {"$sum": 1},
            }
        }
    ]).to_list(length=None)
    return {row["_id"]: row for row in rows}


async def get_course_performance(db: AsyncIOMotorDatabase) -> List[Dict]:
    """Active courses with enrollment, completion and rating numbers, most enrolled first"""
    courses = await db.courses.find(
        {"is_active": True},
        {"_id": 0, "course_id": 1, "title": 1, "instructor": 1, "category": 1, "difficulty": 1},
    ).to_list(length=None)

    enrollments = await _enrollment_counts_by_course(db)
    reviews = await _review_stats_by_course(db)

    result = []
    for course in courses:
        enr = enrollments.get(course["course_id"], {})
        rev = reviews.get(course["course_id"], {})
        enrollment_count = enr.get("enrollment_count", 0)
        completed_count = enr.get("completed_count", 0)
        result.append({
            **course,
            "enrollment_count": enrollment_count,
            "completed_count": completed_count,
            "completion_rate": round_half_up(
                completed_count / enrollment_count * 100 if enrollment_count else 0
            ),
            "average_rating": round_half_up(rev.get("average_rating")),
            "review_count": rev.get("review_count", 0),
        })

    result.sort(key=lambda c: c["enrollment_count"], reverse=True)
    return result


# ============================================================================
# Dashboard
# ============================================================================

async def get_monthly_growth(db: AsyncIOMotorDatabase, months: int = GROWTH_MONTHS) -> List[Dict]:
    """Student registrations per calendar month"""
    since = _months_ago(datetime.utcnow(), months)
    rows = await db.users.aggregate([
        {"$match": {"role": "student", "created_at": {"$gte": since}}},
        {
            "$group": {
                "_id": {"year": {"$year": "$created_at"}, "month": {"$month": "$created_at"}},
                "count": {"$sum": 1},
            }
        },
    ]).to_list(length=None)

    growth = [
        {"year": row["_id"]["year"], "month": row["_id"]["month"], "count": row["count"]}
        for row in rows
    ]
    growth.sort(key=lambda g: (g["year"], g["month"]))
    return growth


async def get_category_stats(db: AsyncIOMotorDatabase) -> List[Dict]:
    rows = await db.courses.aggregate([
        {"$match": {"is_active": True}},
        {"$group": {"_id": "$category", "count": {"$sum": 1}}},
    ]).to_list(length=None)
    stats = [{"category": row["_id"], "count": row["count"]} for row in rows]
    stats.sort(key=lambda s: s["count"], reverse=True)
    return stats


async def _recent(db: AsyncIOMotorDatabase, collection: str, query: dict) -> List[Dict]:
    """Newest documents with student name and course title attached"""
    docs = await db[collection].find(query, {"_id": 0}).sort("created_at", -1).limit(
        RECENT_ACTIVITY_LIMIT
    ).to_list(length=RECENT_ACTIVITY_LIMIT)

    students = await db.users.find(
        {"user_id": {"$in": [d["student_id"] for d in docs]}},
        {"_id": 0, "user_id": 1, "name": 1},
    ).to_list(length=None)
    courses = await db.courses.find(
        {"course_id": {"$in": [d["course_id"] for d in docs]}},
        {"_id": 0, "course_id": 1, "title": 1},
    ).to_list(length=None)
    by_student = {s["user_id"]: s for s in students}
    by_course = {c["course_id"]: c for c in courses}

    for doc in docs:
        doc.pop("helpful_voters", None)
        doc["student"] = by_student.get(doc["student_id"])
        doc["course"] = by_course.get(doc["course_id"])
    return docs


async def get_dashboard_stats(db: AsyncIOMotorDatabase) -> Dict:
    """
    Overview numbers for the admin dashboard
    """
    total_students = await db.users.count_documents({"role": "student", "is_active": True})
    total_courses = await db.courses.count_documents({"is_active": True})
    total_enrollments = await db.enrollments.count_documents({"is_active": True})

    enrollment_stats = await EnrollmentService(db).aggregate_stats()
    rating = await ReviewService(db).platform_rating()

    top_courses = (await get_course_performance(db))[:TOP_COURSES_LIMIT]

    return {
        "overview": {
            "total_students": total_students,
            "total_courses": total_courses,
            "total_enrollments": total_enrollments,
            "total_reviews": rating["total_reviews"],
            "average_rating": rating["average_rating"],
            "completion_rate": _percent(
                enrollment_stats["completed_enrollments"],
                enrollment_stats["total_enrollments"],
            ),
        },
        "monthly_growth": await get_monthly_growth(db),
        "top_courses": top_courses,
        "category_stats": await get_category_stats(db),
        "recent_activity": {
            "enrollments": await _recent(db, "enrollments", {"is_active": True}),
            "reviews": await _recent(db, "reviews", {"is_approved": True}),
        },
    }


# ============================================================================
# User analytics
# ============================================================================

async def get_registration_trends(db: AsyncIOMotorDatabase, since: datetime) -> List[Dict]:
    """Daily student registrations since a date"""
    rows = await db.users.aggregate([
        {"$match": {"role": "student", "created_at": {"$gte": since}}},
        {
            "$group": {
                "_id": {
                    "year": {"$year": "$created_at"},
                    "month": {"$month": "$created_at"},
                    "day": {"$dayOfMonth": "$created_at"},
                },
                "count": {"$sum": 1},
            }
        },
    ]).to_list(length=None)

    trends = [
        {
            "date": f"{row['_id']['year']:04d}-{row['_id']['month']:02d}-{row['_id']['day']:02d}",
            "count": row["count"],
        }
        for row in rows
    ]
    trends.sort(key=lambda t: t["date"])
    return trends


async def get_engagement(db: AsyncIOMotorDatabase) -> Dict:
    """Per-student enrollment roll-up averaged over all students with an enrollment"""
    rows = await db.enrollments.aggregate([
        {
            "$group": {
                "_id": "$student_id",
                "total_enrollments": {"$sum": 1},
                "completed_courses": {
                    "$sum": {"$cond": [{"$eq": ["$progress", 100]}, 1, 0]}
                },
                "average_progress": {"$avg": "$progress"},
            }
        },
        {
            "$group": {
                "_id": None,
                "total_users": {"$sum": 1},
                "average_enrollments": {"$avg": "$total_enrollments"},
                "average_completions": {"$avg": "$completed_courses"},
                "overall_progress": {"$avg": "$average_progress"},
            }
        },
    ]).to_list(length=1)
    engagement = first_group(rows, EMPTY_ENGAGEMENT)
    for key in ("average_enrollments", "average_completions", "overall_progress"):
        engagement[key] = round_half_up(engagement.get(key))
    return engagement


async def get_user_analytics(db: AsyncIOMotorDatabase, timeframe: int = 30) -> Dict:
    since = datetime.utcnow() - timedelta(days=timeframe)

    active = await db.users.count_documents({
        "role": "student",
        "is_active": True,
        "last_login": {"$gte": since},
    })
    inactive = await db.users.count_documents({
        "role": "student",
        "is_active": True,
        "$or": [{"last_login": {"$lt": since}}, {"last_login": None}],
    })

    return {
        "registration_trends": await get_registration_trends(db, since),
        "user_activity": {
            "active": active,
            "inactive": inactive,
            "total": active + inactive,
        },
        "engagement": await get_engagement(db),
    }


# ============================================================================
# Course analytics
# ============================================================================

async def get_course_analytics(db: AsyncIOMotorDatabase) -> Dict:
    performance = await get_course_performance(db)

    categories = defaultdict(lambda: {"course_count": 0, "total_enrollments": 0})
    difficulties = defaultdict(int)
    for course in performance:
        bucket = categories[course["category"]]
        bucket["course_count"] += 1
        bucket["total_enrollments"] += course["enrollment_count"]
        difficulties[course["difficulty"]] += 1

    category_performance = [
        {
            "category": name,
            "course_count": bucket["course_count"],
            "total_enrollments": bucket["total_enrollments"],
            "average_enrollments": round_half_up(
                bucket["total_enrollments"] / bucket["course_count"]
            ),
        }
        for name, bucket in categories.items()
    ]
    category_performance.sort(key=lambda c: c["total_enrollments"], reverse=True)

    return {
        "course_performance": performance,
        "category_performance": category_performance,
        "difficulty_stats": [
            {"difficulty": name, "count": count} for name, count in difficulties.items()
        ],
    }
