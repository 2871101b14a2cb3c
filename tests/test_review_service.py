from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from learnify.core.errors import ErrorKind
from learnify.enrollments.enrollment_service import EnrollmentService
from learnify.reviews.review_service import ReviewService, resolve_sort

COMMENT = "Clear explanations and useful exercises throughout."


async def enrolled(db, user, course):
    await EnrollmentService(db).enroll(user.user_id, course.course_id)
    return user


async def review_by(db, user, course, rating=5, comment=COMMENT):
    await enrolled(db, user, course)
    result = await ReviewService(db).create_review(user.user_id, course.course_id, rating, comment)
    assert result.success, result.message
    return result.data


# ==================== CREATE ====================

@pytest.mark.asyncio
async def test_review_requires_active_enrollment(db, student, course):
    result = await ReviewService(db).create_review(student.user_id, course.course_id, 5, COMMENT)

    assert result.error_kind == ErrorKind.PRECONDITION_FAILED
    assert result.message == "You must be enrolled in this course to leave a review"


@pytest.mark.asyncio
async def test_unenrolled_student_cannot_review(db, student, course):
    service = EnrollmentService(db)
    enrollment = (await service.enroll(student.user_id, course.course_id)).data
    await service.unenroll(enrollment["enrollment_id"], student.user_id)

    result = await ReviewService(db).create_review(student.user_id, course.course_id, 4, COMMENT)

    assert result.error_kind == ErrorKind.PRECONDITION_FAILED


@pytest.mark.asyncio
async def test_review_created_once(db, student, course):
    review = await review_by(db, student, course, rating=4)

    assert review["review_id"].startswith("REV_")
    assert review["is_approved"] is True
    assert review["helpful_votes"] == 0
    assert review["reported_by"] == []
    assert review["student"]["name"] == student.name
    assert "helpful_voters" not in review

    again = await ReviewService(db).create_review(student.user_id, course.course_id, 3, COMMENT)
    assert again.error_kind == ErrorKind.CONFLICT
    assert await db.reviews.count_documents({}) == 1


@pytest.mark.asyncio
async def test_review_for_missing_course(db, student):
    result = await ReviewService(db).create_review(student.user_id, "COURSE_MISSING", 5, COMMENT)

    assert result.error_kind == ErrorKind.NOT_FOUND


# ==================== UPDATE / DELETE ====================

@pytest.mark.asyncio
async def test_only_author_updates_and_moderation_is_kept(db, student, other_student, course):
    review = await review_by(db, student, course)
    service = ReviewService(db)
    await service.moderate(review["review_id"], "reject")

    foreign = await service.update_review(review["review_id"], other_student.user_id, 1, COMMENT)
    own = await service.update_review(review["review_id"], student.user_id, 2, "Changed my mind after week three.")

    assert foreign.error_kind == ErrorKind.FORBIDDEN
    assert own.data["rating"] == 2
    assert own.data["is_approved"] is False


@pytest.mark.asyncio
async def test_delete_by_author_or_admin(db, student, other_student, admin, course):
    service = ReviewService(db)
    first = await review_by(db, student, course)
    second = await review_by(db, other_student, course)

    foreign = await service.delete_review(first["review_id"], other_student.user_id)
    own = await service.delete_review(first["review_id"], student.user_id)
    moderated = await service.delete_review(second["review_id"], admin.user_id, is_admin=True)
    missing = await service.delete_review("REV_MISSING", student.user_id)

    assert foreign.error_kind == ErrorKind.FORBIDDEN
    assert own.success and moderated.success
    assert missing.error_kind == ErrorKind.NOT_FOUND
    assert await db.reviews.count_documents({}) == 0


# ==================== HELPFUL & REPORTS ====================

@pytest.mark.asyncio
async def test_helpful_votes_increment_without_dedup(db, student, other_student, course):
    review = await review_by(db, student, course)
    service = ReviewService(db, dedupe_helpful_votes=False)

    await service.mark_helpful(review["review_id"], other_student.user_id)
    result = await service.mark_helpful(review["review_id"], other_student.user_id)

    assert result.data == {"helpful_votes": 2}
    assert result.message == "Review marked as helpful"


@pytest.mark.asyncio
async def test_helpful_votes_deduplicated_when_enabled(db, student, other_student, course):
    review = await review_by(db, student, course)
    service = ReviewService(db, dedupe_helpful_votes=True)

    first = await service.mark_helpful(review["review_id"], other_student.user_id)
    repeat = await service.mark_helpful(review["review_id"], other_student.user_id)
    missing = await service.mark_helpful("REV_MISSING", other_student.user_id)

    assert first.data == {"helpful_votes": 1}
    assert repeat.error_kind == ErrorKind.CONFLICT
    assert missing.error_kind == ErrorKind.NOT_FOUND
    stored = await db.reviews.find_one({"review_id": review["review_id"]})
    assert stored["helpful_votes"] == 1


@pytest.mark.asyncio
async def test_report_rules(db, student, other_student, course):
    review = await review_by(db, student, course)
    service = ReviewService(db)

    blank = await service.report_review(review["review_id"], other_student.user_id, "   ")
    first = await service.report_review(review["review_id"], other_student.user_id, "  spam link  ")
    duplicate = await service.report_review(review["review_id"], other_student.user_id, "again")
    missing = await service.report_review("REV_MISSING", other_student.user_id, "spam")

    assert blank.error_kind == ErrorKind.INVALID_INPUT
    assert first.success
    assert duplicate.error_kind == ErrorKind.CONFLICT
    assert missing.error_kind == ErrorKind.NOT_FOUND

    stored = await db.reviews.find_one({"review_id": review["review_id"]})
    assert len(stored["reported_by"]) == 1
    assert stored["reported_by"][0]["user_id"] == other_student.user_id
    assert stored["reported_by"][0]["reason"] == "spam link"


# ==================== MODERATION ====================

@pytest.mark.asyncio
async def test_approve_clears_reports_reject_keeps_them(db, student, other_student, course):
    review = await review_by(db, student, course)
    service = ReviewService(db)
    await service.report_review(review["review_id"], other_student.user_id, "off topic")

    rejected = await service.moderate(review["review_id"], "reject")
    assert rejected.message == "Review rejected successfully"
    assert rejected.data["is_approved"] is False
    assert len(rejected.data["reported_by"]) == 1

    approved = await service.moderate(review["review_id"], "approve")
    assert approved.message == "Review approved successfully"
    assert approved.data["is_approved"] is True
    assert approved.data["reported_by"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["delete", "", None])
async def test_moderate_rejects_unknown_action(db, student, course, action):
    review = await review_by(db, student, course)

    result = await ReviewService(db).moderate(review["review_id"], action)

    assert result.error_kind == ErrorKind.INVALID_INPUT
    assert result.message == "Action must be either approve or reject"


@pytest.mark.asyncio
async def test_moderate_missing_review(db):
    result = await ReviewService(db).moderate("REV_MISSING", "approve")

    assert result.error_kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_list_reported_most_recent_first(db, make_user, course):
    service = ReviewService(db)
    author_a = await make_user(name="Author A")
    author_b = await make_user(name="Author B")
    reporter = await make_user(name="Reporter")
    a = await review_by(db, author_a, course)
    b = await review_by(db, author_b, course)

    await service.report_review(a["review_id"], reporter.user_id, "spam")
    await service.report_review(b["review_id"], reporter.user_id, "spam")
    await db.reviews.update_one(
        {"review_id": b["review_id"]}, {"$set": {"last_reported_at": datetime.utcnow() + timedelta(hours=1)}}
    )

    data = (await service.list_reported()).data

    assert [r["review_id"] for r in data["reviews"]] == [b["review_id"], a["review_id"]]
    assert data["reviews"][0]["student"]["email"] == author_b.email
    assert data["pagination"]["total"] == 2


# ==================== STATISTICS & LISTING ====================

@pytest.mark.asyncio
async def test_course_stats_over_approved_reviews(db, make_user, course):
    service = ReviewService(db)
    assert await service.course_review_stats(course.course_id) == {"average_rating": 0, "total_reviews": 0}

    for rating in (5, 3, 4):
        await review_by(db, await make_user(), course, rating=rating)
    hidden = await review_by(db, await make_user(), course, rating=1)
    await service.moderate(hidden["review_id"], "reject")

    stats = await service.course_review_stats(course.course_id)

    assert stats == {"average_rating": 4.0, "total_reviews": 3}


@pytest.mark.asyncio
async def test_course_stats_round_half_up(db, make_user, course):
    for rating in (5, 4, 4, 4):
        await review_by(db, await make_user(), course, rating=rating)

    stats = await ReviewService(db).course_review_stats(course.course_id)

    assert stats["average_rating"] == 4.3


def test_unknown_sort_falls_back_to_newest():
    assert resolve_sort("sideways") == [("created_at", -1)]
    assert resolve_sort(None) == [("created_at", -1)]
    assert resolve_sort("most-helpful") == [("helpful_votes", -1), ("created_at", -1)]


@pytest.mark.asyncio
async def test_most_helpful_ordering_breaks_ties_by_newest(db, make_user, course):
    base = datetime(2024, 3, 1)
    reviews = []
    for votes, age_days in ((3, 2), (7, 5), (3, 1)):
        review = await review_by(db, await make_user(), course)
        await db.reviews.update_one(
            {"review_id": review["review_id"]},
            {"$set": {"helpful_votes": votes, "created_at": base - timedelta(days=age_days)}},
        )
        reviews.append(review["review_id"])

    data = (await ReviewService(db).list_for_course(course.course_id, sort="most-helpful")).data

    assert [r["review_id"] for r in data["reviews"]] == [reviews[1], reviews[2], reviews[0]]


@pytest.mark.asyncio
async def test_list_for_course_hides_unapproved_and_filters_rating(db, make_user, course):
    service = ReviewService(db)
    keep = await review_by(db, await make_user(), course, rating=5)
    await review_by(db, await make_user(), course, rating=3)
    hidden = await review_by(db, await make_user(), course, rating=5)
    await service.moderate(hidden["review_id"], "reject")

    everything = (await service.list_for_course(course.course_id)).data
    fives = (await service.list_for_course(course.course_id, rating=5)).data

    assert everything["pagination"]["total"] == 2
    assert everything["stats"] == {"average_rating": 4.0, "total_reviews": 2}
    assert [r["review_id"] for r in fives["reviews"]] == [keep["review_id"]]


@pytest.mark.asyncio
async def test_platform_rating(db, make_user, make_course):
    first = await make_course(title="Machine Learning Fundamentals")
    second = await make_course(title="Advanced JavaScript Concepts")
    await review_by(db, await make_user(), first, rating=5)
    await review_by(db, await make_user(), second, rating=2)

    rating = await ReviewService(db).platform_rating()

    assert rating == {"average_rating": 3.5, "total_reviews": 2}


@pytest.mark.asyncio
async def test_moderate_review_deleted_mid_request():
    async def find_one(query):
        return {"review_id": query["review_id"], "student_id": "USR_1", "course_id": "COURSE_1"}

    async def find_one_and_update(query, update, **kwargs):
        return None

    db = SimpleNamespace(reviews=SimpleNamespace(find_one=find_one, find_one_and_update=find_one_and_update))

    result = await ReviewService(db).moderate("REV_GONE", "approve")

    assert result.error_kind == ErrorKind.NOT_FOUND
