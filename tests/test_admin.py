import pytest

from learnify.enrollments.enrollment_service import EnrollmentService
from learnify.reviews.review_service import ReviewService

COMMENT = "Clear explanations and useful exercises throughout."


async def enroll_with_progress(db, user, course, progress):
    service = EnrollmentService(db)
    enrollment = (await service.enroll(user.user_id, course.course_id)).data
    await service.update_progress(enrollment["enrollment_id"], user.user_id, progress)
    return enrollment


@pytest.mark.asyncio
async def test_admin_routes_reject_students(client, student):
    for path in ("/api/admin/dashboard", "/api/admin/analytics/courses", "/api/admin/reported-reviews", "/api/users"):
        res = await client.get(path, headers=student.headers)
        assert res.status_code == 403, path


# ==================== DASHBOARD ====================

@pytest.mark.asyncio
async def test_dashboard_overview(client, db, admin, student, other_student, course, make_course):
    await make_course(title="Web Development Bootcamp", category="Web Development")
    await enroll_with_progress(db, student, course, 100)
    await enroll_with_progress(db, other_student, course, 40)
    await ReviewService(db).create_review(student.user_id, course.course_id, 5, COMMENT)

    res = await client.get("/api/admin/dashboard", headers=admin.headers)

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["overview"] == {
        "total_students": 2,
        "total_courses": 2,
        "total_enrollments": 2,
        "total_reviews": 1,
        "average_rating": 5.0,
        "completion_rate": 50,
    }
    assert data["top_courses"][0]["course_id"] == course.course_id
    assert data["top_courses"][0]["enrollment_count"] == 2
    assert data["top_courses"][0]["completion_rate"] == 50.0
    assert {c["category"] for c in data["category_stats"]} == {"Data Science", "Web Development"}
    assert sum(month["count"] for month in data["monthly_growth"]) == 2
    assert len(data["recent_activity"]["enrollments"]) == 2
    assert data["recent_activity"]["reviews"][0]["student"]["name"] == student.name


@pytest.mark.asyncio
async def test_dashboard_on_empty_platform(client, admin):
    data = (await client.get("/api/admin/dashboard", headers=admin.headers)).json()["data"]

    assert data["overview"]["total_students"] == 0
    assert data["overview"]["completion_rate"] == 0
    assert data["overview"]["average_rating"] == 0
    assert data["top_courses"] == []


# ==================== ANALYTICS ====================

@pytest.mark.asyncio
async def test_course_analytics(client, db, admin, student, other_student, make_course):
    ml = await make_course(title="Machine Learning Fundamentals", difficulty="Advanced")
    py = await make_course(title="Python for Data Science")
    web = await make_course(title="Web Development Bootcamp", category="Web Development", difficulty="Beginner")
    await enroll_with_progress(db, student, ml, 100)
    await enroll_with_progress(db, other_student, ml, 20)
    await enroll_with_progress(db, student, py, 60)

    data = (await client.get("/api/admin/analytics/courses", headers=admin.headers)).json()["data"]

    performance = data["course_performance"]
    assert [c["course_id"] for c in performance[:2]] == [ml.course_id, py.course_id]
    assert performance[0]["completion_rate"] == 50.0
    assert performance[-1]["course_id"] == web.course_id
    assert performance[-1]["enrollment_count"] == 0

    categories = {c["category"]: c for c in data["category_performance"]}
    assert categories["Data Science"] == {
        "category": "Data Science",
        "course_count": 2,
        "total_enrollments": 3,
        "average_enrollments": 1.5,
    }
    assert data["category_performance"][0]["category"] == "Data Science"

    difficulties = {d["difficulty"]: d["count"] for d in data["difficulty_stats"]}
    assert difficulties == {"Advanced": 1, "Intermediate": 1, "Beginner": 1}


@pytest.mark.asyncio
async def test_user_analytics(client, db, admin, student, other_student, course):
    await enroll_with_progress(db, student, course, 100)
    await client.post("/api/auth/login", json={"email": student.email, "password": "secret123"})

    data = (await client.get("/api/admin/analytics/users?timeframe=7", headers=admin.headers)).json()["data"]

    assert data["user_activity"] == {"active": 1, "inactive": 1, "total": 2}
    assert sum(day["count"] for day in data["registration_trends"]) == 2
    assert data["engagement"] == {
        "total_users": 1,
        "average_enrollments": 1.0,
        "average_completions": 1.0,
        "overall_progress": 100.0,
    }


@pytest.mark.asyncio
async def test_user_analytics_timeframe_validated(client, admin):
    res = await client.get("/api/admin/analytics/users?timeframe=0", headers=admin.headers)

    assert res.status_code == 400


# ==================== MODERATION ====================

@pytest.mark.asyncio
async def test_reported_review_moderation(client, db, admin, student, other_student, course):
    await enroll_with_progress(db, student, course, 10)
    review = (await ReviewService(db).create_review(student.user_id, course.course_id, 2, COMMENT)).data
    await client.post(
        f"/api/reviews/{review['review_id']}/report", json={"reason": "abusive"}, headers=other_student.headers
    )

    reported = (await client.get("/api/admin/reported-reviews", headers=admin.headers)).json()["data"]
    assert [r["review_id"] for r in reported["reviews"]] == [review["review_id"]]
    assert reported["reviews"][0]["student"]["email"] == student.email

    bad = await client.put(
        f"/api/admin/reviews/{review['review_id']}/moderate", json={"action": "hide"}, headers=admin.headers
    )
    assert bad.status_code == 400

    approved = await client.put(
        f"/api/admin/reviews/{review['review_id']}/moderate", json={"action": "approve"}, headers=admin.headers
    )
    assert approved.status_code == 200
    assert approved.json()["message"] == "Review approved successfully"
    assert approved.json()["data"]["review"]["reported_by"] == []

    after = (await client.get("/api/admin/reported-reviews", headers=admin.headers)).json()["data"]
    assert after["reviews"] == []


@pytest.mark.asyncio
async def test_student_cannot_moderate(client, student):
    res = await client.put(
        "/api/admin/reviews/REV_ANY/moderate", json={"action": "approve"}, headers=student.headers
    )

    assert res.status_code == 403


# ==================== USER MANAGEMENT ====================

@pytest.mark.asyncio
async def test_list_users_with_filters(client, admin, student, other_student):
    everyone = (await client.get("/api/users", headers=admin.headers)).json()["data"]
    students = (await client.get("/api/users?role=student", headers=admin.headers)).json()["data"]
    search = (await client.get("/api/users?search=ALICE", headers=admin.headers)).json()["data"]
    regex_chars = (await client.get("/api/users?search=.*", headers=admin.headers)).json()["data"]

    assert everyone["pagination"]["total"] == 3
    assert students["pagination"]["total"] == 2
    assert [u["email"] for u in search["users"]] == [other_student.email]
    assert regex_chars["users"] == []
    assert all("password_hash" not in u for u in everyone["users"])


@pytest.mark.asyncio
async def test_get_user_with_enrollments(client, db, admin, student, course):
    await enroll_with_progress(db, student, course, 30)

    res = await client.get(f"/api/users/{student.user_id}", headers=admin.headers)

    data = res.json()["data"]
    assert data["user"]["email"] == student.email
    assert data["user"]["enrolled_courses_count"] == 1
    assert data["enrollments"][0]["course"]["title"] == course.title
    assert (await client.get("/api/users/USR_MISSING", headers=admin.headers)).status_code == 404


@pytest.mark.asyncio
async def test_admin_deactivates_user(client, admin, student):
    res = await client.put(
        f"/api/users/{student.user_id}", json={"isActive": False}, headers=admin.headers
    )

    assert res.status_code == 200
    assert res.json()["data"]["user"]["is_active"] is False
    assert (await client.get("/api/auth/me", headers=student.headers)).status_code == 401


@pytest.mark.asyncio
async def test_admin_promotes_user(client, admin, student):
    await client.put(f"/api/users/{student.user_id}", json={"role": "admin"}, headers=admin.headers)

    res = await client.get("/api/admin/dashboard", headers=student.headers)

    assert res.status_code == 200


@pytest.mark.asyncio
async def test_delete_user_cascades_enrollments(client, db, admin, student, course):
    await enroll_with_progress(db, student, course, 30)

    res = await client.delete(f"/api/users/{student.user_id}", headers=admin.headers)

    assert res.status_code == 200
    assert await db.users.count_documents({"user_id": student.user_id}) == 0
    assert await db.enrollments.count_documents({"student_id": student.user_id}) == 0


@pytest.mark.asyncio
async def test_admin_accounts_cannot_be_deleted(client, admin, make_user):
    other_admin = await make_user(name="Second Admin", role="admin")

    res = await client.delete(f"/api/users/{other_admin.user_id}", headers=admin.headers)

    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Cannot delete admin users"
