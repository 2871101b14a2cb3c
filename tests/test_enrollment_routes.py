import pytest


@pytest.mark.asyncio
async def test_requires_token(client):
    res = await client.get("/api/enrollments")

    assert res.status_code == 401
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "unauthorized"
    assert res.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_rejects_bad_token(client):
    res = await client.get("/api/enrollments", headers={"Authorization": "Bearer nope"})

    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Invalid or Expired Token"


@pytest.mark.asyncio
async def test_enroll_progress_lifecycle(client, student, course):
    res = await client.post(
        "/api/enrollments", json={"courseId": course.course_id}, headers=student.headers
    )
    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Enrolled in course successfully"
    enrollment_id = body["data"]["enrollment"]["enrollment_id"]

    res = await client.put(
        f"/api/enrollments/{enrollment_id}/progress",
        json={"progress": 100, "completedModuleIndex": 0},
        headers=student.headers,
    )
    assert res.status_code == 200
    done = res.json()["data"]["enrollment"]
    assert done["completion_date"] is not None
    assert done["is_completed"] is True
    assert [m["module_index"] for m in done["completed_modules"]] == [0]

    res = await client.put(
        f"/api/enrollments/{enrollment_id}/progress",
        json={"progress": 50},
        headers=student.headers,
    )
    assert res.status_code == 200
    partial = res.json()["data"]["enrollment"]
    assert partial["completion_date"] is None
    assert partial["progress"] == 50


@pytest.mark.asyncio
async def test_enroll_accepts_snake_case_body(client, student, course):
    res = await client.post(
        "/api/enrollments", json={"course_id": course.course_id}, headers=student.headers
    )

    assert res.status_code == 201


@pytest.mark.asyncio
async def test_enroll_missing_course_id(client, student):
    res = await client.post("/api/enrollments", json={}, headers=student.headers)

    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Course ID is required"


@pytest.mark.asyncio
async def test_enroll_unknown_course(client, student):
    res = await client.post(
        "/api/enrollments", json={"courseId": "COURSE_MISSING"}, headers=student.headers
    )

    assert res.status_code == 404
    assert res.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_enroll_twice_then_reactivate(client, student, course):
    payload = {"courseId": course.course_id}
    first = await client.post("/api/enrollments", json=payload, headers=student.headers)
    enrollment_id = first.json()["data"]["enrollment"]["enrollment_id"]

    duplicate = await client.post("/api/enrollments", json=payload, headers=student.headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["error"]["message"] == "Already enrolled in this course"

    removed = await client.delete(f"/api/enrollments/{enrollment_id}", headers=student.headers)
    assert removed.status_code == 200

    again = await client.post("/api/enrollments", json=payload, headers=student.headers)
    assert again.status_code == 200
    assert again.json()["message"] == "Re-enrolled in course successfully"
    assert again.json()["data"]["enrollment"]["enrollment_id"] == enrollment_id


@pytest.mark.asyncio
async def test_progress_out_of_range(client, student, course):
    created = await client.post(
        "/api/enrollments", json={"courseId": course.course_id}, headers=student.headers
    )
    enrollment_id = created.json()["data"]["enrollment"]["enrollment_id"]

    res = await client.put(
        f"/api/enrollments/{enrollment_id}/progress", json={"progress": 101}, headers=student.headers
    )

    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Progress must be between 0 and 100"


@pytest.mark.asyncio
async def test_other_students_enrollment_is_forbidden(client, student, other_student, course):
    created = await client.post(
        "/api/enrollments", json={"courseId": course.course_id}, headers=student.headers
    )
    enrollment_id = created.json()["data"]["enrollment"]["enrollment_id"]

    read = await client.get(f"/api/enrollments/{enrollment_id}", headers=other_student.headers)
    write = await client.put(
        f"/api/enrollments/{enrollment_id}/progress", json={"progress": 10}, headers=other_student.headers
    )
    delete = await client.delete(f"/api/enrollments/{enrollment_id}", headers=other_student.headers)
    missing = await client.get("/api/enrollments/ENR_MISSING", headers=student.headers)

    assert read.status_code == 403
    assert write.status_code == 403
    assert delete.status_code == 403
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_admin_reads_any_enrollment(client, student, admin, course):
    created = await client.post(
        "/api/enrollments", json={"courseId": course.course_id}, headers=student.headers
    )
    enrollment_id = created.json()["data"]["enrollment"]["enrollment_id"]

    res = await client.get(f"/api/enrollments/{enrollment_id}", headers=admin.headers)

    assert res.status_code == 200
    assert res.json()["data"]["enrollment"]["student"]["name"] == student.name


@pytest.mark.asyncio
async def test_enrollment_for_course(client, student, course):
    before = await client.get(f"/api/enrollments/course/{course.course_id}", headers=student.headers)
    await client.post("/api/enrollments", json={"courseId": course.course_id}, headers=student.headers)
    after = await client.get(f"/api/enrollments/course/{course.course_id}", headers=student.headers)

    assert before.json()["data"]["enrollment"] is None
    assert after.json()["data"]["enrollment"]["course_id"] == course.course_id


@pytest.mark.asyncio
async def test_list_filters_by_active_flag(client, student, make_course):
    first = await make_course(title="Machine Learning Fundamentals")
    second = await make_course(title="Advanced JavaScript Concepts")
    created = await client.post(
        "/api/enrollments", json={"courseId": first.course_id}, headers=student.headers
    )
    await client.post("/api/enrollments", json={"courseId": second.course_id}, headers=student.headers)
    await client.delete(
        f"/api/enrollments/{created.json()['data']['enrollment']['enrollment_id']}",
        headers=student.headers,
    )

    everything = await client.get("/api/enrollments", headers=student.headers)
    active = await client.get("/api/enrollments?isActive=true", headers=student.headers)

    assert everything.json()["data"]["pagination"]["total"] == 2
    active_items = active.json()["data"]["enrollments"]
    assert [e["course_id"] for e in active_items] == [second.course_id]


@pytest.mark.asyncio
async def test_inactive_user_token_rejected(client, make_user):
    user = await make_user(is_active=False)

    res = await client.get("/api/enrollments", headers=user.headers)

    assert res.status_code == 401
    assert res.json()["error"]["message"] == "User not found or inactive"
