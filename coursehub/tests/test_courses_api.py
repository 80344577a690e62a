"""
Course catalogue API tests.
"""
from __future__ import annotations

import pytest

from coursehub.web.responses import PUBLIC_CACHE

pytestmark = pytest.mark.anyio("asyncio")


async def _create_course(c, headers, **overrides):
    payload = {"courseCode": "cs201", "courseTitle": "Algorithms", "semester": "Spring", "year": 2025}
    payload.update(overrides)
    r = await c.post("/api/courses", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def test_create_course_normalizes_code_and_defaults(harness):
    headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        course = await _create_course(c, headers, courseCode="  cs201 ")

    assert course["courseCode"] == "CS201"
    assert course["isActive"] is True
    assert course["level"] == "Undergraduate"
    assert course["instructor"] == {"name": "", "email": "", "office": "", "officeHours": ""}


async def test_public_list_hides_inactive_courses(harness):
    headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        kept = await _create_course(c, headers, courseCode="CS101")
        dropped = await _create_course(c, headers, courseCode="CS102")
        deleted = await c.delete(f"/api/courses/{dropped['id']}", headers=headers)
        public = await c.get("/api/courses")
        admin_all = await c.get("/api/courses/admin/all", headers=headers)

    assert deleted.status_code == 200
    assert public.status_code == 200
    assert public.headers["Cache-Control"] == PUBLIC_CACHE
    assert [course["id"] for course in public.json()["data"]] == [kept["id"]]
    assert public.json()["count"] == 1
    assert {course["id"] for course in admin_all.json()["data"]} == {kept["id"], dropped["id"]}


async def test_inactive_course_detail_visible_to_admin_only(harness):
    headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        course = await _create_course(c, headers, isActive=False)
        anonymous = await c.get(f"/api/courses/{course['id']}")
        as_admin = await c.get(f"/api/courses/{course['id']}", headers=headers)

    assert anonymous.status_code == 404
    assert anonymous.json()["message"] == "Course not found"
    assert as_admin.status_code == 200
    assert as_admin.json()["data"]["courseTitle"] == "Algorithms"


async def test_update_course_merges_fields(harness):
    headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        course = await _create_course(c, headers)
        r = await c.put(
            f"/api/courses/{course['id']}",
            json={"enrollmentStatus": "Closed", "instructor": {"name": "Dr. Rao"}},
            headers=headers,
        )
        bad = await c.put(f"/api/courses/{course['id']}", json={"level": "Kindergarten"}, headers=headers)

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["enrollmentStatus"] == "Closed"
    assert data["instructor"]["name"] == "Dr. Rao"
    assert data["courseCode"] == "CS201"
    assert bad.status_code == 400
    assert bad.json()["code"] == "VALIDATION_ERROR"


async def test_course_writes_require_admin(harness):
    user_headers = harness.auth(harness.seed_user())

    async with harness.client() as c:
        anonymous = await c.post("/api/courses", json={"courseCode": "X", "courseTitle": "Y"})
        as_user = await c.post("/api/courses", json={"courseCode": "X", "courseTitle": "Y"}, headers=user_headers)

    assert anonymous.status_code == 401
    assert as_user.status_code == 403


async def test_unknown_course_returns_404(harness):
    headers = harness.auth(harness.seed_admin())
    missing = "00000000-0000-4000-8000-000000000000"

    async with harness.client() as c:
        get_r = await c.get(f"/api/courses/{missing}")
        put_r = await c.put(f"/api/courses/{missing}", json={"courseTitle": "Z"}, headers=headers)
        del_r = await c.delete(f"/api/courses/{missing}", headers=headers)

    assert get_r.status_code == put_r.status_code == del_r.status_code == 404
