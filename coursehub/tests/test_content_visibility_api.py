"""
Course content API tests: public/admin visibility split, ordering and CRUD.

Public lists must only ever show visible entities of the requested course,
whatever the query string says; admin lists show everything in the kind's
natural order.
"""
from __future__ import annotations

import uuid

import pytest

from coursehub.web.responses import PRIVATE_CACHE, PUBLIC_CACHE

pytestmark = pytest.mark.anyio("asyncio")

SERVER_FIELDS = {"id", "createdAt", "updatedAt"}


def _course_id() -> str:
    return str(uuid.uuid4())


async def _create(c, headers, path, payload):
    r = await c.post(path, json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def test_public_lecture_list_returns_only_published(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()

    async with harness.client() as c:
        await _create(c, admin_headers, "/api/lectures", {"courseId": course, "lectureNumber": 1, "title": "Intro", "isPublished": True})
        await _create(c, admin_headers, "/api/lectures", {"courseId": course, "lectureNumber": 2, "title": "Draft", "isPublished": False})

        r = await c.get(f"/api/lectures/course/{course}")

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["count"] == 1
    assert [item["title"] for item in body["data"]] == ["Intro"]
    assert r.headers["Cache-Control"] == PUBLIC_CACHE


@pytest.mark.parametrize(
    "query",
    [
        {"isPublished": "false"},
        {"isPublished": "true", "courseId": "x"},
        {"courseId": str(uuid.uuid4())},
        {"title": "Draft"},
    ],
)
async def test_public_list_ignores_query_string_manipulation(harness, query):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()

    async with harness.client() as c:
        await _create(c, admin_headers, "/api/lectures", {"courseId": course, "lectureNumber": 1, "title": "Intro", "isPublished": True})
        await _create(c, admin_headers, "/api/lectures", {"courseId": course, "lectureNumber": 2, "title": "Draft"})

        r = await c.get(f"/api/lectures/course/{course}", params=query)

    assert r.status_code == 200
    assert [item["title"] for item in r.json()["data"]] == ["Intro"]


async def test_public_list_is_scoped_to_course(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course, other = _course_id(), _course_id()

    async with harness.client() as c:
        await _create(c, admin_headers, "/api/lectures", {"courseId": course, "lectureNumber": 1, "title": "Mine", "isPublished": True})
        await _create(c, admin_headers, "/api/lectures", {"courseId": other, "lectureNumber": 1, "title": "Theirs", "isPublished": True})

        r = await c.get(f"/api/lectures/course/{course}")

    assert [item["title"] for item in r.json()["data"]] == ["Mine"]


async def test_admin_list_returns_all_in_natural_order(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()

    async with harness.client() as c:
        for number, published in ((3, True), (1, False), (2, True)):
            await _create(
                c,
                admin_headers,
                "/api/lectures",
                {"courseId": course, "lectureNumber": number, "title": f"L{number}", "isPublished": published},
            )

        r = await c.get(f"/api/lectures/admin/course/{course}", headers=admin_headers)

    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 3
    assert [item["lectureNumber"] for item in body["data"]] == [1, 2, 3]
    assert r.headers["Cache-Control"] == PRIVATE_CACHE


async def test_admin_list_requires_admin_token(harness):
    user_headers = harness.auth(harness.seed_user())

    async with harness.client() as c:
        anonymous = await c.get(f"/api/assignments/admin/course/{_course_id()}")
        as_user = await c.get(f"/api/assignments/admin/course/{_course_id()}", headers=user_headers)

    assert anonymous.status_code == 401
    assert as_user.status_code == 403


async def test_create_then_fetch_returns_same_fields(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()
    payload = {
        "courseId": course,
        "examType": "Midterm",
        "title": "Midterm exam",
        "date": "2025-03-14",
        "time": {"start": "10:00", "end": "12:00"},
        "location": "Hall B",
        "duration": "2 hours",
        "totalMarks": 50,
        "syllabus": ["Sorting", "Graphs"],
        "guidelines": ["Closed book"],
        "isPublished": True,
    }

    async with harness.client() as c:
        created = await _create(c, admin_headers, "/api/exams", payload)
        r = await c.get(f"/api/exams/{created['id']}")

    assert r.status_code == 200
    fetched = r.json()["data"]
    strip = lambda doc: {k: v for k, v in doc.items() if k not in SERVER_FIELDS}  # noqa: E731
    assert strip(fetched) == strip(created)
    for key, value in payload.items():
        if key == "time":
            assert fetched["time"]["start"] == "10:00"
        else:
            assert fetched[key] == value


async def test_hidden_item_detail_visible_to_admin_only(harness):
    admin_headers = harness.auth(harness.seed_admin())
    user_headers = harness.auth(harness.seed_user())

    async with harness.client() as c:
        draft = await _create(
            c, admin_headers, "/api/tutorials", {"courseId": _course_id(), "tutorialNumber": 1, "title": "Draft tutorial"}
        )
        anonymous = await c.get(f"/api/tutorials/{draft['id']}")
        as_user = await c.get(f"/api/tutorials/{draft['id']}", headers=user_headers)
        as_admin = await c.get(f"/api/tutorials/{draft['id']}", headers=admin_headers)

    assert anonymous.status_code == 404
    assert anonymous.json()["message"] == "Tutorial not found"
    assert as_user.status_code == 404
    assert as_admin.status_code == 200
    assert as_admin.json()["data"]["isPublished"] is False


async def test_lecture_references_are_populated_and_filtered(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()

    async with harness.client() as c:
        shown = await _create(
            c, admin_headers, "/api/lectures", {"courseId": course, "lectureNumber": 1, "title": "Shown", "isPublished": True}
        )
        hidden = await _create(c, admin_headers, "/api/lectures", {"courseId": course, "lectureNumber": 2, "title": "Hidden"})
        await _create(
            c,
            admin_headers,
            "/api/assignments",
            {
                "courseId": course,
                "assignmentNumber": 1,
                "title": "HW1",
                "description": "Implement quicksort",
                "releaseDate": "2025-01-10",
                "dueDate": "2025-01-24",
                "totalPoints": 100,
                "relatedLectures": [shown["id"], hidden["id"]],
                "isPublished": True,
            },
        )

        public = await c.get(f"/api/assignments/course/{course}")
        admin = await c.get(f"/api/assignments/admin/course/{course}", headers=admin_headers)

    public_refs = public.json()["data"][0]["relatedLectures"]
    admin_refs = admin.json()["data"][0]["relatedLectures"]
    assert public_refs == [{"id": shown["id"], "title": "Shown", "lectureNumber": 1}]
    assert [ref["title"] for ref in admin_refs] == ["Shown", "Hidden"]


async def test_blank_number_and_date_inputs_are_stored_as_null(harness):
    admin_headers = harness.auth(harness.seed_admin())
    form = {
        "courseId": _course_id(),
        "lectureNumber": "3",
        "title": "Graphs",
        "description": "",
        "date": "",
        "topicsCovered": [""],
        "slides": [{"title": "", "url": ""}],
        "videos": [{"title": "", "url": "", "platform": "YouTube"}],
        "readingMaterials": [{"title": "", "author": "", "year": "", "url": ""}],
    }

    async with harness.client() as c:
        lecture = await _create(c, admin_headers, "/api/lectures", form)
        bad = await c.post("/api/lectures", json={**form, "date": "soon"}, headers=admin_headers)

    assert lecture["lectureNumber"] == 3
    assert lecture["date"] is None
    assert lecture["readingMaterials"][0]["year"] is None
    assert bad.status_code == 400


async def test_update_is_partial_and_revalidated(harness):
    admin_headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        lecture = await _create(
            c, admin_headers, "/api/lectures", {"courseId": _course_id(), "lectureNumber": 4, "title": "Trees"}
        )
        updated = await c.put(f"/api/lectures/{lecture['id']}", json={"isPublished": True}, headers=admin_headers)
        invalid = await c.put(f"/api/lectures/{lecture['id']}", json={"lectureNumber": 0}, headers=admin_headers)

    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["isPublished"] is True
    assert data["title"] == "Trees"
    assert data["lectureNumber"] == 4
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "VALIDATION_ERROR"


async def test_hard_delete_removes_lecture(harness):
    admin_headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        lecture = await _create(
            c, admin_headers, "/api/lectures", {"courseId": _course_id(), "lectureNumber": 1, "title": "Gone"}
        )
        deleted = await c.delete(f"/api/lectures/{lecture['id']}", headers=admin_headers)
        again = await c.delete(f"/api/lectures/{lecture['id']}", headers=admin_headers)
        fetched = await c.get(f"/api/lectures/{lecture['id']}", headers=admin_headers)

    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Lecture deleted successfully"
    assert again.status_code == 404
    assert fetched.status_code == 404


async def test_resources_soft_delete_and_category_filter(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()

    async with harness.client() as c:
        book = await _create(
            c, admin_headers, "/api/resources", {"courseId": course, "title": "CLRS", "category": "Books", "tags": ["algo", " "]}
        )
        await _create(c, admin_headers, "/api/resources", {"courseId": course, "title": "Visualgo", "category": "Tools", "order": 1})

        by_query = await c.get(f"/api/resources/course/{course}", params={"category": "Tools", "isActive": "false"})
        by_path = await c.get(f"/api/resources/course/{course}/category/Books")
        await c.delete(f"/api/resources/{book['id']}", headers=admin_headers)
        after_delete = await c.get(f"/api/resources/course/{course}")
        admin_view = await c.get(f"/api/resources/admin/course/{course}", headers=admin_headers)

    assert book["tags"] == ["algo"]
    assert [r["title"] for r in by_query.json()["data"]] == ["Visualgo"]
    assert [r["title"] for r in by_path.json()["data"]] == ["CLRS"]
    assert [r["title"] for r in after_delete.json()["data"]] == ["Visualgo"]
    admin_items = {r["title"]: r for r in admin_view.json()["data"]}
    assert admin_items["CLRS"]["isActive"] is False


async def test_teaching_assistants_ordered_and_soft_deleted(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()

    async with harness.client() as c:
        for first, last, order in (("Ana", "Zed", 0), ("Ben", "Abel", 1), ("Cy", "Adams", 0)):
            await _create(
                c,
                admin_headers,
                "/api/teaching-assistants",
                {"courseId": course, "firstName": first, "lastName": last, "email": f"{first}@Uni.edu", "order": order},
            )
        listed = await c.get(f"/api/teaching-assistants/course/{course}")
        first_ta = listed.json()["data"][0]
        await c.delete(f"/api/teaching-assistants/{first_ta['id']}", headers=admin_headers)
        after = await c.get(f"/api/teaching-assistants/course/{course}")

    assert [ta["lastName"] for ta in listed.json()["data"]] == ["Adams", "Zed", "Abel"]
    assert first_ta["email"] == "cy@uni.edu"
    assert [ta["lastName"] for ta in after.json()["data"]] == ["Zed", "Abel"]


async def test_prerequisites_have_no_visibility_flag(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()

    async with harness.client() as c:
        await _create(c, admin_headers, "/api/prerequisites", {"courseId": course, "title": "Discrete math", "order": 2})
        await _create(c, admin_headers, "/api/prerequisites", {"courseId": course, "title": "Programming", "order": 1})
        r = await c.get(f"/api/prerequisites/course/{course}")

    assert [p["title"] for p in r.json()["data"]] == ["Programming", "Discrete math"]


async def test_exam_list_ordered_by_date(harness):
    admin_headers = harness.auth(harness.seed_admin())
    course = _course_id()
    base = {"courseId": course, "location": "Hall A", "totalMarks": 20, "isPublished": True}

    async with harness.client() as c:
        await _create(c, admin_headers, "/api/exams", {**base, "examType": "Final", "title": "Final", "date": "2025-06-01"})
        await _create(c, admin_headers, "/api/exams", {**base, "examType": "Quiz", "title": "Quiz 1", "date": "2025-02-01"})
        r = await c.get(f"/api/exams/course/{course}")

    assert [e["title"] for e in r.json()["data"]] == ["Quiz 1", "Final"]


async def test_create_requires_admin_and_valid_payload(harness):
    admin_headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        anonymous = await c.post("/api/lectures", json={"courseId": _course_id(), "lectureNumber": 1, "title": "x"})
        missing = await c.post("/api/lectures", json={"courseId": _course_id()}, headers=admin_headers)
        bad_course = await c.post(
            "/api/lectures", json={"courseId": "nope", "lectureNumber": 1, "title": "x"}, headers=admin_headers
        )

    assert anonymous.status_code == 401
    assert missing.status_code == 400
    assert "lectureNumber" in missing.json()["message"]
    assert bad_course.status_code == 400
    assert bad_course.json()["code"] == "VALIDATION_ERROR"


async def test_invalid_ids_return_400(harness):
    admin_headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        list_bad = await c.get("/api/lectures/course/not-a-uuid")
        detail_bad = await c.get("/api/lectures/not-a-uuid")
        delete_bad = await c.delete("/api/lectures/not-a-uuid", headers=admin_headers)

    assert list_bad.status_code == 400
    assert list_bad.json() == {"success": False, "message": "Invalid courseId format", "code": "INVALID_ID"}
    assert detail_bad.json()["code"] == "INVALID_ID"
    assert delete_bad.status_code == 400
