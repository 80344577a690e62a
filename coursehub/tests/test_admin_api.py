"""
Administrator API tests: login, admin creation and student management.

Status changes and deletions must take effect on the very next request of the
affected student, even though the student's principal was cached.
"""
from __future__ import annotations

import pytest

from .conftest import PASSWORD

pytestmark = pytest.mark.anyio("asyncio")


async def test_admin_login_returns_token_in_data(harness):
    harness.seed_admin(email="root@example.edu")

    async with harness.client() as c:
        r = await c.post("/api/auth/login", json={"email": "root@example.edu", "password": PASSWORD})
        token = r.json()["data"]["token"]
        me = await c.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert r.status_code == 200
    assert r.json()["message"] == "Login successful"
    assert r.json()["data"]["admin"]["email"] == "root@example.edu"
    assert "isEmailVerified" not in r.json()["data"]["admin"]
    assert me.status_code == 200
    assert me.json()["data"]["role"] == "admin"


async def test_admin_login_rejects_bad_credentials_and_inactive(harness):
    harness.seed_admin(email="root@example.edu")
    harness.seed_admin(email="off@example.edu", isActive=False)

    async with harness.client() as c:
        wrong = await c.post("/api/auth/login", json={"email": "root@example.edu", "password": "bad-password"})
        inactive = await c.post("/api/auth/login", json={"email": "off@example.edu", "password": PASSWORD})

    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid credentials"
    assert inactive.status_code == 403


async def test_only_admins_create_admins(harness):
    admin_headers = harness.auth(harness.seed_admin())
    payload = {"name": "Second", "email": "second@example.edu", "password": "long-enough"}

    async with harness.client() as c:
        anonymous = await c.post("/api/auth/register", json=payload)
        created = await c.post("/api/auth/register", json=payload, headers=admin_headers)
        duplicate = await c.post("/api/auth/register", json=payload, headers=admin_headers)
        bad_role = await c.post("/api/auth/register", json={**payload, "email": "x@example.edu", "role": "god"}, headers=admin_headers)
        login = await c.post("/api/auth/login", json={"email": "second@example.edu", "password": "long-enough"})

    assert anonymous.status_code == 401
    assert created.status_code == 201
    assert created.json()["data"]["email"] == "second@example.edu"
    assert "password" not in created.json()["data"]
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "EMAIL_TAKEN"
    assert bad_role.json()["code"] == "INVALID_ROLE"
    assert login.status_code == 200


async def test_admin_change_password(harness):
    admin = harness.seed_admin(email="pw@example.edu")
    headers = harness.auth(admin)

    async with harness.client() as c:
        r = await c.put(
            "/api/auth/change-password",
            json={"currentPassword": PASSWORD, "newPassword": "rotated-pass"},
            headers=headers,
        )
        login = await c.post("/api/auth/login", json={"email": "pw@example.edu", "password": "rotated-pass"})

    assert r.status_code == 200
    assert login.status_code == 200


async def test_deactivating_student_takes_effect_immediately(harness):
    admin_headers = harness.auth(harness.seed_admin())
    student = harness.seed_user()
    student_headers = harness.auth(student)

    async with harness.client() as c:
        assert (await c.get("/api/users/me", headers=student_headers)).status_code == 200

        off = await c.patch(f"/api/users/admin/{student['id']}/status", json={"isActive": False}, headers=admin_headers)
        blocked = await c.get("/api/users/me", headers=student_headers)
        on = await c.patch(f"/api/users/admin/{student['id']}/status", json={"isActive": True}, headers=admin_headers)
        back = await c.get("/api/users/me", headers=student_headers)

    assert off.status_code == 200
    assert off.json()["message"] == "User deactivated"
    assert off.json()["data"]["isActive"] is False
    assert blocked.status_code == 403
    assert blocked.json()["code"] == "PRINCIPAL_DEACTIVATED"
    assert on.json()["message"] == "User activated"
    assert back.status_code == 200


async def test_deleting_student_takes_effect_immediately(harness):
    admin_headers = harness.auth(harness.seed_admin())
    student = harness.seed_user()
    student_headers = harness.auth(student)

    async with harness.client() as c:
        await c.get("/api/users/me", headers=student_headers)
        deleted = await c.delete(f"/api/users/admin/{student['id']}", headers=admin_headers)
        gone = await c.get("/api/users/me", headers=student_headers)
        again = await c.delete(f"/api/users/admin/{student['id']}", headers=admin_headers)

    assert deleted.status_code == 200
    assert gone.status_code == 404
    assert gone.json()["code"] == "PRINCIPAL_NOT_FOUND"
    assert again.status_code == 404


async def test_user_listing_and_stats(harness):
    admin_headers = harness.auth(harness.seed_admin())
    harness.seed_user(email="a@student.edu", isEmailVerified=True)
    harness.seed_user(email="b@student.edu", authProvider="google", isEmailVerified=True)
    harness.seed_user(email="c@student.edu", isActive=False)

    async with harness.client() as c:
        listed = await c.get("/api/users/admin/all", headers=admin_headers)
        stats = await c.get("/api/users/admin/stats", headers=admin_headers)
        as_student = await c.get("/api/users/admin/all", headers=harness.auth(harness.seed_user(email="d@student.edu")))

    assert listed.status_code == 200
    assert listed.json()["count"] == 3
    assert all("password" not in u for u in listed.json()["data"])
    assert stats.json()["data"] == {
        "total": 3,
        "googleUsers": 1,
        "localUsers": 2,
        "verifiedUsers": 2,
        "activeUsers": 2,
    }
    assert as_student.status_code == 403


async def test_user_management_rejects_bad_ids(harness):
    admin_headers = harness.auth(harness.seed_admin())

    async with harness.client() as c:
        bad = await c.patch("/api/users/admin/not-an-id/status", json={"isActive": False}, headers=admin_headers)
        missing = await c.patch(
            "/api/users/admin/00000000-0000-4000-8000-000000000000/status",
            json={"isActive": False},
            headers=admin_headers,
        )

    assert bad.status_code == 400
    assert bad.json()["code"] == "INVALID_ID"
    assert missing.status_code == 404
