"""
Course catalogue routes.

Public: list active courses (newest first) and fetch one course. Inactive
courses are visible by id only to administrators.
Admin: list every course, create, update and soft delete.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from ..deps import get_services, is_uuid_like, optional_admin, require_admin
from ..responses import invalid_id, not_found, ok, ok_list


courses_router = APIRouter(tags=["Courses"])


@courses_router.get("/api/courses")
def list_courses(request: Request):
    return ok_list(get_services(request).courses.list_active(), "Courses retrieved successfully", public=True)


@courses_router.get("/api/courses/admin/all", dependencies=[Depends(require_admin)])
def list_all_courses(request: Request):
    return ok_list(get_services(request).courses.list_all(), "Courses retrieved successfully")


@courses_router.get("/api/courses/{course_id}")
def get_course(request: Request, course_id: str, admin: Optional[dict] = Depends(optional_admin)):
    if not is_uuid_like(course_id):
        return invalid_id()
    course = get_services(request).courses.get(course_id, include_inactive=admin is not None)
    if course is None:
        return not_found("Course")
    return ok(course, "Course retrieved successfully")


@courses_router.post("/api/courses", dependencies=[Depends(require_admin)])
def create_course(request: Request, payload: Dict[str, Any] = Body(...)):
    course = get_services(request).courses.create(payload)
    return ok(course, "Course created successfully", status_code=201)


@courses_router.put("/api/courses/{course_id}", dependencies=[Depends(require_admin)])
def update_course(request: Request, course_id: str, payload: Dict[str, Any] = Body(...)):
    if not is_uuid_like(course_id):
        return invalid_id()
    course = get_services(request).courses.update(course_id, payload)
    if course is None:
        return not_found("Course")
    return ok(course, "Course updated successfully")


@courses_router.delete("/api/courses/{course_id}", dependencies=[Depends(require_admin)])
def delete_course(request: Request, course_id: str):
    if not is_uuid_like(course_id):
        return invalid_id()
    if not get_services(request).courses.deactivate(course_id):
        return not_found("Course")
    return ok(None, "Course deleted successfully")


__all__ = ["courses_router"]
