"""
Course-scoped content routes, one router per content kind.

Why:
    Lectures, assignments, tutorials, exams, prerequisites, resources and
    teaching assistants expose the same six endpoints. `build_content_router`
    wires them for one `ContentKind` on top of its ScopedContentRepository.

Endpoints (prefix `/api/<slug>`):
    GET    /course/{course_id}         public list, visible entities only
    GET    /admin/course/{course_id}   admin list, everything for the course
    GET    /{item_id}                  public detail; hidden only for admins
    POST   /                           admin create
    PUT    /{item_id}                  admin partial update
    DELETE /{item_id}                  admin delete (soft for resources/TAs)

Query parameters on the public list are filtered through the kind's
whitelist; flags such as `isPublished=false` are ignored.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Request

from coursehub.teaching.kinds import KINDS, RESOURCE, ContentKind

from ..deps import get_services, is_uuid_like, optional_admin, require_admin
from ..responses import invalid_id, not_found, ok, ok_list


def build_content_router(kind: ContentKind) -> APIRouter:
    router = APIRouter(tags=[kind.label])
    base = f"/api/{kind.slug}"
    plural = f"{kind.label}s"

    def _repo(request: Request):
        return get_services(request).content[kind.name]

    @router.get(base + "/course/{course_id}", name=f"{kind.name}_list_public")
    def list_public(request: Request, course_id: str):
        if not is_uuid_like(course_id):
            return invalid_id("courseId")
        filters = {k: v for k, v in request.query_params.items() if k in kind.public_filters}
        items = _repo(request).list_public(course_id, **filters)
        return ok_list(items, f"{plural} retrieved successfully", public=True)

    @router.get(
        base + "/admin/course/{course_id}",
        name=f"{kind.name}_list_admin",
        dependencies=[Depends(require_admin)],
    )
    def list_admin(request: Request, course_id: str):
        if not is_uuid_like(course_id):
            return invalid_id("courseId")
        return ok_list(_repo(request).list_admin(course_id), f"{plural} retrieved successfully")

    if kind is RESOURCE:

        @router.get(base + "/course/{course_id}/category/{category}", name="resource_list_by_category")
        def list_by_category(request: Request, course_id: str, category: str):
            if not is_uuid_like(course_id):
                return invalid_id("courseId")
            items = _repo(request).list_public(course_id, category=category)
            return ok_list(items, f"{plural} retrieved successfully", public=True)

    @router.get(base + "/{item_id}", name=f"{kind.name}_detail")
    def get_item(request: Request, item_id: str, admin: Optional[dict] = Depends(optional_admin)):
        if not is_uuid_like(item_id):
            return invalid_id()
        item = _repo(request).get(item_id, include_hidden=admin is not None)
        if item is None:
            return not_found(kind.label)
        return ok(item, f"{kind.label} retrieved successfully")

    @router.post(base, name=f"{kind.name}_create", dependencies=[Depends(require_admin)])
    def create_item(request: Request, payload: Dict[str, Any] = Body(...)):
        item = _repo(request).create(payload)
        return ok(item, f"{kind.label} created successfully", status_code=201)

    @router.put(base + "/{item_id}", name=f"{kind.name}_update", dependencies=[Depends(require_admin)])
    def update_item(request: Request, item_id: str, payload: Dict[str, Any] = Body(...)):
        if not is_uuid_like(item_id):
            return invalid_id()
        item = _repo(request).update(item_id, payload)
        if item is None:
            return not_found(kind.label)
        return ok(item, f"{kind.label} updated successfully")

    @router.delete(base + "/{item_id}", name=f"{kind.name}_delete", dependencies=[Depends(require_admin)])
    def delete_item(request: Request, item_id: str):
        if not is_uuid_like(item_id):
            return invalid_id()
        if not _repo(request).delete(item_id):
            return not_found(kind.label)
        return ok(None, f"{kind.label} deleted successfully")

    return router


def build_content_routers() -> List[APIRouter]:
    return [build_content_router(kind) for kind in KINDS]


__all__ = ["build_content_router", "build_content_routers"]
