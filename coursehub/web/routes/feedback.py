"""
Feedback routes: students submit, administrators triage.

Listing returns `{success, message, data, total, unreadCount, page,
totalPages}` so the admin client can page without a second request.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from coursehub.teaching.schemas import FeedbackNote

from ..deps import get_services, is_uuid_like, require_admin, require_user
from ..responses import error, invalid_id, not_found, ok


feedback_router = APIRouter(tags=["Feedback"])


@feedback_router.post("/api/feedback")
def submit_feedback(request: Request, payload: Dict[str, Any] = Body(...), user: dict = Depends(require_user)):
    created = get_services(request).feedback.submit(user, payload)
    return ok(created, "Feedback submitted successfully!", status_code=201)


@feedback_router.get("/api/feedback", dependencies=[Depends(require_admin)])
def list_feedback(
    request: Request,
    page: int = 1,
    limit: int = 20,
    isRead: Optional[str] = None,
    category: Optional[str] = None,
):
    if isRead not in (None, "", "true", "false"):
        return error("isRead must be 'true' or 'false'", status_code=400, code="VALIDATION_ERROR")
    result = get_services(request).feedback.list(
        page=page,
        limit=limit,
        is_read=None if isRead in (None, "") else isRead == "true",
        category=category,
    )
    data = result.pop("data")
    return ok(data, "Feedback retrieved successfully", **result)


@feedback_router.get("/api/feedback/stats", dependencies=[Depends(require_admin)])
def feedback_stats(request: Request):
    return ok(get_services(request).feedback.stats(), "Feedback stats retrieved")


@feedback_router.patch("/api/feedback/{feedback_id}/read", dependencies=[Depends(require_admin)])
def mark_feedback_read(request: Request, feedback_id: str):
    if not is_uuid_like(feedback_id):
        return invalid_id()
    item = get_services(request).feedback.mark_read(feedback_id)
    if item is None:
        return not_found("Feedback")
    return ok(item, "Feedback marked as read")


@feedback_router.patch("/api/feedback/{feedback_id}/note", dependencies=[Depends(require_admin)])
def add_feedback_note(request: Request, feedback_id: str, payload: FeedbackNote):
    if not is_uuid_like(feedback_id):
        return invalid_id()
    item = get_services(request).feedback.add_note(feedback_id, payload.admin_note)
    if item is None:
        return not_found("Feedback")
    return ok(item, "Admin note added")


@feedback_router.delete("/api/feedback/{feedback_id}", dependencies=[Depends(require_admin)])
def delete_feedback(request: Request, feedback_id: str):
    if not is_uuid_like(feedback_id):
        return invalid_id()
    if not get_services(request).feedback.delete(feedback_id):
        return not_found("Feedback")
    return ok(None, "Feedback deleted successfully")


__all__ = ["feedback_router"]
