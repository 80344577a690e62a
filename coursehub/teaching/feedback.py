"""
Student feedback: submission by students, triage by administrators.

Listing is paginated newest first. Filters: `isRead` (bool) and `category`
where the literal "All" means no category filter. Stats report the average
rating as a one-decimal string ("0.0" when nothing is rated yet).
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any, Mapping, Optional

from coursehub.storage.ports import DESC, DocumentStore

from .schemas import FeedbackIn

logger = logging.getLogger("coursehub.teaching.feedback")

COLLECTION = "feedback"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class FeedbackService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def submit(self, user: Mapping[str, Any], payload: Mapping[str, Any]) -> dict:
        data = FeedbackIn.model_validate(payload)
        document = {
            "user": user["id"],
            "userName": user.get("name") or "",
            "userEmail": user.get("email") or "",
            "course": data.course,
            "courseName": data.course_name or None,
            "rating": data.rating,
            "category": data.category,
            "message": data.message,
            "isRead": False,
            "adminNote": None,
        }
        created = self._store.insert(COLLECTION, document)
        logger.info("Feedback submitted id=%s user=%s category=%s", created["id"], user["id"], data.category)
        return created

    def list(
        self,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        is_read: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> dict:
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_PAGE_SIZE)
        where: dict = {}
        if is_read is not None:
            where["isRead"] = is_read
        if category and category != "All":
            where["category"] = category
        items = self._store.find(
            COLLECTION,
            where=where,
            order_by=(("createdAt", DESC),),
            limit=limit,
            offset=(page - 1) * limit,
        )
        total = self._store.count(COLLECTION, where)
        return {
            "data": items,
            "total": total,
            "unreadCount": self._store.count(COLLECTION, {"isRead": False}),
            "page": page,
            "totalPages": math.ceil(total / limit),
        }

    def stats(self) -> dict:
        items = self._store.find(COLLECTION)
        ratings = [f["rating"] for f in items if isinstance(f.get("rating"), (int, float))]
        average = sum(ratings) / len(ratings) if ratings else 0.0
        categories = Counter(f.get("category") or "General" for f in items)
        return {
            "total": len(items),
            "unread": sum(1 for f in items if not f.get("isRead")),
            "averageRating": f"{average:.1f}",
            "categoryBreakdown": [
                {"category": name, "count": count} for name, count in categories.most_common()
            ],
        }

    def mark_read(self, feedback_id: str) -> Optional[dict]:
        return self._store.update(COLLECTION, feedback_id, {"isRead": True})

    def add_note(self, feedback_id: str, note: str) -> Optional[dict]:
        return self._store.update(COLLECTION, feedback_id, {"adminNote": note, "isRead": True})

    def delete(self, feedback_id: str) -> bool:
        return self._store.delete(COLLECTION, feedback_id)


__all__ = ["FeedbackService", "COLLECTION"]
