"""Course catalogue: active courses are public, deletion is a soft delete."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from coursehub.storage.ports import DESC, DocumentStore

from .schemas import CourseIn

logger = logging.getLogger("coursehub.teaching")

COLLECTION = "courses"
_NEWEST_FIRST = (("createdAt", DESC),)


class CourseService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_active(self) -> List[dict]:
        return self._store.find(COLLECTION, where={"isActive": True}, order_by=_NEWEST_FIRST)

    def list_all(self) -> List[dict]:
        return self._store.find(COLLECTION, order_by=_NEWEST_FIRST)

    def get(self, course_id: str, *, include_inactive: bool = False) -> Optional[dict]:
        course = self._store.get(COLLECTION, course_id)
        if course is None:
            return None
        if not include_inactive and course.get("isActive") is not True:
            return None
        return course

    def create(self, payload: Mapping[str, Any]) -> dict:
        document = CourseIn.model_validate(payload).to_document()
        created = self._store.insert(COLLECTION, document)
        logger.info("Created course id=%s code=%s", created["id"], created.get("courseCode"))
        return created

    def update(self, course_id: str, payload: Mapping[str, Any]) -> Optional[dict]:
        existing = self._store.get(COLLECTION, course_id)
        if existing is None:
            return None
        changes = CourseIn.model_validate({**existing, **dict(payload)}).to_document()
        return self._store.update(COLLECTION, course_id, changes)

    def deactivate(self, course_id: str) -> bool:
        updated = self._store.update(COLLECTION, course_id, {"isActive": False})
        if updated is not None:
            logger.info("Deactivated course id=%s", course_id)
        return updated is not None


__all__ = ["CourseService", "COLLECTION"]
