"""
Scoped content repository: one implementation of the public/admin read split.

Why:
    Lectures, assignments, tutorials, exams, prerequisites, resources and
    teaching assistants all follow the same rules. Public reads see only
    visible entities of one course in natural order; administrators see
    everything for the course in the same order. Implementing the rule once
    keeps the visibility predicate out of reach of caller-supplied filters.

Notes:
    - Caller filters pass through a per-kind whitelist and are applied before
      the scope and visibility predicates, which always win.
    - Lecture references are stored as ids and returned as
      `{id, title, lectureNumber}`; public reads resolve published lectures only.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from coursehub.storage.ports import DocumentStore

from .kinds import LECTURE, ContentKind

logger = logging.getLogger("coursehub.teaching")


class ScopedContentRepository:
    def __init__(self, kind: ContentKind, store: DocumentStore) -> None:
        self.kind = kind
        self._store = store

    # --- reads ---------------------------------------------------------------
    def _is_visible(self, doc: Mapping[str, Any]) -> bool:
        field = self.kind.visibility_field
        return field is None or doc.get(field) is True

    def list_public(self, course_id: str, **filters: Any) -> List[dict]:
        where: Dict[str, Any] = {}
        for key, value in filters.items():
            if key in self.kind.public_filters and value not in (None, ""):
                where[key] = value
        # Scope and visibility are set last so no filter can replace them.
        where["courseId"] = course_id
        if self.kind.visibility_field:
            where[self.kind.visibility_field] = True
        items = self._store.find(self.kind.collection, where=where, order_by=self.kind.order_by)
        return self._populate(items, published_only=True)

    def list_admin(self, course_id: str) -> List[dict]:
        items = self._store.find(
            self.kind.collection, where={"courseId": course_id}, order_by=self.kind.order_by
        )
        return self._populate(items, published_only=False)

    def get(self, item_id: str, *, include_hidden: bool = False) -> Optional[dict]:
        doc = self._store.get(self.kind.collection, item_id)
        if doc is None:
            return None
        if not include_hidden and not self._is_visible(doc):
            return None
        return self._populate([doc], published_only=not include_hidden)[0]

    # --- writes --------------------------------------------------------------
    def create(self, payload: Mapping[str, Any]) -> dict:
        """Validate and insert; raises pydantic.ValidationError on bad input."""
        document = self.kind.schema.model_validate(payload).to_document()
        created = self._store.insert(self.kind.collection, document)
        logger.info("Created %s id=%s course=%s", self.kind.name, created["id"], created.get("courseId"))
        return self._populate([created], published_only=False)[0]

    def update(self, item_id: str, payload: Mapping[str, Any]) -> Optional[dict]:
        """Apply a partial update; the merged document must still validate."""
        existing = self._store.get(self.kind.collection, item_id)
        if existing is None:
            return None
        merged = {**existing, **dict(payload)}
        changes = self.kind.schema.model_validate(merged).to_document()
        updated = self._store.update(self.kind.collection, item_id, changes)
        if updated is None:
            return None
        return self._populate([updated], published_only=False)[0]

    def delete(self, item_id: str) -> bool:
        if self.kind.soft_delete:
            field = self.kind.visibility_field or "isActive"
            updated = self._store.update(self.kind.collection, item_id, {field: False})
            deleted = updated is not None
        else:
            deleted = self._store.delete(self.kind.collection, item_id)
        if deleted:
            logger.info("Deleted %s id=%s soft=%s", self.kind.name, item_id, self.kind.soft_delete)
        return deleted

    # --- lecture references ------------------------------------------------------
    def _populate(self, docs: List[dict], *, published_only: bool) -> List[dict]:
        if not self.kind.lecture_refs:
            return docs
        wanted = {ref for doc in docs for ref in self._refs(doc)}
        lectures: Dict[str, dict] = {}
        for lecture_id in wanted:
            lecture = self._store.get(LECTURE.collection, lecture_id)
            if lecture is None:
                continue
            if published_only and lecture.get(LECTURE.visibility_field) is not True:
                continue
            lectures[lecture_id] = {
                "id": lecture["id"],
                "title": lecture.get("title"),
                "lectureNumber": lecture.get("lectureNumber"),
            }
        for doc in docs:
            for field in self.kind.lecture_refs:
                doc[field] = [lectures[i] for i in doc.get(field) or [] if i in lectures]
        return docs

    def _refs(self, doc: Mapping[str, Any]) -> Iterable[str]:
        for field in self.kind.lecture_refs:
            for value in doc.get(field) or []:
                if isinstance(value, str):
                    yield value


__all__ = ["ScopedContentRepository"]
