"""
In-memory document store for tests and local offline work.

Mirrors the semantics of the Postgres store closely enough that route tests
can run without a database: equality filters on top-level fields, stable
multi-key ordering with nulls last, and deep copies on the way in and out.
"""
from __future__ import annotations

import copy
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from uuid import uuid4

from .ports import ASC, OrderBy


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(doc: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    if not where:
        return True
    for key, expected in where.items():
        if doc.get(key) != expected:
            return False
    return True


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.Lock()

    def _bucket(self, collection: str) -> Dict[str, dict]:
        return self._collections.setdefault(collection, {})

    def insert(self, collection: str, doc: Mapping[str, Any]) -> dict:
        now = _now_iso()
        record = copy.deepcopy(dict(doc))
        record["id"] = str(uuid4())
        record["createdAt"] = now
        record["updatedAt"] = now
        with self._lock:
            self._bucket(collection)[record["id"]] = record
        return copy.deepcopy(record)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            record = self._bucket(collection).get(doc_id)
            return copy.deepcopy(record) if record is not None else None

    def find_one(self, collection: str, where: Mapping[str, Any]) -> Optional[dict]:
        with self._lock:
            for record in self._bucket(collection).values():
                if _matches(record, where):
                    return copy.deepcopy(record)
        return None

    def find(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: OrderBy = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]:
        with self._lock:
            items = [copy.deepcopy(r) for r in self._bucket(collection).values() if _matches(r, where)]
        # Apply keys from least to most significant; sort() is stable.
        for field, direction in reversed(list(order_by)):
            present = [r for r in items if r.get(field) is not None]
            missing = [r for r in items if r.get(field) is None]
            present.sort(key=lambda r: r[field], reverse=direction != ASC)
            items = present + missing
        items = items[offset:]
        if limit is not None:
            items = items[:limit]
        return items

    def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        with self._lock:
            return sum(1 for r in self._bucket(collection).values() if _matches(r, where))

    def update(self, collection: str, doc_id: str, changes: Mapping[str, Any]) -> Optional[dict]:
        with self._lock:
            record = self._bucket(collection).get(doc_id)
            if record is None:
                return None
            for key, value in changes.items():
                if key in ("id", "createdAt"):
                    continue
                record[key] = copy.deepcopy(value)
            record["updatedAt"] = _now_iso()
            return copy.deepcopy(record)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._bucket(collection).pop(doc_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._collections.clear()


__all__ = ["InMemoryDocumentStore"]
