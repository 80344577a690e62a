"""
Storage ports for the document store behind principals and course content.

Keep these small and framework-agnostic so tests can supply simple fakes.

Documents are plain dicts. The store assigns `id` (UUID string), `createdAt`
and `updatedAt` (ISO-8601, UTC) and returns copies, never live references.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple

ASC = 1
DESC = -1

# (field, direction) pairs; direction is ASC or DESC
OrderBy = Sequence[Tuple[str, int]]


class DocumentStore(Protocol):
    """Minimal collection-oriented store.

    Intent:
        Give repositories a query interface (equality filters, ordering,
        paging) without binding them to a particular database driver.

    Errors:
        Implementations raise `StoreUnavailable` when the backend cannot be
        reached and `StoreError` for any other backend failure.
    """

    def insert(self, collection: str, doc: Mapping[str, Any]) -> dict: ...

    def get(self, collection: str, doc_id: str) -> Optional[dict]: ...

    def find_one(self, collection: str, where: Mapping[str, Any]) -> Optional[dict]: ...

    def find(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        order_by: OrderBy = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict]: ...

    def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int: ...

    def update(self, collection: str, doc_id: str, changes: Mapping[str, Any]) -> Optional[dict]: ...

    def delete(self, collection: str, doc_id: str) -> bool: ...


__all__ = ["ASC", "DESC", "OrderBy", "DocumentStore"]
