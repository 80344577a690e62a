"""
Principal and OAuth state stores.

Why: Keep principal persistence behind one small adapter so the request gate,
account flows and admin tooling agree on collections, email normalization and
which fields count as credentials. The OAuth `state` store keeps anti-CSRF
values server-side; for multi-instance deployments replace it with a shared
store.
"""
from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from coursehub.storage.ports import ASC, DESC, DocumentStore

from .domain import COLLECTIONS, PRINCIPAL_TYPES, without_secrets


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _collection(kind: str) -> str:
    if kind not in PRINCIPAL_TYPES:
        raise ValueError(f"unknown principal type: {kind!r}")
    return COLLECTIONS[kind]


def _tag(kind: str, record: Optional[dict]) -> Optional[dict]:
    if record is None:
        return None
    record["type"] = kind
    return record


class PrincipalStore:
    """Administrator and student records on top of a DocumentStore."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get_principal(self, kind: str, principal_id: str) -> Optional[dict]:
        """Return the principal without credential fields (gate read path)."""
        record = self._store.get(_collection(kind), principal_id)
        return _tag(kind, without_secrets(record)) if record is not None else None

    def get_with_credentials(self, kind: str, principal_id: str) -> Optional[dict]:
        return _tag(kind, self._store.get(_collection(kind), principal_id))

    def find_by_email(self, kind: str, email: str) -> Optional[dict]:
        return _tag(kind, self._store.find_one(_collection(kind), {"email": normalize_email(email)}))

    def find_one(self, kind: str, where: Mapping[str, Any]) -> Optional[dict]:
        return _tag(kind, self._store.find_one(_collection(kind), where))

    def create(self, kind: str, record: Mapping[str, Any]) -> dict:
        data = dict(record)
        data["email"] = normalize_email(data.get("email"))
        data.setdefault("isActive", True)
        return _tag(kind, self._store.insert(_collection(kind), data))

    def update(self, kind: str, principal_id: str, changes: Mapping[str, Any]) -> Optional[dict]:
        return _tag(kind, self._store.update(_collection(kind), principal_id, changes))

    def delete(self, kind: str, principal_id: str) -> bool:
        return self._store.delete(_collection(kind), principal_id)

    def list(self, kind: str, *, newest_first: bool = True) -> list[dict]:
        items = self._store.find(_collection(kind), order_by=[("createdAt", DESC if newest_first else ASC)])
        return [_tag(kind, without_secrets(r)) for r in items]

    def count(self, kind: str, where: Mapping[str, Any] | None = None) -> int:
        return self._store.count(_collection(kind), where)


@dataclass(frozen=True)
class PendingGoogleLogin:
    state: str
    code_verifier: str
    expires_at: float


class StateStore:
    """Pending Google sign-ins keyed by the `state` sent to Google.

    A state is usable once. Expired entries from abandoned sign-ins are pruned
    whenever a new one starts.
    """

    def __init__(self, ttl_seconds: float = 900, *, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._pending: Dict[str, PendingGoogleLogin] = {}
        self._lock = threading.Lock()

    def create(self, *, code_verifier: str) -> PendingGoogleLogin:
        now = self._clock()
        pending = PendingGoogleLogin(
            state=secrets.token_urlsafe(24), code_verifier=code_verifier, expires_at=now + self.ttl_seconds
        )
        with self._lock:
            for state in [s for s, p in self._pending.items() if p.expires_at <= now]:
                del self._pending[state]
            self._pending[pending.state] = pending
        return pending

    def pop_valid(self, state: str) -> Optional[PendingGoogleLogin]:
        with self._lock:
            pending = self._pending.pop(state, None)
        if pending is None or pending.expires_at <= self._clock():
            return None
        return pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)


__all__ = ["PrincipalStore", "StateStore", "PendingGoogleLogin", "normalize_email"]
