"""
Short-lived read-through cache for resolved principals.

Why: Every authenticated request needs the principal record; re-reading it
from the store on each request is wasteful when the record rarely changes.
Entries live for a fixed TTL (5 minutes) and are dropped lazily on read or by
a periodic sweep.

Invariant: after `invalidate(kind, principal_id)` the next lookup for that
principal misses. Write paths call it only after their store mutation commits.
Each invalidation bumps a per-key generation; a miss records the generation
before its store read and `set` drops the snapshot if an invalidation happened
in between.

Limitations:
- Process-local. In a multi-instance deployment an invalidation on one
  instance does not reach the others; they serve their snapshot until TTL.
- No single-flight: concurrent misses for one principal each hit the store.
"""
from __future__ import annotations

import asyncio
import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger("coursehub.identity_access")

DEFAULT_TTL_SECONDS = 300
DEFAULT_SWEEP_INTERVAL_SECONDS = 60


@dataclass
class _CacheEntry:
    principal: dict
    inserted_at: float


def _key(kind: str, principal_id: str) -> str:
    return f"{kind}:{principal_id}"


class PrincipalCache:
    """In-memory principal cache keyed by principal type and id."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, kind: str, principal_id: str) -> Optional[dict]:
        key = _key(kind, principal_id)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now - entry.inserted_at >= self.ttl_seconds:
                self._entries.pop(key, None)
                return None
            return copy.deepcopy(entry.principal)

    def generation(self, kind: str, principal_id: str) -> int:
        with self._lock:
            return self._generations.get(_key(kind, str(principal_id)), 0)

    def set(
        self, kind: str, principal_id: str, principal: dict, *, generation: Optional[int] = None
    ) -> bool:
        """Cache `principal`; refuse when the key was invalidated since `generation`."""
        key = _key(kind, str(principal_id))
        entry = _CacheEntry(principal=copy.deepcopy(principal), inserted_at=self._clock())
        with self._lock:
            if generation is not None and self._generations.get(key, 0) != generation:
                return False
            self._entries[key] = entry
        return True

    def invalidate(self, kind: str, principal_id: str) -> None:
        key = _key(kind, str(principal_id))
        with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def sweep(self) -> int:
        """Drop expired entries; return how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if now - e.inserted_at >= self.ttl_seconds]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheSweeper:
    """Background task that sweeps a PrincipalCache on a fixed interval."""

    def __init__(self, cache: PrincipalCache, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            removed = self.cache.sweep()
            if removed:
                logger.debug("Principal cache sweep removed %d entries", removed)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="principal-cache-sweeper")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()


__all__ = ["PrincipalCache", "CacheSweeper", "DEFAULT_TTL_SECONDS", "DEFAULT_SWEEP_INTERVAL_SECONDS"]
