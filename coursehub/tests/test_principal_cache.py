"""
Principal cache tests: TTL, sweep, invalidation and snapshot isolation.
"""
from __future__ import annotations

import asyncio

import pytest

from coursehub.identity_access.cache import CacheSweeper, PrincipalCache

from .conftest import FakeClock


def test_get_returns_entry_within_ttl():
    clock = FakeClock(start=0.0)
    cache = PrincipalCache(300, clock=clock)
    cache.set("user", "u-1", {"id": "u-1", "isActive": True})

    clock.advance(299)

    assert cache.get("user", "u-1") == {"id": "u-1", "isActive": True}


def test_entry_expires_at_ttl():
    clock = FakeClock(start=0.0)
    cache = PrincipalCache(300, clock=clock)
    cache.set("user", "u-1", {"id": "u-1"})

    clock.advance(300)

    assert cache.get("user", "u-1") is None
    assert len(cache) == 0


def test_invalidate_forces_miss():
    cache = PrincipalCache(300, clock=FakeClock())
    cache.set("user", "u-1", {"id": "u-1"})

    cache.invalidate("user", "u-1")

    assert cache.get("user", "u-1") is None


def test_set_refuses_snapshot_read_before_invalidate():
    cache = PrincipalCache(300, clock=FakeClock())
    generation = cache.generation("user", "u-1")

    cache.invalidate("user", "u-1")

    assert cache.set("user", "u-1", {"id": "u-1", "isActive": True}, generation=generation) is False
    assert cache.get("user", "u-1") is None
    assert cache.set("user", "u-1", {"id": "u-1"}, generation=cache.generation("user", "u-1")) is True


def test_keys_are_namespaced_by_principal_type():
    cache = PrincipalCache(300, clock=FakeClock())
    cache.set("admin", "same-id", {"id": "same-id", "role": "admin"})

    assert cache.get("user", "same-id") is None
    cache.invalidate("user", "same-id")
    assert cache.get("admin", "same-id") == {"id": "same-id", "role": "admin"}


def test_cached_snapshot_is_isolated_from_callers():
    cache = PrincipalCache(300, clock=FakeClock())
    original = {"id": "u-1", "isActive": True}
    cache.set("user", "u-1", original)

    original["isActive"] = False
    served = cache.get("user", "u-1")
    served["isActive"] = False

    assert cache.get("user", "u-1")["isActive"] is True


def test_sweep_drops_only_expired_entries():
    clock = FakeClock(start=0.0)
    cache = PrincipalCache(300, clock=clock)
    cache.set("user", "old", {"id": "old"})
    clock.advance(200)
    cache.set("user", "new", {"id": "new"})
    clock.advance(150)

    removed = cache.sweep()

    assert removed == 1
    assert cache.get("user", "old") is None
    assert cache.get("user", "new") == {"id": "new"}


def test_clear_empties_cache():
    cache = PrincipalCache(300, clock=FakeClock())
    cache.set("user", "a", {"id": "a"})
    cache.set("admin", "b", {"id": "b"})

    cache.clear()

    assert len(cache) == 0


@pytest.mark.anyio
async def test_sweeper_runs_periodically_and_stops():
    clock = FakeClock(start=0.0)
    cache = PrincipalCache(1, clock=clock)
    cache.set("user", "u-1", {"id": "u-1"})
    clock.advance(5)

    sweeper = CacheSweeper(cache, interval_seconds=0.01)
    sweeper.start()
    assert sweeper.running
    for _ in range(50):
        if len(cache) == 0:
            break
        await asyncio.sleep(0.01)
    await sweeper.stop()

    assert len(cache) == 0
    assert not sweeper.running
