from __future__ import annotations

import threading

import pytest

from tracker.hubstaff_cache import INITIALIZING, READY, STALE, UNINITIALIZED, HubstaffCache


class Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_load_maps_teams_and_falls_back_to_org_members(fake_client):
    cache = HubstaffCache(fake_client, ttl_seconds=1800, clock=Clock())

    snapshot = cache.ensure_initialized(log=lambda msg: None)

    assert [p["id"] for p in snapshot.projects] == [101, 102, 103]
    assert snapshot.user_team_map[11] == "Design"
    assert snapshot.user_team_map[12] == "Testing"
    assert snapshot.user_team_map[13] == "Unknown"
    assert snapshot.user_name_map[13] == "Ravi Backend"
    # Unmapped Hubstaff teams are ignored
    assert 99 not in snapshot.user_team_map
    assert cache.state == READY


def test_fresh_snapshot_is_reused(fake_client):
    cache = HubstaffCache(fake_client, ttl_seconds=1800, clock=Clock())

    first = cache.ensure_initialized()
    second = cache.ensure_initialized()

    assert first is not None and second is not None
    assert fake_client.fetch_projects_calls == 1
    assert cache.load_count == 1


def test_snapshot_goes_stale_after_ttl(fake_client):
    clock = Clock()
    cache = HubstaffCache(fake_client, ttl_seconds=1800, clock=clock)
    cache.ensure_initialized()

    clock.now += 1801

    assert cache.state == STALE
    assert cache.get() is None
    cache.ensure_initialized()
    assert fake_client.fetch_projects_calls == 2
    assert cache.state == READY


def test_invalidate_forces_reload(fake_client):
    cache = HubstaffCache(fake_client, ttl_seconds=1800, clock=Clock())
    cache.ensure_initialized()

    cache.invalidate()

    assert cache.state == UNINITIALIZED
    cache.ensure_initialized()
    assert cache.load_count == 2


def test_failed_load_clears_inflight_slot(fake_client):
    calls = {"n": 0}
    original = fake_client.fetch_projects

    def flaky(**kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("hubstaff down")
        return original(**kwargs)

    fake_client.fetch_projects = flaky
    cache = HubstaffCache(fake_client, ttl_seconds=1800, clock=Clock())

    with pytest.raises(RuntimeError):
        cache.ensure_initialized()
    assert cache.state == UNINITIALIZED

    snapshot = cache.ensure_initialized()
    assert len(snapshot.projects) == 3


def test_concurrent_callers_share_one_initialization(fake_client):
    started = threading.Event()
    release = threading.Event()
    waiting = threading.Event()
    original = fake_client.fetch_projects

    def blocking_fetch(**kwargs):
        started.set()
        release.wait(timeout=5)
        return original(**kwargs)

    fake_client.fetch_projects = blocking_fetch
    cache = HubstaffCache(fake_client, ttl_seconds=1800, clock=Clock())
    results = {}

    def owner():
        results["owner"] = cache.ensure_initialized(log=lambda msg: None)

    def waiter():
        def log(msg):
            if msg.startswith("Waiting for ongoing global initialization"):
                waiting.set()

        results["waiter"] = cache.ensure_initialized(log=log)

    t1 = threading.Thread(target=owner)
    t1.start()
    assert started.wait(timeout=5)
    assert cache.state == INITIALIZING

    t2 = threading.Thread(target=waiter)
    t2.start()
    assert waiting.wait(timeout=5)

    release.set()
    t1.join(timeout=5)
    t2.join(timeout=5)

    assert cache.load_count == 1
    assert fake_client.fetch_projects_calls == 1
    assert results["owner"] is results["waiter"]
