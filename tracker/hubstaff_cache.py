"""
Process-wide Hubstaff reference data: projects, user → team category and
user → display name.

Lifecycle: UNINITIALIZED → INITIALIZING → READY → STALE (→ INITIALIZING).
Only one initialization runs at a time; callers arriving while it runs wait
on the same Future instead of starting their own fetch sequence.
"""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from tracker import config
from tracker.hubstaff_client import user_display_name
from tracker.team_mapping import category_for_team, determine_user_team

logger = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized"
INITIALIZING = "initializing"
READY = "ready"
STALE = "stale"


@dataclass
class CacheEntry:
    data: Any
    timestamp: float


@dataclass
class HubstaffSnapshot:
    projects: List[Dict]
    user_team_map: Dict[int, str]
    user_name_map: Dict[int, str]


class HubstaffCache:
    def __init__(
        self,
        client,
        ttl_seconds: int = config.CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._projects: Optional[CacheEntry] = None
        self._members: Optional[CacheEntry] = None
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None
        self.load_count = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        with self._lock:
            if self._inflight is not None:
                return INITIALIZING
            if self._projects is None or self._members is None:
                return UNINITIALIZED
            return READY if self._fresh() else STALE

    def get(self) -> Optional[HubstaffSnapshot]:
        """Current snapshot if it is fresh, otherwise None. Never fetches."""
        with self._lock:
            return self._snapshot() if self._fresh() else None

    def invalidate(self):
        with self._lock:
            self._projects = None
            self._members = None

    def ensure_initialized(self, log: Optional[Callable[[str], None]] = None) -> HubstaffSnapshot:
        log = log or logger.info
        with self._lock:
            if self._fresh():
                return self._snapshot()
            if self._inflight is not None:
                future = self._inflight
                owner = False
            else:
                future = Future()
                self._inflight = future
                owner = True

        if not owner:
            log("Waiting for ongoing global initialization...")
            return future.result()

        try:
            snapshot = self._load(log)
        except BaseException as e:
            with self._lock:
                self._inflight = None
            future.set_exception(e)
            raise

        with self._lock:
            now = self.clock()
            self._projects = CacheEntry(snapshot.projects, now)
            self._members = CacheEntry(
                {"teams": snapshot.user_team_map, "names": snapshot.user_name_map}, now
            )
            self._inflight = None
        future.set_result(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Internals (call with lock held)
    # ------------------------------------------------------------------

    def _fresh(self) -> bool:
        if self._projects is None or self._members is None:
            return False
        now = self.clock()
        return (
            now - self._projects.timestamp <= self.ttl_seconds
            and now - self._members.timestamp <= self.ttl_seconds
        )

    def _snapshot(self) -> HubstaffSnapshot:
        return HubstaffSnapshot(
            projects=self._projects.data,
            user_team_map=self._members.data["teams"],
            user_name_map=self._members.data["names"],
        )

    # ------------------------------------------------------------------
    # Loading (runs outside the lock, in exactly one thread)
    # ------------------------------------------------------------------

    def _load(self, log: Callable[[str], None]) -> HubstaffSnapshot:
        log("Starting global Hubstaff initialization")
        self.load_count += 1

        projects = self.client.fetch_projects(log=log)
        log(f"Fetched {len(projects)} projects from Hubstaff.")
        if projects:
            log(f"Sample Hubstaff project names: {', '.join(p['name'] for p in projects[:5])}")

        user_team_map: Dict[int, str] = {}
        user_name_map: Dict[int, str] = {}

        for team in self.client.fetch_teams(log=log):
            category = category_for_team(team.get("name"))
            if not category:
                continue
            team_members, users = self.client.fetch_team_members(team["id"], log=log)
            for member in team_members:
                user_team_map[member["user_id"]] = category
            for user in users:
                user_team_map[user["id"]] = category
                user_name_map[user["id"]] = user_display_name(user)

        # Organization members cover everyone outside the mapped teams
        _, org_users = self.client.fetch_organization_members(log=log)
        for user in org_users:
            uid = user["id"]
            if not user_name_map.get(uid):
                user_name_map[uid] = user_display_name(user)
            if uid not in user_team_map:
                user_team_map[uid] = determine_user_team(user)

        log(
            f"Global initialization complete: {len(user_team_map)} users mapped to teams."
        )
        return HubstaffSnapshot(projects, user_team_map, user_name_map)
