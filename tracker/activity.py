import calendar
import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from tracker import config, dates
from tracker.team_mapping import BREAKDOWN_KEYS, UNKNOWN

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 8
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = SECONDS_PER_HOUR * HOURS_PER_DAY


def round_half_up(value: float) -> int:
    """Round .5 up (Python's round() would send 82.5 to 82)."""
    return int(math.floor(value + 0.5))


def activity_percentage(tracked: int, overall: int) -> int:
    """
    Share of tracked seconds with keyboard/mouse activity, 0-100.

    Clamped because Hubstaff occasionally reports overall > tracked for a day.
    """
    if not tracked or tracked <= 0:
        return 0
    return max(0, min(100, round_half_up(overall / tracked * 100)))


@dataclass(frozen=True)
class DailyActivityRecord:
    user_id: int
    project_id: Optional[int]
    date: str  # YYYY-MM-DD
    tracked: int  # seconds on the clock
    overall: int  # seconds with input activity

    @classmethod
    def from_api(cls, raw: Dict) -> "DailyActivityRecord":
        return cls(
            user_id=raw.get("user_id"),
            project_id=raw.get("project_id"),
            date=raw.get("date") or "",
            tracked=int(raw.get("tracked") or 0),
            overall=int(raw.get("overall") or 0),
        )

    @property
    def activity_percentage(self) -> int:
        return activity_percentage(self.tracked, self.overall)

    @property
    def hours(self) -> float:
        return self.tracked / SECONDS_PER_HOUR


def seconds_to_days(seconds: float) -> float:
    return seconds / SECONDS_PER_DAY if seconds else 0


# =================================================
# DATE / PROJECT CHUNKING
# =================================================
def build_date_chunks(
    total_days: int,
    days_per_chunk: int,
    today: Optional[date] = None,
) -> List[Tuple[str, str]]:
    """
    Split the last `total_days` into (start, stop) windows of
    `days_per_chunk` days, most recent first. Windows are adjacent and
    inclusive on both ends.
    """
    if days_per_chunk <= 0:
        raise ValueError("days_per_chunk must be positive")
    end = today or dates.today()
    chunks: List[Tuple[str, str]] = []
    for _ in range(math.ceil(total_days / days_per_chunk)):
        start = end - timedelta(days=days_per_chunk - 1)
        chunks.append((start.isoformat(), end.isoformat()))
        end = start - timedelta(days=1)
    return chunks


def split_date_range(start: date, stop: date, days_per_chunk: int) -> List[Tuple[str, str]]:
    """Like build_date_chunks but for an explicit window; the oldest chunk is clipped at `start`."""
    if days_per_chunk <= 0:
        raise ValueError("days_per_chunk must be positive")
    chunks: List[Tuple[str, str]] = []
    end = stop
    while end >= start:
        chunk_start = max(start, end - timedelta(days=days_per_chunk - 1))
        chunks.append((chunk_start.isoformat(), end.isoformat()))
        end = chunk_start - timedelta(days=1)
    return chunks


def chunked(items: List, size: int) -> List[List]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def fetch_project_activities(
    client,
    project_ids: List,
    log: Optional[Callable[[str], None]] = None,
    total_days: Optional[int] = None,
    days_per_chunk: Optional[int] = None,
    project_chunk_size: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    today: Optional[date] = None,
    sleep: Callable[[float], None] = time.sleep,
    date_chunks: Optional[List[Tuple[str, str]]] = None,
) -> List[DailyActivityRecord]:
    """
    One paginated fetch per (date chunk x project-id chunk).

    Date chunks go newest first, project chunks in list order, with a pause
    between requests so a two-year backfill doesn't trip the rate limiter.
    Unset sizes fall back to the HUBSTAFF_* settings in tracker.config.
    """
    log = log or logger.info
    if not project_ids:
        return []

    total_days = total_days or config.HISTORY_DAYS
    days_per_chunk = days_per_chunk or config.DAYS_PER_CHUNK
    project_chunk_size = project_chunk_size or config.PROJECT_CHUNK_SIZE
    if delay_seconds is None:
        delay_seconds = config.CHUNK_DELAY_SECONDS

    if date_chunks is None:
        date_chunks = build_date_chunks(total_days, days_per_chunk, today)
    project_chunks = chunked(list(project_ids), project_chunk_size)
    log(
        f"Generated {len(date_chunks)} date chunks of {days_per_chunk} days "
        f"x {len(project_chunks)} project chunks."
    )

    records: List[DailyActivityRecord] = []
    first = True
    for start, stop in date_chunks:
        for p_chunk in project_chunks:
            if not first and delay_seconds > 0:
                sleep(delay_seconds)
            first = False

            log(f"Fetching: {start} to {stop} (Projects: {len(p_chunk)})")
            raw = client.fetch_daily_activities(start, stop, project_ids=p_chunk, log=log)
            records.extend(DailyActivityRecord.from_api(a) for a in raw)

    log(f"Total daily activities fetched: {len(records)}")
    return records


# =================================================
# PER-PROJECT AGGREGATION
# =================================================
def empty_project_result(project_name: str) -> Dict:
    return {
        "project_name": project_name,
        "hs_time_taken_days": 0,
        "activity_percentage": 0,
        "team_breakdown": {key: 0 for key in BREAKDOWN_KEYS.values()},
        "member_activities": [],
        "total_work_days": 0,
    }


class _ProjectStats:
    def __init__(self):
        self.total_seconds = 0
        self.weighted_activity = 0
        self.team_hours: Dict[str, float] = defaultdict(float)
        self.members: Dict[int, Dict] = {}

    def add(self, record: DailyActivityRecord, team: str, user_name: str):
        pct = record.activity_percentage
        hours = record.hours

        self.total_seconds += record.tracked
        self.weighted_activity += pct * record.tracked
        bucket = team if team in BREAKDOWN_KEYS else UNKNOWN
        self.team_hours[bucket] += hours

        member = self.members.get(record.user_id)
        if member is None:
            self.members[record.user_id] = {
                "user_id": record.user_id,
                "user_name": user_name,
                "team": team,
                "hours": hours,
                "activity_percentage": pct,
            }
            return

        # Running weighted average; depends on record order
        member["hours"] += hours
        if member["hours"] > 0:
            member["activity_percentage"] = round_half_up(
                (member["activity_percentage"] * (member["hours"] - hours) + pct * hours)
                / member["hours"]
            )

    def to_result(self, project_name: str) -> Dict:
        total_days = seconds_to_days(self.total_seconds)
        return {
            "project_name": project_name,
            "hs_time_taken_days": total_days,
            "activity_percentage": round_half_up(self.weighted_activity / self.total_seconds)
            if self.total_seconds > 0
            else 0,
            "team_breakdown": {
                key: self.team_hours.get(team, 0) / HOURS_PER_DAY
                for team, key in BREAKDOWN_KEYS.items()
            },
            "member_activities": list(self.members.values()),
            "total_work_days": total_days,
        }


def aggregate_project_activity(
    records: Iterable[DailyActivityRecord],
    hs_id_to_local: Dict,
    user_team_map: Dict,
    user_name_map: Dict,
    project_names: Optional[List[str]] = None,
) -> Dict[str, Dict]:
    """
    Roll daily activity records up per local project name.

    Records for projects that were not matched to a local name are skipped;
    Hubstaff holds many more projects than the tracker does. Every name in
    `project_names` appears in the result, with zeros if nothing was tracked.
    """
    results = {name: empty_project_result(name) for name in project_names or []}
    stats: Dict[str, _ProjectStats] = {}

    for record in records:
        local_name = hs_id_to_local.get(record.project_id)
        if not local_name:
            continue
        uid = record.user_id
        team = user_team_map.get(uid) or UNKNOWN
        user_name = user_name_map.get(uid) or f"User {uid}"
        stats.setdefault(local_name, _ProjectStats()).add(record, team, user_name)

    for name, s in stats.items():
        results[name] = s.to_result(name)
    return results


def summarize_activity(
    records: Iterable[DailyActivityRecord],
    project_names: Optional[Dict] = None,
) -> Dict:
    """Totals for one person: time worked, weighted activity, projects touched."""
    total = 0
    weighted = 0
    projects: List[str] = []
    for r in records:
        total += r.tracked
        weighted += r.activity_percentage * r.tracked
        name = (project_names or {}).get(r.project_id)
        if name and name not in projects:
            projects.append(name)
    return {
        "timeWorked": total,
        "activityPercentage": round_half_up(weighted / total) if total > 0 else 0,
        "projects": projects,
    }


# =================================================
# MONTHLY AGGREGATION
# =================================================
def days_in_month(month: int, year: int) -> List[str]:
    _, n = calendar.monthrange(year, month)
    return [date(year, month, d).isoformat() for d in range(1, n + 1)]


def aggregate_monthly(
    records: Iterable[Dict],
    month: int,
    year: int,
) -> Dict:
    """
    Monthly summary from enriched activity rows.

    Each row: {date, user_name, person, project_name, time_worked,
    activity_percentage}. `person` is the local name the row is grouped by.
    """
    people: Dict[str, Dict] = {}
    daily: Dict[str, Dict] = {}
    weighted_total = 0

    for a in records:
        t = a.get("time_worked") or 0
        pct = a.get("activity_percentage") or 0
        weighted_total += pct * t

        p = people.setdefault(
            a["person"],
            {
                "hubstaffName": a.get("user_name"),
                "totalTime": 0,
                "weighted": 0,
                "days": set(),
                "projects": defaultdict(lambda: {"time": 0, "weighted": 0}),
            },
        )
        p["totalTime"] += t
        p["weighted"] += pct * t
        p["days"].add(a["date"])
        if a.get("project_name"):
            proj = p["projects"][a["project_name"]]
            proj["time"] += t
            proj["weighted"] += pct * t

        d = daily.setdefault(a["date"], {"totalTime": 0, "weighted": 0})
        d["totalTime"] += t
        d["weighted"] += pct * t

    def _avg(weighted: float, total: float) -> int:
        return round_half_up(weighted / total) if total > 0 else 0

    breakdown = sorted(
        (
            {
                "name": name,
                "hubstaffName": p["hubstaffName"],
                "totalTime": p["totalTime"],
                "avgActivity": _avg(p["weighted"], p["totalTime"]),
                "daysActive": len(p["days"]),
                "projects": sorted(
                    (
                        {
                            "projectName": pname,
                            "time": pd["time"],
                            "activity": _avg(pd["weighted"], pd["time"]),
                        }
                        for pname, pd in p["projects"].items()
                    ),
                    key=lambda x: x["time"],
                    reverse=True,
                ),
            }
            for name, p in people.items()
        ),
        key=lambda x: x["totalTime"],
        reverse=True,
    )

    daily_data = [
        {
            "date": d,
            "totalTime": v["totalTime"],
            "avgActivity": _avg(v["weighted"], v["totalTime"]),
        }
        for d, v in sorted(daily.items())
    ]

    total_time = sum(p["totalTime"] for p in breakdown)
    return {
        "month": month,
        "year": year,
        "totalTime": total_time,
        "avgActivity": _avg(weighted_total, total_time),
        "totalDays": len(daily_data),
        "breakdown": breakdown,
        "dailyData": daily_data,
    }
