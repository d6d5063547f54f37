"""
Hubstaff reconciliation pipelines behind the HTTP endpoints.

Each function takes the service container and a DebugLog-style callable;
soft problems (unmatched names, short pages) end up in that log, hard ones
(configuration, token refresh) propagate.
"""

import logging
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from tracker import config, db, dates
from tracker.activity import (
    DailyActivityRecord,
    aggregate_monthly,
    aggregate_project_activity,
    days_in_month,
    empty_project_result,
    fetch_project_activities,
    split_date_range,
    summarize_activity,
)
from tracker.errors import RemoteFetchError
from tracker.hubstaff_client import FAIL_FAST
from tracker.name_matching import (
    MatchStatus,
    map_hubstaff_name,
    match_hubstaff_user,
    match_project,
    suggest_close_projects,
)
from tracker.report import format_work_status, select_report_tasks

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 90


def match_local_projects(
    project_names: List[str],
    projects: List[Dict],
    log: Callable[[str], None],
) -> Dict:
    """Returns {hubstaff_project_id: local_name} for every name that resolved."""
    hs_id_to_local: Dict = {}
    unmatched = 0
    for local_name in project_names:
        result = match_project(local_name, projects)
        if result.matched:
            pid = result.entity["id"]
            if pid in hs_id_to_local:
                log(
                    f'"{local_name}" and "{hs_id_to_local[pid]}" both map to '
                    f'"{result.entity["name"]}"; keeping "{local_name}"'
                )
            hs_id_to_local[pid] = local_name
            continue

        if result.status == MatchStatus.AMBIGUOUS:
            names = ", ".join(c["name"] for c in result.candidates[:3])
            log(f'Ambiguous match for: "{local_name}" ({names})')
        else:
            log(f'No match for: "{local_name}"')
            if unmatched < 5:
                close = suggest_close_projects(local_name, projects)
                if close:
                    log(f"  (Did you mean: {', '.join(close)}?)")
        unmatched += 1
    return hs_id_to_local


def bulk_project_activity(services, project_names: List[str], log: Callable[[str], None]) -> Dict[str, Dict]:
    snapshot = services.cache.ensure_initialized(log)

    hs_id_to_local = match_local_projects(project_names, snapshot.projects, log)
    log(f"Matched {len(hs_id_to_local)} projects out of {len(project_names)}")

    if not hs_id_to_local:
        if snapshot.projects:
            sample = ", ".join(p["name"] for p in snapshot.projects[:5])
            log(f"First 5 projects available in Hubstaff: {sample}")
        else:
            log("Hubstaff API returned 0 projects.")
        return {name: empty_project_result(name) for name in project_names}

    records = fetch_project_activities(services.client, list(hs_id_to_local), log)
    return aggregate_project_activity(
        records,
        hs_id_to_local,
        snapshot.user_team_map,
        snapshot.user_name_map,
        project_names,
    )


def project_activity(
    services,
    project_name: str,
    log: Callable[[str], None],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Dict:
    snapshot = services.cache.ensure_initialized(log)

    log(f'Search for project: "{project_name}"')
    result = match_project(project_name, snapshot.projects)
    if not result.matched:
        log(f'No matching project found for "{project_name}" among {len(snapshot.projects)} projects.')
        return empty_project_result(project_name)

    project = result.entity
    log(f'Found matching project: "{project["name"]}" (ID: {project["id"]})')

    stop = dates.to_day(end_date) or dates.today()
    start = dates.to_day(start_date) or stop - timedelta(days=DEFAULT_WINDOW_DAYS)
    log(f"Activity date range: {start} to {stop}")

    records = fetch_project_activities(
        services.client,
        [project["id"]],
        log,
        date_chunks=split_date_range(start, stop, config.DAYS_PER_CHUNK),
    )
    results = aggregate_project_activity(
        records,
        {project["id"]: project_name},
        snapshot.user_team_map,
        snapshot.user_name_map,
        [project_name],
    )
    return results[project_name]


def _project_names(services, snapshot, records, log: Callable[[str], None]) -> Dict:
    """Names for every project in `records`; ids missing from the cached listing are fetched."""
    names = {p["id"]: p["name"] for p in snapshot.projects}
    for pid in {r.project_id for r in records}:
        if pid is None or pid in names:
            continue
        project = services.client.fetch_project(pid)
        if project and project.get("name"):
            names[pid] = project["name"]
        else:
            log(f"Could not resolve Hubstaff project {pid}")
    return names


def person_status(services, report_date: str, person_name: str, log: Callable[[str], None]) -> Dict:
    """Tasks, Hubstaff totals and the formatted report for one person and day."""
    mapped_name = map_hubstaff_name(person_name)
    log(f'Fetching tasks for "{person_name}" (mapped: "{mapped_name}")')

    tasks = db.get_tasks_for_assignee({person_name, mapped_name})
    relevant = select_report_tasks(tasks, report_date)

    activity = {"timeWorked": 0, "activityPercentage": 0, "projects": []}
    snapshot = services.cache.ensure_initialized(log)
    users = [{"id": uid, "name": name} for uid, name in snapshot.user_name_map.items()]
    match = match_hubstaff_user(person_name, users)

    if match.matched:
        user_id = match.entity["id"]
        log(f'Matched "{person_name}" to Hubstaff user "{match.entity["name"]}" ({match.rule})')
        try:
            raw = services.client.fetch_daily_activities(
                report_date,
                report_date,
                user_ids=[user_id],
                on_page_error=FAIL_FAST,
                log=log,
            )
        except RemoteFetchError as e:
            log(f"Error fetching Hubstaff activity: {e}")
            raw = []
        records = [DailyActivityRecord.from_api(a) for a in raw]
        project_names = _project_names(services, snapshot, records, log)
        activity = summarize_activity(records, project_names)
    elif match.status == MatchStatus.AMBIGUOUS:
        log(f'Ambiguous Hubstaff user for "{person_name}": {len(match.candidates)} candidates')
    else:
        log(f'No Hubstaff user found for "{person_name}"')

    return {
        "qaName": person_name,
        "date": report_date,
        "hubstaffActivity": activity,
        "tasks": relevant,
        "formattedText": format_work_status(person_name, report_date, relevant),
    }


def monthly_activity(
    services,
    month: int,
    year: int,
    log: Callable[[str], None],
    user_id: Optional[int] = None,
) -> Dict:
    days = days_in_month(month, year)
    log(f"Fetching Hubstaff data for {month}/{year} ({days[0]} to {days[-1]})")

    snapshot = services.cache.ensure_initialized(log)
    raw = services.client.fetch_daily_activities(
        days[0],
        days[-1],
        user_ids=[user_id] if user_id else None,
        page_limit=500,
        log=log,
    )
    log(f"Total activities fetched: {len(raw)}")

    project_names = {p["id"]: p["name"] for p in snapshot.projects}
    rows = []
    for a in raw:
        record = DailyActivityRecord.from_api(a)
        user_name = snapshot.user_name_map.get(record.user_id) or "Unknown User"
        rows.append(
            {
                "date": record.date,
                "user_name": user_name,
                "person": map_hubstaff_name(user_name),
                "project_name": project_names.get(record.project_id) or "Unknown Project",
                "time_worked": record.tracked,
                "activity_percentage": record.activity_percentage,
            }
        )
    return aggregate_monthly(rows, month, year)


def parse_project_names(param: str) -> List[str]:
    return [n.strip() for n in param.split(",") if n.strip()]


def is_valid_day(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return True
