"""
Plain-text work status report for one person on one day.
"""

from datetime import date
from typing import Dict, List, Union

from tracker.dates import format_ddmmyyyy, to_day

COMPLETED = "Completed"
REJECTED = "Rejected"
ON_HOLD = "On Hold"


def _fmt(value, fallback: str) -> str:
    return format_ddmmyyyy(value) if value else fallback


def _title(task: Dict) -> str:
    return task.get("sub_phase") or task.get("project_name") or ""


def _is_deviated(task: Dict) -> bool:
    return bool((task.get("deviation_reason") or "").strip())


def is_overdue(task: Dict, report_date: Union[str, date]) -> bool:
    """Open task whose end date is strictly before the report day."""
    if task.get("status") == COMPLETED or not task.get("end_date"):
        return False
    return to_day(report_date) > to_day(task["end_date"])


def select_report_tasks(tasks: List[Dict], report_date: Union[str, date]) -> List[Dict]:
    """
    Tasks that belong in the report for `report_date`:
    completed that day, or open (not rejected / on hold) and already started.
    """
    day = to_day(report_date)
    selected = []
    for task in tasks:
        status = task.get("status")
        if status == COMPLETED:
            if task.get("actual_end_date") and to_day(task["actual_end_date"]) == day:
                selected.append(task)
            continue
        if status in (REJECTED, ON_HOLD):
            continue
        if not task.get("start_date") or not task.get("end_date"):
            continue
        if day >= to_day(task["start_date"]):
            selected.append(task)
    return selected


def _task_block(index: int, task: Dict, actual_end_fallback: str) -> List[str]:
    return [
        f"*{index}. {_title(task)}*",
        f"📁 *Project:* {task.get('project_name')}",
        f"📅 *Start Date:* {_fmt(task.get('start_date'), 'Not set')}",
        f"⏰ *Expected End Date:* {_fmt(task.get('end_date'), 'Not set')}",
        f"✅ *Actual End Date:* {_fmt(task.get('actual_end_date'), actual_end_fallback)}",
        f"📊 *Status:* {task.get('status')}",
        f"✅ *Deviated:* {'Yes' if _is_deviated(task) else 'No'}",
        "",
    ]


def format_work_status(person_name: str, report_date: Union[str, date], tasks: List[Dict]) -> str:
    lines = [
        f"📋 *Work Status - {format_ddmmyyyy(report_date)}*",
        f"👤 *QA Name:* {person_name}",
        "",
    ]

    active = [t for t in tasks if t.get("status") != COMPLETED]
    completed = [t for t in tasks if t.get("status") == COMPLETED]

    if active:
        lines += ["🔄 *=== ACTIVE TASKS ===*", ""]
        for i, task in enumerate(active, 1):
            lines += _task_block(i, task, "Not completed")

    if completed:
        lines += ["🎉 *=== COMPLETED TODAY ===*", ""]
        for i, task in enumerate(completed, 1):
            lines += _task_block(i, task, "N/A")

    rejected = sum(1 for t in tasks if t.get("status") == REJECTED)
    overdue = sum(1 for t in tasks if is_overdue(t, report_date))

    lines += [
        "📊 *=== SUMMARY ===*",
        f"📋 *Total Tasks for Today:* {len(tasks)}",
        f"🔄 *Active Tasks:* {len(active)}",
        f"🎉 *Completed Today:* {len(completed)}",
        f"❌ *Rejected Tasks:* {rejected}",
        f"🚨 *Overdue Tasks:* {overdue}",
    ]
    return "\n".join(lines)
