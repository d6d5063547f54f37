from datetime import date

from tracker.report import format_work_status, is_overdue, select_report_tasks


def _task(**overrides):
    task = {
        "project_name": "Mobile App",
        "sub_phase": "Regression pass",
        "status": "In Progress",
        "start_date": "2026-02-01",
        "end_date": "2026-02-10",
        "actual_end_date": None,
        "deviation_reason": None,
    }
    task.update(overrides)
    return task


def test_overdue_only_after_end_date():
    task = _task()

    assert is_overdue(task, "2026-02-11")
    assert not is_overdue(task, "2026-02-10")
    assert not is_overdue(task, date(2026, 2, 9))


def test_completed_or_undated_tasks_are_never_overdue():
    assert not is_overdue(_task(status="Completed"), "2026-03-01")
    assert not is_overdue(_task(end_date=None), "2026-03-01")


def test_end_date_with_time_component_compares_by_day():
    assert not is_overdue(_task(end_date="2026-02-10T18:00:00+05:30"), "2026-02-10")


def test_select_report_tasks():
    tasks = [
        _task(sub_phase="open"),
        _task(sub_phase="not started", start_date="2026-02-20", end_date="2026-02-25"),
        _task(sub_phase="done today", status="Completed", actual_end_date="2026-02-11"),
        _task(sub_phase="done earlier", status="Completed", actual_end_date="2026-02-05"),
        _task(sub_phase="rejected", status="Rejected"),
        _task(sub_phase="held", status="On Hold"),
        _task(sub_phase="no dates", start_date=None, end_date=None),
    ]

    selected = select_report_tasks(tasks, "2026-02-11")

    assert [t["sub_phase"] for t in selected] == ["open", "done today"]


def test_format_work_status_sections_and_summary():
    tasks = [
        _task(sub_phase="Regression pass"),
        _task(sub_phase="Smoke test", status="Completed", actual_end_date="2026-02-11",
              deviation_reason="Scope grew"),
    ]

    text = format_work_status("Aswathi", "2026-02-11", tasks)

    assert text.startswith("📋 *Work Status - 11/02/2026*")
    assert "👤 *QA Name:* Aswathi" in text
    assert text.index("ACTIVE TASKS") < text.index("COMPLETED TODAY") < text.index("SUMMARY")
    assert "*1. Regression pass*" in text
    assert "✅ *Actual End Date:* Not completed" in text
    assert "✅ *Actual End Date:* 11/02/2026" in text
    assert "✅ *Deviated:* Yes" in text
    assert "📋 *Total Tasks for Today:* 2" in text
    assert "🔄 *Active Tasks:* 1" in text
    assert "🎉 *Completed Today:* 1" in text
    assert "❌ *Rejected Tasks:* 0" in text
    assert "🚨 *Overdue Tasks:* 1" in text


def test_format_work_status_without_tasks():
    text = format_work_status("Aswathi", "2026-02-11", [])

    assert "ACTIVE TASKS" not in text
    assert "COMPLETED TODAY" not in text
    assert "📋 *Total Tasks for Today:* 0" in text
