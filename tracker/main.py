"""
FastAPI Application - Hubstaff activity reconciliation
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tracker import config, reconcile
from tracker.errors import MatchNotFoundError, TrackerError
from tracker.leaves import clear_quick_leave, mark_quick_leave
from tracker.logging_config import DebugLog, setup_logging
from tracker.scheduler import shutdown_scheduler, start_scheduler
from tracker.services import Services, get_services

logger = logging.getLogger("tracker.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if config.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(title="Hubstaff Activity API", lifespan=lifespan)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400)


def _failure(log: DebugLog, e: Exception) -> JSONResponse:
    if not isinstance(e, TrackerError):
        logger.error("❌ Unexpected failure", exc_info=True)
    log.error(f"CRITICAL ERROR: {e}")
    return JSONResponse({"error": str(e), "debug_logs": log.lines}, status_code=500)


# -------------------------------------------------
# Hubstaff Aggregation
# -------------------------------------------------
@app.get("/hubstaff/bulk-activity", tags=["Hubstaff"])
def bulk_activity(project_names: Optional[str] = None, services: Services = Depends(get_services)):
    """Tracked days, activity and team/member breakdown for many projects."""
    if not project_names:
        return _bad_request("Missing project_names")
    log = DebugLog(logging.getLogger("tracker.bulk"))
    try:
        names = reconcile.parse_project_names(project_names)
        results = reconcile.bulk_project_activity(services, names, log)
    except Exception as e:
        return _failure(log, e)
    return {"results": results, "debug_logs": log.lines}


@app.get("/hubstaff/project-activity", tags=["Hubstaff"])
def project_activity(
    project_name: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """Same breakdown as bulk-activity for a single project and date window."""
    if not project_name:
        return _bad_request("Project name is required")
    for value in (start_date, end_date):
        if value and not reconcile.is_valid_day(value):
            return _bad_request(f"Invalid date: {value}")
    log = DebugLog(logging.getLogger("tracker.project"))
    try:
        result = reconcile.project_activity(services, project_name, log, start_date, end_date)
    except Exception as e:
        return _failure(log, e)
    return {**result, "debug_logs": log.lines}


@app.get("/hubstaff/qa-status", tags=["Hubstaff"])
def qa_status(
    date: Optional[str] = None,
    qaName: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """Daily work status report for one person."""
    if not date or not qaName:
        return _bad_request("Missing required parameters: date and qaName")
    if not reconcile.is_valid_day(date):
        return _bad_request(f"Invalid date: {date}")
    log = DebugLog(logging.getLogger("tracker.status"))
    try:
        return reconcile.person_status(services, date, qaName, log)
    except Exception as e:
        return _failure(log, e)


@app.get("/hubstaff/monthly", tags=["Hubstaff"])
def monthly(
    month: Optional[int] = None,
    year: Optional[int] = None,
    userId: Optional[int] = None,
    services: Services = Depends(get_services),
):
    """Per-person and per-day activity for one calendar month."""
    if not month or not year or month < 1 or month > 12 or year < 2000:
        return _bad_request("Invalid month or year parameter")
    log = DebugLog(logging.getLogger("tracker.monthly"))
    try:
        return reconcile.monthly_activity(services, month, year, log, user_id=userId)
    except Exception as e:
        return _failure(log, e)


# -------------------------------------------------
# Cache
# -------------------------------------------------
@app.get("/hubstaff/cache", tags=["Cache"])
def cache_status(services: Services = Depends(get_services)):
    snapshot = services.cache.get()
    return {
        "state": services.cache.state,
        "projects": len(snapshot.projects) if snapshot else 0,
        "users": len(snapshot.user_team_map) if snapshot else 0,
    }


@app.post("/hubstaff/cache/refresh", tags=["Cache"])
def cache_refresh(services: Services = Depends(get_services)):
    log = DebugLog(logging.getLogger("tracker.cache"))
    try:
        services.cache.invalidate()
        snapshot = services.cache.ensure_initialized(log)
    except Exception as e:
        return _failure(log, e)
    return {
        "state": services.cache.state,
        "projects": len(snapshot.projects),
        "users": len(snapshot.user_team_map),
        "debug_logs": log.lines,
    }


# -------------------------------------------------
# Quick Leaves
# -------------------------------------------------
class QuickLeaveRequest(BaseModel):
    team_member_name: Optional[str] = None
    leave_type: Optional[str] = None
    team_id: Optional[str] = None
    date: Optional[str] = None


@app.post("/leaves/quick", tags=["Leaves"])
def quick_leave(body: QuickLeaveRequest):
    if not body.team_member_name or not body.leave_type:
        return _bad_request("Missing Required Fields")
    try:
        result = mark_quick_leave(
            body.team_member_name, body.leave_type, body.date, body.team_id
        )
    except MatchNotFoundError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    except Exception as e:
        logger.error("❌ Quick leave failed", exc_info=True)
        return JSONResponse({"error": str(e)}, status_code=500)
    return {"success": True, **result}


@app.delete("/leaves/quick", tags=["Leaves"])
def remove_quick_leave(body: QuickLeaveRequest):
    if not body.team_member_name:
        return _bad_request("Missing Required Fields")
    try:
        deleted = clear_quick_leave(body.team_member_name, body.date)
    except MatchNotFoundError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    except Exception as e:
        logger.error("❌ Quick leave delete failed", exc_info=True)
        return JSONResponse({"error": str(e)}, status_code=500)
    return {"success": True, "deleted": deleted}
