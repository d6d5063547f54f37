import logging
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore

from tracker import config
from tracker.services import get_services


# -------------------------------------------------
# Logging
# -------------------------------------------------
logger = logging.getLogger("scheduler")
logger.setLevel(logging.INFO)
logger.propagate = True


# -------------------------------------------------
# Scheduler state
# -------------------------------------------------
_scheduler: BackgroundScheduler | None = None
_run_count: int = 0


# -------------------------------------------------
# Job logic
# -------------------------------------------------
def refresh_hubstaff_cache():
    """
    Rebuild the Hubstaff project/team cache so request handlers rarely have
    to wait for it. Errors are logged; the next run tries again.
    """
    global _run_count

    logger.info("⏳ Cache refresh triggered")
    try:
        services = get_services()
        services.cache.invalidate()
        snapshot = services.cache.ensure_initialized(logger.info)
        _run_count += 1
        logger.info(
            f"✅ Cache refreshed: {len(snapshot.projects)} projects, "
            f"{len(snapshot.user_team_map)} users (run #{_run_count})"
        )
    except Exception:
        logger.error("❌ Cache refresh failed", exc_info=True)


# -------------------------------------------------
# Scheduler bootstrap
# -------------------------------------------------
def start_scheduler():
    """
    Start scheduler safely (idempotent).
    """
    global _scheduler

    logger.info("🚀 Initializing scheduler")

    if _scheduler and _scheduler.running:
        logger.info("⚠️ Scheduler already running, skipping start")
        return

    _scheduler = BackgroundScheduler(
        jobstores={"default": MemoryJobStore()},
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        timezone=ZoneInfo(config.ORG_TIMEZONE),
    )

    _scheduler.add_job(
        refresh_hubstaff_cache,
        trigger="interval",
        minutes=config.CACHE_REFRESH_MINUTES,
        id="hubstaff_cache_refresh",
        replace_existing=True,
        max_instances=1,  #  no overlap
        coalesce=True,  #  skip missed runs
    )

    _scheduler.start()

    logger.info(f"🚀 Scheduler running = {_scheduler.running}")
    logger.info(f"📌 Jobs = {[job.id for job in _scheduler.get_jobs()]}")


def shutdown_scheduler():
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler stopped")
    _scheduler = None
