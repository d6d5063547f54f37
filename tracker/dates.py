"""
Calendar helpers. Every "today" and every day-level comparison goes through
here so all call sites use the organization timezone.
"""

from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from tracker import config


def org_tz() -> ZoneInfo:
    return ZoneInfo(config.ORG_TIMEZONE)


def now() -> datetime:
    return datetime.now(org_tz())


def today() -> date:
    return now().date()


def today_str() -> str:
    return today().isoformat()


def to_day(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Normalize a date-ish value to a calendar day in the org timezone.

    Accepts "YYYY-MM-DD", ISO datetimes (with or without offset), `date` and
    `datetime`. Naive datetimes are taken as already being org-local.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(org_tz())
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value).strip()
    if len(s) == 10:
        return date.fromisoformat(s)
    return to_day(datetime.fromisoformat(s.replace("Z", "+00:00")))


def format_ddmmyyyy(value: Union[str, date, datetime]) -> str:
    return to_day(value).strftime("%d/%m/%Y")
