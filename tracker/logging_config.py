import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from tracker import dates


class OrgTimezoneFormatter(logging.Formatter):
    """Log timestamps in the configured organization timezone."""

    def converter(self, timestamp):
        return datetime.fromtimestamp(timestamp, dates.org_tz()).timetuple()


def setup_logging(level: int = logging.INFO):
    formatter = OrgTimezoneFormatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        "%H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )


class DebugLog:
    """
    Per-request log collector.

    Every message goes to the module logger and is also kept (timestamped and
    tagged with a short request id) so endpoints can return it as `debug_logs`.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, request_id: Optional[str] = None):
        self.logger = logger or logging.getLogger("tracker")
        self.request_id = request_id or uuid.uuid4().hex[:7]
        self.lines: List[str] = []

    def __call__(self, msg: str, level: int = logging.INFO):
        stamp = datetime.now(timezone.utc).isoformat()
        self.lines.append(f"[{stamp}] [{self.request_id}] {msg}")
        self.logger.log(level, "[%s] %s", self.request_id, msg)

    def warning(self, msg: str):
        self(msg, logging.WARNING)

    def error(self, msg: str):
        self(msg, logging.ERROR)
