"""
Error taxonomy for the Hubstaff reconciliation pipeline.

Hard errors (configuration, token) propagate to the request boundary.
Soft errors (page fetch, unmatched names) are normally absorbed by the
caller and recorded in the debug log.
"""

from typing import Optional


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ConfigurationError(TrackerError):
    """Required configuration (org id, credentials, database) is missing."""


class TokenRefreshError(TrackerError):
    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Hubstaff token refresh failed ({status_code}): {body[:200]}")


class RemoteFetchError(TrackerError):
    def __init__(self, url: str, status_code: Optional[int] = None, body: str = ""):
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f"Hubstaff fetch failed ({status_code}) for {url}: {body[:100]}")


class MatchNotFoundError(TrackerError):
    """No usable identity could be derived for a name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No match for '{name}'")
