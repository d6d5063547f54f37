"""
Hubstaff OAuth token handling.

Tokens live in two layers: an in-memory copy on the provider and the
single-row `hubstaff_tokens` table shared by every instance. A refresh is
done under a lock so concurrent callers with an expired token trigger one
POST to the token endpoint and then reuse its result.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from tracker import config, db
from tracker.errors import ConfigurationError, TokenRefreshError

logger = logging.getLogger(__name__)

EXPIRY_BUFFER_MS = 5 * 60 * 1000
DEFAULT_EXPIRES_IN = 3600


@dataclass
class TokenData:
    access_token: str
    refresh_token: Optional[str]
    expires_at: int  # epoch milliseconds

    def is_valid(self, now_ms: int) -> bool:
        return bool(self.access_token) and now_ms < self.expires_at - EXPIRY_BUFFER_MS


class DbTokenStore:
    """Durable token storage backed by the hubstaff_tokens table."""

    def load(self) -> Optional[TokenData]:
        row = db.load_hubstaff_tokens()
        if not row:
            return None
        return TokenData(
            access_token=row.get("access_token") or "",
            refresh_token=row.get("refresh_token"),
            expires_at=int(row.get("expires_at") or 0),
        )

    def save(self, data: TokenData):
        db.save_hubstaff_tokens(data.access_token, data.refresh_token, data.expires_at)


class HubstaffTokenProvider:
    def __init__(
        self,
        store=None,
        session: Optional[requests.Session] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        fallback_refresh_token: Optional[str] = None,
        token_url: str = config.TOKEN_URL,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else DbTokenStore()
        self.session = session or requests.Session()
        self.client_id = client_id if client_id is not None else config.HUBSTAFF_CLIENT_ID
        self.client_secret = (
            client_secret if client_secret is not None else config.HUBSTAFF_CLIENT_SECRET
        )
        self.fallback_refresh_token = (
            fallback_refresh_token
            if fallback_refresh_token is not None
            else config.HUBSTAFF_REFRESH_TOKEN
        )
        self.token_url = token_url
        self.clock = clock
        self._cached: Optional[TokenData] = None
        self._rejected: Optional[str] = None
        self._lock = threading.Lock()

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _usable(self, data: Optional[TokenData]) -> bool:
        return (
            data is not None
            and data.is_valid(self._now_ms())
            and data.access_token != self._rejected
        )

    def get_valid_access_token(self) -> str:
        cached = self._cached
        if self._usable(cached):
            return cached.access_token

        with self._lock:
            # Another caller may have refreshed while we waited
            cached = self._cached
            if self._usable(cached):
                return cached.access_token

            stored = self._load_stored()
            if self._usable(stored):
                self._cached = stored
                return stored.access_token

            refresh_token = (stored.refresh_token if stored else None) or (
                cached.refresh_token if cached else None
            ) or self.fallback_refresh_token
            if not refresh_token:
                raise ConfigurationError("No Hubstaff refresh token available")

            fresh = self._refresh(refresh_token)
            self._cached = fresh
            self._rejected = None
            self._save(fresh)
            return fresh.access_token

    def invalidate(self, rejected_token: Optional[str] = None):
        """
        Mark an access token as rejected (the API answered 401 for it).

        Neither the in-memory nor the stored copy is handed out again while it
        holds that token; the next call refreshes with the stored refresh token.
        """
        with self._lock:
            if rejected_token is None and self._cached:
                rejected_token = self._cached.access_token
            self._rejected = rejected_token or None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _refresh(self, refresh_token: str) -> TokenData:
        logger.info("Refreshing Hubstaff access token...")
        auth = None
        if self.client_id and self.client_secret:
            auth = (self.client_id, self.client_secret)

        try:
            resp = self.session.post(
                self.token_url,
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                auth=auth,
                timeout=config.HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise TokenRefreshError(None, str(e)) from e

        if not 200 <= resp.status_code < 300:
            logger.error("Token refresh failed: %s %s", resp.status_code, resp.text[:200])
            raise TokenRefreshError(resp.status_code, resp.text)

        data = resp.json()
        if not data.get("access_token"):
            raise TokenRefreshError(resp.status_code, "response did not contain access_token")

        expires_in = data.get("expires_in") or DEFAULT_EXPIRES_IN
        logger.info("Successfully refreshed Hubstaff token")
        return TokenData(
            access_token=data["access_token"],
            # Hubstaff rotates refresh tokens; keep the old one if none came back
            refresh_token=data.get("refresh_token") or refresh_token,
            expires_at=self._now_ms() + int(expires_in) * 1000,
        )

    def _load_stored(self) -> Optional[TokenData]:
        try:
            return self.store.load()
        except Exception:
            logger.warning("Could not read stored Hubstaff tokens", exc_info=True)
            return None

    def _save(self, data: TokenData):
        try:
            self.store.save(data)
        except Exception:
            logger.error("Failed to save Hubstaff tokens", exc_info=True)
