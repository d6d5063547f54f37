"""
Hubstaff API client.

- requests.Session with HTTP keep-alive and a urllib3 Retry policy for
  429/5xx (honours Retry-After)
- Bearer token from HubstaffTokenProvider, refreshed once on 401
- Cursor pagination via `pagination.next_page_start_id`
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from tracker import config
from tracker.errors import ConfigurationError, RemoteFetchError

logger = logging.getLogger(__name__)

# on_page_error policies
STOP_AND_RETURN_PARTIAL = "stop"
FAIL_FAST = "raise"

UrlBuilder = Callable[[Optional[str]], Tuple[str, Dict]]


def _join_ids(ids) -> str:
    return ",".join(str(i) for i in ids)


class HubstaffClient:
    def __init__(
        self,
        token_provider,
        org_id: Optional[str] = None,
        base_url: str = config.BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: int = config.HTTP_TIMEOUT_SECONDS,
    ):
        self.token_provider = token_provider
        self.org_id = org_id if org_id is not None else config.HUBSTAFF_ORG_ID
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or self._build_session()

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        session.headers.update({"Content-Type": "application/json"})
        retry_strategy = Retry(
            total=3,
            connect=3,
            read=2,
            backoff_factor=2.0,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            respect_retry_after_header=True,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(pool_connections=10, pool_maxsize=10, max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _require_org(self) -> str:
        if not self.org_id:
            raise ConfigurationError("HUBSTAFF_ORG_ID is not configured")
        return self.org_id

    # ------------------------------------------------------------------
    # Core HTTP
    # ------------------------------------------------------------------

    def _request(self, path: str, params: Optional[Dict] = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        for attempt in range(2):
            token = self.token_provider.get_valid_access_token()
            resp = self.session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
            if resp.status_code == 401 and attempt == 0:
                logger.warning("Hubstaff returned 401, invalidating token and retrying")
                self.token_provider.invalidate(token)
                continue
            return resp
        return resp

    def get(self, path: str, params: Optional[Dict] = None) -> Dict:
        """Single GET; raises RemoteFetchError on non-2xx or transport failure."""
        try:
            resp = self._request(path, params)
        except requests.RequestException as e:
            raise RemoteFetchError(f"{self.base_url}{path}", None, str(e)) from e
        if not 200 <= resp.status_code < 300:
            raise RemoteFetchError(resp.url or path, resp.status_code, resp.text)
        return resp.json()

    def fetch_all_pages(
        self,
        url_builder: UrlBuilder,
        items_key: str,
        on_page_error: str = STOP_AND_RETURN_PARTIAL,
        log: Optional[Callable[[str], None]] = None,
    ) -> List[Dict]:
        """
        Drain a cursor-paginated listing.

        `url_builder(cursor)` returns (path, params) for a page; it is called
        with None first and then with each `next_page_start_id`.

        With on_page_error="stop" a failing page ends pagination and whatever
        was gathered so far is returned, so short results may be incomplete.
        With on_page_error="raise" the RemoteFetchError propagates.
        """
        return self._paginate(url_builder, [items_key], on_page_error, log)[items_key]

    def _paginate(
        self,
        url_builder: UrlBuilder,
        keys: List[str],
        on_page_error: str = STOP_AND_RETURN_PARTIAL,
        log: Optional[Callable[[str], None]] = None,
    ) -> Dict[str, List[Dict]]:
        collected: Dict[str, List[Dict]] = {k: [] for k in keys}
        cursor = None
        while True:
            path, params = url_builder(cursor)
            params = dict(params or {})
            if cursor:
                params["page_start_id"] = cursor
            try:
                data = self.get(path, params)
            except RemoteFetchError as e:
                if on_page_error == FAIL_FAST:
                    raise
                msg = f"Error fetching {path} ({e.status_code}): {e.body[:100]}"
                logger.warning(msg)
                if log:
                    log(msg)
                break

            for key in keys:
                collected[key].extend(data.get(key) or [])
            cursor = (data.get("pagination") or {}).get("next_page_start_id")
            if not cursor:
                break
        return collected

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def fetch_projects(self, status: Optional[str] = None, **kwargs) -> List[Dict]:
        org = self._require_org()
        params = {"status": status} if status else {}
        return self.fetch_all_pages(
            lambda _: (f"/organizations/{org}/projects", params), "projects", **kwargs
        )

    def fetch_teams(self, **kwargs) -> List[Dict]:
        org = self._require_org()
        return self.fetch_all_pages(lambda _: (f"/organizations/{org}/teams", {}), "teams", **kwargs)

    def fetch_team_members(self, team_id, **kwargs) -> Tuple[List[Dict], List[Dict]]:
        """Returns (team_members, users) for one team."""
        return self._fetch_with_users(f"/teams/{team_id}/members", "team_members", **kwargs)

    def fetch_organization_members(self, **kwargs) -> Tuple[List[Dict], List[Dict]]:
        """Returns (members, users) for the whole organization."""
        org = self._require_org()
        return self._fetch_with_users(f"/organizations/{org}/members", "members", **kwargs)

    def _fetch_with_users(
        self,
        path: str,
        items_key: str,
        on_page_error: str = STOP_AND_RETURN_PARTIAL,
        log=None,
    ) -> Tuple[List[Dict], List[Dict]]:
        # Sideloaded `users` arrive alongside each page
        keys = [items_key, "organization_memberships", "users"]
        pages = self._paginate(
            lambda _: (path, {"include": "users"}), keys, on_page_error, log
        )
        members = pages[items_key] or pages["organization_memberships"]
        return members, pages["users"]

    def fetch_daily_activities(
        self,
        start: str,
        stop: str,
        project_ids: Optional[List] = None,
        user_ids: Optional[List] = None,
        page_limit: Optional[int] = None,
        **kwargs,
    ) -> List[Dict]:
        org = self._require_org()
        params: Dict = {"date[start]": start, "date[stop]": stop}
        if project_ids:
            params["project_ids"] = _join_ids(project_ids)
        if user_ids:
            params["user_ids"] = _join_ids(user_ids)
        if page_limit:
            params["page_limit"] = page_limit
        return self.fetch_all_pages(
            lambda _: (f"/organizations/{org}/activities/daily", params),
            "daily_activities",
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Single entity
    # ------------------------------------------------------------------

    def fetch_project(self, project_id) -> Optional[Dict]:
        try:
            data = self.get(f"/projects/{project_id}")
        except RemoteFetchError:
            logger.warning("Could not fetch Hubstaff project %s", project_id)
            return None
        return data.get("project") or data


def user_display_name(user: Dict) -> str:
    name = user.get("name")
    if name:
        return name
    return f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
