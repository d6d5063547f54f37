from __future__ import annotations

from typing import Any

import pytest

from tracker import config


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "", url: str = ""):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = text or str(self._payload)
        self.url = url

    def json(self) -> Any:
        return self._payload


class FakeSession:
    """Stands in for requests.Session; answers GETs from a handler function."""

    def __init__(self, handler=None):
        self.handler = handler
        self.get_calls: list[dict[str, Any]] = []
        self.post_calls: list[dict[str, Any]] = []
        self.post_response = FakeResponse(
            200, {"access_token": "new-access", "refresh_token": "new-refresh", "expires_in": 3600}
        )

    def get(self, url, params=None, headers=None, timeout=None):
        call = {"url": url, "params": dict(params or {}), "headers": headers, "timeout": timeout}
        self.get_calls.append(call)
        return self.handler(call)

    def post(self, url, data=None, headers=None, auth=None, timeout=None):
        self.post_calls.append({"url": url, "data": data, "auth": auth, "timeout": timeout})
        return self.post_response


class FakeTokenProvider:
    def __init__(self):
        self.calls = 0
        self.invalidated = 0

    def get_valid_access_token(self) -> str:
        self.calls += 1
        return f"token-{self.invalidated}"

    def invalidate(self, rejected_token=None) -> None:
        self.invalidated += 1


class FakeHubstaffClient:
    """In-memory Hubstaff: projects, teams, members and daily activities."""

    def __init__(self):
        self.projects: list[dict] = []
        self.teams: list[dict] = []
        self.team_users: dict[int, list[dict]] = {}
        self.org_users: list[dict] = []
        self.activities: list[dict] = []
        self.project_details: dict[int, dict] = {}
        self.fetch_project_calls: list[int] = []
        self.activity_calls: list[dict] = []
        self.fetch_projects_calls = 0

    def fetch_projects(self, status=None, log=None, **kwargs):
        self.fetch_projects_calls += 1
        return list(self.projects)

    def fetch_teams(self, log=None, **kwargs):
        return list(self.teams)

    def fetch_team_members(self, team_id, log=None, **kwargs):
        users = self.team_users.get(team_id, [])
        return [{"user_id": u["id"]} for u in users], users

    def fetch_organization_members(self, log=None, **kwargs):
        return [{"user_id": u["id"]} for u in self.org_users], list(self.org_users)

    def fetch_project(self, project_id):
        self.fetch_project_calls.append(project_id)
        return self.project_details.get(project_id)

    def fetch_daily_activities(self, start, stop, project_ids=None, user_ids=None, page_limit=None, log=None, **kwargs):
        self.activity_calls.append(
            {
                "start": start,
                "stop": stop,
                "project_ids": project_ids,
                "user_ids": user_ids,
                "on_page_error": kwargs.get("on_page_error"),
            }
        )
        out = []
        for a in self.activities:
            if not start <= a["date"] <= stop:
                continue
            if project_ids and a.get("project_id") not in project_ids:
                continue
            if user_ids and a.get("user_id") not in user_ids:
                continue
            out.append(a)
        return out


@pytest.fixture
def no_chunk_delay(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config, "CHUNK_DELAY_SECONDS", 0)


@pytest.fixture
def fake_client() -> FakeHubstaffClient:
    client = FakeHubstaffClient()
    client.projects = [
        {"id": 101, "name": "Acme / Website Redesign", "status": "active"},
        {"id": 102, "name": "Mobile App", "status": "active"},
        {"id": 103, "name": "Internal / Hiring Portal", "status": "active"},
    ]
    client.teams = [
        {"id": 1, "name": "UI/UX Designers"},
        {"id": 2, "name": "QA Developers"},
        {"id": 3, "name": "Sales"},
    ]
    client.team_users = {
        1: [{"id": 11, "name": "Dana Designer"}],
        2: [{"id": 12, "name": "Aswathi M Ashok"}],
        3: [{"id": 99, "name": "Sam Seller"}],
    }
    client.org_users = [
        {"id": 11, "name": "Dana Designer"},
        {"id": 12, "name": "Aswathi M Ashok"},
        {"id": 13, "first_name": "Ravi", "last_name": "Backend"},
        {"id": 14, "name": "Priya Nair"},
    ]
    return client
