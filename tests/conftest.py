from __future__ import annotations

import datetime as dt
import inspect
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from tasksync.models import Session

API_BASE = "http://api.test"

CAPTAIN = {
    "id": "m-cap",
    "name": "Ada Captain",
    "email": "ada@example.com",
    "role": "CAPTAIN",
    "active": True,
}
MEMBER = {
    "id": "m-1",
    "name": "Bo Member",
    "email": "bo@example.com",
    "role": "MEMBER",
    "active": True,
}


@pytest.fixture(autouse=True)
def _isolate_tasksync_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "TASKSYNC_API_URL",
        "TASKSYNC_REQUEST_TIMEOUT_S",
        "TASKSYNC_REFRESH_SKEW_S",
        "TASKSYNC_WEEKLY_BUCKET_LIMIT",
        "TASKSYNC_MAX_UPLOAD_BYTES",
        "TASKSYNC_PULSE_MS",
        "TASKSYNC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TASKSYNC_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("TASKSYNC_SESSION_PATH", str(tmp_path / "session.json"))
    monkeypatch.setenv("TASKSYNC_REFRESH_INTERVAL_S", "3600")


def session_payload(
    *,
    user: dict[str, Any] | None = None,
    access_token: str = "access-1",
    refresh_token: str | None = "refresh-1",
    expires_in: float = 3600,
) -> dict[str, Any]:
    expires_at = dt.datetime.now(dt.UTC) + dt.timedelta(seconds=expires_in)
    payload: dict[str, Any] = {
        "accessToken": access_token,
        "accessTokenExpiresAt": expires_at.isoformat().replace("+00:00", "Z"),
        "user": dict(user or CAPTAIN),
    }
    if refresh_token:
        payload["refreshToken"] = refresh_token
    return payload


@pytest.fixture
def make_session_payload() -> Callable[..., dict[str, Any]]:
    return session_payload


@pytest.fixture
def make_session() -> Callable[..., Session]:
    def _make(**kwargs: Any) -> Session:
        return Session.from_dict(session_payload(**kwargs))

    return _make


Route = httpx.Response | Callable[[httpx.Request], Any]


class FakeApi:
    """Scripted backend for httpx.MockTransport.

    Each route holds a queue of responses (or handlers); the last one repeats.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Route]] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: Route) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(responses)

    def count(self, method: str, path: str) -> int:
        return sum(
            1 for call in self.calls if call.method == method.upper() and call.url.path == path
        )

    def requests(self, method: str, path: str) -> list[httpx.Request]:
        return [
            call for call in self.calls if call.method == method.upper() and call.url.path == path
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"no route {request.url.path}"})
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(route, httpx.Response):
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        result = route(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=API_BASE, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def read_json() -> Callable[[httpx.Request], Any]:
    return json_body


@pytest.fixture
def board_payloads() -> dict[str, Any]:
    """Minimal /projects, /team-members and /tickets bodies."""

    return {
        "projects": [
            {
                "id": "p-1",
                "key": "web",
                "name": "Website",
                "assignments": [{"member": {"id": "m-1", "name": "Bo Member", "role": "MEMBER"}}],
            }
        ],
        "members": [CAPTAIN, MEMBER],
        "tickets": [
            {
                "id": "t-1",
                "projectId": "p-1",
                "title": "Landing page",
                "status": "TODO",
                "priority": "HIGH",
                "assignees": [{"id": "m-1", "name": "Bo Member", "role": "MEMBER"}],
                "submissions": [],
                "createdAt": "2024-03-01T09:00:00.000Z",
            },
            {
                "id": "t-2",
                "projectId": "p-1",
                "title": "Pitch deck",
                "status": "IN_REVIEW",
                "priority": "CRITICAL",
                "description": "Sponsor meeting",
                "assignees": [{"id": "m-1", "name": "Bo Member", "role": "MEMBER"}],
                "submissions": [
                    {
                        "id": "s-1",
                        "fileName": "deck.pdf",
                        "createdAt": "2024-03-05T10:00:00.000Z",
                        "submittedBy": {"id": "m-1", "name": "Bo Member", "role": "MEMBER"},
                        "note": "first draft",
                    }
                ],
                "createdAt": "2024-03-02T09:00:00.000Z",
            },
        ],
    }


@pytest.fixture
def serve_board(fake_api: FakeApi, board_payloads: dict[str, Any]) -> Callable[[], None]:
    def _serve() -> None:
        fake_api.add("GET", "/projects", httpx.Response(200, json=board_payloads["projects"]))
        fake_api.add("GET", "/team-members", httpx.Response(200, json=board_payloads["members"]))
        fake_api.add("GET", "/tickets", httpx.Response(200, json=board_payloads["tickets"]))

    return _serve


@pytest.fixture
def captain_user() -> dict[str, Any]:
    return dict(CAPTAIN)


@pytest.fixture
def member_user() -> dict[str, Any]:
    return dict(MEMBER)
