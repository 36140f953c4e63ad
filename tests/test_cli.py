from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from tasksync import __version__
from tasksync.cli_app import app
from tasksync.commands import common
from tasksync.commands.board_cmds import mine_cmd, stats_cmd
from tasksync.config import TaskSyncConfig
from tasksync.errors import NotReady
from tasksync.session_store import MemorySessionStore, SessionStore
from tasksync.sync import SyncController

runner = CliRunner()


@pytest.fixture
def use_fake_api(monkeypatch: pytest.MonkeyPatch, fake_api):
    def factory(config):
        return SyncController(config, client=fake_api.client())

    monkeypatch.setattr(common, "controller_factory", factory)
    return fake_api


@pytest.fixture
def logged_in(tmp_path: Path, make_session) -> None:
    SessionStore(tmp_path / "session.json").save(make_session())


def test_root_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("login", "board", "move", "export-csv", "config"):
        assert name in result.stdout


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_board_requires_login(use_fake_api) -> None:
    result = runner.invoke(app, ["board"])
    assert result.exit_code == 1
    assert "Not logged in" in result.stdout
    assert use_fake_api.calls == []


def test_login_stores_session(use_fake_api, tmp_path: Path, serve_board, make_session_payload):
    use_fake_api.add("POST", "/auth/login", httpx.Response(200, json=make_session_payload()))
    serve_board()

    result = runner.invoke(app, ["login", "--email", "ada@example.com", "--password", "pw"])

    assert result.exit_code == 0, result.stdout
    assert "Logged in as Ada Captain" in result.stdout
    assert (tmp_path / "session.json").exists()


def test_login_failure_exits_nonzero(use_fake_api, tmp_path: Path) -> None:
    use_fake_api.add("POST", "/auth/login", httpx.Response(401, json={"message": "Bad login"}))

    result = runner.invoke(app, ["login", "--email", "ada@example.com", "--password", "pw"])

    assert result.exit_code == 1
    assert "Bad login" in result.stdout
    assert not (tmp_path / "session.json").exists()


def test_board_groups_by_status(use_fake_api, logged_in, serve_board) -> None:
    serve_board()

    result = runner.invoke(app, ["board"])

    assert result.exit_code == 0, result.stdout
    assert "TODO (1)" in result.stdout
    assert "IN_REVIEW (1)" in result.stdout
    assert "DONE (0)" in result.stdout
    assert "Landing page" in result.stdout


def test_move_patches_status(use_fake_api, logged_in, serve_board, read_json) -> None:
    serve_board()
    use_fake_api.add("PATCH", "/tickets/t-1/status", httpx.Response(200, json={"id": "t-1"}))

    result = runner.invoke(app, ["move", "t-1", "IN_PROGRESS"])

    assert result.exit_code == 0, result.stdout
    assert read_json(use_fake_api.requests("PATCH", "/tickets/t-1/status")[0]) == {
        "status": "IN_PROGRESS"
    }


def test_export_csv_writes_file(use_fake_api, logged_in, serve_board, tmp_path: Path) -> None:
    serve_board()
    out_dir = tmp_path / "exports"

    result = runner.invoke(app, ["export-csv", "--dir", str(out_dir)])

    assert result.exit_code == 0, result.stdout
    [written] = list(out_dir.iterdir())
    assert written.name.startswith("submissions-")
    assert "deck.pdf" in written.read_text(encoding="utf-8")


def test_review_needs_one_decision(use_fake_api, logged_in) -> None:
    result = runner.invoke(app, ["review", "t-2"])
    assert result.exit_code == 1
    assert use_fake_api.calls == []


def test_config_set_and_show(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "set", "api_url", "https://tracker.example.com"])
    assert result.exit_code == 0
    assert json.loads((tmp_path / "config.json").read_text()) == {
        "api_url": "https://tracker.example.com"
    }

    shown = runner.invoke(app, ["config", "show"])
    assert shown.exit_code == 0
    assert "https://tracker.example.com" in shown.stdout


def test_config_set_rejects_unknown_key() -> None:
    result = runner.invoke(app, ["config", "set", "colour", "blue"])
    assert result.exit_code == 1
    assert "Unknown setting" in result.stdout


def test_personal_commands_need_a_session(fake_api) -> None:
    async def scenario():
        async with fake_api.client() as client:
            controller = SyncController(
                TaskSyncConfig(), client=client, session_store=MemorySessionStore()
            )
            with pytest.raises(NotReady, match="login required"):
                await mine_cmd(controller, search="")
            with pytest.raises(NotReady, match="login required"):
                await stats_cmd(controller, start=None, end=None)

    asyncio.run(scenario())

    assert fake_api.calls == []


def test_archive_lists_completed_tickets(use_fake_api, logged_in, serve_board) -> None:
    serve_board()
    use_fake_api.add(
        "GET",
        "/tickets/archive",
        httpx.Response(
            200,
            json={
                "items": [
                    {
                        "id": "t-9",
                        "projectId": "p-1",
                        "title": "Old poster",
                        "status": "DONE",
                        "priority": "LOW",
                        "completedAt": "2024-02-10T12:00:00.000Z",
                    }
                ],
                "page": 1,
                "pageSize": 20,
                "total": 1,
                "totalPages": 1,
            },
        ),
    )

    result = runner.invoke(app, ["archive", "--search", "poster"])

    assert result.exit_code == 0, result.stdout
    assert "Old poster" in result.stdout
    assert "page 1/1 (1 total)" in result.stdout
    assert use_fake_api.requests("GET", "/tickets/archive")[0].url.params["q"] == "poster"


def test_password_too_short_is_refused_locally(use_fake_api, logged_in) -> None:
    result = runner.invoke(
        app, ["password", "--current", "old-pass", "--new", "short", "--confirm", "short"]
    )

    assert result.exit_code == 1
    assert "at least 6" in result.stdout
    assert use_fake_api.count("PATCH", "/auth/change-password") == 0


def test_settings_updates_only_given_flags(
    use_fake_api, logged_in, captain_user, read_json
) -> None:
    profile = {
        **captain_user,
        "language": "tr",
        "notificationEmailEnabled": True,
        "notificationAssignmentEnabled": True,
        "notificationReviewEnabled": True,
    }
    use_fake_api.add("GET", "/auth/profile", httpx.Response(200, json=profile))
    use_fake_api.add(
        "PATCH",
        "/auth/settings",
        lambda request: httpx.Response(200, json=read_json(request)),
    )

    result = runner.invoke(app, ["settings", "--language", "en", "--no-review-notify"])

    assert result.exit_code == 0, result.stdout
    assert read_json(use_fake_api.requests("PATCH", "/auth/settings")[0]) == {
        "language": "en",
        "notificationEmailEnabled": True,
        "notificationAssignmentEnabled": True,
        "notificationReviewEnabled": False,
    }
