from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from rich import print
from rich.markup import escape

from tasksync.config import TaskSyncConfig, load_config, read_config_file, write_config_file
from tasksync.errors import NotReady, TaskSyncError
from tasksync.models import Session
from tasksync.sync import SyncController

T = TypeVar("T")


def load_config_or_exit() -> TaskSyncConfig:
    cfg = load_config()
    logging.basicConfig(level=cfg.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    return cfg


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def controller_factory(config: TaskSyncConfig) -> SyncController:
    return SyncController(config)


def session_or_raise(controller: SyncController) -> Session:
    session = controller.session
    if session is None:
        raise NotReady("login required")
    return session


def run_with_controller(
    action: Callable[[SyncController], Awaitable[T]],
    *,
    load: bool = True,
    require_session: bool = True,
) -> T:
    """Open a controller, resume the stored session, run ``action`` and close.

    Client failures are printed and turned into exit code 1.
    """
    config = load_config_or_exit()

    async def _run() -> T:
        controller = controller_factory(config)
        try:
            if require_session and controller.session is None:
                print("[yellow]Not logged in. Run `tasksync login` first.[/yellow]")
                raise typer.Exit(code=1)
            await controller.start(load=load)
            return await action(controller)
        finally:
            await controller.close()

    try:
        return asyncio.run(_run())
    except TaskSyncError as exc:
        print(f"[red]{type(exc).__name__}: {exc.message}[/red]")
        raise typer.Exit(code=1) from exc


def compact_text(text: str | None, limit: int = 60) -> str:
    value = " ".join((text or "").split())
    if len(value) > limit:
        value = f"{value[: limit - 1]}…"
    return escape(value)
