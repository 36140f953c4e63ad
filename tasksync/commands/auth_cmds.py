from __future__ import annotations

import datetime as dt

from rich import print

from tasksync.models import format_instant
from tasksync.sync import SyncController


async def login_cmd(controller: SyncController, *, email: str, password: str) -> None:
    """Log in and persist the session for later commands."""

    session = await controller.login(email, password)
    snapshot = controller.snapshot
    print(f"[green]Logged in as {session.user.name} ({session.user.role.value})[/green]")
    print(
        f"Loaded {len(snapshot.projects)} projects, {len(snapshot.members)} members, "
        f"{len(snapshot.tickets)} tickets"
    )


async def logout_cmd(controller: SyncController) -> None:
    await controller.logout()
    print("Logged out")


async def whoami_cmd(controller: SyncController) -> None:
    session = controller.session
    if session is None:
        print("Not logged in")
        return
    remaining = session.access_token_expires_at - dt.datetime.now(dt.UTC)
    print(f"[bold]{session.user.name}[/bold] <{session.user.email}>")
    print(f"- role: {session.user.role.value}")
    print(f"- api: {controller.config.api_url}")
    print(
        f"- access token expires: {format_instant(session.access_token_expires_at)} "
        f"({int(remaining.total_seconds())}s)"
    )
    print(f"- refresh token stored: {'yes' if session.refresh_token else 'no (cookie)'}")
