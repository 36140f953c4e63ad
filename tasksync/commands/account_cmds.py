from __future__ import annotations

from dataclasses import replace

from rich import print
from rich.markup import escape

from tasksync.commands.common import session_or_raise
from tasksync.models import format_instant
from tasksync.sync import SyncController


async def profile_cmd(controller: SyncController, *, name: str | None) -> None:
    """Show the profile and recent logins, or rename the account."""

    session_or_raise(controller)
    if name is not None:
        member = await controller.update_profile(name)
        print(f"[green]Name set to {escape(member.name)}[/green]")
        return
    profile = await controller.profile()
    history = await controller.login_history()
    print(f"[bold]{escape(profile.member.name)}[/bold] <{profile.member.email}>")
    print(f"- role: {profile.member.role.value}")
    if profile.last_login_at is not None:
        where = profile.last_login_ip or ""
        print(f"- last login: {format_instant(profile.last_login_at)} {where}")
    if history:
        print("[bold]recent logins[/bold]")
    for record in history:
        agent = escape(record.user_agent or "-")
        print(f"- {format_instant(record.created_at)} {record.ip or '-'} {agent}")


async def settings_cmd(
    controller: SyncController,
    *,
    language: str | None,
    email_notify: bool | None,
    assignment_notify: bool | None,
    review_notify: bool | None,
) -> None:
    current = (await controller.profile()).settings
    changes = {
        "language": language,
        "notification_email_enabled": email_notify,
        "notification_assignment_enabled": assignment_notify,
        "notification_review_enabled": review_notify,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    settings = current
    if changes:
        settings = await controller.update_settings(replace(current, **changes))
        print("[green]Settings updated[/green]")
    for key, value in settings.to_dict().items():
        print(f"- {key}: {value}")


async def password_cmd(
    controller: SyncController, *, current: str, new: str, confirm: str
) -> None:
    await controller.change_password(current, new, confirm)
    print("[green]Password updated. Consider logging in again.[/green]")
