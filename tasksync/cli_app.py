from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import typer
from rich import print

from . import __version__
from .commands.account_cmds import password_cmd, profile_cmd, settings_cmd
from .commands.auth_cmds import login_cmd, logout_cmd, whoami_cmd
from .commands.board_cmds import (
    archive_cmd,
    board_cmd,
    download_cmd,
    export_csv_cmd,
    members_cmd,
    mine_cmd,
    move_cmd,
    review_cmd,
    review_queue_cmd,
    stats_cmd,
    submissions_cmd,
    upload_cmd,
    weekly_cmd,
)
from .commands.common import read_config_or_exit, run_with_controller, write_config_or_exit
from .config import CONFIG_KEYS, get_config_path, load_config
from .models import TicketStatus
from .views import ALL, MemberFilters, SubmissionFilters, TicketFilters
from .views.filters import parse_day

app = typer.Typer(help="tasksync: terminal client for the team task tracker")
config_app = typer.Typer(help="Show or change client settings")
app.add_typer(config_app, name="config")


def _day_option(value: str | None) -> dt.date | None:
    try:
        return parse_day(value)
    except ValueError as exc:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}") from exc


@app.command()
def login(
    email: str = typer.Option(..., prompt=True, help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password"),
) -> None:
    """Log in and store the session."""

    run_with_controller(
        lambda controller: login_cmd(controller, email=email, password=password),
        load=False,
        require_session=False,
    )


@app.command()
def logout() -> None:
    """Drop the stored session and tell the server."""

    run_with_controller(logout_cmd, load=False, require_session=False)


@app.command()
def whoami() -> None:
    """Show the stored session."""

    run_with_controller(whoami_cmd, load=False, require_session=False)


@app.command()
def board(
    search: str = typer.Option("", help="Match title or description"),
    status: str = typer.Option(ALL, help="TODO, IN_PROGRESS, IN_REVIEW, DONE or ALL"),
    priority: str = typer.Option(ALL, help="LOW, MEDIUM, HIGH, CRITICAL or ALL"),
    assignee: str = typer.Option(ALL, help="Member id or ALL"),
) -> None:
    """Show tickets grouped by status."""

    filters = TicketFilters(
        search=search, status=status.upper(), priority=priority.upper(), assignee=assignee
    )
    run_with_controller(lambda controller: board_cmd(controller, filters=filters))


@app.command()
def mine(search: str = typer.Option("", help="Match title")) -> None:
    """Show open tickets assigned to you."""

    run_with_controller(lambda controller: mine_cmd(controller, search=search))


@app.command()
def move(
    ticket_id: str = typer.Argument(..., help="Ticket id"),
    status: TicketStatus = typer.Argument(..., help="Target status"),
) -> None:
    """Change a ticket's status."""

    run_with_controller(
        lambda controller: move_cmd(controller, ticket_id=ticket_id, status=status)
    )


@app.command()
def review(
    ticket_id: str | None = typer.Argument(None, help="Ticket id; omit to list the review queue"),
    approve: bool = typer.Option(False, "--approve", help="Approve the submission"),
    reject: bool = typer.Option(False, "--reject", help="Send the ticket back"),
    reason: str = typer.Option("", help="Reason shown to the assignee on reject"),
) -> None:
    """List tickets in review, or approve/reject one."""

    if ticket_id is None:
        run_with_controller(review_queue_cmd)
        return
    if approve == reject:
        print("[red]Pass exactly one of --approve or --reject[/red]")
        raise typer.Exit(code=1)
    run_with_controller(
        lambda controller: review_cmd(
            controller, ticket_id=ticket_id, approve=approve, reason=reason
        )
    )


@app.command()
def members(
    search: str = typer.Option("", help="Match name or email"),
    role: str = typer.Option(ALL, help="MEMBER, BOARD, CAPTAIN or ALL"),
) -> None:
    """List active team members."""

    filters = MemberFilters(search=search, role=role.upper())
    run_with_controller(lambda controller: members_cmd(controller, filters=filters))


@app.command()
def submissions(
    search: str = typer.Option("", help="Match file name"),
    member: str = typer.Option(ALL, help="Submitter id or ALL"),
    project: str = typer.Option(ALL, help="Project id or ALL"),
    start: str | None = typer.Option(None, help="First day, YYYY-MM-DD"),
    end: str | None = typer.Option(None, help="Last day, YYYY-MM-DD"),
) -> None:
    """List submissions across all tickets."""

    filters = SubmissionFilters(
        search=search,
        submitted_by=member,
        project=project,
        start=_day_option(start),
        end=_day_option(end),
    )
    run_with_controller(lambda controller: submissions_cmd(controller, filters=filters))


@app.command()
def weekly(mine: bool = typer.Option(False, "--mine", help="Only your submissions")) -> None:
    """Submissions per ISO week."""

    run_with_controller(lambda controller: weekly_cmd(controller, mine=mine))


@app.command()
def stats(
    start: str | None = typer.Option(None, help="Trend start, YYYY-MM-DD"),
    end: str | None = typer.Option(None, help="Trend end, YYYY-MM-DD"),
) -> None:
    """Dashboard counters and the done trend."""

    start_day = _day_option(start)
    end_day = _day_option(end)
    run_with_controller(
        lambda controller: stats_cmd(controller, start=start_day, end=end_day)
    )


@app.command("export-csv")
def export_csv(
    directory: Path = typer.Option(Path("."), "--dir", help="Output directory"),
    member: str = typer.Option(ALL, help="Submitter id or ALL"),
    project: str = typer.Option(ALL, help="Project id or ALL"),
    start: str | None = typer.Option(None, help="First day, YYYY-MM-DD"),
    end: str | None = typer.Option(None, help="Last day, YYYY-MM-DD"),
) -> None:
    """Export submissions as CSV."""

    filters = SubmissionFilters(
        submitted_by=member, project=project, start=_day_option(start), end=_day_option(end)
    )
    run_with_controller(
        lambda controller: export_csv_cmd(controller, directory=directory, filters=filters)
    )


@app.command()
def upload(
    ticket_id: str = typer.Argument(..., help="Ticket id"),
    path: Path = typer.Argument(..., help="PDF, DOC, DOCX, PPT or PPTX file"),
    note: str = typer.Option("", help="Note for the reviewer"),
) -> None:
    """Submit a file for a ticket."""

    run_with_controller(
        lambda controller: upload_cmd(controller, ticket_id=ticket_id, path=path, note=note)
    )


@app.command()
def download(
    submission_id: str = typer.Argument(..., help="Submission id"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Target file"),
) -> None:
    """Download a submitted file."""

    run_with_controller(
        lambda controller: download_cmd(controller, submission_id=submission_id, output=output)
    )


@app.command()
def archive(
    member: str | None = typer.Option(None, help="Member id (captains only)"),
    search: str = typer.Option("", help="Match title, description or review note"),
    start: str | None = typer.Option(None, help="Completed on or after, YYYY-MM-DD"),
    end: str | None = typer.Option(None, help="Completed on or before, YYYY-MM-DD"),
    page: int = typer.Option(1, min=1, help="Page number"),
) -> None:
    """Browse completed tickets, 20 per page."""

    start_day = _day_option(start)
    end_day = _day_option(end)
    run_with_controller(
        lambda controller: archive_cmd(
            controller, member_id=member, search=search, start=start_day, end=end_day, page=page
        ),
    )


@app.command()
def profile(name: str | None = typer.Option(None, help="New display name")) -> None:
    """Show your profile and recent logins, or change your name."""

    run_with_controller(lambda controller: profile_cmd(controller, name=name), load=False)


@app.command()
def settings(
    language: str | None = typer.Option(None, help="tr or en"),
    email_notify: bool | None = typer.Option(None, "--email-notify/--no-email-notify"),
    assignment_notify: bool | None = typer.Option(
        None, "--assignment-notify/--no-assignment-notify"
    ),
    review_notify: bool | None = typer.Option(None, "--review-notify/--no-review-notify"),
) -> None:
    """Show or change account notification settings."""

    run_with_controller(
        lambda controller: settings_cmd(
            controller,
            language=language,
            email_notify=email_notify,
            assignment_notify=assignment_notify,
            review_notify=review_notify,
        ),
        load=False,
    )


@app.command()
def password(
    current: str = typer.Option(..., prompt=True, hide_input=True, help="Current password"),
    new: str = typer.Option(..., prompt=True, hide_input=True, help="New password"),
    confirm: str = typer.Option(..., prompt="Repeat new password", hide_input=True),
) -> None:
    """Change your password."""

    run_with_controller(
        lambda controller: password_cmd(controller, current=current, new=new, confirm=confirm),
        load=False,
    )


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration."""

    cfg = load_config()
    print(f"[dim]{get_config_path()}[/dim]")
    print(json.dumps(cfg.to_dict(), indent=2))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Store one setting in the config file."""

    if key not in CONFIG_KEYS:
        print(f"[red]Unknown setting: {key}[/red]")
        raise typer.Exit(code=1)
    data = read_config_or_exit()
    data[key] = value
    write_config_or_exit(data)
    print(f"[green]{key} = {value}[/green]")


def main() -> None:
    app()


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)
