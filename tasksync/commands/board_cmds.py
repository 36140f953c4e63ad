from __future__ import annotations

import datetime as dt
from pathlib import Path

from rich import print

from tasksync.commands.common import compact_text, session_or_raise
from tasksync.models import STATUS_ORDER, Ticket, TicketStatus, members_by_id, resolve_member
from tasksync.sync import SyncController
from tasksync.uploads import UploadDraft
from tasksync.views import (
    MemberFilters,
    SubmissionFilters,
    TicketFilters,
    active_task_count,
    all_submissions,
    critical_open,
    done_trend,
    file_type_label,
    group_by_status,
    my_submissions,
    my_tickets,
    open_ticket_count,
    pending_review,
    today_submission_count,
    weekly_submission_counts,
    write_submissions_csv,
)


def _assignee_names(controller: SyncController, ticket: Ticket) -> str:
    roster = members_by_id(controller.snapshot.members)
    names = [resolve_member(ref, roster).name for ref in ticket.assignees]
    return ", ".join(names) or "-"


async def board_cmd(
    controller: SyncController,
    *,
    filters: TicketFilters,
) -> None:
    """Print the board, one block per status column."""

    tickets = filters.apply(controller.snapshot.tickets)
    keys = controller.snapshot.project_keys()
    columns = group_by_status(tickets)
    for status in STATUS_ORDER:
        column = columns[status]
        print(f"[bold]{status.value}[/bold] ({len(column)})")
        for ticket in column:
            print(
                f"- {ticket.id} {keys.get(ticket.project_id, '-')} "
                f"{compact_text(ticket.title)} priority={ticket.priority.value} "
                f"assignees={_assignee_names(controller, ticket)}"
            )


async def mine_cmd(controller: SyncController, *, search: str) -> None:
    session = session_or_raise(controller)
    tickets = my_tickets(controller.snapshot.tickets, session.user.id, search)
    if not tickets:
        print("No open tickets assigned to you")
        return
    for ticket in tickets:
        print(f"- {ticket.id} {compact_text(ticket.title)} status={ticket.status.value}")


async def move_cmd(controller: SyncController, *, ticket_id: str, status: TicketStatus) -> None:
    ticket = controller.snapshot.ticket(ticket_id)
    if ticket is None:
        print(f"[red]Unknown ticket: {ticket_id}[/red]")
        return
    changed = await controller.set_status(ticket, status)
    if changed:
        print(f"[green]{ticket_id}: {ticket.status.value} -> {status.value}[/green]")
    else:
        print(f"{ticket_id} is already {status.value}")


async def review_cmd(
    controller: SyncController, *, ticket_id: str, approve: bool, reason: str
) -> None:
    await controller.review_ticket(ticket_id, "APPROVE" if approve else "REJECT", reason)
    print(f"[green]{'Approved' if approve else 'Sent back'}: {ticket_id}[/green]")


async def review_queue_cmd(controller: SyncController) -> None:
    tickets = pending_review(controller.snapshot.tickets)
    if not tickets:
        print("Nothing waiting for review")
        return
    for ticket in tickets:
        print(f"- {ticket.id} {compact_text(ticket.title)} submissions={len(ticket.submissions)}")


async def members_cmd(controller: SyncController, *, filters: MemberFilters) -> None:
    for member in filters.apply(controller.snapshot.members):
        print(f"- {member.id} {member.name} <{member.email}> role={member.role.value}")


async def submissions_cmd(controller: SyncController, *, filters: SubmissionFilters) -> None:
    keys = controller.snapshot.project_keys()
    rows = filters.apply(all_submissions(controller.snapshot.tickets))
    if not rows:
        print("No submissions")
        return
    for row in rows:
        submission = row.submission
        print(
            f"- {submission.id} {submission.created_at.astimezone():%Y-%m-%d %H:%M} "
            f"{keys.get(row.ticket.project_id, '-')} {file_type_label(submission.file_name)} "
            f"{submission.file_name} by {submission.submitted_by.name}"
        )


async def weekly_cmd(controller: SyncController, *, mine: bool) -> None:
    rows = all_submissions(controller.snapshot.tickets)
    session = controller.session
    if mine and session is not None:
        rows = my_submissions(rows, session.user.id)
    buckets = weekly_submission_counts(rows, controller.config.weekly_bucket_limit)
    if not buckets:
        print("No submissions yet")
        return
    for bucket in buckets:
        print(f"{bucket.week} {'#' * bucket.count} {bucket.count}")


async def stats_cmd(
    controller: SyncController, *, start: dt.date | None, end: dt.date | None
) -> None:
    """Dashboard counters for the current user plus the done trend."""

    snapshot = controller.snapshot
    session = session_or_raise(controller)
    rows = all_submissions(snapshot.tickets)
    print(f"open tickets: {open_ticket_count(snapshot.tickets)}")
    print(f"my active tasks: {active_task_count(snapshot.tickets, session.user.id)}")
    print(f"my submissions today: {today_submission_count(rows, session.user.id)}")
    critical = critical_open(snapshot.tickets)
    if critical:
        print("[bold]critical[/bold]")
        for ticket in critical:
            print(f"- {ticket.id} {compact_text(ticket.title)}")
    print("[bold]done trend[/bold]")
    for day in done_trend(snapshot.tickets, start, end):
        print(f"{day.day.isoformat()} {day.done_count}")


async def export_csv_cmd(
    controller: SyncController, *, directory: Path, filters: SubmissionFilters
) -> None:
    rows = filters.apply(all_submissions(controller.snapshot.tickets))
    target = write_submissions_csv(directory, rows, controller.snapshot.project_keys())
    print(f"[green]Wrote {len(rows)} rows to {target}[/green]")


async def upload_cmd(
    controller: SyncController, *, ticket_id: str, path: Path, note: str
) -> None:
    draft = UploadDraft.from_path(path, note=note) if path.is_file() else UploadDraft(note=note)
    await controller.upload_submission(ticket_id, draft)
    print(f"[green]Uploaded {path.name} to {ticket_id}[/green]")


async def download_cmd(
    controller: SyncController, *, submission_id: str, output: Path | None
) -> None:
    file_name = submission_id
    for row in all_submissions(controller.snapshot.tickets):
        if row.submission.id == submission_id:
            file_name = row.submission.file_name
            break
    content = await controller.download_submission(submission_id)
    target = output or Path(file_name)
    target.write_bytes(content)
    print(f"[green]Saved {len(content)} bytes to {target}[/green]")


async def archive_cmd(
    controller: SyncController,
    *,
    member_id: str | None,
    search: str,
    start: dt.date | None,
    end: dt.date | None,
    page: int,
) -> None:
    archive = await controller.load_archive(
        member_id=member_id, search=search, start=start, end=end, page=page
    )
    if not archive.items:
        print("No completed tickets")
        return
    keys = controller.snapshot.project_keys()
    for ticket in archive.items:
        done = f"{ticket.completed_at.astimezone():%Y-%m-%d}" if ticket.completed_at else "-"
        print(
            f"- {ticket.id} {done} {keys.get(ticket.project_id, '-')} "
            f"{compact_text(ticket.title)} assignees={_assignee_names(controller, ticket)}"
        )
    print(f"page {archive.page}/{max(archive.total_pages, 1)} ({archive.total} total)")
