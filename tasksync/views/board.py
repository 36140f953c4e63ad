from __future__ import annotations

from collections.abc import Iterable

from ..models import STATUS_ORDER, Ticket, TicketStatus
from .filters import ALL, SubmissionRow


def group_by_status(tickets: Iterable[Ticket]) -> dict[TicketStatus, list[Ticket]]:
    """Partition tickets into the four board columns, keeping relative order."""
    columns: dict[TicketStatus, list[Ticket]] = {status: [] for status in STATUS_ORDER}
    for ticket in tickets:
        columns[ticket.status].append(ticket)
    return columns


def my_tickets(tickets: Iterable[Ticket], member_id: str, search: str = "") -> list[Ticket]:
    """Work still on a member's plate: assigned, not in review, not done."""
    needle = search.lower()
    return [
        ticket
        for ticket in tickets
        if ticket.is_assigned_to(member_id)
        and ticket.status not in (TicketStatus.DONE, TicketStatus.IN_REVIEW)
        and needle in ticket.title.lower()
    ]


def scoped_tickets(tickets: Iterable[Ticket], member_id: str = ALL) -> list[Ticket]:
    if member_id == ALL:
        return list(tickets)
    return [ticket for ticket in tickets if ticket.is_assigned_to(member_id)]


def pending_review(tickets: Iterable[Ticket]) -> list[Ticket]:
    return [ticket for ticket in tickets if ticket.status is TicketStatus.IN_REVIEW]


def all_submissions(tickets: Iterable[Ticket]) -> list[SubmissionRow]:
    return [
        SubmissionRow(submission=submission, ticket=ticket)
        for ticket in tickets
        for submission in ticket.submissions
    ]


def my_submissions(
    rows: Iterable[SubmissionRow], member_id: str, search: str = ""
) -> list[SubmissionRow]:
    needle = search.lower()
    return [
        row
        for row in rows
        if row.submission.submitted_by.id == member_id
        and needle in row.submission.file_name.lower()
    ]
