from __future__ import annotations

import datetime as dt
import math
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from ..models import Ticket, TicketPriority, TicketStatus
from .filters import SubmissionRow

WEEKLY_BUCKET_LIMIT = 8
TREND_DEFAULT_DAYS = 7
TREND_MAX_DAYS = 31
CRITICAL_LIMIT = 5


@dataclass(frozen=True)
class WeekBucket:
    week: str
    count: int


@dataclass(frozen=True)
class DayCount:
    day: dt.date
    done_count: int


def iso_week_key(instant: dt.datetime) -> str:
    """ISO-8601 week bucket (``YYYY-Www``) of the UTC calendar day of ``instant``."""
    if instant.tzinfo is not None:
        instant = instant.astimezone(dt.UTC)
    day = instant.date()
    thursday = day - dt.timedelta(days=day.isoweekday()) + dt.timedelta(days=4)
    year_start = dt.date(thursday.year, 1, 1)
    week = math.ceil(((thursday - year_start).days + 1) / 7)
    return f"{thursday.year}-W{week:02d}"


def weekly_submission_counts(
    rows: Iterable[SubmissionRow], limit: int = WEEKLY_BUCKET_LIMIT
) -> list[WeekBucket]:
    counts = Counter(iso_week_key(row.submission.created_at) for row in rows)
    buckets = [WeekBucket(week=week, count=counts[week]) for week in sorted(counts)]
    return buckets[-limit:] if limit > 0 else []


def _local_day(instant: dt.datetime, tz: dt.tzinfo | None) -> dt.date:
    return instant.astimezone(tz).date()


def open_ticket_count(tickets: Iterable[Ticket]) -> int:
    return sum(1 for ticket in tickets if ticket.status is not TicketStatus.DONE)


def active_task_count(tickets: Iterable[Ticket], member_id: str) -> int:
    return sum(
        1
        for ticket in tickets
        if ticket.status is not TicketStatus.DONE and ticket.is_assigned_to(member_id)
    )


def today_submission_count(
    rows: Iterable[SubmissionRow],
    member_id: str,
    *,
    now: dt.datetime | None = None,
    tz: dt.tzinfo | None = None,
) -> int:
    current = (now or dt.datetime.now(dt.UTC)).astimezone(tz)
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return sum(
        1
        for row in rows
        if row.submission.submitted_by.id == member_id and row.submission.created_at >= midnight
    )


def critical_open(tickets: Iterable[Ticket], limit: int = CRITICAL_LIMIT) -> list[Ticket]:
    found = [
        ticket
        for ticket in tickets
        if ticket.status is not TicketStatus.DONE and ticket.priority is TicketPriority.CRITICAL
    ]
    return found[:limit]


def trend_days(
    start: dt.date | None = None,
    end: dt.date | None = None,
    *,
    today: dt.date | None = None,
) -> list[dt.date]:
    if start is not None and end is not None and start <= end:
        span = min((end - start).days + 1, TREND_MAX_DAYS)
        return [start + dt.timedelta(days=offset) for offset in range(span)]
    anchor = today or dt.date.today()
    return [anchor - dt.timedelta(days=back) for back in range(TREND_DEFAULT_DAYS - 1, -1, -1)]


def done_trend(
    tickets: Iterable[Ticket],
    start: dt.date | None = None,
    end: dt.date | None = None,
    *,
    today: dt.date | None = None,
    tz: dt.tzinfo | None = None,
) -> list[DayCount]:
    done_days = Counter(
        _local_day(ticket.completed_at, tz)
        for ticket in tickets
        if ticket.status is TicketStatus.DONE and ticket.completed_at is not None
    )
    days = trend_days(start, end, today=today)
    return [DayCount(day=day, done_count=done_days[day]) for day in days]
