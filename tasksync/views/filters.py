"""Tagged predicates combined by logical AND.

Every filter the views expose is a small frozen dataclass with a ``tag`` and a
``matches`` method. A predicate that carries no constraint (empty search, the
``ALL`` sentinel, an unset date bound) reports ``active == False`` and is
skipped. :func:`apply_filters` keeps the input order.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from ..models import Submission, TeamMember, Ticket

ALL = "ALL"

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)

END_OF_DAY = dt.time(23, 59, 59, 999000)


class Predicate(Protocol[T_contra]):
    tag: str

    @property
    def active(self) -> bool: ...

    def matches(self, item: T_contra) -> bool: ...


@dataclass(frozen=True)
class SubmissionRow:
    """A submission together with the ticket it belongs to."""

    submission: Submission
    ticket: Ticket


@dataclass(frozen=True)
class TextPredicate(Generic[T]):
    query: str
    fields: tuple[Callable[[T], str | None], ...]
    tag: str = "text"

    @property
    def active(self) -> bool:
        return bool(self.query.strip())

    def matches(self, item: T) -> bool:
        needle = self.query.strip().lower()
        return any(needle in (field(item) or "").lower() for field in self.fields)


@dataclass(frozen=True)
class EnumPredicate(Generic[T]):
    """Exact match on one attribute, or no constraint for the ``ALL`` sentinel."""

    value: Any
    field: Callable[[T], Any]
    tag: str = "enum"

    @property
    def active(self) -> bool:
        return self.value is not None and self.value != ALL

    def matches(self, item: T) -> bool:
        return self.field(item) == self.value


@dataclass(frozen=True)
class AssigneePredicate:
    member_id: str = ALL
    tag: str = "assignee"

    @property
    def active(self) -> bool:
        return bool(self.member_id) and self.member_id != ALL

    def matches(self, item: Ticket) -> bool:
        return item.is_assigned_to(self.member_id)


@dataclass(frozen=True)
class DateRangePredicate:
    """Inclusive local-day range over ``submission.created_at``.

    ``start`` matches from 00:00:00 and ``end`` up to 23:59:59.999 of that day
    in ``tz`` (the system zone when ``tz`` is None).
    """

    start: dt.date | None = None
    end: dt.date | None = None
    tz: dt.tzinfo | None = None
    tag: str = "date_range"

    @property
    def active(self) -> bool:
        return self.start is not None or self.end is not None

    def _boundary(self, day: dt.date, moment: dt.time) -> dt.datetime:
        naive = dt.datetime.combine(day, moment)
        if self.tz is None:
            return naive.astimezone()
        return naive.replace(tzinfo=self.tz)

    def matches(self, item: SubmissionRow) -> bool:
        created = item.submission.created_at
        if self.start is not None and created < self._boundary(self.start, dt.time.min):
            return False
        if self.end is not None and created > self._boundary(self.end, END_OF_DAY):
            return False
        return True


def apply_filters(items: Iterable[T], predicates: Sequence[Predicate[T]]) -> list[T]:
    active = [predicate for predicate in predicates if predicate.active]
    return [item for item in items if all(predicate.matches(item) for predicate in active)]


def parse_day(value: str | None) -> dt.date | None:
    if not value:
        return None
    return dt.date.fromisoformat(value)


@dataclass(frozen=True)
class TicketFilters:
    search: str = ""
    status: str = ALL
    priority: str = ALL
    assignee: str = ALL

    def predicates(self) -> list[Predicate[Ticket]]:
        return [
            TextPredicate(self.search, (lambda t: t.title, lambda t: t.description)),
            EnumPredicate(self.status, lambda t: t.status.value, tag="status"),
            EnumPredicate(self.priority, lambda t: t.priority.value, tag="priority"),
            AssigneePredicate(self.assignee),
        ]

    def apply(self, tickets: Iterable[Ticket]) -> list[Ticket]:
        return apply_filters(tickets, self.predicates())


@dataclass(frozen=True)
class MemberFilters:
    search: str = ""
    role: str = ALL

    def predicates(self) -> list[Predicate[TeamMember]]:
        return [
            TextPredicate(self.search, (lambda m: m.name, lambda m: m.email)),
            EnumPredicate(self.role, lambda m: m.role.value, tag="role"),
        ]

    def apply(self, members: Iterable[TeamMember]) -> list[TeamMember]:
        return apply_filters(members, self.predicates())


@dataclass(frozen=True)
class SubmissionFilters:
    search: str = ""
    submitted_by: str = ALL
    project: str = ALL
    start: dt.date | None = None
    end: dt.date | None = None
    tz: dt.tzinfo | None = None

    def predicates(self) -> list[Predicate[SubmissionRow]]:
        return [
            TextPredicate(self.search, (lambda r: r.submission.file_name,)),
            EnumPredicate(
                self.submitted_by, lambda r: r.submission.submitted_by.id, tag="submitted_by"
            ),
            EnumPredicate(self.project, lambda r: r.ticket.project_id, tag="project"),
            DateRangePredicate(self.start, self.end, self.tz),
        ]

    def apply(self, rows: Iterable[SubmissionRow]) -> list[SubmissionRow]:
        return apply_filters(rows, self.predicates())
