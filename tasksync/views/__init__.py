from __future__ import annotations

from ..uploads import file_type_label
from .board import (
    all_submissions,
    group_by_status,
    my_submissions,
    my_tickets,
    pending_review,
    scoped_tickets,
)
from .export import export_filename, submissions_csv, write_submissions_csv
from .filters import (
    ALL,
    MemberFilters,
    SubmissionFilters,
    SubmissionRow,
    TicketFilters,
    apply_filters,
)
from .stats import (
    WeekBucket,
    active_task_count,
    critical_open,
    done_trend,
    iso_week_key,
    open_ticket_count,
    today_submission_count,
    weekly_submission_counts,
)

__all__ = [
    "ALL",
    "MemberFilters",
    "SubmissionFilters",
    "SubmissionRow",
    "TicketFilters",
    "WeekBucket",
    "active_task_count",
    "all_submissions",
    "apply_filters",
    "critical_open",
    "done_trend",
    "export_filename",
    "file_type_label",
    "group_by_status",
    "iso_week_key",
    "my_submissions",
    "my_tickets",
    "open_ticket_count",
    "pending_review",
    "scoped_tickets",
    "submissions_csv",
    "today_submission_count",
    "weekly_submission_counts",
    "write_submissions_csv",
]
