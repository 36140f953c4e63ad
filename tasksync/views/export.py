from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping
from pathlib import Path

from ..errors import NotReady
from ..models import TeamRole, format_instant
from .filters import SubmissionRow

BOM = "\ufeff"

CSV_HEADER = ("created_at", "project", "ticket", "file_name", "submitted_by", "role", "note")

ROLE_LABELS = {
    TeamRole.MEMBER: "Üye",
    TeamRole.BOARD: "Yönetim Kurulu",
    TeamRole.CAPTAIN: "Kaptan",
}


def csv_escape(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def submission_csv_row(row: SubmissionRow, project_keys: Mapping[str, str]) -> list[str]:
    submission = row.submission
    return [
        format_instant(submission.created_at),
        project_keys.get(row.ticket.project_id, "-"),
        row.ticket.title,
        submission.file_name,
        submission.submitted_by.name,
        ROLE_LABELS[submission.submitted_by.role],
        submission.note or "",
    ]


def submissions_csv(rows: Iterable[SubmissionRow], project_keys: Mapping[str, str]) -> str:
    """Serialize submission rows; raises NotReady when there is nothing to export."""
    body = [
        ",".join(csv_escape(cell) for cell in submission_csv_row(row, project_keys))
        for row in rows
    ]
    if not body:
        raise NotReady("No submissions to export")
    return BOM + "\n".join([",".join(CSV_HEADER), *body])


def export_filename(today: dt.date | None = None) -> str:
    day = today or dt.datetime.now(dt.UTC).date()
    return f"submissions-{day.isoformat()}.csv"


def write_submissions_csv(
    directory: Path,
    rows: Iterable[SubmissionRow],
    project_keys: Mapping[str, str],
    *,
    today: dt.date | None = None,
) -> Path:
    content = submissions_csv(rows, project_keys)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / export_filename(today)
    target.write_text(content, encoding="utf-8", newline="")
    return target
