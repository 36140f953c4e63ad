from __future__ import annotations

import datetime as dt

from tasksync.models import (
    MemberRef,
    Project,
    Session,
    TeamMember,
    TeamRole,
    Ticket,
    TicketPriority,
    TicketStatus,
    format_instant,
    members_by_id,
    parse_instant,
    resolve_member,
)


def test_parse_instant_handles_zulu_and_naive() -> None:
    assert parse_instant("2024-03-05T10:00:00.000Z") == dt.datetime(2024, 3, 5, 10, tzinfo=dt.UTC)
    assert parse_instant("2024-03-05T10:00:00").tzinfo == dt.UTC


def test_format_instant_is_utc_millis() -> None:
    local = dt.datetime(2024, 3, 5, 13, 0, 0, 123456, tzinfo=dt.timezone(dt.timedelta(hours=3)))

    assert format_instant(local) == "2024-03-05T10:00:00.123Z"


def test_ticket_from_dict(board_payloads) -> None:
    ticket = Ticket.from_dict(board_payloads["tickets"][1])

    assert ticket.status is TicketStatus.IN_REVIEW
    assert ticket.priority is TicketPriority.CRITICAL
    assert ticket.is_assigned_to("m-1")
    assert not ticket.is_assigned_to("m-cap")
    assert ticket.submissions[0].submitted_by.name == "Bo Member"
    assert ticket.completed_at is None


def test_project_unwraps_assignments_and_uppercases_key(board_payloads) -> None:
    project = Project.from_dict(board_payloads["projects"][0])

    assert project.key == "WEB"
    assert project.assignees == (MemberRef(id="m-1", name="Bo Member", role=TeamRole.MEMBER),)


def test_resolve_member_prefers_roster_and_falls_back_inactive() -> None:
    roster = members_by_id(
        [TeamMember(id="m-1", name="Bo Renamed", email="bo@example.com", role=TeamRole.BOARD)]
    )

    current = resolve_member(MemberRef(id="m-1", name="Bo Member"), roster)
    gone = resolve_member(MemberRef(id="m-9", name="Old Timer"), roster)

    assert current.name == "Bo Renamed"
    assert current.role is TeamRole.BOARD
    assert gone.name == "Old Timer"
    assert gone.active is False


def test_session_survives_storage_format(make_session_payload) -> None:
    session = Session.from_dict(make_session_payload())

    restored = Session.from_dict(session.to_dict())

    assert restored.access_token == session.access_token
    assert restored.refresh_token == "refresh-1"
    assert restored.user == session.user
    assert session.is_captain is True


def test_session_expires_within() -> None:
    now = dt.datetime(2024, 3, 5, 12, tzinfo=dt.UTC)
    session = Session(
        access_token="a",
        access_token_expires_at=now + dt.timedelta(seconds=90),
        user=TeamMember(id="m", name="M", email="m@example.com", role=TeamRole.MEMBER),
    )

    assert session.expires_within(60, now=now) is False
    assert session.expires_within(120, now=now) is True
    assert session.is_captain is False
