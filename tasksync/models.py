from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class TeamRole(str, Enum):
    MEMBER = "MEMBER"
    BOARD = "BOARD"
    CAPTAIN = "CAPTAIN"


class TicketStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


STATUS_ORDER: tuple[TicketStatus, ...] = (
    TicketStatus.TODO,
    TicketStatus.IN_PROGRESS,
    TicketStatus.IN_REVIEW,
    TicketStatus.DONE,
)


def parse_instant(value: str | dt.datetime) -> dt.datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if isinstance(value, dt.datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        parsed = dt.datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed


def format_instant(value: dt.datetime) -> str:
    """Render an instant the way the API does: UTC, millisecond precision, ``Z``."""
    utc = value.astimezone(dt.UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _optional_instant(value: Any) -> dt.datetime | None:
    if not value:
        return None
    return parse_instant(value)


@dataclass(frozen=True, slots=True)
class TeamMember:
    id: str
    name: str
    email: str
    role: TeamRole
    active: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TeamMember:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            role=TeamRole(data.get("role") or TeamRole.MEMBER),
            active=bool(data.get("active", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "active": self.active,
        }


@dataclass(frozen=True, slots=True)
class MemberRef:
    """Relation to a TeamMember by id.

    ``name`` and ``role`` are what the server embedded at fetch time. Readers
    should go through :func:`resolve_member` so renames and role changes show
    up without patching every embedded copy.
    """

    id: str
    name: str = ""
    role: TeamRole = TeamRole.MEMBER

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MemberRef:
        # Assignment rows arrive wrapped as {"member": {...}}.
        member = data.get("member")
        if isinstance(member, Mapping):
            data = member
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            role=TeamRole(data.get("role") or TeamRole.MEMBER),
        )


def resolve_member(ref: MemberRef, members: Mapping[str, TeamMember]) -> TeamMember:
    found = members.get(ref.id)
    if found is not None:
        return found
    # Inactive members are not in the active roster but stay visible on history.
    return TeamMember(id=ref.id, name=ref.name, email="", role=ref.role, active=False)


def members_by_id(members: Iterable[TeamMember]) -> dict[str, TeamMember]:
    return {member.id: member for member in members}


@dataclass(frozen=True, slots=True)
class Submission:
    id: str
    file_name: str
    created_at: dt.datetime
    submitted_by: MemberRef
    note: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Submission:
        return cls(
            id=str(data["id"]),
            file_name=str(data.get("fileName") or ""),
            created_at=parse_instant(data["createdAt"]),
            submitted_by=MemberRef.from_dict(data["submittedBy"]),
            note=data.get("note"),
        )


@dataclass(frozen=True, slots=True)
class Project:
    id: str
    key: str
    name: str
    description: str | None = None
    assignees: tuple[MemberRef, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Project:
        return cls(
            id=str(data["id"]),
            key=str(data.get("key") or "").upper(),
            name=str(data.get("name") or ""),
            description=data.get("description"),
            assignees=tuple(MemberRef.from_dict(row) for row in data.get("assignments") or ()),
        )


@dataclass(frozen=True, slots=True)
class Ticket:
    id: str
    project_id: str
    title: str
    status: TicketStatus
    priority: TicketPriority
    description: str | None = None
    assignees: tuple[MemberRef, ...] = ()
    submissions: tuple[Submission, ...] = ()
    created_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Ticket:
        return cls(
            id=str(data["id"]),
            project_id=str(data["projectId"]),
            title=str(data.get("title") or ""),
            status=TicketStatus(data.get("status") or TicketStatus.TODO),
            priority=TicketPriority(data.get("priority") or TicketPriority.MEDIUM),
            description=data.get("description"),
            assignees=tuple(MemberRef.from_dict(row) for row in data.get("assignees") or ()),
            submissions=tuple(Submission.from_dict(row) for row in data.get("submissions") or ()),
            created_at=_optional_instant(data.get("createdAt")),
            completed_at=_optional_instant(data.get("completedAt")),
        )

    def is_assigned_to(self, member_id: str) -> bool:
        return any(ref.id == member_id for ref in self.assignees)


@dataclass(frozen=True, slots=True)
class Session:
    access_token: str
    access_token_expires_at: dt.datetime
    user: TeamMember
    refresh_token: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Session:
        return cls(
            access_token=str(data["accessToken"]),
            access_token_expires_at=parse_instant(data["accessTokenExpiresAt"]),
            user=TeamMember.from_dict(data["user"]),
            refresh_token=data.get("refreshToken") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "accessToken": self.access_token,
            "accessTokenExpiresAt": format_instant(self.access_token_expires_at),
            "user": self.user.to_dict(),
        }
        if self.refresh_token:
            payload["refreshToken"] = self.refresh_token
        return payload

    def expires_within(self, seconds: float, *, now: dt.datetime | None = None) -> bool:
        current = now or dt.datetime.now(dt.UTC)
        return (self.access_token_expires_at - current).total_seconds() <= seconds

    @property
    def is_captain(self) -> bool:
        return self.user.role is TeamRole.CAPTAIN


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Read-only view of the canonical collections at one point in time."""

    projects: tuple[Project, ...] = ()
    members: tuple[TeamMember, ...] = ()
    tickets: tuple[Ticket, ...] = ()

    def ticket(self, ticket_id: str) -> Ticket | None:
        for ticket in self.tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def project_keys(self) -> dict[str, str]:
        return {project.id: project.key for project in self.projects}


@dataclass(frozen=True, slots=True)
class ArchivePage:
    """One page of completed tickets from ``/tickets/archive``."""

    items: tuple[Ticket, ...]
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ArchivePage:
        return cls(
            items=tuple(Ticket.from_dict(row) for row in data.get("items") or ()),
            page=int(data.get("page") or 1),
            page_size=int(data.get("pageSize") or 0),
            total=int(data.get("total") or 0),
            total_pages=int(data.get("totalPages") or 0),
        )


@dataclass(frozen=True, slots=True)
class UserSettings:
    language: str = "tr"
    notification_email_enabled: bool = True
    notification_assignment_enabled: bool = True
    notification_review_enabled: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserSettings:
        return cls(
            language=str(data.get("language") or "tr"),
            notification_email_enabled=bool(data.get("notificationEmailEnabled", True)),
            notification_assignment_enabled=bool(data.get("notificationAssignmentEnabled", True)),
            notification_review_enabled=bool(data.get("notificationReviewEnabled", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "notificationEmailEnabled": self.notification_email_enabled,
            "notificationAssignmentEnabled": self.notification_assignment_enabled,
            "notificationReviewEnabled": self.notification_review_enabled,
        }


@dataclass(frozen=True, slots=True)
class UserProfile:
    member: TeamMember
    settings: UserSettings
    last_login_at: dt.datetime | None = None
    last_login_ip: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserProfile:
        return cls(
            member=TeamMember.from_dict(data),
            settings=UserSettings.from_dict(data),
            last_login_at=_optional_instant(data.get("lastLoginAt")),
            last_login_ip=data.get("lastLoginIp"),
        )


@dataclass(frozen=True, slots=True)
class LoginRecord:
    id: str
    created_at: dt.datetime
    ip: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LoginRecord:
        return cls(
            id=str(data["id"]),
            created_at=parse_instant(data["createdAt"]),
            ip=data.get("ip"),
            user_agent=data.get("userAgent"),
        )
