from __future__ import annotations

import asyncio
import datetime as dt
import logging
from dataclasses import replace
from typing import Any, Literal

import httpx

from ..config import TaskSyncConfig
from ..errors import NotReady, TaskSyncError
from ..models import (
    ArchivePage,
    LoginRecord,
    Project,
    Session,
    Snapshot,
    TeamMember,
    TeamRole,
    Ticket,
    TicketPriority,
    TicketStatus,
    UserProfile,
    UserSettings,
)
from ..notify import Notifier
from ..session_store import SessionStore
from ..store import EntityStore
from ..uploads import UploadDraft, validate_upload
from .daemon import RefreshPoller
from .gateway import RequestGateway
from .http_client import ApiRequest, build_base_url
from .optimistic import Origin, OptimisticMutator
from .tokens import TokenManager

logger = logging.getLogger("tasksync.controller")

ReviewAction = Literal["APPROVE", "REJECT"]

ARCHIVE_PAGE_SIZE = 20
MIN_PASSWORD_LENGTH = 6
MIN_NAME_LENGTH = 2
LANGUAGES = ("tr", "en")


class SyncController:
    """Owns the canonical collections and the session, and exposes commands.

    Status changes go through the optimistic mutator. Every other mutation is
    request-then-reload: the server is authoritative for ids and relations.
    """

    def __init__(
        self,
        config: TaskSyncConfig,
        *,
        client: httpx.AsyncClient | None = None,
        session_store: SessionStore | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=build_base_url(config.api_url),
            timeout=config.request_timeout_s,
        )
        self.notifier = notifier or Notifier()
        self.store = EntityStore()
        # Last loaded page of completed tickets; dropped with the session.
        self.archive: ArchivePage | None = None
        self.tokens = TokenManager(
            self._client,
            session_store or SessionStore(config.resolved_session_path),
            skew_s=config.refresh_skew_s,
            on_invalid=self._on_session_invalid,
        )
        self.gateway = RequestGateway(self._client, self.tokens, notifier=self.notifier)
        self.mutator = OptimisticMutator(
            self.store,
            self.gateway,
            notifier=self.notifier,
            pulse_s=config.pulse_ms / 1000,
        )
        self.poller = RefreshPoller(self.tokens, interval_s=config.refresh_interval_s)

    async def __aenter__(self) -> SyncController:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def snapshot(self) -> Snapshot:
        return self.store.snapshot

    @property
    def session(self) -> Session | None:
        return self.tokens.current_session()

    async def start(self, *, load: bool = True) -> None:
        """Resume a stored session, if any: start refresh polling and load data."""
        if self.session is None:
            return
        self.poller.start()
        if load:
            await self.reload()

    async def close(self) -> None:
        await self.poller.stop()
        if self._owns_client:
            await self._client.aclose()

    async def login(self, email: str, password: str) -> Session:
        try:
            session = await self.tokens.login(email, password)
        except TaskSyncError as exc:
            self.notifier.error(exc.message)
            raise
        self.store.clear()
        self.archive = None
        self.poller.start()
        self.notifier.success("Logged in")
        await self.reload()
        return session

    async def logout(self) -> None:
        await self.poller.stop()
        await self.tokens.logout()
        self.store.clear()
        self.archive = None
        self.notifier.success("Logged out")

    def _on_session_invalid(self) -> None:
        logger.warning("session invalid, forcing logout")
        self.poller.cancel()
        self.store.clear()
        self.archive = None
        self.notifier.error("Session expired, please log in again")

    async def reload(self) -> Snapshot:
        generation = self.tokens.generation
        projects, members, tickets = await asyncio.gather(
            self.gateway.call(ApiRequest("GET", "/projects")),
            self.gateway.call(
                ApiRequest("GET", "/team-members", params={"activeOnly": "true"})
            ),
            self.gateway.call(ApiRequest("GET", "/tickets")),
        )
        if generation != self.tokens.generation:
            logger.info("reload finished after the session changed, discarding")
            return self.store.snapshot
        snapshot = Snapshot(
            projects=tuple(Project.from_dict(row) for row in projects.payload or ()),
            members=tuple(TeamMember.from_dict(row) for row in members.payload or ()),
            tickets=tuple(Ticket.from_dict(row) for row in tickets.payload or ()),
        )
        self.store.replace(snapshot)
        return snapshot

    async def _mutate_then_reload(self, request: ApiRequest, success: str) -> Any:
        response = await self.gateway.call(request)
        await self.reload()
        self.notifier.success(success)
        return response.payload

    async def set_status(
        self, ticket: Ticket | str, status: TicketStatus, origin: Origin = "manual"
    ) -> bool:
        if isinstance(ticket, str):
            found = self.snapshot.ticket(ticket)
            if found is None:
                raise KeyError(ticket)
            ticket = found
        return await self.mutator.set_status(ticket, status, origin)

    async def create_member(
        self, name: str, email: str, password: str, role: TeamRole = TeamRole.MEMBER
    ) -> Any:
        body = {
            "name": name.strip(),
            "email": email.strip().lower(),
            "password": password,
            "role": role.value,
        }
        return await self._mutate_then_reload(
            ApiRequest("POST", "/team-members", json=body), "Member added"
        )

    async def deactivate_member(self, member_id: str) -> Any:
        return await self._mutate_then_reload(
            ApiRequest("DELETE", f"/team-members/{member_id}"), "Member deactivated"
        )

    async def create_project(self, key: str, name: str, description: str | None = None) -> Any:
        body: dict[str, Any] = {"key": key.strip().upper(), "name": name.strip()}
        if description:
            body["description"] = description
        return await self._mutate_then_reload(
            ApiRequest("POST", "/projects", json=body), "Project created"
        )

    async def delete_project(self, project_id: str) -> Any:
        return await self._mutate_then_reload(
            ApiRequest("DELETE", f"/projects/{project_id}"), "Project deleted"
        )

    async def update_project_assignees(self, project_id: str, assignee_ids: list[str]) -> Any:
        return await self._mutate_then_reload(
            ApiRequest(
                "PATCH", f"/projects/{project_id}/assignees", json={"assigneeIds": assignee_ids}
            ),
            "Project assignees updated",
        )

    async def create_ticket(
        self,
        title: str,
        *,
        description: str | None = None,
        priority: TicketPriority = TicketPriority.MEDIUM,
        assignee_ids: list[str] | None = None,
        project_id: str | None = None,
    ) -> Any:
        body: dict[str, Any] = {
            "title": title.strip(),
            "priority": priority.value,
            "assigneeIds": assignee_ids or [],
        }
        if description:
            body["description"] = description
        if project_id:
            body["projectId"] = project_id
        return await self._mutate_then_reload(
            ApiRequest("POST", "/tickets", json=body), "Ticket created"
        )

    async def delete_ticket(self, ticket_id: str) -> Any:
        return await self._mutate_then_reload(
            ApiRequest("DELETE", f"/tickets/{ticket_id}"), "Ticket deleted"
        )

    async def update_ticket_assignees(self, ticket_id: str, assignee_ids: list[str]) -> Any:
        return await self._mutate_then_reload(
            ApiRequest(
                "PATCH", f"/tickets/{ticket_id}/assignee", json={"assigneeIds": assignee_ids}
            ),
            "Assignees updated",
        )

    async def bulk_update_status(
        self, ticket_ids: list[str], status: TicketStatus
    ) -> dict[str, Any]:
        response = await self.gateway.call(
            ApiRequest(
                "PATCH",
                "/tickets/bulk/status",
                json={"ticketIds": ticket_ids, "status": status.value},
            )
        )
        await self.reload()
        result = response.payload or {}
        failed = result.get("failedIds") or []
        updated = result.get("updatedCount", 0)
        if result.get("partial") and failed:
            self.notifier.error(
                f"{updated}/{len(ticket_ids)} updated. Failed ids: {', '.join(failed)}"
            )
        else:
            self.notifier.success(f"{updated} tickets updated")
        return result

    async def review_ticket(self, ticket_id: str, action: ReviewAction, reason: str = "") -> Any:
        reason = reason.strip()
        body: dict[str, Any] = {"action": action}
        if reason:
            body["reason"] = reason
        return await self._mutate_then_reload(
            ApiRequest("PATCH", f"/tickets/{ticket_id}/review", json=body),
            "Ticket approved" if action == "APPROVE" else "Ticket sent back for revision",
        )

    async def upload_submission(self, ticket_id: str, draft: UploadDraft) -> Any:
        session = self.session
        if session is None:
            raise NotReady("login required")
        validate_upload(draft, max_bytes=self.config.max_upload_bytes)
        request = ApiRequest(
            "POST",
            f"/tickets/{ticket_id}/submissions",
            form={"submittedById": session.user.id, "note": draft.note},
            files={"file": (draft.file_name or "", draft.content or b"", draft.content_type)},
        )
        return await self._mutate_then_reload(request, "Submission sent")

    async def download_submission(self, submission_id: str) -> bytes:
        return await self.gateway.download(f"/tickets/submissions/{submission_id}/download")

    async def load_archive(
        self,
        *,
        member_id: str | None = None,
        search: str = "",
        start: dt.date | None = None,
        end: dt.date | None = None,
        page: int = 1,
        page_size: int = ARCHIVE_PAGE_SIZE,
    ) -> ArchivePage:
        """Fetch one page of completed tickets.

        Captains may narrow the archive to one member; for everyone else the
        server scopes it to their own tickets, so ``member_id`` is not sent.
        """
        session = self.session
        if session is None:
            raise NotReady("login required")
        params: dict[str, str] = {}
        if member_id and session.is_captain:
            params["memberId"] = member_id
        if search.strip():
            params["q"] = search.strip()
        if start is not None:
            params["from"] = start.isoformat()
        if end is not None:
            params["to"] = end.isoformat()
        params["page"] = str(max(1, page))
        params["pageSize"] = str(page_size)
        generation = self.tokens.generation
        response = await self.gateway.call(ApiRequest("GET", "/tickets/archive", params=params))
        archive = ArchivePage.from_dict(response.payload or {})
        if generation != self.tokens.generation:
            logger.info("archive page arrived after the session changed, discarding")
            return archive
        self.archive = archive
        return archive

    async def profile(self) -> UserProfile:
        response = await self.gateway.call(ApiRequest("GET", "/auth/profile"))
        return UserProfile.from_dict(response.payload or {})

    async def login_history(self) -> list[LoginRecord]:
        response = await self.gateway.call(ApiRequest("GET", "/auth/login-history"))
        return [LoginRecord.from_dict(row) for row in response.payload or ()]

    async def update_profile(self, name: str) -> TeamMember:
        name = name.strip()
        if len(name) < MIN_NAME_LENGTH:
            raise NotReady(f"Name must be at least {MIN_NAME_LENGTH} characters")
        response = await self.gateway.call(
            ApiRequest("PATCH", "/auth/profile", json={"name": name})
        )
        member = TeamMember.from_dict(response.payload or {})
        session = self.session
        if session is not None:
            self.tokens.update_user(replace(session.user, name=member.name))
        self.notifier.success("Profile updated")
        return member

    async def update_settings(self, settings: UserSettings) -> UserSettings:
        if settings.language not in LANGUAGES:
            raise NotReady(f"Language must be one of: {', '.join(LANGUAGES)}")
        response = await self.gateway.call(
            ApiRequest("PATCH", "/auth/settings", json=settings.to_dict())
        )
        self.notifier.success("Settings updated")
        return UserSettings.from_dict(response.payload or {})

    async def change_password(self, current: str, new: str, confirm: str) -> None:
        if not current or not new or not confirm:
            raise NotReady("All password fields are required")
        if len(new) < MIN_PASSWORD_LENGTH:
            raise NotReady(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")
        if new != confirm:
            raise NotReady("New password and confirmation do not match")
        await self.gateway.call(
            ApiRequest(
                "PATCH",
                "/auth/change-password",
                json={"currentPassword": current, "newPassword": new},
            )
        )
        self.notifier.success("Password updated. Logging in again is recommended.")
