from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import httpx

from ..errors import AuthExpired, NotReady, TaskSyncError, Unauthorized, ValidationFailure
from ..models import Session, TeamMember
from ..session_store import SessionStore
from .http_client import ApiRequest, extract_error_message, send

logger = logging.getLogger("tasksync.auth")

DEFAULT_REFRESH_SKEW_S = 60


class TokenManager:
    """Owns the live Session and serializes refreshes.

    At most one ``/auth/refresh`` call is outstanding at any time; every caller
    that asks for a refresh while one is running awaits the same task and gets
    the same Session (or the same failure).

    Each login/logout bumps ``generation``. A refresh that finishes after the
    generation moved on is discarded instead of reinstalling a stale session.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        store: SessionStore,
        *,
        skew_s: float = DEFAULT_REFRESH_SKEW_S,
        on_invalid: Callable[[], None] | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self.skew_s = skew_s
        self.on_invalid = on_invalid
        self.generation = 0
        self._inflight: asyncio.Task[Session] | None = None
        self._session = store.load()
        if self._session is not None:
            logger.info("resumed stored session for %s", self._session.user.email)

    def current_session(self) -> Session | None:
        return self._session

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None

    async def ensure_fresh(self) -> Session:
        session = self._session
        if session is None:
            raise NotReady("login required")
        if not session.expires_within(self.skew_s):
            return session
        return await self.refresh()

    async def refresh(self) -> Session:
        if self._inflight is None:
            if self._session is None:
                raise AuthExpired("session ended")
            task = asyncio.create_task(self._refresh_once(self.generation))
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        # Shielded so one cancelled waiter does not cancel the shared refresh.
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Task[Session]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the outcome retrieved; waiters that are still around get it via shield.
            task.exception()

    async def _refresh_once(self, generation: int) -> Session:
        session = self._session
        body: dict[str, Any] = {}
        if session is not None and session.refresh_token:
            body["refreshToken"] = session.refresh_token
        try:
            response = await send(self._client, ApiRequest("POST", "/auth/refresh", json=body))
        except TaskSyncError as exc:
            self._invalidate(generation, exc.message)
            raise AuthExpired(exc.message) from exc
        if not response.is_success:
            message = extract_error_message(response)
            self._invalidate(generation, message)
            raise AuthExpired(message)
        try:
            fresh = Session.from_dict(response.json())
        except (KeyError, TypeError, ValueError) as exc:
            self._invalidate(generation, "malformed refresh response")
            raise AuthExpired("malformed refresh response") from exc
        if generation != self.generation:
            logger.info("refresh finished after the session changed, discarding")
            if self._session is None:
                raise AuthExpired("session ended during refresh")
            return self._session
        self._install(fresh)
        logger.debug("access token refreshed, expires %s", fresh.access_token_expires_at)
        return fresh

    def _install(self, session: Session) -> None:
        self._store.save(session)
        self._session = session

    def _invalidate(self, generation: int, reason: str) -> None:
        if generation != self.generation:
            return
        logger.warning("session refresh failed: %s", reason)
        self.generation += 1
        self._session = None
        self._store.clear()
        if self.on_invalid is not None:
            self.on_invalid()

    def update_user(self, user: TeamMember) -> Session | None:
        """Swap the user record kept with the live session, e.g. after a profile edit."""
        session = self._session
        if session is None:
            return None
        updated = replace(session, user=user)
        self._install(updated)
        return updated

    async def login(self, email: str, password: str) -> Session:
        email = email.strip().lower()
        if not email or not password:
            raise NotReady("Email and password are required")
        response = await send(
            self._client,
            ApiRequest("POST", "/auth/login", json={"email": email, "password": password}),
        )
        if response.status_code == 401:
            raise Unauthorized(extract_error_message(response))
        if not response.is_success:
            raise ValidationFailure(response.status_code, extract_error_message(response))
        try:
            session = Session.from_dict(response.json())
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationFailure(response.status_code, "malformed login response") from exc
        self.generation += 1
        self._install(session)
        logger.info("logged in as %s", session.user.email)
        return session

    async def logout(self) -> None:
        session = self._session
        self.generation += 1
        self._session = None
        self._store.clear()
        if session is None:
            return
        body: dict[str, Any] = {}
        if session.refresh_token:
            body["refreshToken"] = session.refresh_token
        try:
            response = await send(self._client, ApiRequest("POST", "/auth/logout", json=body))
        except TaskSyncError as exc:
            logger.info("logout call failed, local session cleared anyway: %s", exc.message)
            return
        if not response.is_success:
            logger.info(
                "logout rejected with %s, local session cleared anyway", response.status_code
            )
