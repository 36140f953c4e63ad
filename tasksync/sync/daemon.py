from __future__ import annotations

import asyncio
import contextlib
import logging

from ..errors import TaskSyncError
from .tokens import TokenManager

logger = logging.getLogger("tasksync.refresh")

DEFAULT_INTERVAL_S = 20


class RefreshPoller:
    """Background task that refreshes the access token before it expires.

    Every ``interval_s`` seconds it checks whether the live session is inside
    the skew window and, if so, refreshes through the single-flight path. The
    reactive 401 retry in the gateway stays as the fallback.
    """

    def __init__(self, tokens: TokenManager, *, interval_s: float = DEFAULT_INTERVAL_S) -> None:
        self._tokens = tokens
        self.interval_s = interval_s
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="tasksync-refresh-poller")

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            await self.tick()

    async def tick(self) -> bool:
        session = self._tokens.current_session()
        if session is None or self._tokens.refreshing:
            return False
        if not session.expires_within(self._tokens.skew_s):
            return False
        try:
            await self._tokens.refresh()
        except TaskSyncError as exc:
            # TokenManager already cleared the session and fired on_invalid.
            logger.warning("proactive refresh failed: %s", exc.message)
            return False
        return True
