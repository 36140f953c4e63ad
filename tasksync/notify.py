from __future__ import annotations

import datetime as dt
import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger("tasksync.notify")

NotificationKind = Literal["success", "error"]

HISTORY_LIMIT = 50
# Undisplayed toasts beyond this are dropped, oldest first.
QUEUE_LIMIT = 20


@dataclass(frozen=True, slots=True)
class Notification:
    id: int
    kind: NotificationKind
    message: str
    created_at: dt.datetime


class Notifier:
    """Toast channel plus a bounded, newest-first history."""

    def __init__(
        self, history_limit: int = HISTORY_LIMIT, queue_limit: int = QUEUE_LIMIT
    ) -> None:
        self._ids = itertools.count(1)
        self.queue: deque[Notification] = deque(maxlen=queue_limit)
        self.history: deque[Notification] = deque(maxlen=history_limit)

    def push(self, kind: NotificationKind, message: str) -> Notification:
        item = Notification(
            id=next(self._ids),
            kind=kind,
            message=message,
            created_at=dt.datetime.now(dt.UTC),
        )
        self.queue.append(item)
        self.history.appendleft(item)
        log = logger.warning if kind == "error" else logger.info
        log("%s: %s", kind, message)
        return item

    def success(self, message: str) -> Notification:
        return self.push("success", message)

    def error(self, message: str) -> Notification:
        return self.push("error", message)

    def pop(self) -> Notification | None:
        return self.queue.popleft() if self.queue else None

    def filtered_history(
        self, kind: NotificationKind | Literal["ALL"] = "ALL"
    ) -> list[Notification]:
        if kind == "ALL":
            return list(self.history)
        return [item for item in self.history if item.kind == kind]
