from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .models import Session

logger = logging.getLogger("tasksync.session")

SESSION_STORAGE_KEY = "tasksync_auth"


class SessionStore:
    """Durable home of the single live Session.

    The file holds one JSON object under :data:`SESSION_STORAGE_KEY`. It is
    read once at startup, rewritten on every login/refresh and removed on
    logout.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Session | None:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return None
        if not raw.strip():
            return None
        try:
            data = json.loads(raw)
            return Session.from_dict(data[SESSION_STORAGE_KEY])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("stored session unreadable, ignoring", exc_info=exc)
            return None

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(f"{self.path.suffix}.tmp")
        text = (
            json.dumps({SESSION_STORAGE_KEY: session.to_dict()}, ensure_ascii=False, indent=2)
            + "\n"
        )
        # A leftover temp file could carry wider permissions; never reuse it.
        tmp_path.unlink(missing_ok=True)
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return


class MemorySessionStore(SessionStore):
    """In-process store for embedding the client without touching disk."""

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    def load(self) -> Session | None:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None
