from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from .models import Snapshot

T = TypeVar("T")


class EntityStore:
    """Holds the canonical collections as one immutable :class:`Snapshot`.

    Every change swaps the whole snapshot reference, so a reader sees either
    the state before a mutation or the state after it, never a mix.

    ``epoch`` moves on every authoritative swap (reload or clear). A rollback
    only applies while the epoch it started in is still current.
    """

    def __init__(self, snapshot: Snapshot | None = None) -> None:
        self._snapshot = snapshot or Snapshot()
        self.epoch = 0

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def replace(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self.epoch += 1

    def clear(self) -> None:
        self.replace(Snapshot())

    async def optimistic(
        self,
        apply: Callable[[Snapshot], Snapshot],
        persist: Callable[[], Awaitable[T]],
    ) -> T:
        """Apply locally, persist, and restore the exact prior snapshot if persisting fails."""
        epoch = self.epoch
        before = self._snapshot
        self._snapshot = apply(before)
        try:
            return await persist()
        except BaseException:
            if self.epoch == epoch:
                self._snapshot = before
            raise
