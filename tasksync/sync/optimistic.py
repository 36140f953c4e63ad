from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Literal

from ..models import Snapshot, Ticket, TicketStatus
from ..notify import Notifier
from ..store import EntityStore
from .gateway import RequestGateway
from .http_client import ApiRequest

logger = logging.getLogger("tasksync.optimistic")

Origin = Literal["manual", "drag"]

DEFAULT_PULSE_S = 0.42


def with_status(snapshot: Snapshot, ticket_id: str, status: TicketStatus) -> Snapshot:
    tickets = tuple(
        dataclasses.replace(ticket, status=status) if ticket.id == ticket_id else ticket
        for ticket in snapshot.tickets
    )
    return dataclasses.replace(snapshot, tickets=tickets)


class OptimisticMutator:
    """Ticket status changes: visible immediately, rolled back if the server says no."""

    def __init__(
        self,
        store: EntityStore,
        gateway: RequestGateway,
        *,
        notifier: Notifier | None = None,
        pulse_s: float = DEFAULT_PULSE_S,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._notifier = notifier
        self.pulse_s = pulse_s
        # Tickets whose drag-and-drop move was just confirmed.
        self.pulse_ids: set[str] = set()

    async def set_status(
        self,
        ticket: Ticket,
        status: TicketStatus,
        origin: Origin = "manual",
    ) -> bool:
        """Returns False for a no-op (status already matches), True once persisted."""
        if ticket.status == status:
            return False
        request = ApiRequest("PATCH", f"/tickets/{ticket.id}/status", json={"status": status.value})
        try:
            await self._store.optimistic(
                lambda snapshot: with_status(snapshot, ticket.id, status),
                lambda: self._gateway.call(request),
            )
        except Exception:
            logger.info("status change for %s failed", ticket.id)
            raise
        if origin == "drag":
            self._pulse(ticket.id)
        if self._notifier is not None:
            self._notifier.success("Status updated")
        return True

    def _pulse(self, ticket_id: str) -> None:
        self.pulse_ids.add(ticket_id)
        asyncio.get_running_loop().call_later(self.pulse_s, self.pulse_ids.discard, ticket_id)
