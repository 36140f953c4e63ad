from __future__ import annotations

import re

from .errors import NotReady

_TICKET_ASSIGNEE_RE = re.compile(r"^/tickets/[^/]+/assignee$")
_TICKET_REVIEW_RE = re.compile(r"^/tickets/[^/]+/review$")
_TICKET_ITEM_RE = re.compile(r"^/tickets/[^/]+$")


def assert_role_access(path: str, method: str, *, is_captain: bool) -> None:
    """Reject captain-only mutations locally, before any network I/O."""
    if is_captain:
        return
    verb = method.upper()
    if verb == "GET":
        return
    path = path.split("?", 1)[0]
    if path.startswith("/team-members"):
        raise NotReady("Captain permission is required for member management.")
    if path == "/tickets" and verb == "POST":
        raise NotReady("Only captains can create tickets.")
    if path == "/tickets/bulk/status" and verb == "PATCH":
        raise NotReady("Only captains can bulk-update tickets.")
    if _TICKET_ASSIGNEE_RE.match(path) and verb == "PATCH":
        raise NotReady("Only captains can change assignees.")
    if _TICKET_REVIEW_RE.match(path) and verb == "PATCH":
        raise NotReady("Only captains can review tickets.")
    if _TICKET_ITEM_RE.match(path) and verb == "DELETE":
        raise NotReady("Only captains can delete tickets.")
    if path.startswith("/projects"):
        raise NotReady("Only captains can manage projects.")
