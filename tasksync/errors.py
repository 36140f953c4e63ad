from __future__ import annotations


class TaskSyncError(Exception):
    """Base class for every failure surfaced by the sync client."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class AuthExpired(TaskSyncError):
    """The refresh token was rejected; the session is gone and a logout is forced."""


class Unauthorized(TaskSyncError):
    """A request was answered 401 even after one refresh-and-retry."""


class ValidationFailure(TaskSyncError):
    """The server answered with a non-2xx status other than a retried 401."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(message or f"Request failed ({status_code})")


class NetworkFailure(TaskSyncError):
    """Transport-level failure: the server could not be reached."""


class NotReady(TaskSyncError):
    """A command was issued without a required local precondition."""
