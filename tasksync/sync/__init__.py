from __future__ import annotations

from .controller import SyncController
from .daemon import RefreshPoller
from .gateway import RequestGateway
from .http_client import ApiRequest, ApiResponse
from .optimistic import OptimisticMutator
from .tokens import TokenManager

__all__ = [
    "ApiRequest",
    "ApiResponse",
    "OptimisticMutator",
    "RefreshPoller",
    "RequestGateway",
    "SyncController",
    "TokenManager",
]
