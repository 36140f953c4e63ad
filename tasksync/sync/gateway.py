from __future__ import annotations

import logging

import httpx

from ..access import assert_role_access
from ..errors import NotReady, TaskSyncError, Unauthorized, ValidationFailure
from ..notify import Notifier
from .http_client import ApiRequest, ApiResponse, extract_error_message, send
from .tokens import TokenManager

logger = logging.getLogger("tasksync.gateway")


class RequestGateway:
    """Authenticated calls with one silent refresh-and-retry on 401."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        tokens: TokenManager,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self._client = client
        self._tokens = tokens
        self._notifier = notifier

    async def call(self, request: ApiRequest) -> ApiResponse:
        try:
            return await self._call(request)
        except TaskSyncError as exc:
            # One notification per failed logical call; the retried 401 never gets here.
            if self._notifier is not None:
                self._notifier.error(exc.message)
            raise

    async def download(self, path: str) -> bytes:
        response = await self.call(ApiRequest("GET", path))
        return response.content

    async def _call(self, request: ApiRequest) -> ApiResponse:
        session = self._tokens.current_session()
        if session is None:
            raise NotReady("login required")
        assert_role_access(request.path, request.method, is_captain=session.is_captain)

        response = await send(self._client, request, token=session.access_token)
        if response.status_code == 401:
            logger.info("%s %s got 401, refreshing once", request.method, request.path)
            refreshed = await self._tokens.refresh()
            response = await send(self._client, request, token=refreshed.access_token)
            if response.status_code == 401:
                raise Unauthorized(extract_error_message(response))
        if not response.is_success:
            raise ValidationFailure(response.status_code, extract_error_message(response))
        return ApiResponse.from_httpx(response)
