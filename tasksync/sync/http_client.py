from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import httpx

from ..errors import NetworkFailure

NETWORK_ERROR_MESSAGE = "Could not reach the server. Check the connection and the API address."


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    parsed = urlparse(trimmed)
    if parsed.scheme:
        return trimmed
    return f"http://{trimmed}"


@dataclass(frozen=True)
class ApiRequest:
    method: str
    path: str
    json: dict[str, Any] | None = None
    params: dict[str, str] | None = None
    # Multipart payload: plain form fields plus (name -> (filename, bytes, content type)).
    form: dict[str, str] | None = None
    files: dict[str, tuple[str, bytes, str]] | None = None


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> ApiResponse:
        if response.status_code == 204:
            return cls(status_code=204, headers=dict(response.headers))
        return cls(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
        )

    @property
    def payload(self) -> Any:
        """Decoded JSON body, or ``None`` for 204/empty responses."""
        if self.status_code == 204 or not self.content:
            return None
        return json.loads(self.content.decode("utf-8"))


def parse_api_message(raw: Any) -> str:
    if not raw:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        message = raw.get("message")
        if isinstance(message, list):
            return ", ".join(item for item in message if isinstance(item, str))
        if isinstance(message, str):
            return message
        errors = raw.get("errors")
        if isinstance(errors, list):
            return ", ".join(item for item in errors if isinstance(item, str))
    return ""


def extract_error_message(response: httpx.Response) -> str:
    fallback = f"Request failed ({response.status_code})"
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return parse_api_message(response.json()) or fallback
        except ValueError:
            return fallback
    return response.text or fallback


async def send(
    client: httpx.AsyncClient,
    request: ApiRequest,
    *,
    token: str | None = None,
) -> httpx.Response:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    try:
        return await client.request(
            request.method.upper(),
            request.path,
            params=request.params,
            json=request.json,
            data=request.form,
            files=request.files,
            headers=headers,
        )
    except httpx.HTTPError as exc:
        raise NetworkFailure(NETWORK_ERROR_MESSAGE) from exc
