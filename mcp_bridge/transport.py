"""
Transport layer for MCP Streamable HTTP servers.

Two execution models are needed:
  - HttpxTransport: blocking POST via httpx.Client. Tool discovery
    runs while the host registers plugins, and that phase must not
    await anything, so the request is made synchronously.
  - post_async(): non-blocking POST via httpx, used for tool calls.

Both return an HttpReply; neither interprets the JSON-RPC payload.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"
ACCEPT = "application/json, text/event-stream"

# Process-wide: the blocking client only needs to be probed once
_client_available = False


class TransportError(RuntimeError):
    """A request could not be completed (network failure, timeout, ...)."""


class TransportUnavailableError(RuntimeError):
    """The HTTP-executing capability the transport relies on is missing."""


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request. A request without an id is a notification."""
    method: str
    params: dict[str, Any] | None = None
    id: int | str | None = None

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": self.method}
        if self.params is not None:
            message["params"] = self.params
        if self.id is not None:
            message["id"] = self.id
        return message

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class JsonRpcResponse:
    """JSON-RPC 2.0 response."""
    id: int | str | None
    result: Any = None
    error: Any = None

    @classmethod
    def from_json(cls, data: str) -> "JsonRpcResponse":
        parsed = json.loads(data)
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON-RPC object, got {type(parsed).__name__}")
        return cls(
            id=parsed.get("id"),
            result=parsed.get("result"),
            error=parsed.get("error"),
        )

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def error_message(self) -> str:
        if isinstance(self.error, dict) and self.error.get("message") is not None:
            return str(self.error["message"])
        return json.dumps(self.error)


@dataclass
class HttpReply:
    """Status, headers (names lower-cased) and body of one HTTP response."""
    status: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def session_id(self) -> str | None:
        return self.header(SESSION_HEADER) or None


def build_headers(token: str | None = None, session_id: str | None = None) -> dict[str, str]:
    """Headers sent with every MCP request."""
    headers = {
        "Content-Type": "application/json",
        "Accept": ACCEPT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if session_id:
        headers[SESSION_HEADER] = session_id
    return headers


class Transport(ABC):
    """Blocking transport used during discovery."""

    @abstractmethod
    def post(
        self,
        url: str,
        body: str,
        headers: dict[str, str],
        timeout: float,
    ) -> HttpReply:
        """POST body to url and return the reply. Blocks until done."""
        ...

    def check(self) -> None:
        """Verify the transport can run at all. Raises TransportUnavailableError."""


class HttpxTransport(Transport):
    """
    Blocking HTTP POST through httpx.Client.

    Used for discovery, which runs while the host registers plugins and
    must not await anything.
    """

    def check(self) -> None:
        """Build a client once per process to confirm httpx can send requests."""
        global _client_available
        if _client_available:
            return
        try:
            httpx.Client().close()
        except Exception as e:
            raise TransportUnavailableError(
                f"httpx is required for synchronous MCP tool discovery "
                f"but no client could be created: {e}"
            ) from e
        _client_available = True
        logger.debug("Blocking httpx client is available")

    def post(
        self,
        url: str,
        body: str,
        headers: dict[str, str],
        timeout: float,
    ) -> HttpReply:
        self.check()

        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(url, content=body, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out after {timeout:g}s: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}") from e

        return _to_reply(response)


def _to_reply(response: httpx.Response) -> HttpReply:
    return HttpReply(
        status=response.status_code,
        body=response.text,
        headers={k.lower(): v for k, v in response.headers.items()},
    )


async def post_async(
    url: str,
    body: str,
    headers: dict[str, str],
    timeout: float,
) -> HttpReply:
    """Non-blocking HTTP POST. Network errors propagate as httpx exceptions."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(url, content=body, headers=headers)
    return _to_reply(response)
