"""
Synchronous tool discovery against one MCP server.

Sequence:
    1. initialize                 (best-effort, captures Mcp-Session-Id)
    2. notifications/initialized  (best-effort)
    3. tools/list, paginated via nextCursor

The session id, once seen, is echoed on every later request; any
response may replace it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from mcp_bridge.config import ServerEndpoint
from mcp_bridge.sse import parse_sse_response
from mcp_bridge.transport import (
    HttpReply,
    HttpxTransport,
    JsonRpcRequest,
    JsonRpcResponse,
    Transport,
    build_headers,
)
from mcp_bridge.util import sanitize_url_for_log

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"
CLIENT_INFO = {"name": "mcp-bridge", "version": "0.1.0"}
DISCOVERY_TIMEOUT = 10.0  # seconds, when the server sets none


class DiscoveryError(RuntimeError):
    """Tool discovery failed for one server."""


@dataclass(frozen=True)
class ToolDefinition:
    """One remote tool as advertised by tools/list."""
    name: str
    description: str | None = None
    input_schema: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolDefinition":
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise ValueError(f"Invalid tool definition: {json.dumps(data)[:200]}")
        description = data.get("description")
        schema = data.get("inputSchema")
        return cls(
            name=data["name"],
            description=description if isinstance(description, str) else None,
            input_schema=schema if isinstance(schema, dict) else None,
        )


@dataclass(frozen=True)
class DiscoverySession:
    """Result of discovery: the tool catalog and the server's session id."""
    tools: tuple[ToolDefinition, ...]
    session_id: str | None = None


class _Discovery:
    """State for one discovery run: the server, transport and session id."""

    def __init__(self, server: ServerEndpoint, transport: Transport):
        self.server = server
        self.transport = transport
        self.session_id: str | None = None
        self.timeout = server.timeout / 1000 if server.timeout else DISCOVERY_TIMEOUT

    def send(self, request: JsonRpcRequest) -> HttpReply:
        reply = self.transport.post(
            self.server.endpoint_url,
            request.to_json(),
            build_headers(self.server.token, self.session_id),
            self.timeout,
        )
        if reply.session_id:
            self.session_id = reply.session_id
        return reply

    def initialize(self) -> None:
        reply = self.send(JsonRpcRequest(
            method="initialize",
            params={
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": CLIENT_INFO,
            },
            id="init-1",
        ))
        # Servers that don't implement initialize must not block discovery
        try:
            response = JsonRpcResponse.from_json(parse_sse_response(reply.body))
        except ValueError:
            logger.debug(f"{self.server.name}: unparseable initialize response, continuing")
            return
        if response.is_error:
            logger.debug(f"{self.server.name}: initialize error ignored: {response.error_message}")

    def notify_initialized(self) -> None:
        try:
            reply = self.send(JsonRpcRequest(method="notifications/initialized"))
        except Exception as e:
            logger.debug(f"{self.server.name}: initialized notification failed (non-fatal): {e}")
            return
        if not reply.ok:
            logger.debug(
                f"{self.server.name}: initialized notification returned "
                f"{reply.status} (non-fatal)"
            )

    def list_tools(self) -> list[ToolDefinition]:
        tools: list[ToolDefinition] = []
        cursor: str | None = None
        seen_cursors: set[str] = set()
        request_id = 0

        while True:
            request_id += 1
            params = {"cursor": cursor} if cursor else {}
            reply = self.send(JsonRpcRequest(method="tools/list", params=params, id=request_id))

            json_str = parse_sse_response(reply.body)
            response = JsonRpcResponse.from_json(json_str)

            if response.is_error:
                raise DiscoveryError(f"MCP error: {response.error_message}")

            result = response.result if isinstance(response.result, dict) else {}
            page = result.get("tools")
            if not isinstance(page, list):
                raise DiscoveryError(f"Unexpected tools/list response: {json_str[:200]}")

            tools.extend(ToolDefinition.from_dict(t) for t in page)

            cursor = result.get("nextCursor") or None
            if not cursor:
                return tools
            if cursor in seen_cursors:
                raise DiscoveryError(f"tools/list returned cursor {cursor!r} twice")
            seen_cursors.add(cursor)
            logger.debug(f"{self.server.name}: fetching next tools/list page")


def discover_tools_sync(
    server: ServerEndpoint,
    transport: Transport | None = None,
) -> DiscoverySession:
    """
    Discover the tools of one MCP server. Blocks until done.

    Args:
        server: The configured server
        transport: Blocking transport (default: HttpxTransport)

    Returns:
        DiscoverySession with tools in server order and the session id.

    Raises:
        TransportUnavailableError: the transport cannot send requests at all.
        DiscoveryError: anything else went wrong; the message names the
            server and its URL with query parameters stripped.
    """
    transport = transport or HttpxTransport()
    # A missing HTTP capability is process-wide, not a per-server failure
    transport.check()

    discovery = _Discovery(server, transport)
    try:
        discovery.initialize()
        discovery.notify_initialized()
        tools = discovery.list_tools()
    except Exception as e:
        raise DiscoveryError(
            f"Failed to discover tools from {server.name} "
            f"({sanitize_url_for_log(server.endpoint_url)}): {e}"
        ) from e

    return DiscoverySession(tools=tuple(tools), session_id=discovery.session_id)
