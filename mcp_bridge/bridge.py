"""
Bridge between remote MCP tools and the host agent.

Each discovered tool becomes a BridgedTool whose execute() performs a
non-blocking tools/call round trip. Failures never escape execute():
HTTP errors, unparseable bodies and JSON-RPC errors all come back as
text content the calling agent can read.

Usage:
    from mcp_bridge.bridge import create_bridged_tool

    bridged = create_bridged_tool(server, tool_def, session.session_id, store)
    result = await bridged.execute("call-1", {"query": "roadmap"}, user_id="42")
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from mcp_bridge.auth import CredentialStore, resolve_token
from mcp_bridge.config import ServerEndpoint
from mcp_bridge.discovery import ToolDefinition
from mcp_bridge.sse import parse_sse_response
from mcp_bridge.transport import JsonRpcRequest, build_headers, post_async

logger = logging.getLogger(__name__)

CALL_TIMEOUT = 30.0  # seconds
MAX_ERROR_BODY = 1000
EMPTY_SCHEMA = {"type": "object", "properties": {}}


def _text(text: str) -> dict[str, str]:
    return {"type": "text", "text": text}


def _error_result(message: str, status: int | None = None) -> dict[str, Any]:
    error: dict[str, Any] = {"error": True}
    if status is not None:
        error["status"] = status
    error["message"] = message
    return {"content": [_text(json.dumps(error))]}


@dataclass
class BridgedTool:
    """
    A remote MCP tool exposed to the host.

    Bound to one (server, tool, session id) triple; holds no other
    state, so it is safe to call concurrently.
    """
    server: ServerEndpoint
    tool: ToolDefinition
    session_id: str | None = None
    store: CredentialStore | None = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return f"{self.server.prefix}_{self.tool.name}"

    @property
    def label(self) -> str:
        return f"{self.server.name}: {self.tool.name}"

    @property
    def description(self) -> str:
        return self.tool.description or f"Call {self.tool.name} on {self.server.name} MCP server"

    @property
    def parameters(self) -> dict[str, Any]:
        return self.tool.input_schema or dict(EMPTY_SCHEMA)

    @property
    def timeout(self) -> float:
        return self.server.timeout / 1000 if self.server.timeout else CALL_TIMEOUT

    async def execute(
        self,
        tool_call_id: str,
        params: dict[str, Any],
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Call the remote tool.

        Args:
            tool_call_id: Host call id, used as the JSON-RPC request id
            params: Tool arguments
            user_id: End user making the call, for per-user tokens

        Returns:
            {"content": [{"type": "text", "text": ...}], "details": ...}
        """
        resolution = resolve_token(self.server, user_id, self.store)
        if resolution.refusal:
            logger.info(f"{self.name}: no usable credential for user {user_id}")
            return {"content": [_text(resolution.refusal)]}

        request = JsonRpcRequest(
            method="tools/call",
            params={"name": self.tool.name, "arguments": params},
            id=tool_call_id,
        )
        headers = build_headers(resolution.token, self.session_id)

        try:
            reply = await post_async(
                self.server.endpoint_url, request.to_json(), headers, self.timeout
            )
        except Exception as e:
            logger.warning(f"{self.name}: request failed: {e!r}")
            return _error_result(f"Request to {self.server.name} failed: {e!r}")

        if not reply.ok:
            logger.warning(f"{self.name}: HTTP {reply.status}")
            return _error_result(reply.body[:MAX_ERROR_BODY], status=reply.status)

        # Servers may send HTML error pages or garbage even with a 200
        try:
            parsed = json.loads(parse_sse_response(reply.body))
        except ValueError as e:
            logger.warning(f"{self.name}: unparseable response: {e}")
            return _error_result(
                f"Failed to parse response from {self.server.name}: {e}. "
                f"Body: {reply.body[:200]}"
            )

        if not isinstance(parsed, dict):
            return _error_result(f"Unexpected response from {self.server.name}: {reply.body[:200]}")

        if parsed.get("error") is not None:
            error = parsed["error"]
            message = (
                error.get("message") if isinstance(error, dict) else None
            ) or json.dumps(error)
            return _error_result(str(message))

        result = parsed.get("result")
        # tools/call returns result.content; some servers return the payload as result
        payload = result.get("content") if isinstance(result, dict) else None
        if payload is None:
            payload = result
        if payload is None:
            return {"content": [_text("No content returned")]}

        text = payload if isinstance(payload, str) else json.dumps(payload, indent=2)
        return {"content": [_text(text)], "details": payload}


def create_bridged_tool(
    server: ServerEndpoint,
    tool: ToolDefinition,
    session_id: str | None = None,
    store: CredentialStore | None = None,
) -> BridgedTool:
    """
    Create a host tool that bridges calls to an MCP server.

    The tool name is prefixed: prefix="notion", tool.name="search" -> "notion_search"
    """
    return BridgedTool(server=server, tool=tool, session_id=session_id, store=store)
