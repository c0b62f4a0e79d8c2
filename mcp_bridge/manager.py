"""
Bridge Manager — discovers remote MCP servers and holds their tools.

The manager sits between the bridge config and the host's tool
registry: it runs discovery once per configured server and keeps one
BridgedTool per discovered tool.

Usage:
    config, warnings = parse_bridge_config(plugin_config)
    manager = BridgeManager(config, token_store=TokenStore("~/.mcp-bridge/tokens.db"))

    # Blocking; safe to call from a synchronous register() hook
    manager.discover_all()

    # Call a tool
    result = await manager.call("notion_search", {"query": "roadmap"}, user_id="42")

    # Or hand LangChain tools to the Agent Factory (mcp_bridge.langchain_tools)
    register_mcp_tools(manager, tool_registry)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from mcp_bridge.auth import CredentialStore
from mcp_bridge.bridge import BridgedTool, create_bridged_tool
from mcp_bridge.config import BridgeConfig, ServerEndpoint
from mcp_bridge.discovery import DiscoveryError, DiscoverySession, discover_tools_sync
from mcp_bridge.transport import Transport, TransportUnavailableError
from mcp_bridge.util import sanitize_url_for_log

logger = logging.getLogger(__name__)


@dataclass
class _ServerState:
    server: ServerEndpoint
    session: DiscoverySession | None = None
    tools: list[BridgedTool] = field(default_factory=list)


class BridgeManager:
    """
    Runs discovery for every configured MCP server and routes tool calls.

    Responsibilities:
    - Discover each server's tools (sequentially, blocking)
    - Keep going when one server fails
    - Build a BridgedTool per discovered tool
    - Look up tools by their prefixed name
    """

    def __init__(
        self,
        config: BridgeConfig,
        transport: Transport | None = None,
        token_store: CredentialStore | None = None,
    ):
        self.config = config
        self.transport = transport
        self.token_store = token_store
        self._servers: list[_ServerState] = [_ServerState(s) for s in config.servers]

    def discover(self, server: ServerEndpoint) -> list[BridgedTool]:
        """
        Discover one server's tools and build bridged tools for them.

        Raises:
            DiscoveryError: discovery failed for this server
            TransportUnavailableError: no way to make blocking requests
        """
        state = self._state_for(server)

        logger.info(
            f"[mcp-bridge] Discovering tools from {server.name} "
            f"({sanitize_url_for_log(server.url)})..."
        )
        session = discover_tools_sync(server, self.transport)

        state.session = session
        state.tools = [
            create_bridged_tool(server, tool, session.session_id, self.token_store)
            for tool in session.tools
        ]
        logger.info(f"[mcp-bridge] {server.name}: found {len(state.tools)} tools")
        return state.tools

    def discover_all(self) -> dict[str, list[BridgedTool]]:
        """Discover every configured server. Returns {server_name: [tools]}."""
        results: dict[str, list[BridgedTool]] = {}

        if not self._servers:
            logger.warning("[mcp-bridge] No servers configured. Add servers to plugin config.")
            return results

        for state in self._servers:
            try:
                results[state.server.name] = self.discover(state.server)
            except DiscoveryError as e:
                logger.error(f"[mcp-bridge] {state.server.name}: {e}")
                results[state.server.name] = []
            except TransportUnavailableError as e:
                # Every remaining server would fail the same way
                logger.error(f"[mcp-bridge] {e}")
                results[state.server.name] = []
                break

        total = sum(len(tools) for tools in results.values())
        logger.info(
            f"[mcp-bridge] Total: {total} tools discovered from "
            f"{len(self._servers)} server(s)"
        )
        return results

    def list_tools(self, server_name: str | None = None) -> list[BridgedTool]:
        """List bridged tools, for one server or all of them."""
        return [
            tool
            for state in self._servers
            if server_name is None or state.server.name == server_name
            for tool in state.tools
        ]

    def list_servers(self) -> dict[str, bool]:
        """List all servers and whether discovery succeeded."""
        return {s.server.name: s.session is not None for s in self._servers}

    def get_tool(self, name: str) -> BridgedTool | None:
        """Find a bridged tool by its prefixed name."""
        return next((t for t in self.list_tools() if t.name == name), None)

    async def call(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        user_id: str | None = None,
        tool_call_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Call a bridged tool by its prefixed name.

        Raises:
            ValueError: no such tool was discovered
        """
        tool = self.get_tool(tool_name)
        if tool is None:
            raise ValueError(
                f"Unknown tool: '{tool_name}'. "
                f"Available: {[t.name for t in self.list_tools()]}"
            )
        return await tool.execute(tool_call_id or uuid.uuid4().hex, arguments, user_id=user_id)

    def _state_for(self, server: ServerEndpoint) -> _ServerState:
        for state in self._servers:
            if state.server == server:
                return state
        state = _ServerState(server)
        self._servers.append(state)
        return state
