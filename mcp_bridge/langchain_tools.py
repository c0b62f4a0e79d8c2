"""
LangChain adapter for bridged MCP tools.

Converts BridgedTools into LangChain StructuredTools that can be
registered in the Agent Factory's ToolRegistry.

Usage:
    from mcp_bridge.langchain_tools import to_langchain_tool, register_mcp_tools

    # Single tool
    lc_tool = to_langchain_tool(manager.get_tool("notion_search"))

    # All tools from all servers
    register_mcp_tools(manager, tool_registry)

    # Per-call identity travels in the RunnableConfig
    await lc_tool.ainvoke({"query": "roadmap"}, config={"configurable": {"user_id": "42"}})
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import StructuredTool

from mcp_bridge.bridge import BridgedTool
from mcp_bridge.manager import BridgeManager
from mcp_bridge.session import parse_user_id

logger = logging.getLogger(__name__)


def to_langchain_tool(bridged: BridgedTool) -> StructuredTool:
    """
    Wrap a BridgedTool in a LangChain StructuredTool.

    The end user is read from the RunnableConfig at call time:
    configurable["user_id"], or the host session key in
    configurable["session_key"]. configurable["tool_call_id"] is used as
    the JSON-RPC id when present.
    """

    async def _call_mcp(config: RunnableConfig, **kwargs: Any) -> str:
        """Proxy call to the MCP server."""
        configurable = config.get("configurable") or {}
        user_id = configurable.get("user_id") or parse_user_id(configurable.get("session_key"))
        call_id = configurable.get("tool_call_id") or uuid.uuid4().hex

        result = await bridged.execute(str(call_id), kwargs, user_id=user_id)
        return "\n".join(block["text"] for block in result["content"])

    return StructuredTool(
        name=bridged.name,
        description=bridged.description,
        args_schema=bridged.parameters,
        coroutine=_call_mcp,
    )


def register_mcp_tools(
    manager: BridgeManager,
    tool_registry: Any,  # agent_factory.ToolRegistry (avoid circular import)
    domain_tags: dict[str, list[str]] | None = None,
    prompt_instructions: dict[str, str] | None = None,
) -> list[str]:
    """
    Register every discovered MCP tool in the Agent Factory's ToolRegistry.

    Args:
        manager: A BridgeManager that has run discovery
        tool_registry: An Agent Factory ToolRegistry instance
        domain_tags: Optional {bridged_name: [tags]} for categorization
        prompt_instructions: Optional {bridged_name: instructions} for
                             system prompt injection

    Returns:
        List of registered tool IDs (the prefixed tool names).
    """
    domain_tags = domain_tags or {}
    prompt_instructions = prompt_instructions or {}
    registered = []

    for bridged in manager.list_tools():
        instructions = prompt_instructions.get(bridged.name) or _auto_prompt_instructions(bridged)

        tool_registry.register_langchain_tool(
            tool_id=bridged.name,
            tool=to_langchain_tool(bridged),
            prompt_instructions=instructions,
            domain_tags=domain_tags.get(bridged.name, []),
        )
        logger.info(f"[mcp-bridge]   registered: {bridged.name}")
        registered.append(bridged.name)

    return registered


def _auto_prompt_instructions(bridged: BridgedTool) -> str:
    """Generate prompt instructions from an MCP tool's input schema."""
    params = bridged.parameters.get("properties", {})
    required = set(bridged.parameters.get("required", []))

    lines = [f"## Tool: {bridged.name}", bridged.description, ""]
    if params:
        lines.append("Parameters:")
        for pname, pinfo in params.items():
            ptype = pinfo.get("type", "any") if isinstance(pinfo, dict) else "any"
            pdesc = pinfo.get("description", "") if isinstance(pinfo, dict) else ""
            marker = ", required" if pname in required else ""
            lines.append(f"  - {pname} ({ptype}{marker}): {pdesc}")

    return "\n".join(lines)
