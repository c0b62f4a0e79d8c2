"""
MCP Bridge — remote MCP tool servers as native agent tools.

Architecture:
    ┌──────────────┐   HTTP POST    ┌──────────────┐
    │ Agent Runtime │ ──────────── │  MCP Server   │
    │ (LangGraph)  │  JSON-RPC    │  (remote)     │
    └──────────────┘  JSON / SSE   └──────────────┘

Each configured server speaks JSON-RPC 2.0 over HTTP (MCP Streamable
HTTP). Responses are either plain JSON or SSE-framed.

At startup the BridgeManager discovers every server's tools with a
blocking handshake (initialize → notifications/initialized → paginated
tools/list) and wraps each tool in a BridgedTool. Tool calls are
async, resolve the bearer token per call (per-user token store or the
server's static token) and always return content, never raise.

TierGate (backed by BillingClient) provides host hooks that block
integration tools the user's plan does not include.

The LangChain adapter turns BridgedTools into StructuredTools that the
Agent Factory can register in its ToolRegistry.
"""

from mcp_bridge.billing import BillingClient, BillingStatus
from mcp_bridge.bridge import BridgedTool, create_bridged_tool
from mcp_bridge.config import BridgeConfig, ServerEndpoint, load_config_file, parse_bridge_config
from mcp_bridge.discovery import DiscoveryError, DiscoverySession, ToolDefinition, discover_tools_sync
from mcp_bridge.manager import BridgeManager
from mcp_bridge.sse import parse_sse_response
from mcp_bridge.tier_gate import GateDecision, TierGate
from mcp_bridge.token_store import CredentialRecord, TokenStore
from mcp_bridge.transport import HttpxTransport


# Adapter requires langchain; lazy import to keep the core usable without it
def to_langchain_tool(*args, **kwargs):
    from mcp_bridge.langchain_tools import to_langchain_tool as _impl
    return _impl(*args, **kwargs)


def register_mcp_tools(*args, **kwargs):
    from mcp_bridge.langchain_tools import register_mcp_tools as _impl
    return _impl(*args, **kwargs)


__all__ = [
    "BillingClient",
    "BillingStatus",
    "BridgeConfig",
    "BridgeManager",
    "BridgedTool",
    "CredentialRecord",
    "DiscoveryError",
    "DiscoverySession",
    "GateDecision",
    "HttpxTransport",
    "ServerEndpoint",
    "TierGate",
    "TokenStore",
    "ToolDefinition",
    "create_bridged_tool",
    "discover_tools_sync",
    "load_config_file",
    "parse_bridge_config",
    "parse_sse_response",
    "register_mcp_tools",
    "to_langchain_tool",
]
