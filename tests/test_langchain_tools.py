import json

import httpx
import pytest
import respx

from conftest import FakeTransport, make_reply
from mcp_bridge.bridge import create_bridged_tool
from mcp_bridge.config import BridgeConfig, ServerEndpoint
from mcp_bridge.discovery import ToolDefinition
from mcp_bridge.langchain_tools import register_mcp_tools, to_langchain_tool
from mcp_bridge.manager import BridgeManager
from mcp_bridge.token_store import TokenStore

SCHEMA = {
    "type": "object",
    "properties": {"query": {"type": "string", "description": "Search text"}},
    "required": ["query"],
}


class FakeRegistry:
    def __init__(self):
        self.entries = {}

    def register_langchain_tool(self, tool_id, tool, prompt_instructions, domain_tags):
        self.entries[tool_id] = {
            "tool": tool,
            "prompt_instructions": prompt_instructions,
            "domain_tags": domain_tags,
        }


@pytest.fixture
def notion():
    return ServerEndpoint(name="Notion", url="http://notion.test", prefix="notion")


@pytest.fixture
def token_store(tmp_path):
    store = TokenStore(tmp_path / "tokens.db")
    yield store
    store.close()


def test_tool_metadata(notion):
    bridged = create_bridged_tool(notion, ToolDefinition("search", "Search pages", SCHEMA))

    lc_tool = to_langchain_tool(bridged)

    assert lc_tool.name == "notion_search"
    assert lc_tool.description == "Search pages"
    assert lc_tool.args_schema == SCHEMA


def test_register_mcp_tools(notion):
    manager = BridgeManager(
        BridgeConfig(servers=[notion]),
        transport=FakeTransport([
            make_reply('{"jsonrpc":"2.0","id":"init-1","result":{}}'),
            make_reply("{}"),
            make_reply(json.dumps({
                "jsonrpc": "2.0", "id": 1,
                "result": {"tools": [
                    {"name": "search", "description": "Search pages", "inputSchema": SCHEMA},
                    {"name": "list_databases"},
                ]},
            })),
        ]),
    )
    manager.discover_all()
    registry = FakeRegistry()

    registered = register_mcp_tools(
        manager,
        registry,
        domain_tags={"notion_search": ["docs"]},
        prompt_instructions={"notion_list_databases": "## Tool: notion_list_databases\nCustom"},
    )

    assert registered == ["notion_search", "notion_list_databases"]
    search = registry.entries["notion_search"]
    assert search["domain_tags"] == ["docs"]
    assert "## Tool: notion_search" in search["prompt_instructions"]
    assert "query (string, required): Search text" in search["prompt_instructions"]
    assert registry.entries["notion_list_databases"]["prompt_instructions"].endswith("Custom")
    assert registry.entries["notion_list_databases"]["domain_tags"] == []


@pytest.mark.asyncio
@respx.mock
async def test_invoke_uses_user_from_config(notion, token_store):
    token_store.set_token("42", "notion", "user-42-token")
    route = respx.post("http://notion.test/mcp").mock(
        return_value=httpx.Response(200, json={"result": {"content": "3 pages"}})
    )
    bridged = create_bridged_tool(notion, ToolDefinition("search", "Search pages", SCHEMA), store=token_store)

    output = await to_langchain_tool(bridged).ainvoke(
        {"query": "roadmap"},
        config={"configurable": {"user_id": "42", "tool_call_id": "tc-1"}},
    )

    assert output == "3 pages"
    sent = json.loads(route.calls.last.request.content)
    assert sent["id"] == "tc-1"
    assert sent["params"]["arguments"] == {"query": "roadmap"}
    assert route.calls.last.request.headers["Authorization"] == "Bearer user-42-token"


@pytest.mark.asyncio
@respx.mock
async def test_invoke_parses_session_key(notion, token_store):
    token_store.set_token("777", "notion", "tg-token")
    route = respx.post("http://notion.test/mcp").mock(
        return_value=httpx.Response(200, json={"result": {"content": "ok"}})
    )
    bridged = create_bridged_tool(notion, ToolDefinition("search", None, SCHEMA), store=token_store)

    await to_langchain_tool(bridged).ainvoke(
        {"query": "x"},
        config={"configurable": {"session_key": "agent:main:telegram:default:direct:777"}},
    )

    assert route.calls.last.request.headers["Authorization"] == "Bearer tg-token"


@pytest.mark.asyncio
async def test_invoke_refusal_is_returned_as_text(notion, token_store):
    bridged = create_bridged_tool(notion, ToolDefinition("search", None, SCHEMA), store=token_store)

    output = await to_langchain_tool(bridged).ainvoke(
        {"query": "x"}, config={"configurable": {"user_id": "nobody"}}
    )

    assert "authenticate" in output
