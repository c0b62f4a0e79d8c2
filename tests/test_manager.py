import logging

import httpx
import pytest
import respx

from conftest import FakeTransport, make_reply
from mcp_bridge.config import BridgeConfig, ServerEndpoint
from mcp_bridge.manager import BridgeManager
from mcp_bridge.transport import TransportError, TransportUnavailableError

INIT = '{"jsonrpc":"2.0","id":"init-1","result":{}}'


def handshake(tools, session_id=None):
    return [
        make_reply(INIT, session_id=session_id),
        make_reply("{}"),
        make_reply(f'{{"jsonrpc":"2.0","id":1,"result":{{"tools":{tools}}}}}'),
    ]


@pytest.fixture
def config():
    return BridgeConfig(servers=[
        ServerEndpoint(name="Notion", url="http://notion.test", prefix="notion"),
        ServerEndpoint(name="Broken", url="http://broken.test", prefix="broken"),
        ServerEndpoint(name="Gmail", url="http://gmail.test", prefix="gmail"),
    ])


def test_failed_server_does_not_stop_others(config, caplog):
    transport = FakeTransport(
        handshake('[{"name":"search"},{"name":"create_page"}]')
        + [TransportError("Connection refused")]
        + handshake('[{"name":"search"}]')
    )
    manager = BridgeManager(config, transport=transport)

    with caplog.at_level(logging.ERROR):
        results = manager.discover_all()

    assert [t.name for t in results["Notion"]] == ["notion_search", "notion_create_page"]
    assert results["Broken"] == []
    assert [t.name for t in results["Gmail"]] == ["gmail_search"]
    assert manager.list_servers() == {"Notion": True, "Broken": False, "Gmail": True}
    assert "Failed to discover tools from Broken" in caplog.text


def test_unavailable_transport_stops_discovery(config):
    class Unavailable(FakeTransport):
        def check(self):
            self.checked += 1
            raise TransportUnavailableError("httpx client unavailable")

    transport = Unavailable([])
    manager = BridgeManager(config, transport=transport)

    results = manager.discover_all()

    assert results == {"Notion": []}
    assert transport.checked == 1


def test_no_servers_configured(caplog):
    manager = BridgeManager(BridgeConfig())

    with caplog.at_level(logging.WARNING):
        assert manager.discover_all() == {}

    assert "No servers configured" in caplog.text


def test_tools_carry_session_and_store(config):
    store = object()
    transport = FakeTransport(
        handshake('[{"name":"search"}]', session_id="sess-n")
        + handshake("[]")
        + handshake("[]")
    )
    manager = BridgeManager(config, transport=transport, token_store=store)

    manager.discover_all()

    tool = manager.get_tool("notion_search")
    assert tool.session_id == "sess-n"
    assert tool.store is store
    assert manager.get_tool("missing") is None
    assert manager.list_tools("Gmail") == []


@pytest.mark.asyncio
@respx.mock
async def test_call_routes_by_prefixed_name(config):
    transport = FakeTransport(
        handshake("[]") + handshake("[]") + handshake('[{"name":"send"}]', session_id="g-1")
    )
    manager = BridgeManager(config, transport=transport)
    manager.discover_all()
    route = respx.post("http://gmail.test/mcp").mock(
        return_value=httpx.Response(200, json={"result": {"content": "sent"}})
    )

    result = await manager.call("gmail_send", {"to": "a@b.c"}, tool_call_id="call-7")

    assert result["content"][0]["text"] == "sent"
    request = route.calls.last.request
    assert request.headers["Mcp-Session-Id"] == "g-1"
    assert b'"id": "call-7"' in request.content


@pytest.mark.asyncio
async def test_call_unknown_tool(config):
    manager = BridgeManager(config, transport=FakeTransport([]))

    with pytest.raises(ValueError, match="Unknown tool"):
        await manager.call("nope_tool", {})
