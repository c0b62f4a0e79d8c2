from __future__ import annotations

import json

import pytest

from mcp_bridge import transport as transport_module
from mcp_bridge.config import ServerEndpoint
from mcp_bridge.transport import HttpReply, Transport


def make_reply(body: str, session_id: str | None = None, status: int = 200) -> HttpReply:
    headers = {"content-type": "application/json"}
    if session_id:
        headers["mcp-session-id"] = session_id
    return HttpReply(status=status, body=body, headers=headers)


class FakeTransport(Transport):
    """Blocking transport that replays scripted replies and records requests."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.requests: list[dict] = []
        self.checked = 0

    def check(self) -> None:
        self.checked += 1

    def post(self, url, body, headers, timeout):
        self.requests.append({
            "url": url,
            "body": json.loads(body),
            "headers": headers,
            "timeout": timeout,
        })
        if not self.replies:
            raise AssertionError(f"unexpected request: {body}")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def server() -> ServerEndpoint:
    return ServerEndpoint(name="test-mcp", url="http://mcp.test", prefix="test")


@pytest.fixture
def init_reply() -> HttpReply:
    return make_reply('{"jsonrpc":"2.0","id":"init-1","result":{}}')


@pytest.fixture(autouse=True)
def reset_client_probe(monkeypatch):
    monkeypatch.setattr(transport_module, "_client_available", False)
