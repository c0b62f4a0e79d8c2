import httpx
import pytest
import respx

from mcp_bridge.billing import BillingClient

API = "http://billing.test"
PRO = {
    "is_active": True,
    "status": "active",
    "tier": "pro",
    "email": "user@example.com",
    "gcal_gmail_status": "active",
}


@pytest.fixture
def client():
    return BillingClient(f"{API}/", "key-123")


@pytest.mark.asyncio
@respx.mock
async def test_status_lookup(client):
    route = respx.get(f"{API}/status/42").mock(return_value=httpx.Response(200, json=PRO))

    lookup = await client.get_status("42")

    assert lookup.reachable
    assert lookup.status.tier == "pro"
    assert route.calls.last.request.headers["X-API-Key"] == "key-123"


@pytest.mark.asyncio
@respx.mock
async def test_status_is_cached(client):
    route = respx.get(f"{API}/status/42").mock(return_value=httpx.Response(200, json=PRO))

    await client.get_status("42")
    await client.get_status("42")

    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_invalidate_forces_refetch(client):
    route = respx.get(f"{API}/status/42").mock(return_value=httpx.Response(200, json=PRO))

    await client.get_status("42")
    client.invalidate("42")
    await client.get_status("42")
    client.clear_cache()
    await client.get_status("42")

    assert route.call_count == 3


@pytest.mark.asyncio
@respx.mock
async def test_unknown_user(client):
    respx.get(f"{API}/status/42").mock(return_value=httpx.Response(404))

    lookup = await client.get_status("42")

    assert lookup.reachable
    assert lookup.status is None


@pytest.mark.asyncio
@respx.mock
async def test_server_error_is_unreachable(client):
    respx.get(f"{API}/status/42").mock(return_value=httpx.Response(503))

    lookup = await client.get_status("42")

    assert not lookup.reachable


@pytest.mark.asyncio
@respx.mock
async def test_network_error_is_unreachable(client):
    respx.get(f"{API}/status/42").mock(side_effect=httpx.ConnectError("refused"))

    lookup = await client.get_status("42")

    assert not lookup.reachable


@pytest.mark.asyncio
@respx.mock
async def test_invalid_payload_is_unreachable(client):
    respx.get(f"{API}/status/42").mock(return_value=httpx.Response(200, json={"tier": "pro"}))

    lookup = await client.get_status("42")

    assert not lookup.reachable
