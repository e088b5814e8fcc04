import json

import httpx
import pytest

from voice_relay.services.tool_client import ToolCallError, ToolClient


def make_client(handler, timeout=1.0):
    return ToolClient(
        {"search_items": "https://tools.test/items"},
        timeout=timeout,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_call_merges_arguments_and_context():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"results": [{"name": "Matzah Box"}]})

    result = await make_client(handler).call(
        "search_items", {"query": "matzah"}, {"call_sid": "CA1", "current_agent": "items"}
    )

    assert result == {"results": [{"name": "Matzah Box"}]}
    assert seen["method"] == "POST"
    assert seen["url"] == "https://tools.test/items"
    assert seen["body"] == {"query": "matzah", "call_sid": "CA1", "current_agent": "items"}


@pytest.mark.asyncio
async def test_empty_body_returns_empty_object():
    def handler(request):
        return httpx.Response(200, content=b"")

    assert await make_client(handler).call("search_items", {}, {}) == {}


@pytest.mark.asyncio
async def test_non_success_status_raises():
    def handler(request):
        return httpx.Response(500, text="internal error")

    with pytest.raises(ToolCallError) as exc_info:
        await make_client(handler).call("search_items", {}, {})

    assert exc_info.value.tool_name == "search_items"
    assert "500" in exc_info.value.message


@pytest.mark.asyncio
async def test_timeout_raises():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ToolCallError) as exc_info:
        await make_client(handler, timeout=15.0).call("search_items", {}, {})

    assert "timed out after 15.0s" in exc_info.value.message


@pytest.mark.asyncio
async def test_network_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ToolCallError):
        await make_client(handler).call("search_items", {}, {})


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [b"not json", b"[1, 2, 3]"])
async def test_invalid_json_raises(content):
    def handler(request):
        return httpx.Response(200, content=content)

    with pytest.raises(ToolCallError):
        await make_client(handler).call("search_items", {}, {})


@pytest.mark.asyncio
async def test_unconfigured_endpoint_raises():
    client = ToolClient({"search_items": None})

    with pytest.raises(ToolCallError) as exc_info:
        await client.call("search_items", {}, {})
    assert exc_info.value.message == "endpoint not configured"


def test_from_settings(settings):
    client = ToolClient.from_settings(settings)

    assert client.endpoints == {
        "determine_route": "https://tools.test/route",
        "search_items": "https://tools.test/items",
        "search_pickup_locations": "https://tools.test/pickup",
    }
    assert client.timeout == 15.0
