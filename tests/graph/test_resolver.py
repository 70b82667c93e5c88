# SPDX-License-Identifier: Apache-2.0
"""
Endpoint resolution against a mocked discovery service.

Asserts:
  • one POST to /api/get_graph_info with Bearer auth and the graph name
  • 401 → AuthenticationError, 403/404 → GraphError, other → APIError
  • transport failures and malformed bodies → APIError
  • optional fields default sensibly
"""

import json

import httpx
import pytest

from lmsystems_sdk.exceptions import APIError, AuthenticationError, GraphError
from lmsystems_sdk.graph.resolver import (
    EndpointInfo,
    EndpointResolver,
    parse_graph_info,
    resolve_endpoint,
)

pytestmark = pytest.mark.asyncio

BASE_URL = "https://discovery.example.com"

GRAPH_INFO = {
    "graph_name": "github-agent-6",
    "graph_url": "https://deploy.example.com",
    "lgraph_api_key": "lgraph-secret",
    "configurables": {"model": "gpt-4o"},
    "assistant_id": "asst-123",
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _status(code: int, body: str = "nope"):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code, text=body)

    return handler


async def test_resolve_posts_graph_name_with_bearer_auth():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=GRAPH_INFO)

    async with _client(handler) as client:
        resolver = EndpointResolver(BASE_URL + "/", client=client)
        info = await resolver.resolve("github-agent-6", "lmsys-key")

    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/api/get_graph_info"
    assert request.headers["Authorization"] == "Bearer lmsys-key"
    assert json.loads(request.content) == {"graph_name": "github-agent-6"}

    assert info == EndpointInfo(
        graph_name="github-agent-6",
        endpoint_url="https://deploy.example.com",
        endpoint_api_key="lgraph-secret",
        default_config={"model": "gpt-4o"},
        assistant_id="asst-123",
    )
    assert info.assistant == "asst-123"


async def test_endpoint_key_is_not_in_repr():
    info = parse_graph_info(GRAPH_INFO, "github-agent-6")
    assert "lgraph-secret" not in repr(info)


async def test_unauthorized_maps_to_authentication_error():
    async with _client(_status(401)) as client:
        with pytest.raises(AuthenticationError) as exc_info:
            await resolve_endpoint("g", "bad", BASE_URL, client=client)
    assert exc_info.value.code == "AUTHENTICATION_ERROR"


async def test_forbidden_maps_to_graph_error_not_purchased():
    async with _client(_status(403)) as client:
        with pytest.raises(GraphError) as exc_info:
            await resolve_endpoint("g", "key", BASE_URL, client=client)

    err = exc_info.value
    assert not isinstance(err, (AuthenticationError, APIError))
    assert err.reason == "not_purchased"
    assert err.code == "GRAPH_NOT_PURCHASED"
    assert err.graph_name == "g"


async def test_not_found_maps_to_graph_error_not_found():
    async with _client(_status(404)) as client:
        with pytest.raises(GraphError) as exc_info:
            await resolve_endpoint("missing", "key", BASE_URL, client=client)
    assert exc_info.value.reason == "not_found"
    assert exc_info.value.code == "GRAPH_NOT_FOUND"


@pytest.mark.parametrize("status", [400, 429, 500, 503])
async def test_other_statuses_map_to_api_error_with_status(status):
    async with _client(_status(status, "backend exploded")) as client:
        with pytest.raises(APIError) as exc_info:
            await resolve_endpoint("g", "key", BASE_URL, client=client)
    assert exc_info.value.status_code == status
    assert exc_info.value.details["status_code"] == status
    assert "backend exploded" in str(exc_info.value)


async def test_transport_failure_maps_to_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(APIError) as exc_info:
            await resolve_endpoint("g", "key", BASE_URL, client=client)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
    assert exc_info.value.status_code is None


async def test_non_json_body_maps_to_api_error():
    async with _client(_status(200, "<html>oops</html>")) as client:
        with pytest.raises(APIError) as exc_info:
            await resolve_endpoint("g", "key", BASE_URL, client=client)
    assert "not JSON" in str(exc_info.value)


@pytest.mark.parametrize(
    "payload",
    [
        {"lgraph_api_key": "k"},
        {"graph_url": "", "lgraph_api_key": "k"},
        {"graph_url": "https://x", "lgraph_api_key": None},
        {"graph_url": "https://x", "lgraph_api_key": "k", "configurables": ["a"]},
        ["not", "an", "object"],
    ],
)
async def test_malformed_payloads_map_to_api_error(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async with _client(handler) as client:
        with pytest.raises(APIError, match="Malformed graph info response"):
            await resolve_endpoint("g", "key", BASE_URL, client=client)


async def test_optional_fields_default():
    info = parse_graph_info(
        {"graph_url": "https://x", "lgraph_api_key": "k"},
        "requested-name",
    )
    assert info.graph_name == "requested-name"
    assert info.default_config == {}
    assert info.assistant_id is None
    assert info.assistant == "requested-name"


async def test_injected_client_is_left_open():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=GRAPH_INFO)

    client = _client(handler)
    try:
        await EndpointResolver(BASE_URL, client=client).resolve("g", "key")
        assert not client.is_closed
    finally:
        await client.aclose()


async def test_base_url_comes_from_environment(monkeypatch):
    monkeypatch.setenv("LMSYSTEMS_BASE_URL", "https://env.example.com/")
    resolver = EndpointResolver()
    assert resolver.graph_info_url == "https://env.example.com/api/get_graph_info"
