# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the LMSystems SDK tests.

No test talks to the network: discovery goes through `CountingResolver` (or
`httpx.MockTransport` in the resolver tests) and remote graphs are
`MockRemoteGraph` instances.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

import pytest

from lmsystems_sdk.config import API_KEY_ENV, BASE_URL_ENV, TIMEOUT_ENV
from lmsystems_sdk.graph.resolver import EndpointInfo
from tests.mock.mock_remote_graph import MockRemoteGraph


class CountingResolver:
    """Stand-in for EndpointResolver that counts discovery calls."""

    def __init__(
        self,
        endpoint: Optional[EndpointInfo] = None,
        *,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
    ) -> None:
        self.endpoint = endpoint
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []

    async def resolve(self, graph_name: str, api_key: str) -> EndpointInfo:
        self.calls.append((graph_name, api_key))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        assert self.endpoint is not None
        return self.endpoint


class CountingOperation:
    """Initialization operation that counts its runs."""

    def __init__(
        self,
        *,
        value: Any = "bound",
        error: Optional[BaseException] = None,
        delay: float = 0.01,
        first_delay: Optional[float] = None,
    ) -> None:
        self.value = value
        self.error = error
        self.delay = delay
        self.first_delay = first_delay
        self.runs = 0

    async def __call__(self) -> Any:
        self.runs += 1
        if self.runs == 1 and self.first_delay is not None:
            await asyncio.sleep(self.first_delay)
        else:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.value


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host LMSYSTEMS_* variables out of every test."""
    for name in (API_KEY_ENV, BASE_URL_ENV, TIMEOUT_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def endpoint_info() -> EndpointInfo:
    return EndpointInfo(
        graph_name="github-agent-6",
        endpoint_url="https://deploy.example.com",
        endpoint_api_key="lgraph-secret",
        default_config={"model": "gpt-4o", "temperature": 0},
        assistant_id="asst-123",
    )


@pytest.fixture
def resolver(endpoint_info: EndpointInfo) -> CountingResolver:
    return CountingResolver(endpoint_info, delay=0.01)


@pytest.fixture
def remote() -> MockRemoteGraph:
    return MockRemoteGraph()


@pytest.fixture
def remote_factory(remote: MockRemoteGraph) -> Callable[[EndpointInfo], Any]:
    built: List[EndpointInfo] = []

    def factory(endpoint: EndpointInfo) -> MockRemoteGraph:
        built.append(endpoint)
        return remote

    factory.built = built  # type: ignore[attr-defined]
    return factory
