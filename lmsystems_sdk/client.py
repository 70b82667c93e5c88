# lmsystems_sdk/client.py
# SPDX-License-Identifier: Apache-2.0

"""
Low-level thread-based client for purchased graphs.

Where `PurchasedGraph` mimics a local graph, `LmsystemsClient` talks to the
deployment's thread/run API directly and yields the raw stream parts
(`event`, `data`) produced by the LangGraph SDK:

    async with LmsystemsClient("github-agent-6", api_key="lmsys-...") as client:
        async for part in client.stream({"messages": [...]}):
            print(part.event, part.data)

Each `stream` call creates a fresh thread. Endpoint resolution happens once,
behind the same `InitializationGate` that `PurchasedGraph` uses.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional, Sequence

from langgraph_sdk import get_client

from lmsystems_sdk.config import get_api_key
from lmsystems_sdk.core.error_context import (
    with_async_error_context,
    with_async_stream_error_context,
)
from lmsystems_sdk.exceptions import ConfigurationError, LmsystemsError, StreamError
from lmsystems_sdk.graph.gate import InitializationGate, InitializationState
from lmsystems_sdk.graph.merging import merge_input, merge_run_config
from lmsystems_sdk.graph.resolver import EndpointInfo, EndpointResolver

logger = logging.getLogger(__name__)

DEFAULT_STREAM_MODES = ("values", "messages", "updates")

ClientFactory = Callable[[EndpointInfo], Any]


def _default_client_factory(endpoint: EndpointInfo) -> Any:
    return get_client(url=endpoint.endpoint_url, api_key=endpoint.endpoint_api_key)


class LmsystemsClient:
    """
    Thread/run client for one purchased graph.

    Parameters
    ----------
    graph_name:
        Marketplace name of the purchased graph.
    api_key:
        Marketplace API key. Defaults to `LMSYSTEMS_API_KEY`.
    base_url:
        Discovery service base URL.
    resolver:
        Object with `async resolve(graph_name, api_key) -> EndpointInfo`.
    client_factory:
        Builds the LangGraph SDK client from the resolved endpoint. Defaults
        to `langgraph_sdk.get_client`.
    """

    def __init__(
        self,
        graph_name: str,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        resolver: Optional[Any] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        if not isinstance(graph_name, str) or not graph_name.strip():
            raise ConfigurationError("graph_name is required")
        resolved_key = get_api_key(api_key)
        if not resolved_key:
            raise ConfigurationError(
                "api_key is required; pass it explicitly or set LMSYSTEMS_API_KEY"
            )

        self.graph_name = graph_name
        self._api_key = resolved_key
        self._resolver = resolver or EndpointResolver(base_url)
        self._client_factory = client_factory or _default_client_factory
        self._gate: InitializationGate[Dict[str, Any]] = InitializationGate(
            self._initialize,
            name=f"LmsystemsClient({graph_name!r}) setup",
        )
        self._closed = False

    @classmethod
    async def create(cls, graph_name: str, api_key: Optional[str] = None, **kwargs: Any) -> "LmsystemsClient":
        """Construct a client and wait for its setup to finish."""
        client = cls(graph_name, api_key, **kwargs)
        await client.setup()
        return client

    async def _initialize(self) -> Dict[str, Any]:
        endpoint = await self._resolver.resolve(self.graph_name, self._api_key)
        try:
            sdk_client = self._client_factory(endpoint)
        except Exception as exc:
            raise ConfigurationError(
                f"could not create a client for graph '{endpoint.graph_name}' "
                f"at {endpoint.endpoint_url!r}: {exc}"
            ) from exc
        return {"endpoint": endpoint, "client": sdk_client}

    @property
    def initialization_state(self) -> InitializationState:
        return self._gate.state

    @property
    def endpoint(self) -> Optional[EndpointInfo]:
        binding = self._gate.value
        return binding["endpoint"] if binding is not None else None

    @with_async_error_context("setup")
    async def setup(self) -> EndpointInfo:
        """Resolve the endpoint (once) and build the SDK client."""
        if self._closed:
            raise ConfigurationError("client is closed")
        return (await self._gate.wait())["endpoint"]

    async def get_graph_info(self) -> EndpointInfo:
        return await self.setup()

    @staticmethod
    def merge_configs(
        stored_configurables: Optional[Mapping[str, Any]],
        user_config: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Overlay a user run config on the graph's stored configurables."""
        return merge_run_config(stored_configurables, None, user_config)

    @with_async_stream_error_context("client_stream")
    async def stream(
        self,
        input: Any,
        config: Optional[Mapping[str, Any]] = None,
        stream_modes: Sequence[str] = DEFAULT_STREAM_MODES,
    ) -> AsyncIterator[Any]:
        """
        Run the graph on a new thread and yield the raw SDK stream parts.

        Raises:
            StreamError: when thread creation or the run stream fails.
        """
        endpoint = await self.setup()
        sdk_client = self._gate.value["client"]  # type: ignore[index]
        payload = merge_input(None, input)
        run_config = self.merge_configs(endpoint.default_config, config)

        thread_id: Optional[str] = None
        parts = None
        try:
            thread = await sdk_client.threads.create()
            thread_id = thread["thread_id"]
            logger.debug("Streaming %r on thread %s", self.graph_name, thread_id)
            parts = sdk_client.runs.stream(
                thread_id,
                endpoint.assistant,
                input=payload,
                config=run_config,
                stream_mode=list(stream_modes),
            )
            async for part in parts:
                yield part
        except LmsystemsError:
            raise
        except Exception as exc:
            raise StreamError(str(exc), thread_id) from exc
        finally:
            aclose = getattr(parts, "aclose", None)
            if aclose is not None:
                await aclose()

    async def close(self) -> None:
        """Release the SDK client's HTTP resources. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        binding = self._gate.value
        if binding is None:
            return
        aclose = getattr(binding["client"], "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "LmsystemsClient":
        await self.setup()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()


__all__ = [
    "DEFAULT_STREAM_MODES",
    "LmsystemsClient",
]
