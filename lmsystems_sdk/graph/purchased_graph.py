# lmsystems_sdk/graph/purchased_graph.py
# SPDX-License-Identifier: Apache-2.0

"""
PurchasedGraph: a remote, access-controlled LangGraph deployment that behaves
like a local graph.

    graph = PurchasedGraph("github-agent-6", api_key="lmsys-...")
    result = await graph.ainvoke({"messages": [{"role": "user", "content": "hi"}]})
    async for item in graph.astream({"messages": [...]}):
        ...

    builder = StateGraph(State)
    builder.add_node("purchased", graph)

Lifecycle
---------
Construction records the graph identity and starts endpoint resolution in the
background when an event loop is running (otherwise the first call starts it).
Every public operation waits on the same one-shot `InitializationGate`:

- exactly one discovery call per instance, however many calls race for it;
- a failed resolution is terminal and surfaces, with the same error kind, on
  every pending and later call;
- no call ever reaches the remote endpoint without a resolved URL.

Calls
-----
`ainvoke` / `invoke` merge the input over `default_state_values`, merge the
run config over the endpoint's default configurables, delegate to the remote
endpoint, and normalize the answer to `{"messages": [...]}`.

`astream` / `stream` forward every upstream chunk, in order, as normalized
messages or `StateUpdate`s. The upstream stream is closed on completion, on
error, and when the consumer stops early.

Sync entry points wait on the gate through `AsyncBridge.run_async` and then use
the remote endpoint's own sync API, so no async client crosses event loops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
)

from langchain_core.messages import BaseMessage
from langchain_core.runnables import Runnable, RunnableConfig
from langgraph.errors import GraphBubbleUp
from langgraph.pregel.remote import RemoteGraph

from lmsystems_sdk.config import get_api_key
from lmsystems_sdk.core.error_context import (
    with_async_error_context,
    with_async_stream_error_context,
    with_error_context,
    with_stream_error_context,
)
from lmsystems_sdk.exceptions import (
    APIError,
    ConfigurationError,
    LmsystemsError,
    StreamError,
)
from lmsystems_sdk.graph.chunks import StreamItem, normalize_chunk
from lmsystems_sdk.graph.gate import InitializationGate, InitializationState
from lmsystems_sdk.graph.merging import merge_input, merge_run_config
from lmsystems_sdk.graph.messages import normalize_response
from lmsystems_sdk.graph.resolver import EndpointInfo, EndpointResolver

logger = logging.getLogger(__name__)

# LangGraph control-flow signals (interrupts, parent commands) must reach the
# parent graph untouched.
_PASSTHROUGH_ERRORS = (LmsystemsError, GraphBubbleUp)


class RemoteEndpoint(Protocol):
    """What PurchasedGraph needs from the remote graph client."""

    async def ainvoke(self, input: Any, config: Optional[RunnableConfig] = None, **kwargs: Any) -> Any:
        ...

    def invoke(self, input: Any, config: Optional[RunnableConfig] = None, **kwargs: Any) -> Any:
        ...

    def astream(self, input: Any, config: Optional[RunnableConfig] = None, **kwargs: Any) -> AsyncIterator[Any]:
        ...

    def stream(self, input: Any, config: Optional[RunnableConfig] = None, **kwargs: Any) -> Iterator[Any]:
        ...


class EndpointSource(Protocol):
    async def resolve(self, graph_name: str, api_key: str) -> EndpointInfo:
        ...


RemoteFactory = Callable[[EndpointInfo], RemoteEndpoint]


def _default_remote_factory(endpoint: EndpointInfo) -> RemoteEndpoint:
    return RemoteGraph(
        endpoint.assistant,
        url=endpoint.endpoint_url,
        api_key=endpoint.endpoint_api_key,
        name=endpoint.graph_name,
    )


@dataclass(frozen=True)
class _RemoteBinding:
    endpoint: EndpointInfo
    remote: RemoteEndpoint


class PurchasedGraph(Runnable[Dict[str, Any], Dict[str, Any]]):
    """
    Client-side proxy for a purchased graph.

    Parameters
    ----------
    graph_name:
        Marketplace name of the purchased graph.
    api_key:
        Marketplace API key. Defaults to `LMSYSTEMS_API_KEY`.
    config:
        Base run config (`configurable`, `tags`, `recursion_limit`) applied to
        every call underneath the per-call config.
    default_state_values:
        State values merged under every call's input.
    base_url:
        Discovery service base URL. Defaults to `LMSYSTEMS_BASE_URL` or the
        production endpoint.
    resolver:
        Object with `async resolve(graph_name, api_key) -> EndpointInfo`.
        Defaults to an `EndpointResolver` for `base_url`.
    remote_factory:
        Builds the remote endpoint client from the resolved `EndpointInfo`.
        Defaults to `langgraph.pregel.remote.RemoteGraph`.
    name:
        Node name when added to a `StateGraph`. Defaults to `graph_name`.
    """

    def __init__(
        self,
        graph_name: str,
        api_key: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
        default_state_values: Optional[Mapping[str, Any]] = None,
        base_url: Optional[str] = None,
        *,
        resolver: Optional[EndpointSource] = None,
        remote_factory: Optional[RemoteFactory] = None,
        name: Optional[str] = None,
    ) -> None:
        if not isinstance(graph_name, str) or not graph_name.strip():
            raise ConfigurationError("graph_name is required")

        resolved_key = get_api_key(api_key)
        if not resolved_key:
            raise ConfigurationError(
                "api_key is required; pass it explicitly or set LMSYSTEMS_API_KEY"
            )
        if config is not None and not isinstance(config, Mapping):
            raise ConfigurationError(
                f"config must be a mapping, got {type(config).__name__}"
            )
        if default_state_values is not None and not isinstance(default_state_values, Mapping):
            raise ConfigurationError(
                "default_state_values must be a mapping, "
                f"got {type(default_state_values).__name__}"
            )

        self.graph_name = graph_name
        self.name = name or graph_name
        self._api_key = resolved_key
        self.config: Dict[str, Any] = dict(config or {})
        self.default_state_values: Dict[str, Any] = dict(default_state_values or {})
        self._resolver: EndpointSource = resolver or EndpointResolver(base_url)
        self._remote_factory: RemoteFactory = remote_factory or _default_remote_factory

        self._gate: InitializationGate[_RemoteBinding] = InitializationGate(
            self._initialize,
            name=f"PurchasedGraph({graph_name!r}) initialization",
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(graph_name={self.graph_name!r}, "
            f"state={self._gate.state.value})"
        )

    # ------------------------------------------------------------------ #
    # Initialization
    # ------------------------------------------------------------------ #

    async def _initialize(self) -> _RemoteBinding:
        endpoint = await self._resolver.resolve(self.graph_name, self._api_key)
        remote = self._bind(endpoint)
        logger.debug("Bound graph %r to assistant %r", self.graph_name, endpoint.assistant)
        return _RemoteBinding(endpoint=endpoint, remote=remote)

    def _bind(self, endpoint: EndpointInfo) -> RemoteEndpoint:
        try:
            return self._remote_factory(endpoint)
        except LmsystemsError:
            raise
        except Exception as exc:
            raise ConfigurationError(
                f"could not create a client for graph '{endpoint.graph_name}' "
                f"at {endpoint.endpoint_url!r}: {exc}"
            ) from exc

    def _check(self, binding: Optional[_RemoteBinding]) -> _RemoteBinding:
        if binding is None or not binding.endpoint.endpoint_url:
            raise ConfigurationError(
                f"graph '{self.graph_name}' has no resolved endpoint URL"
            )
        return binding

    async def _ready(self) -> _RemoteBinding:
        return self._check(await self._gate.wait())

    def _ready_blocking(self) -> _RemoteBinding:
        return self._check(self._gate.wait_blocking())

    @with_async_error_context("wait_for_initialization")
    async def wait_for_initialization(self) -> EndpointInfo:
        """Wait until the endpoint is resolved; raise the resolution error if it failed."""
        return (await self._ready()).endpoint

    @property
    def initialization_state(self) -> InitializationState:
        return self._gate.state

    @property
    def endpoint(self) -> Optional[EndpointInfo]:
        """Resolved endpoint, or None until initialization succeeded."""
        binding = self._gate.value
        return binding.endpoint if binding is not None else None

    # ------------------------------------------------------------------ #
    # Merging
    # ------------------------------------------------------------------ #

    def _prepare(
        self,
        binding: _RemoteBinding,
        input: Any,
        config: Optional[Mapping[str, Any]],
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        merged_input = merge_input(self.default_state_values, input)
        merged_config = merge_run_config(
            binding.endpoint.default_config,
            self.config,
            config,
        )
        return merged_input, merged_config

    # ------------------------------------------------------------------ #
    # Invoke (sync + async)
    # ------------------------------------------------------------------ #

    @with_async_error_context("invoke_async")
    async def ainvoke(
        self,
        input: Any,
        config: Optional[RunnableConfig] = None,
        **kwargs: Any,
    ) -> Dict[str, List[BaseMessage]]:
        """Run the purchased graph once and return `{"messages": [...]}`."""
        binding = await self._ready()
        merged_input, merged_config = self._prepare(binding, input, config)

        try:
            response = await binding.remote.ainvoke(merged_input, config=merged_config, **kwargs)
        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as exc:
            raise APIError(
                f"Remote graph '{self.graph_name}' failed: {exc}"
            ) from exc

        return normalize_response(response)

    @with_error_context("invoke_sync")
    def invoke(
        self,
        input: Any,
        config: Optional[RunnableConfig] = None,
        **kwargs: Any,
    ) -> Dict[str, List[BaseMessage]]:
        """Sync counterpart of `ainvoke`; must not be called from the event loop resolving the graph."""
        binding = self._ready_blocking()
        merged_input, merged_config = self._prepare(binding, input, config)

        try:
            response = binding.remote.invoke(merged_input, config=merged_config, **kwargs)
        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as exc:
            raise APIError(
                f"Remote graph '{self.graph_name}' failed: {exc}"
            ) from exc

        return normalize_response(response)

    # ------------------------------------------------------------------ #
    # Stream (sync + async)
    # ------------------------------------------------------------------ #

    @with_async_stream_error_context("stream_async")
    async def astream(
        self,
        input: Any,
        config: Optional[RunnableConfig] = None,
        **kwargs: Any,
    ) -> AsyncIterator[StreamItem]:
        """
        Stream the purchased graph, yielding normalized messages and
        `StateUpdate`s in upstream order.

        Extra keyword arguments (`stream_mode`, `subgraphs`, ...) are passed to
        the remote endpoint unchanged.
        """
        binding = await self._ready()
        merged_input, merged_config = self._prepare(binding, input, config)
        thread_id = merged_config["configurable"].get("thread_id")

        upstream = binding.remote.astream(merged_input, config=merged_config, **kwargs)
        try:
            async for chunk in upstream:
                for item in normalize_chunk(chunk):
                    yield item
        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as exc:
            raise StreamError(str(exc), thread_id) from exc
        finally:
            aclose = getattr(upstream, "aclose", None)
            if aclose is not None:
                await aclose()

    @with_stream_error_context("stream_sync")
    def stream(
        self,
        input: Any,
        config: Optional[RunnableConfig] = None,
        **kwargs: Any,
    ) -> Iterator[StreamItem]:
        """Sync counterpart of `astream`."""
        binding = self._ready_blocking()
        merged_input, merged_config = self._prepare(binding, input, config)
        thread_id = merged_config["configurable"].get("thread_id")

        upstream = binding.remote.stream(merged_input, config=merged_config, **kwargs)
        try:
            for chunk in upstream:
                yield from normalize_chunk(chunk)
        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as exc:
            raise StreamError(str(exc), thread_id) from exc
        finally:
            close = getattr(upstream, "close", None)
            if close is not None:
                close()


__all__ = [
    "PurchasedGraph",
    "RemoteEndpoint",
]
