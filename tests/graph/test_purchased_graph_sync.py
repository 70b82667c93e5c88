# SPDX-License-Identifier: Apache-2.0
"""
PurchasedGraph construction and sync API.

Asserts:
  • constructor validation and environment fallbacks
  • sync invoke/stream outside an event loop share one discovery call
  • the sync stream closes its upstream on abandonment
  • a graph built inside `loop.run_until_complete` stays usable from sync code
"""

import asyncio
import threading

import pytest
from langchain_core.messages import AIMessage

from lmsystems_sdk.exceptions import ConfigurationError
from lmsystems_sdk.graph.gate import InitializationState
from lmsystems_sdk.graph.purchased_graph import PurchasedGraph
from tests.conftest import CountingResolver


def _graph(resolver, remote_factory, **kwargs) -> PurchasedGraph:
    return PurchasedGraph(
        "github-agent-6",
        kwargs.pop("api_key", "lmsys-key"),
        resolver=resolver,
        remote_factory=remote_factory,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def test_missing_api_key_is_a_configuration_error(resolver, remote_factory):
    with pytest.raises(ConfigurationError):
        PurchasedGraph("g", resolver=resolver, remote_factory=remote_factory)


def test_api_key_falls_back_to_environment(monkeypatch, resolver, remote_factory):
    monkeypatch.setenv("LMSYSTEMS_API_KEY", "env-key")
    graph = PurchasedGraph("g", resolver=resolver, remote_factory=remote_factory)
    graph.invoke({})
    assert resolver.calls == [("g", "env-key")]


def test_empty_graph_name_is_a_configuration_error(resolver):
    with pytest.raises(ConfigurationError):
        PurchasedGraph("  ", "key", resolver=resolver)


def test_non_mapping_defaults_are_rejected(resolver):
    with pytest.raises(ConfigurationError):
        PurchasedGraph("g", "key", config=["x"], resolver=resolver)
    with pytest.raises(ConfigurationError):
        PurchasedGraph("g", "key", default_state_values="x", resolver=resolver)


def test_name_defaults_to_graph_name(resolver):
    assert PurchasedGraph("g", "key", resolver=resolver).name == "g"
    assert PurchasedGraph("g", "key", resolver=resolver, name="node").name == "node"


# ---------------------------------------------------------------------------
# Sync invoke / stream
# ---------------------------------------------------------------------------


def test_sync_invoke_outside_event_loop(resolver, remote_factory, remote):
    remote.response = ["one", "two"]
    graph = _graph(resolver, remote_factory, default_state_values={"b": 2})
    assert graph.initialization_state is InitializationState.PENDING

    first = graph.invoke({"a": 1})
    second = graph.invoke({"a": 3})

    assert first == {"messages": [AIMessage(content="one"), AIMessage(content="two")]}
    assert second == first
    assert len(resolver.calls) == 1
    assert [c[0] for c in remote.calls] == ["invoke", "invoke"]
    assert remote.calls[1][1] == {"a": 3, "b": 2}


def test_sync_stream_closes_upstream_on_abandonment(resolver, remote_factory, remote):
    remote.chunks = ["a", "b", "c"]
    graph = _graph(resolver, remote_factory)

    stream = graph.stream({})
    assert next(stream) == AIMessage(content="a")
    stream.close()

    assert remote.opened == 1
    assert remote.closed == 1

    assert list(graph.stream({})) == [AIMessage(content=c) for c in "abc"]
    assert remote.closed == 2
    assert len(resolver.calls) == 1


def test_sync_stream_in_messages_mode(resolver, remote_factory, remote):
    remote.chunks = [[{"type": "AIMessageChunk", "content": "tok"}, {"langgraph_node": "agent"}]]
    graph = _graph(resolver, remote_factory)

    assert list(graph.stream({}, stream_mode="messages")) == [AIMessage(content="tok")]


# ---------------------------------------------------------------------------
# Graph built on a loop that is no longer running
# ---------------------------------------------------------------------------


def test_invoke_after_building_inside_run_until_complete(endpoint_info, remote_factory, remote):
    remote.response = ["done"]
    resolver = CountingResolver(endpoint_info, delay=0.05)
    loop = asyncio.new_event_loop()
    try:

        async def build():
            return _graph(resolver, remote_factory)

        graph = loop.run_until_complete(build())
        assert graph.initialization_state is InitializationState.RESOLVING

        outcome = {}

        def invoke_from_thread():
            outcome["result"] = graph.invoke({})

        worker = threading.Thread(target=invoke_from_thread, daemon=True)
        worker.start()
        worker.join(3)

        assert not worker.is_alive()
        assert outcome["result"] == {"messages": [AIMessage(content="done")]}
        assert graph.initialization_state is InitializationState.READY
        assert graph.endpoint == endpoint_info
        loop.run_until_complete(asyncio.sleep(0.01))
        assert graph.initialization_state is InitializationState.READY
    finally:
        loop.close()
