# lmsystems_sdk/graph/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Purchased graphs - Public API

Endpoint resolution, the initialization gate, message/stream normalization
and the `PurchasedGraph` proxy, re-exported for clean imports.
"""

from lmsystems_sdk.graph.chunks import (
    Chunk,
    FunctionCallChunk,
    MessageChunk,
    MessagesChunk,
    ObjectChunk,
    StateUpdateChunk,
    StreamItem,
    TextChunk,
    classify_chunk,
    normalize_chunk,
)
from lmsystems_sdk.graph.gate import (
    InitializationGate,
    InitializationState,
)
from lmsystems_sdk.graph.merging import (
    merge_input,
    merge_run_config,
)
from lmsystems_sdk.graph.messages import (
    ORIGINAL_TYPE_KEY,
    StateUpdate,
    canonical_content,
    normalize_response,
    to_message,
    to_messages,
)
from lmsystems_sdk.graph.purchased_graph import (
    PurchasedGraph,
    RemoteEndpoint,
)
from lmsystems_sdk.graph.resolver import (
    EndpointInfo,
    EndpointResolver,
    parse_graph_info,
    resolve_endpoint,
)

__all__ = [
    # Proxy
    "PurchasedGraph",
    "RemoteEndpoint",

    # Resolution
    "EndpointInfo",
    "EndpointResolver",
    "parse_graph_info",
    "resolve_endpoint",

    # Initialization
    "InitializationGate",
    "InitializationState",

    # Merging
    "merge_input",
    "merge_run_config",

    # Messages
    "ORIGINAL_TYPE_KEY",
    "StateUpdate",
    "canonical_content",
    "normalize_response",
    "to_message",
    "to_messages",

    # Stream chunks
    "Chunk",
    "FunctionCallChunk",
    "MessageChunk",
    "MessagesChunk",
    "ObjectChunk",
    "StateUpdateChunk",
    "StreamItem",
    "TextChunk",
    "classify_chunk",
    "normalize_chunk",
]
