# lmsystems_sdk/graph/chunks.py
# SPDX-License-Identifier: Apache-2.0

"""
Stream chunk classification.

Every raw chunk received from a remote stream is classified into exactly one
variant, checked in this order:

    MessageChunk       two-element list/tuple  [message, metadata]
    StateUpdateChunk   two-element list/tuple  [node_ids, state]
    FunctionCallChunk  mapping with "function_call"
    MessagesChunk      mapping with a "messages" list/tuple
    MessageChunk       LangChain message object
    TextChunk          str
    ObjectChunk        anything else

A pair whose first element is a message (a LangChain message or a message
dict, as emitted in "messages" stream mode) yields that message; its metadata
is dropped. Classification validates the shapes it commits to (any other
pair must hold node ids and a state mapping, a function call must carry a
name) and raises `MessageValidationError` otherwise. Each variant knows how
to turn itself into the items a stream consumer sees (`outputs()`), so one
raw chunk yields zero or more messages / state updates in a fixed order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, List, Tuple, Union

from langchain_core.messages import AIMessage, BaseMessage, FunctionMessage

from lmsystems_sdk.exceptions import MessageValidationError
from lmsystems_sdk.graph.messages import (
    StateUpdate,
    canonical_content,
    to_message,
    to_messages,
)

StreamItem = Union[BaseMessage, StateUpdate]


@dataclass(frozen=True)
class StateUpdateChunk:
    update: StateUpdate

    def outputs(self) -> List[StreamItem]:
        return [self.update]


@dataclass(frozen=True)
class FunctionCallChunk:
    name: str
    arguments: str

    def outputs(self) -> List[StreamItem]:
        return [FunctionMessage(name=self.name, content=self.arguments)]


@dataclass(frozen=True)
class MessagesChunk:
    entries: Tuple[Any, ...]

    def outputs(self) -> List[StreamItem]:
        return list(to_messages(self.entries))


@dataclass(frozen=True)
class MessageChunk:
    message: BaseMessage

    def outputs(self) -> List[StreamItem]:
        return [to_message(self.message)]


@dataclass(frozen=True)
class TextChunk:
    text: str

    def outputs(self) -> List[StreamItem]:
        return [AIMessage(content=self.text)]


@dataclass(frozen=True)
class ObjectChunk:
    value: Any

    def outputs(self) -> List[StreamItem]:
        return [AIMessage(content=canonical_content(self.value))]


Chunk = Union[
    StateUpdateChunk,
    FunctionCallChunk,
    MessagesChunk,
    MessageChunk,
    TextChunk,
    ObjectChunk,
]


def _node_ids(raw: Any, chunk: Any) -> Tuple[str, ...]:
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, Sequence) and all(isinstance(n, str) for n in raw):
        return tuple(raw)
    raise MessageValidationError(
        "state update node ids must be a string or a sequence of strings",
        details={"node_ids": repr(raw), "chunk": repr(chunk)[:200]},
    )


def _state_update(chunk: Sequence[Any]) -> StateUpdateChunk:
    raw_ids, state = chunk
    node_ids = _node_ids(raw_ids, chunk)
    if not isinstance(state, Mapping):
        raise MessageValidationError(
            "state update payload must be a mapping",
            details={"node_ids": list(node_ids), "state_type": type(state).__name__},
        )
    return StateUpdateChunk(StateUpdate(node_ids=node_ids, state=state))


def _function_call(call: Any) -> FunctionCallChunk:
    if not isinstance(call, Mapping):
        raise MessageValidationError(
            "function_call must be a mapping",
            details={"function_call_type": type(call).__name__},
        )
    name = call.get("name")
    if not isinstance(name, str) or not name:
        raise MessageValidationError(
            "function_call requires a non-empty 'name'",
            details={"function_call": {k: repr(v)[:100] for k, v in call.items()}},
        )
    arguments = call.get("arguments")
    return FunctionCallChunk(
        name=name,
        arguments="" if arguments is None else canonical_content(arguments),
    )


def classify_chunk(chunk: Any) -> Chunk:
    """
    Classify one raw stream chunk. Total: every value maps to a variant.

    Raises:
        MessageValidationError: when a chunk matches a shape but its fields
            are invalid.
    """
    if isinstance(chunk, (list, tuple)) and len(chunk) == 2:
        head = chunk[0]
        if isinstance(head, (Mapping, BaseMessage)):
            # "messages" stream mode: (message, metadata)
            return MessageChunk(to_message(head))
        return _state_update(chunk)

    if isinstance(chunk, Mapping):
        if "function_call" in chunk:
            return _function_call(chunk["function_call"])
        entries = chunk.get("messages")
        if isinstance(entries, (list, tuple)):
            return MessagesChunk(tuple(entries))
        return ObjectChunk(chunk)

    if isinstance(chunk, BaseMessage):
        return MessageChunk(chunk)

    if isinstance(chunk, str):
        return TextChunk(chunk)

    return ObjectChunk(chunk)


def normalize_chunk(chunk: Any) -> List[StreamItem]:
    """Classify a raw chunk and return the items it contributes, in order."""
    return classify_chunk(chunk).outputs()


__all__ = [
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
