# lmsystems_sdk/graph/messages.py
# SPDX-License-Identifier: Apache-2.0

"""
Message model and normalization for purchased-graph payloads.

Remote deployments return messages in several shapes: LangChain message
objects, serialized dicts keyed by `type` ("human", "ai", "function", ...),
OpenAI-style dicts keyed by `role`, bare strings, or arbitrary JSON values.
Everything here reduces those to one of three LangChain message classes:

- HumanMessage
- AIMessage
- FunctionMessage (the only one carrying `name`)

`content` is always a string. Non-string payloads are serialized with
`canonical_content` so the same value always produces the same text. Any other
attribute of an incoming dict is kept in `additional_kwargs`.

Dispatch order for one entry
----------------------------
1. Human/AI/Function message objects pass through unchanged; any other
   LangChain message is re-dispatched by its `type`.
2. `str` → AIMessage.
3. Mapping, discriminated by `type` (falling back to `role`):
     function        → FunctionMessage (requires `name`)
     human / user    → HumanMessage
     ai / assistant  → AIMessage
     anything else   → AIMessage, original discriminator kept under
                       additional_kwargs["lmsystems_original_type"]
   Streaming chunk types ("AIMessageChunk", "HumanMessageChunk", ...)
   dispatch like their base type.
4. None → MessageCoercionError; any other value → AIMessage(canonical).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    FunctionMessage,
    HumanMessage,
)

from lmsystems_sdk.exceptions import MessageCoercionError, MessageValidationError

#: additional_kwargs key recording a discriminator we did not recognize.
ORIGINAL_TYPE_KEY = "lmsystems_original_type"

_HUMAN_TYPES = frozenset({"human", "user"})
_AI_TYPES = frozenset({"ai", "assistant"})
_FUNCTION_TYPES = frozenset({"function"})
# Streaming token types ("AIMessageChunk") dispatch like their base type.
_CHUNK_SUFFIX = "messagechunk"

# Keys consumed by dispatch; everything else lands in additional_kwargs.
_RESERVED_KEYS = frozenset({"type", "role", "content", "name", "id", "additional_kwargs"})


@dataclass(frozen=True)
class StateUpdate:
    """
    Graph state emitted by one or more nodes during a stream.

    Attributes:
        node_ids: Identifiers of the emitting node(s), in upstream order.
        state: State payload as reported by the remote graph.
    """

    node_ids: Tuple[str, ...]
    state: Mapping[str, Any] = field(default_factory=dict)


def _model_dump_default(value: Any) -> Any:
    dump = getattr(value, "model_dump", None)
    if callable(dump):
        return dump()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonical_content(value: Any) -> str:
    """
    Deterministic textual form of a payload.

    Strings are returned unchanged. Anything else is serialized as compact
    JSON (insertion order, non-ASCII kept); objects exposing `model_dump()`
    are dumped first.

    Raises:
        MessageCoercionError: when the value cannot be serialized.
    """
    if isinstance(value, str):
        return value
    try:
        return json.dumps(
            value,
            separators=(",", ":"),
            ensure_ascii=False,
            default=_model_dump_default,
        )
    except (TypeError, ValueError) as exc:
        raise MessageCoercionError(
            f"cannot serialize {type(value).__name__} payload: {exc}",
            details={"type": type(value).__name__, "repr": repr(value)[:200]},
        ) from exc


def _extras(entry: Mapping[str, Any]) -> Dict[str, Any]:
    extras: Dict[str, Any] = {}
    nested = entry.get("additional_kwargs")
    if isinstance(nested, Mapping):
        extras.update(nested)
    for key, val in entry.items():
        if key not in _RESERVED_KEYS:
            extras[key] = val
    return extras


def _build(
    kind: Optional[str],
    content: Any,
    *,
    name: Any = None,
    msg_id: Any = None,
    extras: Optional[Dict[str, Any]] = None,
    payload: Any = None,
) -> BaseMessage:
    text = "" if content is None else canonical_content(content)
    kwargs: Dict[str, Any] = dict(extras or {})
    ident = msg_id if isinstance(msg_id, str) else None
    discriminator = kind.lower() if isinstance(kind, str) else None
    if discriminator and discriminator.endswith(_CHUNK_SUFFIX) and discriminator != _CHUNK_SUFFIX:
        discriminator = discriminator[: -len(_CHUNK_SUFFIX)]

    if discriminator in _FUNCTION_TYPES:
        if not isinstance(name, str) or not name:
            raise MessageValidationError(
                "function message requires a non-empty 'name'",
                details=payload,
            )
        return FunctionMessage(content=text, name=name, additional_kwargs=kwargs, id=ident)

    if name is not None:
        kwargs.setdefault("name", name)

    if discriminator in _HUMAN_TYPES:
        return HumanMessage(content=text, additional_kwargs=kwargs, id=ident)

    if discriminator is not None and discriminator not in _AI_TYPES:
        kwargs[ORIGINAL_TYPE_KEY] = kind
    return AIMessage(content=text, additional_kwargs=kwargs, id=ident)


def to_message(entry: Any) -> BaseMessage:
    """
    Normalize one message-like entry.

    Raises:
        MessageCoercionError: for None or unserializable content.
        MessageValidationError: for a function message without a name.
    """
    if isinstance(entry, (HumanMessage, AIMessage, FunctionMessage)):
        return entry

    if isinstance(entry, BaseMessage):
        return _build(
            entry.type,
            entry.content,
            name=getattr(entry, "name", None),
            msg_id=entry.id,
            extras=dict(entry.additional_kwargs),
            payload={"type": entry.type, "name": getattr(entry, "name", None)},
        )

    if isinstance(entry, str):
        return AIMessage(content=entry)

    if isinstance(entry, Mapping):
        kind = entry.get("type")
        if kind is None:
            kind = entry.get("role")
        return _build(
            kind,
            entry.get("content"),
            name=entry.get("name"),
            msg_id=entry.get("id"),
            extras=_extras(entry),
            payload=dict(entry),
        )

    if entry is None:
        raise MessageCoercionError("cannot convert None to a message")

    return AIMessage(content=canonical_content(entry))


def to_messages(entries: Sequence[Any]) -> List[BaseMessage]:
    """Normalize a sequence of entries, preserving order."""
    return [to_message(entry) for entry in entries]


def normalize_response(response: Any) -> Dict[str, List[BaseMessage]]:
    """
    Reduce an `invoke` result from the remote graph to `{"messages": [...]}`.

    - mapping with a `messages` list/tuple → one dispatched message per entry
    - bare list/tuple → one AIMessage per element
    - None → no messages
    - anything else → a single AIMessage wrapping the canonical content
    """
    if response is None:
        return {"messages": []}

    if isinstance(response, Mapping):
        entries = response.get("messages")
        if isinstance(entries, (list, tuple)):
            return {"messages": to_messages(entries)}
        return {"messages": [AIMessage(content=canonical_content(response))]}

    if isinstance(response, (list, tuple)):
        return {
            "messages": [AIMessage(content=canonical_content(item)) for item in response]
        }

    return {"messages": [AIMessage(content=canonical_content(response))]}


__all__ = [
    "ORIGINAL_TYPE_KEY",
    "StateUpdate",
    "canonical_content",
    "normalize_response",
    "to_message",
    "to_messages",
]
