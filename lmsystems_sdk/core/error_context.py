# lmsystems_sdk/core/error_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Error context utilities.

Public operations attach debugging metadata (operation name, graph name,
origin) to exceptions as they propagate, without touching the exception's
type, message or traceback. Callers branch on the exception class; the
attached context is for logs and post-mortem debugging.

Typical usage
-------------

    try:
        result = await graph.ainvoke({"messages": [...]})
    except LmsystemsError as exc:
        context = get_context(exc)
        logger.error(
            "purchased graph failed",
            extra={
                "operation": context.get("operation"),
                "graph_name": context.get("graph_name"),
            },
        )

Context is stored under `__lmsystems_context__` (canonical) and
`__<origin>_context__` (origin-specific). Repeated calls merge rather than
overwrite, so several layers can contribute. Attachment failures are logged
and swallowed: they must never mask the original exception.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterator,
    Mapping,
    MutableMapping,
    Optional,
    TypeVar,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CANONICAL_ATTR = "__lmsystems_context__"


def attach_context(
    exc: BaseException,
    framework: str,
    **context: Any,
) -> None:
    """
    Attach debugging context to an exception.

    `framework` names the origin of the context ("lmsystems", "langgraph",
    ...). It is stored under the "framework" key unless an earlier layer
    already set one, and it also names the origin-specific attribute.

    Avoid passing secrets (API keys, tokens) as context values.
    """
    try:
        merged: MutableMapping[str, Any] = {}

        existing = getattr(exc, CANONICAL_ATTR, None)
        if isinstance(existing, Mapping):
            merged.update(existing)

        merged.setdefault("framework", framework)
        merged.update(context)

        setattr(exc, CANONICAL_ATTR, merged)
        setattr(exc, f"__{framework}_context__", merged)
    except Exception as attachment_error:  # noqa: BLE001
        logger.debug(
            "Failed to attach error context to %s: %s",
            type(exc).__name__,
            attachment_error,
            extra={"framework": framework},
        )


def get_context(
    exc: BaseException,
    *,
    framework: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Retrieve attached context from an exception.

    When `framework` is given, its origin-specific attribute is preferred over
    the canonical one. Returns an empty mapping when nothing is attached.
    """
    if framework:
        ctx = getattr(exc, f"__{framework}_context__", None)
        if isinstance(ctx, Mapping):
            return ctx

    ctx = getattr(exc, CANONICAL_ATTR, None)
    if isinstance(ctx, Mapping):
        return ctx
    return {}


def has_context(exc: BaseException) -> bool:
    """True if any context has been attached to `exc`."""
    return len(get_context(exc)) > 0


def with_async_error_context(
    operation: str,
    *,
    framework: str = "lmsystems",
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for async methods: attach `operation` (and the instance's
    `graph_name`, when it has one) to any exception raised by the method.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            try:
                return await func(self, *args, **kwargs)
            except Exception as exc:
                attach_context(
                    exc,
                    framework=framework,
                    operation=operation,
                    graph_name=getattr(self, "graph_name", None),
                )
                raise

        return wrapper

    return decorator


def with_error_context(
    operation: str,
    *,
    framework: str = "lmsystems",
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Sync counterpart of `with_async_error_context`."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            try:
                return func(self, *args, **kwargs)
            except Exception as exc:
                attach_context(
                    exc,
                    framework=framework,
                    operation=operation,
                    graph_name=getattr(self, "graph_name", None),
                )
                raise

        return wrapper

    return decorator


def with_async_stream_error_context(
    operation: str,
    *,
    framework: str = "lmsystems",
) -> Callable[[Callable[..., AsyncIterator[T]]], Callable[..., AsyncIterator[T]]]:
    """
    Async-generator counterpart of `with_async_error_context`.

    Context is attached to errors raised while the stream is being consumed,
    not only to errors raised before the first item.
    """

    def decorator(func: Callable[..., AsyncIterator[T]]) -> Callable[..., AsyncIterator[T]]:
        @wraps(func)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> AsyncIterator[T]:
            stream = func(self, *args, **kwargs)
            try:
                async for item in stream:
                    yield item
            except Exception as exc:
                attach_context(
                    exc,
                    framework=framework,
                    operation=operation,
                    graph_name=getattr(self, "graph_name", None),
                )
                raise
            finally:
                # `async for` does not close the inner generator on early exit.
                await stream.aclose()

        return wrapper

    return decorator


def with_stream_error_context(
    operation: str,
    *,
    framework: str = "lmsystems",
) -> Callable[[Callable[..., Iterator[T]]], Callable[..., Iterator[T]]]:
    """Sync-generator counterpart of `with_async_stream_error_context`."""

    def decorator(func: Callable[..., Iterator[T]]) -> Callable[..., Iterator[T]]:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Iterator[T]:
            try:
                yield from func(self, *args, **kwargs)
            except Exception as exc:
                attach_context(
                    exc,
                    framework=framework,
                    operation=operation,
                    graph_name=getattr(self, "graph_name", None),
                )
                raise

        return wrapper

    return decorator


__all__ = [
    "CANONICAL_ATTR",
    "attach_context",
    "get_context",
    "has_context",
    "with_async_error_context",
    "with_async_stream_error_context",
    "with_error_context",
    "with_stream_error_context",
]
