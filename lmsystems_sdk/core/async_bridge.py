# lmsystems_sdk/core/async_bridge.py
# SPDX-License-Identifier: Apache-2.0

"""
Run coroutines from synchronous call sites.

`PurchasedGraph.invoke` / `.stream` and other sync entry points need to wait
on async-only machinery (the initialization gate). This module does that
without nesting event loops:

- No running loop in the current thread: `asyncio.run(...)` directly.
- A loop is already running (Jupyter, async apps calling sync APIs): run
  `asyncio.run(...)` on a shared worker thread, propagating the caller's
  contextvars so logging/tracing context survives the hop.

Timeouts are optional and surface as `AsyncBridgeTimeoutError`.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Coroutine, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

#: Worker threads used when a loop is already running in the calling thread.
DEFAULT_MAX_WORKERS: int = 4


class AsyncBridgeTimeoutError(TimeoutError):
    """Raised when an async operation exceeds its timeout in AsyncBridge."""


class AsyncBridge:
    """
    Helper for safely running async code from sync contexts.

    The shared ThreadPoolExecutor is created lazily and lives for the process
    lifetime unless `shutdown()` is called. All shared state is guarded by a
    class-level lock, so `run_async` is safe to call from several threads.
    """

    _lock = threading.RLock()
    _executor: Optional[ThreadPoolExecutor] = None
    _max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def configure(cls, max_workers: int) -> None:
        """Set the worker count for executors created after this call."""
        if max_workers <= 0:
            raise ValueError("max_workers must be a positive integer")
        with cls._lock:
            cls._max_workers = max_workers

    @classmethod
    def _get_or_create_executor(cls) -> ThreadPoolExecutor:
        # Caller must hold cls._lock.
        if cls._executor is None:
            cls._executor = ThreadPoolExecutor(
                max_workers=cls._max_workers,
                thread_name_prefix="lmsystems_async_",
            )
            logger.debug(
                "AsyncBridge: created ThreadPoolExecutor(max_workers=%d)",
                cls._max_workers,
            )
        return cls._executor

    @staticmethod
    async def _with_timeout(
        coro: Coroutine[Any, Any, T],
        timeout: Optional[float],
    ) -> T:
        if timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise AsyncBridgeTimeoutError(
                f"Async operation exceeded timeout={timeout!r} seconds"
            ) from exc

    @classmethod
    def run_async(
        cls,
        coro: Coroutine[Any, Any, T],
        timeout: Optional[float] = None,
    ) -> T:
        """
        Execute a coroutine from synchronous code and return its result.

        Exceptions raised by the coroutine propagate unchanged.
        """
        try:
            asyncio.get_running_loop()
            loop_running = True
        except RuntimeError:
            loop_running = False

        if loop_running:
            logger.debug("AsyncBridge.run_async: running loop detected; using worker thread")
            ctx = contextvars.copy_context()

            def _runner() -> T:
                return asyncio.run(cls._with_timeout(coro, timeout))

            with cls._lock:
                executor = cls._get_or_create_executor()
            return executor.submit(ctx.run, _runner).result()

        logger.debug("AsyncBridge.run_async: no running loop; using asyncio.run")
        return asyncio.run(cls._with_timeout(coro, timeout))

    @classmethod
    def shutdown(cls, *, wait: bool = False) -> None:
        """Best-effort teardown of the shared executor; safe to call repeatedly."""
        with cls._lock:
            if cls._executor is not None:
                cls._executor.shutdown(wait=wait)
                cls._executor = None
                logger.debug("AsyncBridge: executor shutdown (wait=%s)", wait)


def run_async(
    coro: Coroutine[Any, Any, T],
    timeout: Optional[float] = None,
) -> T:
    """Convenience wrapper around AsyncBridge.run_async."""
    return AsyncBridge.run_async(coro, timeout=timeout)


__all__ = [
    "AsyncBridge",
    "AsyncBridgeTimeoutError",
    "DEFAULT_MAX_WORKERS",
    "run_async",
]
