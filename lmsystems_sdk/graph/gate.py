# lmsystems_sdk/graph/gate.py
# SPDX-License-Identifier: Apache-2.0

"""
One-shot asynchronous initialization gate.

A gate wraps a single shared operation (endpoint resolution plus client
construction for `PurchasedGraph`) and lets any number of callers wait on it:

    PENDING ──start──▶ RESOLVING ──ok──▶ READY
                           │
                           └──error──▶ FAILED

- The operation runs at most once to an outcome. READY and FAILED are
  terminal; every later waiter gets the cached value or the same error.
- Constructed inside a running event loop, the operation starts immediately
  as a background task. Constructed from plain sync code there is no loop to
  start it on, so the first waiter creates the one shared task.
- Waiters are shielded: cancelling one waiter does not cancel the shared
  operation for the others.
- A task cancelled before it finished (its loop was torn down) produced no
  outcome; the gate drops back to PENDING and the next waiter starts it.
- A task still pending on a loop that is no longer running (a graph built
  inside `loop.run_until_complete(...)`) can never finish; the next waiter
  from another loop cancels it and starts over on its own loop.

Waiters running on a different event loop than the one owning the task (sync
entry points bridged to a worker thread) wait on the owner loop through
`asyncio.run_coroutine_threadsafe`.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from lmsystems_sdk.core.async_bridge import run_async
from lmsystems_sdk.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InitializationState(str, enum.Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    READY = "ready"
    FAILED = "failed"


def _cancel_requested() -> bool:
    """True when the current task itself is being cancelled."""
    cancelling = getattr(asyncio.current_task(), "cancelling", None)
    if cancelling is None:
        # Task.cancelling() is 3.11+; without it assume the waiter was cancelled.
        return True
    return cancelling() > 0


class InitializationGate(Generic[T]):
    """
    Single shared initialization operation with cached outcome.

    Parameters
    ----------
    operation:
        Zero-argument coroutine function producing the initialized value.
    name:
        Label used in log lines.
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        name: str = "initialization",
    ) -> None:
        self._operation = operation
        self._name = name
        self._state = InitializationState.PENDING
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._task: Optional["asyncio.Task[T]"] = None
        # Guards task creation only; sync entry points may race from threads.
        self._lock = threading.Lock()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._ensure_task(loop)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> InitializationState:
        return self._state

    @property
    def value(self) -> Optional[T]:
        """The initialized value, or None until the gate is READY."""
        return self._value if self._state is InitializationState.READY else None

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @staticmethod
    def _orphaned(task: "asyncio.Task[T]", loop: asyncio.AbstractEventLoop) -> bool:
        owner = task.get_loop()
        return owner is not loop and (owner.is_closed() or not owner.is_running())

    def _ensure_task(self, loop: asyncio.AbstractEventLoop) -> "asyncio.Task[T]":
        with self._lock:
            task = self._task
            if task is not None and task.cancelled():
                task = None
            elif task is not None and not task.done() and self._orphaned(task, loop):
                logger.debug("%s: owner loop is not running; restarting on caller loop", self._name)
                if not task.get_loop().is_closed():
                    task.cancel()
                task = None
            if task is None:
                self._state = InitializationState.RESOLVING
                task = loop.create_task(self._run(), name=self._name)
                task.add_done_callback(self._on_done)
                self._task = task
                logger.debug("%s: started", self._name)
            return task

    async def _run(self) -> T:
        try:
            value = await self._operation()
        except Exception as exc:
            self._error = exc
            self._state = InitializationState.FAILED
            logger.debug("%s: failed with %s", self._name, type(exc).__name__)
            raise
        self._value = value
        self._state = InitializationState.READY
        logger.debug("%s: ready", self._name)
        return value

    def _on_done(self, task: "asyncio.Task[T]") -> None:
        if task.cancelled():
            with self._lock:
                if self._task is task and self._state is InitializationState.RESOLVING:
                    self._task = None
                    self._state = InitializationState.PENDING
                    logger.debug("%s: cancelled before completion; back to pending", self._name)
            return
        # Mark the exception as retrieved; waiters get it from self._error.
        task.exception()

    def _outcome(self) -> T:
        if self._state is InitializationState.FAILED and self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def wait(self) -> T:
        """Wait for the shared operation; return its value or raise its error."""
        if self._state in (InitializationState.READY, InitializationState.FAILED):
            return self._outcome()

        loop = asyncio.get_running_loop()
        task = self._ensure_task(loop)
        owner = task.get_loop()

        if owner is loop:
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if task.cancelled() and not _cancel_requested():
                    # Shared task cancelled under a live waiter: start over.
                    return await self.wait()
                raise
            except Exception:
                pass  # replayed by _outcome()
            return self._outcome()

        async def _on_owner() -> None:
            try:
                await asyncio.shield(task)
            except Exception:
                pass  # replayed by _outcome() on the caller loop

        await asyncio.wrap_future(asyncio.run_coroutine_threadsafe(_on_owner(), owner))
        return self._outcome()

    def wait_blocking(self) -> T:
        """
        Synchronous `wait()` for sync entry points.

        Raises:
            ConfigurationError: when called from the event loop that owns a
                still-pending task; blocking that loop would deadlock.
        """
        if self._state in (InitializationState.READY, InitializationState.FAILED):
            return self._outcome()

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        task = self._task
        if running is not None and task is not None and not task.done() and task.get_loop() is running:
            raise ConfigurationError(
                f"{self._name} is still in progress on this event loop; "
                "use the async API (await ainvoke / async for astream) from async code"
            )
        return run_async(self.wait())


__all__ = [
    "InitializationGate",
    "InitializationState",
]
