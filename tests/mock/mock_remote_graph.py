# SPDX-License-Identifier: Apache-2.0
"""
Mock remote graph used by the PurchasedGraph tests.

Implements the `ainvoke` / `invoke` / `astream` / `stream` surface of
`langgraph.pregel.remote.RemoteGraph` with deterministic behavior:

- Records every call as (method, input, config, kwargs)
- Returns a configurable `response` from invoke
- Streams configurable `chunks`, optionally failing after N chunks
- Counts how many upstream streams were opened and closed
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple


class MockRemoteGraph:
    def __init__(
        self,
        *,
        response: Any = None,
        chunks: Sequence[Any] = (),
        error: Optional[BaseException] = None,
        stream_error: Optional[BaseException] = None,
        stream_error_after: int = 0,
    ) -> None:
        self.response = response if response is not None else {"messages": []}
        self.chunks = list(chunks)
        self.error = error
        self.stream_error = stream_error
        self.stream_error_after = stream_error_after
        self.calls: List[Tuple[str, Any, Any, Dict[str, Any]]] = []
        self.opened = 0
        self.closed = 0

    # ------------------------------------------------------------------ #
    # Invoke
    # ------------------------------------------------------------------ #

    async def ainvoke(self, input: Any, config: Any = None, **kwargs: Any) -> Any:
        self.calls.append(("ainvoke", input, config, kwargs))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.response

    def invoke(self, input: Any, config: Any = None, **kwargs: Any) -> Any:
        self.calls.append(("invoke", input, config, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    # ------------------------------------------------------------------ #
    # Stream
    # ------------------------------------------------------------------ #

    def astream(self, input: Any, config: Any = None, **kwargs: Any) -> "_AsyncChunkStream":
        self.calls.append(("astream", input, config, kwargs))
        self.opened += 1
        return _AsyncChunkStream(self)

    def stream(self, input: Any, config: Any = None, **kwargs: Any) -> "_SyncChunkStream":
        self.calls.append(("stream", input, config, kwargs))
        self.opened += 1
        return _SyncChunkStream(self)

    def _next_chunk(self, emitted: int) -> Any:
        if self.stream_error is not None and emitted >= self.stream_error_after:
            raise self.stream_error
        if emitted >= len(self.chunks):
            return _END
        return self.chunks[emitted]


_END = object()


class _AsyncChunkStream:
    def __init__(self, owner: MockRemoteGraph) -> None:
        self._owner = owner
        self._emitted = 0

    def __aiter__(self) -> "_AsyncChunkStream":
        return self

    async def __anext__(self) -> Any:
        await asyncio.sleep(0)
        chunk = self._owner._next_chunk(self._emitted)
        if chunk is _END:
            raise StopAsyncIteration
        self._emitted += 1
        return chunk

    async def aclose(self) -> None:
        self._owner.closed += 1


class _SyncChunkStream:
    def __init__(self, owner: MockRemoteGraph) -> None:
        self._owner = owner
        self._emitted = 0

    def __iter__(self) -> "_SyncChunkStream":
        return self

    def __next__(self) -> Any:
        chunk = self._owner._next_chunk(self._emitted)
        if chunk is _END:
            raise StopIteration
        self._emitted += 1
        return chunk

    def close(self) -> None:
        self._owner.closed += 1
