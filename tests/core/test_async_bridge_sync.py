# SPDX-License-Identifier: Apache-2.0
"""
Running coroutines from synchronous call sites with no event loop.
"""

import asyncio

import pytest

from lmsystems_sdk.core.async_bridge import AsyncBridge, AsyncBridgeTimeoutError, run_async


async def _answer(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


def test_runs_without_a_loop():
    assert run_async(_answer(42)) == 42


def test_exceptions_propagate_unchanged():
    async def boom():
        raise KeyError("k")

    with pytest.raises(KeyError):
        run_async(boom())


def test_timeout_raises_bridge_timeout():
    with pytest.raises(AsyncBridgeTimeoutError):
        run_async(_answer(1, delay=1.0), timeout=0.01)


def test_configure_rejects_non_positive_workers():
    with pytest.raises(ValueError):
        AsyncBridge.configure(0)
