"""
Small helpers for composing asyncio futures.

The cache hands out futures that many callers may await (or none at all),
so every derived task marks its exception as retrieved once it finishes.
Awaiting such a task still raises; the marker only keeps asyncio from
reporting errors nobody asked about.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


def _mark_retrieved(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.debug("Pending cache operation failed: %s", exc)


def track(future: asyncio.Future) -> asyncio.Future:
    """Attach the retrieval marker to a future and return it."""
    future.add_done_callback(_mark_retrieved)
    return future


def spawn(coro: Awaitable[Any]) -> asyncio.Task:
    """Schedule a coroutine on the running loop."""
    return track(asyncio.ensure_future(coro))


def resolved_future(value: Any) -> asyncio.Future:
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future


def failed_future(exc: BaseException) -> asyncio.Future:
    future = asyncio.get_running_loop().create_future()
    future.set_exception(exc)
    return track(future)


def chain(future: Awaitable[Any], callback: Callable[[Any], Any]) -> asyncio.Task:
    """
    Return a task resolving to callback(result of future).

    The callback may itself return an awaitable, which is awaited too.
    """

    async def _run() -> Any:
        result = callback(await future)
        if inspect.isawaitable(result):
            result = await result
        return result

    return spawn(_run())


def recover(future: Awaitable[Any], fallback: Callable[[], Any]) -> asyncio.Task:
    """Return a task resolving like future, or to fallback() if it fails."""

    async def _run() -> Any:
        try:
            return await future
        except Exception:  # noqa: BLE001 - the original future reports the error
            return fallback()

    return spawn(_run())


__all__ = ["track", "spawn", "resolved_future", "failed_future", "chain", "recover"]
