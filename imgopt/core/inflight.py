"""
Coalesce concurrent work for the same cache key into one shared task.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class _Inflight:
    __slots__ = ("task", "waiters")

    def __init__(self) -> None:
        self.task: Optional[asyncio.Task] = None
        self.waiters = 0


def _consume_result(task: asyncio.Task) -> None:
    # Every waiter may have gone away; keep asyncio from warning about an
    # exception nobody retrieved.
    if not task.cancelled():
        task.exception()


class InflightRegistry:
    """
    Map of cache key -> running task, used from a single event loop.

    The first caller for a key starts the computation; later callers await the
    same task. Waiters await through `asyncio.shield`, so a disconnecting
    client cancels its own wait, never the shared work. The entry is dropped
    as soon as the work settles, success or failure.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _Inflight] = {}

    def in_flight(self) -> int:
        return len(self._entries)

    def waiters(self, key: str) -> int:
        entry = self._entries.get(key)
        return entry.waiters if entry else 0

    async def _settle(
        self, key: str, entry: _Inflight, factory: Callable[[], Awaitable[Any]]
    ) -> Any:
        try:
            return await factory()
        finally:
            if self._entries.get(key) is entry:
                del self._entries[key]

    async def run(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        on_join: Optional[Callable[[], None]] = None,
    ) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            entry = _Inflight()
            self._entries[key] = entry
            entry.task = asyncio.ensure_future(self._settle(key, entry, factory))
            entry.task.add_done_callback(_consume_result)
        else:
            logger.debug("[inflight] joining computation for %s", key)
            if on_join is not None:
                on_join()

        entry.waiters += 1
        try:
            return await asyncio.shield(entry.task)
        finally:
            entry.waiters -= 1
