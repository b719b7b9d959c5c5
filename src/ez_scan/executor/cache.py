"""Result cache with in-flight request coalescing."""

import asyncio
import copy
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class ResultCache:
    """
    Memoizes scan results by configuration key.

    At most one request per key is in flight; callers arriving while it runs
    await the same task. Only successful results are stored, and only when
    ``ttl`` is positive. Every caller gets its own copy of the result.
    """

    def __init__(self, ttl: float = 0.0):
        """Initialize result cache."""
        self.ttl = ttl
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

    def get(self, key: str) -> Optional[Any]:
        """Return a fresh cached value, or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if time.monotonic() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        logger.debug(f"Cache hit: {key}")
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        if self.ttl > 0:
            self._entries[key] = (time.monotonic(), value)

    async def get_or_run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for *key* or run *factory* once for all waiters."""
        cached = self.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._finish(key, t))
        else:
            logger.debug(f"Joining in-flight request: {key}")

        # One waiter being cancelled must not cancel the shared request.
        result = await asyncio.shield(task)
        return copy.deepcopy(result)

    def _finish(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled() or task.exception() is not None:
            return
        self.set(key, task.result())

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> int:
        """Drop all cached results. Returns count of removed entries."""
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)
