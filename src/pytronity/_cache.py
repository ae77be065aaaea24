"""Single-flight TTL memoization for telemetry fetches."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(aw: Awaitable[T], timeout: float | None) -> T:
    """Await *aw*, bounded by *timeout* seconds when given."""
    if timeout is None:
        return await aw
    return await asyncio.wait_for(aw, timeout)


def _consume_exception(task: asyncio.Future[object]) -> None:
    # Nobody may be awaiting a fetch whose callers all timed out.
    if not task.cancelled():
        task.exception()


class TtlCache(Generic[T]):
    """Memoize an async getter for ``ttl`` seconds.

    * Calls within ``ttl`` of the last successful fetch return the cached
      value without calling the getter.
    * Concurrent calls while a fetch is in flight share that fetch.
    * Failures are not cached; every waiting caller receives the error and
      the next call fetches again.
    """

    def __init__(
        self,
        getter: Callable[[], Awaitable[T]],
        ttl: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._getter = getter
        self._ttl = ttl
        self._clock = clock
        self._value: T | None = None
        self._updated: float | None = None
        self._inflight: asyncio.Future[T] | None = None

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def age(self) -> float | None:
        """Seconds since the last successful fetch, ``None`` if never fetched."""
        if self._updated is None:
            return None
        return self._clock() - self._updated

    def _fresh(self) -> bool:
        age = self.age
        return age is not None and age < self._ttl

    def reset(self) -> None:
        """Force the next call to fetch."""
        self._updated = None

    async def _fetch(self) -> T:
        try:
            value = await self._getter()
            self._value = value
            self._updated = self._clock()
            return value
        finally:
            self._inflight = None

    async def get(self) -> T:
        if self._fresh():
            return self._value  # type: ignore[return-value]

        inflight = self._inflight
        if inflight is None:
            _logger.debug("Cache expired, fetching")
            inflight = asyncio.ensure_future(self._fetch())
            inflight.add_done_callback(_consume_exception)
            self._inflight = inflight

        # Shield so a cancelled caller does not cancel the shared fetch.
        return await asyncio.shield(inflight)

    async def __call__(self) -> T:
        return await self.get()


def cached(getter: Callable[[], Awaitable[T]], ttl: float) -> TtlCache[T]:
    """Wrap *getter* in a :class:`TtlCache`."""
    return TtlCache(getter, ttl)
