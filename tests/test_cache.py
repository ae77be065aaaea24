from __future__ import annotations

import asyncio

import pytest

from pytronity._cache import TtlCache, cached, with_timeout


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _Getter:
    def __init__(self, *, delay: float = 0.0, fail_first: int = 0) -> None:
        self.calls = 0
        self._delay = delay
        self._fail_first = fail_first

    async def __call__(self) -> dict[str, int]:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self.calls <= self._fail_first:
            raise RuntimeError(f"fetch {self.calls} failed")
        return {"fetch": self.calls}


@pytest.mark.asyncio
async def test_calls_within_ttl_share_one_fetch() -> None:
    clock = _Clock()
    getter = _Getter()
    cache = TtlCache(getter, 60.0, clock=clock)

    first = await cache()
    clock.now += 59.9
    second = await cache()

    assert first is second
    assert getter.calls == 1


@pytest.mark.asyncio
async def test_call_after_ttl_fetches_exactly_once_more() -> None:
    clock = _Clock()
    getter = _Getter()
    cache = TtlCache(getter, 60.0, clock=clock)

    await cache()
    clock.now += 60.0
    refreshed = await cache()
    again = await cache()

    assert refreshed == {"fetch": 2}
    assert again is refreshed
    assert getter.calls == 2


@pytest.mark.asyncio
async def test_concurrent_calls_collapse_to_single_fetch() -> None:
    getter = _Getter(delay=0.01)
    cache = TtlCache(getter, 60.0)

    results = await asyncio.gather(*(cache.get() for _ in range(5)))

    assert getter.calls == 1
    assert all(r is results[0] for r in results)


@pytest.mark.asyncio
async def test_failures_reach_all_waiters_and_are_not_cached() -> None:
    getter = _Getter(delay=0.01, fail_first=1)
    cache = TtlCache(getter, 60.0)

    results = await asyncio.gather(cache.get(), cache.get(), return_exceptions=True)

    assert getter.calls == 1
    assert all(isinstance(r, RuntimeError) for r in results)

    assert await cache.get() == {"fetch": 2}
    assert getter.calls == 2


@pytest.mark.asyncio
async def test_reset_forces_refetch() -> None:
    getter = _Getter()
    cache = cached(getter, 60.0)

    await cache.get()
    cache.reset()
    value = await cache.get()

    assert value == {"fetch": 2}
    assert getter.calls == 2


@pytest.mark.asyncio
async def test_zero_ttl_fetches_every_time() -> None:
    getter = _Getter()
    cache = cached(getter, 0)

    await cache.get()
    await cache.get()

    assert getter.calls == 2


@pytest.mark.asyncio
async def test_timed_out_caller_does_not_cancel_shared_fetch() -> None:
    getter = _Getter(delay=0.05)
    cache = cached(getter, 60.0)

    patient = asyncio.ensure_future(cache.get())
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(cache.get(), 0.001)

    assert await patient == {"fetch": 1}
    assert getter.calls == 1


def test_age_is_none_before_first_fetch() -> None:
    cache = TtlCache(_Getter(), 60.0, clock=_Clock())
    assert cache.age is None
    assert cache.ttl == 60.0


@pytest.mark.asyncio
async def test_with_timeout_passes_through_and_bounds() -> None:
    async def slow() -> str:
        await asyncio.sleep(1)
        return "late"

    async def quick() -> str:
        return "ok"

    assert await with_timeout(quick(), None) == "ok"
    assert await with_timeout(quick(), 1.0) == "ok"
    with pytest.raises(asyncio.TimeoutError):
        await with_timeout(slow(), 0.01)
