import asyncio

from cache import TimedCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += minutes * 60


def counting_producer(values=None):
    calls = {"count": 0}

    async def producer():
        calls["count"] += 1
        if values is not None:
            value = values[calls["count"] - 1]
            if isinstance(value, Exception):
                raise value
            return value
        return [calls["count"]]

    return producer, calls


def test_fetch_within_window_hits_cache() -> None:
    clock = FakeClock()
    producer, calls = counting_producer()
    cache = TimedCache(producer, 10, clock=clock)

    asyncio.run(cache.fetch())
    clock.advance(5)
    asyncio.run(cache.fetch())

    assert calls["count"] == 1
    assert cache.data == [1]
    assert cache.last_fetched_at is not None


def test_fetch_after_window_refetches() -> None:
    clock = FakeClock()
    producer, calls = counting_producer()
    cache = TimedCache(producer, 10, clock=clock)

    asyncio.run(cache.fetch())
    clock.advance(10)
    assert cache.is_stale()
    asyncio.run(cache.fetch())

    assert calls["count"] == 2
    assert cache.data == [2]


def test_force_refresh_ignores_window() -> None:
    clock = FakeClock()
    producer, calls = counting_producer()
    cache = TimedCache(producer, 10, clock=clock)

    asyncio.run(cache.fetch())
    asyncio.run(cache.fetch(force_refresh=True))
    asyncio.run(cache.fetch(True))

    assert calls["count"] == 3


def test_zero_window_always_refetches() -> None:
    producer, calls = counting_producer()
    cache = TimedCache(producer, 0, clock=FakeClock())

    asyncio.run(cache.fetch())
    asyncio.run(cache.fetch())

    assert calls["count"] == 2


def test_failure_keeps_previous_payload() -> None:
    clock = FakeClock()
    boom = RuntimeError("backend down")
    producer, calls = counting_producer([["a", "b"], boom])
    cache = TimedCache(producer, 10, clock=clock)

    asyncio.run(cache.fetch())
    fetched_at = cache.last_fetched_at
    asyncio.run(cache.fetch(force_refresh=True))

    assert calls["count"] == 2
    assert cache.data == ["a", "b"]
    assert cache.error is boom
    assert cache.loading is False
    assert cache.last_fetched_at == fetched_at


def test_failure_on_first_fetch_leaves_cache_empty() -> None:
    producer, _ = counting_producer([ValueError("bad payload")])
    cache = TimedCache(producer, 10, clock=FakeClock())

    asyncio.run(cache.fetch())

    assert cache.data is None
    assert cache.last_fetched_at is None
    assert cache.is_stale()
    assert isinstance(cache.error, ValueError)


def test_successful_fetch_clears_error() -> None:
    producer, _ = counting_producer([RuntimeError("once"), ["ok"]])
    cache = TimedCache(producer, 10, clock=FakeClock())

    asyncio.run(cache.fetch())
    asyncio.run(cache.fetch())

    assert cache.error is None
    assert cache.data == ["ok"]


def test_concurrent_fetches_collapse_to_one_call() -> None:
    calls = {"count": 0}

    async def slow_producer():
        calls["count"] += 1
        await asyncio.sleep(0.01)
        return ["done"]

    cache = TimedCache(slow_producer, 10, clock=FakeClock())

    async def run():
        await asyncio.gather(
            cache.fetch(force_refresh=True),
            cache.fetch(force_refresh=True),
            cache.fetch(),
        )

    asyncio.run(run())

    assert calls["count"] == 1
    assert cache.data == ["done"]
    assert cache.loading is False


def test_set_data_update_and_clear() -> None:
    producer, calls = counting_producer()
    cache = TimedCache(producer, 10, clock=FakeClock())

    cache.set_data([1, 2])
    cache.update(lambda items: [0, *(items or [])])
    assert cache.data == [0, 1, 2]
    assert calls["count"] == 0

    cache.clear()
    assert cache.data is None
    assert cache.is_stale()
