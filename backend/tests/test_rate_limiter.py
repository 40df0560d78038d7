import asyncio

from quotedesk.providers.ratelimit import RateLimiter


def test_first_grant_is_immediate(clock, fake_sleep) -> None:
    limiter = RateLimiter(1.0, clock=clock, sleep=fake_sleep)

    slot = asyncio.run(limiter.acquire())

    assert slot == clock.now
    assert fake_sleep.calls == []


def test_sequential_grants_are_spaced(clock, fake_sleep) -> None:
    limiter = RateLimiter(1.0, clock=clock, sleep=fake_sleep)

    async def scenario() -> list[float]:
        return [await limiter.acquire() for _ in range(5)]

    slots = asyncio.run(scenario())

    gaps = [later - earlier for earlier, later in zip(slots, slots[1:])]
    assert all(gap >= 1.0 for gap in gaps)
    assert fake_sleep.calls == [1.0, 1.0, 1.0, 1.0]


def test_concurrent_grants_are_spaced_in_arrival_order(clock, fake_sleep) -> None:
    limiter = RateLimiter(0.5, clock=clock, sleep=fake_sleep)
    granted: list[tuple[int, float]] = []

    async def caller(index: int) -> None:
        slot = await limiter.acquire()
        granted.append((index, slot))

    async def scenario() -> None:
        await asyncio.gather(*(caller(index) for index in range(4)))

    asyncio.run(scenario())

    order = [index for index, _ in sorted(granted, key=lambda item: item[1])]
    slots = sorted(slot for _, slot in granted)
    assert order == [0, 1, 2, 3]
    assert all(later - earlier >= 0.5 for earlier, later in zip(slots, slots[1:]))


def test_grant_is_immediate_when_interval_already_elapsed(clock, fake_sleep) -> None:
    limiter = RateLimiter(1.0, clock=clock, sleep=fake_sleep)

    async def scenario() -> None:
        await limiter.acquire()
        clock.advance(5.0)
        await limiter.acquire()

    asyncio.run(scenario())

    assert fake_sleep.calls == []
    assert limiter.last_request_at == clock.now
