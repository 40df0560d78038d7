import datetime

import pytest

from quotedesk.schemas.quote import Quote


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class FakeQuoteProvider:
    def __init__(self, name: str, results: list) -> None:
        self.name = name
        self.results = list(results)
        self.calls: list[str] = []

    async def fetch_quote(self, symbol: str) -> Quote | None:
        self.calls.append(symbol)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def make_quote(symbol: str = "ACME", price: float = 100.0, source: str = "primary") -> Quote:
    return Quote(
        symbol=symbol,
        price=price,
        currency="USD",
        source=source,
        observed_at=datetime.datetime(2026, 1, 5, 14, 30, tzinfo=datetime.UTC),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)
