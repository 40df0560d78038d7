from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from quotedesk.cache import MemoryCache
from quotedesk.providers.retry import RetryPolicy
from quotedesk.providers.selector import STALE_CACHE_WARNING, normalize_symbol
from quotedesk.schemas.quote import HistoricalBar, HistoricalOutcome

logger = logging.getLogger(__name__)

VALID_RANGES = frozenset(
    {"1d", "5d", "1mo", "3mo", "6mo", "1y", "2y", "5y", "10y", "ytd", "max"}
)
DEFAULT_RANGE = "1mo"


class HistoryProvider(Protocol):
    name: str

    async def fetch_history(self, symbol: str, range_: str) -> list[HistoricalBar] | None: ...


def historical_cache_key(symbol: str, range_: str) -> str:
    return f"historical:{symbol}:{range_}"


class HistoryRetriever:
    def __init__(
        self,
        cache: MemoryCache,
        provider: HistoryProvider,
        retry: RetryPolicy,
        ttl_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._provider = provider
        self._retry = retry
        self._ttl = ttl_seconds
        self._sleep = sleep

    async def get_history(
        self, symbol: str | None, range_: str = DEFAULT_RANGE, use_cache: bool = True
    ) -> HistoricalOutcome:
        symbol = normalize_symbol(symbol)
        if not symbol:
            return HistoricalOutcome(error="Symbol parameter is required")
        if range_ not in VALID_RANGES:
            return HistoricalOutcome(error=f"Unsupported range: {range_}")

        cache_key = historical_cache_key(symbol, range_)
        stale = self._cache.get_stale(cache_key)
        if use_cache:
            cached = self._cache.get(cache_key)
            if isinstance(cached, list) and cached:
                return HistoricalOutcome(bars=cached, cached=True)

        for attempt in range(self._retry.max_attempts):
            delay = self._retry.delay_before(attempt)
            if delay > 0:
                await self._sleep(delay)
            try:
                bars = await self._provider.fetch_history(symbol, range_)
            except Exception:
                logger.exception("%s raised while fetching history for %s", self._provider.name, symbol)
                bars = None
            if bars:
                self._cache.set(cache_key, bars, self._ttl)
                return HistoricalOutcome(bars=bars, cached=False)

        fallback = self._cache.get_stale(cache_key)
        if not (isinstance(fallback, list) and fallback):
            fallback = stale
        if isinstance(fallback, list) and fallback:
            logger.warning("Serving stale historical data for %s (%s)", symbol, range_)
            return HistoricalOutcome(bars=fallback, cached=True, warning=STALE_CACHE_WARNING)

        return HistoricalOutcome(
            error=f"{self._provider.name} returned no historical data for {symbol}"
        )
