from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from quotedesk.cache import MemoryCache
from quotedesk.providers.retry import RetryPolicy
from quotedesk.schemas.quote import Quote, RetrievalOutcome

logger = logging.getLogger(__name__)

ALTERNATE_SOURCE_WARNING = "Using alternative data source"
STALE_CACHE_WARNING = "Using cached data due to API failure"


class QuoteProvider(Protocol):
    name: str

    async def fetch_quote(self, symbol: str) -> Quote | None: ...


def normalize_symbol(symbol: str | None) -> str:
    return (symbol or "").strip().upper()


def quote_cache_key(symbol: str) -> str:
    return f"price:{symbol}"


class QuoteRetriever:
    """Cache, then primary with retries, then secondary, then stale cache.

    ``get_quote`` never raises; every path ends in a ``RetrievalOutcome``.
    """

    def __init__(
        self,
        cache: MemoryCache,
        primary: QuoteProvider,
        secondary: QuoteProvider | None,
        retry: RetryPolicy,
        ttl_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._primary = primary
        self._secondary = secondary
        self._retry = retry
        self._ttl = ttl_seconds
        self._sleep = sleep

    async def get_quote(
        self, symbol: str | None, use_cache: bool = True, use_fallback: bool = True
    ) -> RetrievalOutcome:
        symbol = normalize_symbol(symbol)
        if not symbol:
            return RetrievalOutcome(error="Symbol parameter is required")

        cache_key = quote_cache_key(symbol)
        # Read before get() can evict an expired entry we may still need.
        stale = self._cache.get_stale(cache_key)

        if use_cache:
            cached = self._cache.get(cache_key)
            if isinstance(cached, Quote):
                return RetrievalOutcome(quote=_as_cached(cached), cached=True)

        last_error = "Unknown error"
        for attempt in range(self._retry.max_attempts):
            delay = self._retry.delay_before(attempt)
            if delay > 0:
                await self._sleep(delay)
            quote = await self._fetch(self._primary, symbol)
            if quote is not None:
                self._cache.set(cache_key, quote, self._ttl)
                return RetrievalOutcome(quote=quote, cached=False)
            last_error = f"{self._primary.name} returned no quote for {symbol}"
            logger.info(
                "Attempt %d/%d failed for %s", attempt + 1, self._retry.max_attempts, symbol
            )

        if use_fallback and self._secondary is not None:
            quote = await self._fetch(self._secondary, symbol)
            if quote is not None:
                self._cache.set(cache_key, quote, self._ttl)
                return RetrievalOutcome(
                    quote=quote, cached=False, warning=ALTERNATE_SOURCE_WARNING
                )
            last_error = (
                f"{self._primary.name} and {self._secondary.name} returned no quote for {symbol}"
            )

        fallback = self._cache.get_stale(cache_key)
        if not isinstance(fallback, Quote):
            fallback = stale
        if isinstance(fallback, Quote):
            logger.warning("Serving stale cached quote for %s: %s", symbol, last_error)
            return RetrievalOutcome(
                quote=_as_cached(fallback), cached=True, warning=STALE_CACHE_WARNING
            )

        logger.error("Failed to fetch %s from all available sources: %s", symbol, last_error)
        return RetrievalOutcome(error=last_error)

    async def _fetch(self, provider: QuoteProvider, symbol: str) -> Quote | None:
        try:
            return await provider.fetch_quote(symbol)
        except Exception:
            logger.exception("%s raised while fetching %s", provider.name, symbol)
            return None


def _as_cached(quote: Quote) -> Quote:
    return quote.model_copy(update={"source": "cache"})
