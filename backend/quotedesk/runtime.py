from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from quotedesk.cache import MemoryCache
from quotedesk.config.settings import Settings
from quotedesk.providers.alphavantage import AlphaVantageClient
from quotedesk.providers.fundamentals import FundamentalsScraper
from quotedesk.providers.historical import HistoryRetriever
from quotedesk.providers.ratelimit import RateLimiter
from quotedesk.providers.retry import RetryPolicy
from quotedesk.providers.selector import QuoteRetriever
from quotedesk.providers.yahoo import YahooFinanceClient


@dataclass
class Services:
    cache: MemoryCache
    http: httpx.AsyncClient
    quotes: QuoteRetriever
    history: HistoryRetriever
    fundamentals: FundamentalsScraper

    async def aclose(self) -> None:
        await self.cache.stop_sweeper()
        await self.http.aclose()


def build_services(config: Settings, http: httpx.AsyncClient | None = None) -> Services:
    """Create the process-wide cache, limiters and retrievers."""
    providers = config.providers
    http = http or httpx.AsyncClient(follow_redirects=True)
    cache = MemoryCache()
    retry = RetryPolicy(
        max_attempts=config.retry_max_attempts,
        base_delay=config.retry_base_delay_seconds,
    )

    yahoo = YahooFinanceClient(
        http,
        RateLimiter(providers.yahoo_min_interval_seconds),
        base_url=providers.yahoo_base_url,
        timeout=providers.yahoo_timeout_seconds,
        cooldown=providers.rate_limit_cooldown_seconds,
    )
    alpha_vantage = AlphaVantageClient(
        http,
        RateLimiter(providers.alpha_vantage_min_interval_seconds),
        api_key=providers.alpha_vantage_api_key,
        base_url=providers.alpha_vantage_base_url,
        timeout=providers.alpha_vantage_timeout_seconds,
    )

    return Services(
        cache=cache,
        http=http,
        quotes=QuoteRetriever(
            cache, yahoo, alpha_vantage, retry, ttl_seconds=config.quote_cache_ttl_seconds
        ),
        history=HistoryRetriever(
            cache, yahoo, retry, ttl_seconds=config.historical_cache_ttl_seconds
        ),
        fundamentals=FundamentalsScraper(
            http,
            base_url=providers.google_finance_base_url,
            exchange=providers.fundamentals_exchange,
            timeout=providers.fundamentals_timeout_seconds,
        ),
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the services built at startup."""
    return request.app.state.services
