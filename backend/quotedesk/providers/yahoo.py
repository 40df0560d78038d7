from __future__ import annotations

import asyncio
import datetime
import logging
import math
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from quotedesk.providers.ratelimit import RateLimiter
from quotedesk.schemas.quote import HistoricalBar, Quote

logger = logging.getLogger(__name__)

_CHART_PATH = "/v8/finance/chart/"
_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
}
DEFAULT_CURRENCY = "USD"


def parse_price(value: Any) -> float | None:
    """Return ``value`` as a positive finite float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _currency(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return DEFAULT_CURRENCY


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class YahooFinanceClient:
    """Primary quote source backed by the Yahoo Finance chart endpoint.

    Every failure mode (timeout, transport error, HTTP error, malformed
    payload) is logged and collapsed to ``None``.
    """

    name = "yahoo_finance"

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: RateLimiter,
        base_url: str = "https://query1.finance.yahoo.com",
        timeout: float = 8.0,
        cooldown: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._cooldown = cooldown
        self._sleep = sleep

    def _build_url(self, symbol: str) -> str:
        return f"{self._base_url}{_CHART_PATH}{quote(symbol, safe='')}"

    async def _get_chart(self, symbol: str, params: dict[str, str] | None = None) -> dict | None:
        await self._limiter.acquire()
        try:
            response = await self._http.get(
                self._build_url(symbol),
                params=params,
                headers=_HEADERS,
                timeout=self._timeout,
            )
        except httpx.TimeoutException:
            logger.warning("Yahoo Finance request timed out for %s", symbol)
            return None
        except httpx.HTTPError as exc:
            logger.warning("Yahoo Finance request failed for %s: %s", symbol, exc)
            return None

        if response.status_code == 429:
            logger.warning(
                "Yahoo Finance rate limited %s, cooling down %.1fs", symbol, self._cooldown
            )
            await self._sleep(self._cooldown)
            return None
        if not response.is_success:
            logger.warning(
                "Yahoo Finance returned status %d for %s", response.status_code, symbol
            )
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Yahoo Finance returned a non-JSON body for %s", symbol)
            return None

        chart = payload.get("chart") if isinstance(payload, dict) else None
        if not isinstance(chart, dict):
            logger.warning("Yahoo Finance payload for %s has no chart", symbol)
            return None
        if chart.get("error"):
            error = chart["error"]
            description = error.get("description") if isinstance(error, dict) else error
            logger.warning("Yahoo Finance error for %s: %s", symbol, description)
            return None
        results = chart.get("result")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            logger.warning("Yahoo Finance payload for %s has no result", symbol)
            return None
        return results[0]

    async def fetch_quote(self, symbol: str) -> Quote | None:
        result = await self._get_chart(symbol)
        if result is None:
            return None

        meta = result.get("meta")
        if not isinstance(meta, dict):
            logger.warning("Yahoo Finance result for %s has no meta", symbol)
            return None
        price = parse_price(meta.get("regularMarketPrice"))
        if price is None:
            logger.warning(
                "Yahoo Finance returned no usable price for %s: %r",
                symbol,
                meta.get("regularMarketPrice"),
            )
            return None

        try:
            return Quote(
                symbol=symbol,
                price=price,
                currency=_currency(meta.get("currency")),
                source="primary",
                observed_at=_utcnow(),
            )
        except ValidationError as exc:
            logger.warning("Yahoo Finance quote for %s failed validation: %s", symbol, exc)
            return None

    async def fetch_history(self, symbol: str, range_: str) -> list[HistoricalBar] | None:
        result = await self._get_chart(symbol, params={"range": range_, "interval": "1d"})
        if result is None:
            return None

        timestamps = result.get("timestamp")
        try:
            quotes = result["indicators"]["quote"][0]
        except (KeyError, IndexError, TypeError):
            logger.warning("Yahoo Finance history for %s has no quote indicators", symbol)
            return None
        if not isinstance(timestamps, list) or not isinstance(quotes, dict):
            logger.warning("Yahoo Finance history for %s is malformed", symbol)
            return None

        def _column(name: str) -> list:
            values = quotes.get(name)
            return values if isinstance(values, list) else []

        opens, highs, lows = _column("open"), _column("high"), _column("low")
        closes, volumes = _column("close"), _column("volume")

        def _at(values: list, index: int) -> Any:
            return values[index] if index < len(values) else None

        bars: list[HistoricalBar] = []
        for index, ts_value in enumerate(timestamps):
            seconds = _finite(ts_value)
            if seconds is None:
                continue
            try:
                day = datetime.datetime.fromtimestamp(int(seconds), tz=datetime.UTC).date()
            except (OverflowError, OSError, ValueError):
                continue
            volume = _finite(_at(volumes, index))
            bars.append(
                HistoricalBar(
                    date=day.isoformat(),
                    open=_finite(_at(opens, index)),
                    high=_finite(_at(highs, index)),
                    low=_finite(_at(lows, index)),
                    close=_finite(_at(closes, index)),
                    volume=int(volume) if volume is not None else None,
                )
            )
        if not bars:
            logger.warning("Yahoo Finance history for %s (%s) is empty", symbol, range_)
            return None
        return bars
