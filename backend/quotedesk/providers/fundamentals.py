from __future__ import annotations

import logging
import re
from urllib.parse import quote

import httpx

from quotedesk.schemas.fundamentals import Fundamentals

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
}

_PE_RATIO_RE = re.compile(r'"PE_RATIO"\s*:\s*"([^"]+)"')
_EPS_RE = re.compile(r'"EPS\s*\([^)]+\)"[^>]*>[^<]*<[^>]*>([^<]+)<')
_MARKET_CAP_RE = re.compile(r'"MARKET_CAP"\s*:\s*"([^"]+)"')
_DIVIDEND_YIELD_RE = re.compile(r'"DIVIDEND_AND_YIELD"\s*:\s*"([^"]+)"')
_YEAR_HIGH_RE = re.compile(r'"FIFTY_TWO_WK_HIGH"\s*:\s*"([^"]+)"')
_YEAR_LOW_RE = re.compile(r'"FIFTY_TWO_WK_LOW"\s*:\s*"([^"]+)"')


def _extract(pattern: re.Pattern[str], html: str) -> str | None:
    match = pattern.search(html)
    return match.group(1).strip() if match else None


def _to_float(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def parse_fundamentals(html: str) -> Fundamentals:
    return Fundamentals(
        pe_ratio=_to_float(_extract(_PE_RATIO_RE, html)),
        eps=_to_float(_extract(_EPS_RE, html)),
        market_cap=_extract(_MARKET_CAP_RE, html),
        dividend_yield=_extract(_DIVIDEND_YIELD_RE, html),
        year_high=_to_float(_extract(_YEAR_HIGH_RE, html)),
        year_low=_to_float(_extract(_YEAR_LOW_RE, html)),
    )


class FundamentalsScraper:
    """Best-effort scrape of the Google Finance quote page. Not cached or retried."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = "https://www.google.com/finance",
        exchange: str = "NSE",
        timeout: float = 10.0,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._exchange = exchange
        self._timeout = timeout

    async def fetch_fundamentals(self, symbol: str) -> Fundamentals | None:
        url = f"{self._base_url}/quote/{quote(symbol, safe='')}:{self._exchange}"
        try:
            response = await self._http.get(url, headers=_HEADERS, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Fundamentals request failed for %s: %r", symbol, exc)
            return None
        return parse_fundamentals(response.text)
