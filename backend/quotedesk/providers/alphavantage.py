from __future__ import annotations

import datetime
import logging

import httpx

from quotedesk.providers.ratelimit import RateLimiter
from quotedesk.providers.yahoo import DEFAULT_CURRENCY, parse_price
from quotedesk.schemas.quote import Quote

logger = logging.getLogger(__name__)

_QUERY_PATH = "/query"


class AlphaVantageClient:
    name = "alpha_vantage"

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: RateLimiter,
        api_key: str | None,
        base_url: str = "https://www.alphavantage.co",
        timeout: float = 10.0,
    ) -> None:
        self._http = http
        self._limiter = limiter
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def fetch_quote(self, symbol: str) -> Quote | None:
        if not self._api_key:
            logger.debug("Alpha Vantage API key not configured, skipping %s", symbol)
            return None

        await self._limiter.acquire()
        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self._api_key}
        try:
            response = await self._http.get(
                f"{self._base_url}{_QUERY_PATH}", params=params, timeout=self._timeout
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Alpha Vantage returned status %d for %s", exc.response.status_code, symbol
            )
            return None
        except httpx.HTTPError as exc:
            logger.warning("Alpha Vantage request failed for %s: %r", symbol, exc)
            return None
        except ValueError:
            logger.warning("Alpha Vantage returned a non-JSON body for %s", symbol)
            return None

        if not isinstance(payload, dict):
            logger.warning("Alpha Vantage payload for %s is not an object", symbol)
            return None
        # Throttled responses come back as 200 with a Note or Information message.
        notice = payload.get("Note") or payload.get("Information")
        if notice:
            logger.warning("Alpha Vantage declined %s: %s", symbol, notice)
            return None

        global_quote = payload.get("Global Quote")
        if not isinstance(global_quote, dict):
            logger.warning("Alpha Vantage payload for %s has no Global Quote", symbol)
            return None
        price = parse_price(global_quote.get("05. price"))
        if price is None:
            logger.warning(
                "Alpha Vantage returned no usable price for %s: %r",
                symbol,
                global_quote.get("05. price"),
            )
            return None

        return Quote(
            symbol=symbol,
            price=price,
            currency=DEFAULT_CURRENCY,
            source="secondary",
            observed_at=datetime.datetime.now(datetime.UTC),
        )
