import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from quotedesk.config.settings import settings
from quotedesk.portfolio.holdings import load_holdings
from quotedesk.portfolio.overview import build_overview
from quotedesk.providers.historical import DEFAULT_RANGE, VALID_RANGES
from quotedesk.providers.selector import normalize_symbol
from quotedesk.runtime import Services, get_services
from quotedesk.schemas.fundamentals import Fundamentals
from quotedesk.schemas.portfolio import Holding, PortfolioOverview
from quotedesk.schemas.quote import HistoricalResponse, QuoteResponse

router = APIRouter()


def _require_symbol(symbol: str | None) -> str:
    cleaned = normalize_symbol(symbol)
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Symbol parameter is required"},
        )
    return cleaned


def _timestamp() -> str:
    return datetime.datetime.now(datetime.UTC).isoformat()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/quote", response_model=QuoteResponse)
async def quote_endpoint(
    symbol: str | None = None,
    cache: bool = True,
    fallback: bool = True,
    services: Services = Depends(get_services),
):
    cleaned = _require_symbol(symbol)
    outcome = await services.quotes.get_quote(cleaned, use_cache=cache, use_fallback=fallback)
    if outcome.quote is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "Failed to fetch stock price after multiple attempts",
                "details": outcome.error or "Unknown error",
                "symbol": cleaned,
                "timestamp": _timestamp(),
            },
        )
    quote = outcome.quote
    return QuoteResponse(
        symbol=quote.symbol,
        price=quote.price,
        currency=quote.currency,
        source=quote.source,
        cached=outcome.cached,
        last_updated=quote.observed_at,
        warning=outcome.warning,
    )


@router.get("/historical", response_model=HistoricalResponse)
async def historical_endpoint(
    symbol: str | None = None,
    range_: str = Query(DEFAULT_RANGE, alias="range"),
    services: Services = Depends(get_services),
):
    cleaned = _require_symbol(symbol)
    if range_ not in VALID_RANGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": f"Unsupported range: {range_}", "allowed": sorted(VALID_RANGES)},
        )
    outcome = await services.history.get_history(cleaned, range_)
    if not outcome.ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "Failed to fetch historical data",
                "details": outcome.error or "Unknown error",
                "symbol": cleaned,
            },
        )
    return HistoricalResponse(data=outcome.bars, cached=outcome.cached, warning=outcome.warning)


@router.get("/fundamentals", response_model=Fundamentals)
async def fundamentals_endpoint(
    symbol: str | None = None, services: Services = Depends(get_services)
):
    cleaned = _require_symbol(symbol)
    fundamentals = await services.fundamentals.fetch_fundamentals(cleaned)
    if fundamentals is None:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Failed to fetch fundamental data", "symbol": cleaned},
        )
    return fundamentals


@router.get("/portfolio", response_model=list[Holding])
def portfolio_endpoint() -> list[Holding]:
    return load_holdings(settings.holdings_path)


@router.get("/portfolio/overview", response_model=PortfolioOverview)
async def portfolio_overview_endpoint(
    cache: bool = True, services: Services = Depends(get_services)
) -> PortfolioOverview:
    holdings = load_holdings(settings.holdings_path)
    return await build_overview(
        holdings,
        services.quotes,
        symbol_suffix=settings.holding_symbol_suffix,
        use_cache=cache,
    )


@router.get("/cache/stats")
def cache_stats(services: Services = Depends(get_services)) -> dict:
    return {"size": services.cache.size(), "keys": sorted(services.cache.keys())}


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
def clear_cache(services: Services = Depends(get_services)) -> None:
    services.cache.clear()
