from __future__ import annotations

import asyncio
from collections.abc import Sequence

from quotedesk.providers.selector import QuoteRetriever
from quotedesk.schemas.portfolio import (
    Holding,
    HoldingView,
    PortfolioOverview,
    SectorSummary,
)
from quotedesk.schemas.quote import RetrievalOutcome


def _pct(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def holding_symbol(holding: Holding, suffix: str) -> str:
    code = holding.exchange_code.strip().upper()
    if suffix and not code.endswith(suffix.upper()):
        return f"{code}{suffix.upper()}"
    return code


def _build_view(holding: Holding, outcome: RetrievalOutcome) -> HoldingView:
    investment = holding.quantity * holding.purchase_price
    quote = outcome.quote
    if quote is None:
        # Failed symbols are valued at cost so they do not distort totals.
        current_value = investment
        current_price = None
    else:
        current_value = holding.quantity * quote.price
        current_price = quote.price
    gain_loss = current_value - investment
    return HoldingView(
        **holding.model_dump(),
        current_price=current_price,
        currency=quote.currency if quote else None,
        investment=investment,
        current_value=current_value,
        gain_loss=gain_loss,
        gain_loss_pct=_pct(gain_loss, investment),
        cached=outcome.cached,
        warning=outcome.warning,
        error=outcome.error,
        last_updated=quote.observed_at if quote else None,
    )


def summarize_sectors(views: Sequence[HoldingView]) -> list[SectorSummary]:
    totals: dict[str, list[float]] = {}
    for view in views:
        bucket = totals.setdefault(view.sector, [0.0, 0.0])
        bucket[0] += view.investment
        bucket[1] += view.current_value

    summaries: list[SectorSummary] = []
    for sector, (investment, current_value) in totals.items():
        gain_loss = current_value - investment
        summaries.append(
            SectorSummary(
                sector=sector,
                investment=investment,
                current_value=current_value,
                gain_loss=gain_loss,
                gain_loss_pct=_pct(gain_loss, investment),
            )
        )
    summaries.sort(key=lambda summary: summary.current_value, reverse=True)
    return summaries


async def build_overview(
    holdings: Sequence[Holding],
    retriever: QuoteRetriever,
    symbol_suffix: str = "",
    use_cache: bool = True,
) -> PortfolioOverview:
    symbols = [holding_symbol(holding, symbol_suffix) for holding in holdings]
    outcomes = await asyncio.gather(
        *(retriever.get_quote(symbol, use_cache=use_cache) for symbol in symbols)
    )

    views = [_build_view(holding, outcome) for holding, outcome in zip(holdings, outcomes)]
    total_investment = sum(view.investment for view in views)
    total_current_value = sum(view.current_value for view in views)
    for view in views:
        view.portfolio_pct = _pct(view.current_value, total_investment)

    total_gain_loss = total_current_value - total_investment
    return PortfolioOverview(
        holdings=views,
        sectors=summarize_sectors(views),
        total_investment=total_investment,
        total_current_value=total_current_value,
        total_gain_loss=total_gain_loss,
        total_gain_loss_pct=_pct(total_gain_loss, total_investment),
        failed_symbols=[
            symbol for symbol, outcome in zip(symbols, outcomes) if outcome.quote is None
        ],
    )
