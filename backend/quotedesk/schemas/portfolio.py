from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Holding(_CamelModel):
    stock_name: str
    exchange_code: str
    sector: str
    quantity: float = Field(ge=0)
    purchase_price: float = Field(ge=0)


class HoldingView(Holding):
    current_price: float | None = None
    currency: str | None = None
    investment: float
    current_value: float
    gain_loss: float
    gain_loss_pct: float
    portfolio_pct: float = 0.0
    cached: bool = False
    warning: str | None = None
    error: str | None = None
    last_updated: datetime.datetime | None = None


class SectorSummary(_CamelModel):
    sector: str
    investment: float
    current_value: float
    gain_loss: float
    gain_loss_pct: float


class PortfolioOverview(_CamelModel):
    holdings: list[HoldingView] = Field(default_factory=list)
    sectors: list[SectorSummary] = Field(default_factory=list)
    total_investment: float = 0.0
    total_current_value: float = 0.0
    total_gain_loss: float = 0.0
    total_gain_loss_pct: float = 0.0
    failed_symbols: list[str] = Field(default_factory=list)
