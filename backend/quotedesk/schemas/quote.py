from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

QuoteSource = Literal["primary", "secondary", "cache"]


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(ge=0, allow_inf_nan=False)
    currency: str = "USD"
    source: QuoteSource
    observed_at: datetime.datetime


class RetrievalOutcome(BaseModel):
    quote: Quote | None = None
    cached: bool = False
    warning: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _quote_or_error(self) -> RetrievalOutcome:
        if (self.quote is None) == (self.error is None):
            raise ValueError("outcome must carry either a quote or an error")
        return self


class HistoricalBar(BaseModel):
    date: str
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: int | None = None


class HistoricalOutcome(BaseModel):
    bars: list[HistoricalBar] = Field(default_factory=list)
    cached: bool = False
    warning: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _bars_or_error(self) -> HistoricalOutcome:
        if bool(self.bars) == (self.error is not None):
            raise ValueError("outcome must carry either bars or an error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


class QuoteResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    symbol: str
    price: float
    currency: str
    source: QuoteSource
    cached: bool
    last_updated: datetime.datetime
    warning: str | None = None


class HistoricalResponse(BaseModel):
    data: list[HistoricalBar]
    cached: bool
    warning: str | None = None
