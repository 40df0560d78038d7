from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Fundamentals(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pe_ratio: float | None = None
    eps: float | None = None
    market_cap: str | None = None
    dividend_yield: str | None = None
    year_high: float | None = None
    year_low: float | None = None
