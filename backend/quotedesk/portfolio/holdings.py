from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from quotedesk.core.exceptions import HoldingsError
from quotedesk.schemas.portfolio import Holding

_HOLDINGS_ADAPTER = TypeAdapter(list[Holding])


def load_holdings(path: str | Path) -> list[Holding]:
    """Read the holdings document, a JSON list of holding records."""
    holdings_path = Path(path)
    try:
        raw = holdings_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise HoldingsError(f"Cannot read holdings file {holdings_path}: {exc}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HoldingsError(f"Holdings file {holdings_path} is not valid JSON: {exc}") from exc

    try:
        return _HOLDINGS_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise HoldingsError(
            f"Holdings file {holdings_path} has invalid records: {exc.error_count()} error(s)"
        ) from exc
