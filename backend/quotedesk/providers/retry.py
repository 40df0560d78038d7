from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


def linear_backoff(attempt: int, base_delay: float) -> float:
    return attempt * base_delay


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 2.0
    backoff: Callable[[int, float], float] = field(default=linear_backoff)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay_before(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (zero-based)."""
        if attempt <= 0:
            return 0.0
        return self.backoff(attempt, self.base_delay)
