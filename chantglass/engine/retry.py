"""Bounded retry schedule for cue load requests.

A cue load is attempted after ``initial_delay_s``; if the backend is not ready
yet, it is retried once per entry of ``retry_delays_s`` and then abandoned.
Each retry delay is an upper bound: a readiness signal ends the wait early.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class RetryPolicy:
    """
    Delay schedule for load attempts.

    Attributes:
        initial_delay_s: Wait before the first attempt (lets the surface materialize)
        retry_delays_s: Wait before each retry, in order
    """
    initial_delay_s: float = 0.0
    retry_delays_s: tuple[float, ...] = (0.5, 1.0)

    def __post_init__(self):
        if not isinstance(self.retry_delays_s, tuple):
            object.__setattr__(self, "retry_delays_s", tuple(self.retry_delays_s))
        if self.initial_delay_s < 0:
            raise ValueError(f"initial_delay_s must be non-negative, got {self.initial_delay_s}")
        if any(delay < 0 for delay in self.retry_delays_s):
            raise ValueError(f"retry delays must be non-negative, got {self.retry_delays_s}")

    @property
    def max_attempts(self) -> int:
        return 1 + len(self.retry_delays_s)

    def delays(self) -> Iterator[float]:
        """Yield the wait before each attempt, first attempt included."""
        yield self.initial_delay_s
        yield from self.retry_delays_s


# Success waits longer so the reveal effects play before the video starts.
SUCCESS_RETRY = RetryPolicy(initial_delay_s=1.5, retry_delays_s=(0.5, 1.0))
FAILURE_RETRY = RetryPolicy(initial_delay_s=0.5, retry_delays_s=(0.5, 1.0))

__all__ = ["RetryPolicy", "SUCCESS_RETRY", "FAILURE_RETRY"]
