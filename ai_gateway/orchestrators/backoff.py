"""Backoff scheduler: next poll delay from the current delay and failures.

Pure functions, no I/O and no hidden state.  The poller calls
``next_interval`` once per poll call:

- normal path (fewer than ``failure_threshold`` consecutive failures):
  ``min(maximum, current * multiplier)``
- degraded path (``failure_threshold`` or more consecutive failures):
  ``min(maximum, current * multiplier * 2)``

With the defaults (1 s, x1.2, 5 s cap, threshold 3) a healthy task is
sampled at 1, 1.2, 1.44, ... seconds until the 5 s cap.
"""

from __future__ import annotations

from dataclasses import dataclass

from ai_gateway.core.constants import (
    DEFAULT_POLL_BACKOFF_MULTIPLIER,
    DEFAULT_POLL_FAILURE_THRESHOLD,
    DEFAULT_POLL_INITIAL_INTERVAL_SECONDS,
    DEFAULT_POLL_MAX_INTERVAL_SECONDS,
)

#: Extra widening factor applied on the degraded path.
DEGRADED_FACTOR = 2.0


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Parameters of the poll backoff.

    Attributes:
        initial: First delay in seconds (> 0).
        multiplier: Growth factor per poll (>= 1).
        maximum: Upper bound in seconds (>= initial).
        failure_threshold: Consecutive failures that select the degraded path.
    """

    initial: float = DEFAULT_POLL_INITIAL_INTERVAL_SECONDS
    multiplier: float = DEFAULT_POLL_BACKOFF_MULTIPLIER
    maximum: float = DEFAULT_POLL_MAX_INTERVAL_SECONDS
    failure_threshold: int = DEFAULT_POLL_FAILURE_THRESHOLD

    def __post_init__(self) -> None:
        if self.initial <= 0:
            msg = f"BackoffPolicy.initial must be > 0, got {self.initial!r}"
            raise ValueError(msg)
        if self.multiplier < 1.0:
            msg = f"BackoffPolicy.multiplier must be >= 1, got {self.multiplier!r}"
            raise ValueError(msg)
        if self.maximum < self.initial:
            msg = f"BackoffPolicy.maximum must be >= initial, got {self.maximum!r}"
            raise ValueError(msg)
        if self.failure_threshold < 1:
            msg = f"BackoffPolicy.failure_threshold must be >= 1, got {self.failure_threshold!r}"
            raise ValueError(msg)

    def is_degraded(self, consecutive_failures: int) -> bool:
        return consecutive_failures >= self.failure_threshold


DEFAULT_BACKOFF = BackoffPolicy()


def next_interval(
    current: float,
    consecutive_failures: int,
    policy: BackoffPolicy = DEFAULT_BACKOFF,
) -> float:
    """Return the delay to use before the next poll call.

    Args:
        current: The delay used before the poll call that just finished.
            A non-positive value restarts from ``policy.initial``.
        consecutive_failures: Transient failures since the last good sample.
        policy: Backoff parameters.

    Returns:
        A positive delay in seconds, never above ``policy.maximum``.
    """
    if current <= 0:
        return policy.initial

    factor = policy.multiplier
    if policy.is_degraded(consecutive_failures):
        factor *= DEGRADED_FACTOR

    return min(policy.maximum, current * factor)
