"""Explicit debounce state for noisy log sources.

These are plain values owned by the component that logs, so the policy is
visible at the call site and testable with an injected clock.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field

Clock = Callable[[], float]

FAILURE_LOG_INTERVAL_SECONDS = 10.0
FAILURE_LOG_MIN_STREAK = 20


@dataclass
class IngestionHealth:
    """Failure streak bookkeeping for a racy input source.

    The first failure after a healthy period is reported immediately. While
    failures continue, another report is allowed only once more than
    ``min_streak`` failures have accumulated since the last report *and* more
    than ``interval`` seconds have passed.
    """

    interval: float = FAILURE_LOG_INTERVAL_SECONDS
    min_streak: int = FAILURE_LOG_MIN_STREAK
    consecutive_failures: int = 0
    failures_since_log: int = 0
    last_logged_at: float | None = None
    healthy: bool = True

    def record_failure(self, now: float) -> bool:
        """Count a failure; return True when it should be logged."""
        self.consecutive_failures += 1
        self.failures_since_log += 1
        first_transition = self.healthy and self.consecutive_failures == 1
        sustained = (
            self.failures_since_log > self.min_streak
            and (self.last_logged_at is None or now - self.last_logged_at > self.interval)
        )
        self.healthy = False
        if first_transition or sustained:
            self.last_logged_at = now
            self.failures_since_log = 0
            return True
        return False

    def mark_unhealthy(self) -> bool:
        """Flag an outage that is not counted as a parse failure.

        Returns True only on the healthy -> unhealthy transition.
        """
        was_healthy = self.healthy
        self.healthy = False
        return was_healthy

    def record_success(self) -> int | None:
        """Reset the streak; return the failure count if this was a recovery."""
        if self.healthy and self.consecutive_failures == 0:
            return None
        failures = self.consecutive_failures
        self.consecutive_failures = 0
        self.failures_since_log = 0
        self.healthy = True
        return failures


@dataclass
class Cooldowns:
    """Per-key cool-down: at most one event per ``period`` seconds per key."""

    period: float
    _last: dict[Hashable, float] = field(default_factory=dict, repr=False)

    def ready(self, key: Hashable, now: float) -> bool:
        last = self._last.get(key)
        if last is not None and now - last <= self.period:
            return False
        self._last[key] = now
        return True


@dataclass
class LogOnce:
    """Remember which one-time messages have already been emitted."""

    _seen: set[Hashable] = field(default_factory=set, repr=False)

    def first(self, key: Hashable) -> bool:
        if key in self._seen:
            return False
        self._seen.add(key)
        return True


def monotonic_clock() -> float:
    return time.monotonic()
