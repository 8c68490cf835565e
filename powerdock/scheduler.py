"""Single-threaded periodic job driver.

Every job runs on the thread that calls :meth:`Scheduler.run_pending`, one
after another, so components driven from here never need locks. A job that
overruns simply delays the next ones; missed periods are not replayed.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from powerdock.rate_limit import Clock, monotonic_clock

LOGGER = logging.getLogger(__name__)


@dataclass
class PeriodicJob:
    name: str
    period: float
    callback: Callable[[], object]
    next_run: float
    runs: int = 0


class Scheduler:
    def __init__(
        self,
        *,
        clock: Clock = monotonic_clock,
        sleep: Callable[[float], object] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._logger = logger or LOGGER
        self._jobs: list[PeriodicJob] = []
        self._stop = threading.Event()

    @property
    def jobs(self) -> list[PeriodicJob]:
        return list(self._jobs)

    def every(self, period: float, callback: Callable[[], object], *, name: str, run_now: bool = False) -> PeriodicJob:
        if period <= 0:
            raise ValueError("Job period must be positive")
        now = self._clock()
        job = PeriodicJob(name=name, period=period, callback=callback, next_run=now if run_now else now + period)
        self._jobs.append(job)
        return job

    def run_pending(self, now: float | None = None) -> int:
        """Run every job that is due; return how many ran."""
        current = self._clock() if now is None else now
        ran = 0
        for job in list(self._jobs):
            if current < job.next_run:
                continue
            try:
                job.callback()
            except Exception as exc:  # noqa: BLE001 - one failing job must not stop the loop
                self._logger.error("[scheduler] Job '%s' failed: %s", job.name, exc, exc_info=True)
            job.runs += 1
            job.next_run += job.period
            if job.next_run <= current:
                job.next_run = current + job.period
            ran += 1
        return ran

    def seconds_until_next(self, now: float | None = None) -> float:
        if not self._jobs:
            return 1.0
        current = self._clock() if now is None else now
        return max(0.0, min(job.next_run for job in self._jobs) - current)

    def run_forever(self) -> None:
        self._logger.info("[scheduler] Entering run loop with %d job(s)", len(self._jobs))
        while not self._stop.is_set():
            self.run_pending()
            self._sleep(self.seconds_until_next())
        self._logger.info("[scheduler] Run loop stopped")

    def stop(self) -> None:
        self._stop.set()
