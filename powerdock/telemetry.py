"""Live telemetry feed ingestion.

An external writer rewrites the feed file several times per second, so a
reader regularly catches it truncated or half-written. The ingestor treats
that as routine: a bad cycle leaves the display exactly as it was, and the
diagnostics run on two independent tracks:

- structural problems (unparsable JSON, wrong shape) share one failure streak
  with an asymmetric debounce: report the first failure at once, then only
  sustained streaks, at most every few seconds;
- out-of-band voltages get their own per-module cool-down.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from powerdock.rate_limit import Clock, Cooldowns, IngestionHealth, LogOnce, monotonic_clock
from powerdock.surface import DisplaySurface
from powerdock.utils import clamp, finite_float

LOGGER = logging.getLogger(__name__)

MIN_FEED_BYTES = 50
DEFAULT_MODULE_COUNT = 8
DEFAULT_VOLTAGE_MIN = 18.0
DEFAULT_VOLTAGE_MAX = 21.0
VOLTAGE_WARNING_COOLDOWN_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class ModuleReading:
    bus_voltage: float
    percent: int


TelemetryReading = dict[int, ModuleReading]


def voltage_to_percent(
    voltage: float,
    voltage_min: float = DEFAULT_VOLTAGE_MIN,
    voltage_max: float = DEFAULT_VOLTAGE_MAX,
) -> int:
    """Map a bus voltage onto 0-100 % of the configured charge window."""
    span = voltage_max - voltage_min
    return clamp(round(100 * (voltage - voltage_min) / span), 0, 100)


class TelemetryIngestor:
    def __init__(
        self,
        feed_path: Path,
        surface: DisplaySurface,
        *,
        module_count: int = DEFAULT_MODULE_COUNT,
        voltage_min: float = DEFAULT_VOLTAGE_MIN,
        voltage_max: float = DEFAULT_VOLTAGE_MAX,
        clock: Clock = monotonic_clock,
        logger: logging.Logger | None = None,
    ) -> None:
        if voltage_max <= voltage_min:
            raise ValueError("voltage_max must be greater than voltage_min")
        self.feed_path = feed_path
        self.surface = surface
        self.module_count = module_count
        self.voltage_min = voltage_min
        self.voltage_max = voltage_max
        self.health = IngestionHealth()
        self.last_reading: TelemetryReading | None = None
        self._voltage_warnings = Cooldowns(VOLTAGE_WARNING_COOLDOWN_SECONDS)
        self._once = LogOnce()
        self._clock = clock
        self._logger = logger or LOGGER

    def poll(self) -> TelemetryReading | None:
        """Run one ingestion cycle; return the new reading or None if skipped."""
        if self._once.first("first-poll"):
            self._logger.debug("[telemetry] Feed file: %s", self.feed_path)

        raw = self._read_feed()
        if raw is None:
            return None

        now = self._clock()
        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            self._report_failure(now, "JSON parse errors detected (%d consecutive): %s", exc)
            return None

        modules = self._extract_modules(payload, now)
        if modules is None:
            return None

        recovered = self.health.record_success()
        if recovered:
            self._logger.info("[telemetry] JSON parsing recovered after %d errors", recovered)
        elif recovered == 0:
            self._logger.info("[telemetry] Telemetry feed available again")

        reading = self._apply_modules(modules, now)
        self.last_reading = reading
        return reading

    def _read_feed(self) -> bytes | None:
        try:
            size = self.feed_path.stat().st_size
        except FileNotFoundError:
            if self.health.mark_unhealthy():
                self._logger.error("[telemetry] Feed file not found: %s", self.feed_path)
            return None
        except OSError as exc:
            if self.health.mark_unhealthy():
                self._logger.error("[telemetry] Could not stat feed file %s: %s", self.feed_path, exc)
            return None

        # A file this small is being truncated/rewritten right now.
        if size < MIN_FEED_BYTES:
            return None

        try:
            return self.feed_path.read_bytes()
        except MemoryError:
            self._logger.error("[telemetry] Out of memory reading %d bytes, skipping cycle", size)
        except OSError as exc:
            if self.health.mark_unhealthy():
                self._logger.error("[telemetry] Could not open feed file %s: %s", self.feed_path, exc)
        return None

    def _extract_modules(self, payload: Any, now: float) -> list[Any] | None:
        if not isinstance(payload, dict) or "modules" not in payload:
            self._report_failure(now, "'modules' key not found in JSON (%d consecutive)")
            return None
        modules = payload["modules"]
        if not isinstance(modules, list):
            self._report_failure(
                now,
                "'modules' is not an array (%d consecutive, type: %s)",
                type(modules).__name__,
            )
            return None
        return modules

    def _report_failure(self, now: float, message: str, *args: object) -> None:
        if self.health.record_failure(now):
            self._logger.warning("[telemetry] " + message, self.health.consecutive_failures, *args)
            self._logger.debug("[telemetry] This usually happens during file write operations")

    def _apply_modules(self, modules: list[Any], now: float) -> TelemetryReading:
        reading: TelemetryReading = {}
        for index, entry in enumerate(modules):
            if index >= self.module_count:
                if self._once.first("module-limit"):
                    self._logger.warning(
                        "[telemetry] Reached module limit (%d), ignoring %d extra module(s)",
                        self.module_count,
                        len(modules) - self.module_count,
                    )
                break

            voltage = self._module_voltage(index, entry)
            if voltage is None:
                continue

            self._warn_out_of_band(index, voltage, now)
            percent = voltage_to_percent(voltage, self.voltage_min, self.voltage_max)
            reading[index] = ModuleReading(bus_voltage=voltage, percent=percent)
            self.surface.show_module_reading(index, percent, f"{voltage:.1f}", percent)

        if self._once.first("first-apply"):
            self._logger.debug("[telemetry] Updated %d/%d modules (first time)", len(reading), len(modules))
        return reading

    def _module_voltage(self, index: int, entry: Any) -> float | None:
        if not isinstance(entry, dict) or "bus_voltage" not in entry:
            if self._once.first(("missing", index)):
                self._logger.debug("[telemetry] Module %d: 'bus_voltage' key not found", index)
            return None
        voltage = finite_float(entry["bus_voltage"])
        if voltage is None:
            if self._once.first(("not-number", index)):
                self._logger.debug("[telemetry] Module %d: bus_voltage is not a number", index)
            return None
        return voltage

    def _warn_out_of_band(self, index: int, voltage: float, now: float) -> None:
        if voltage < self.voltage_min:
            if self._voltage_warnings.ready(index, now):
                self._logger.warning(
                    "[telemetry] Module %d: Low voltage %.2f V (below %.1f V)", index, voltage, self.voltage_min
                )
        elif voltage > self.voltage_max:
            if self._voltage_warnings.ready(index, now):
                self._logger.warning(
                    "[telemetry] Module %d: High voltage %.2f V (above %.1f V)", index, voltage, self.voltage_max
                )
