"""Display surface seen by the core.

The touch UI itself lives outside this package. The core only pushes
fire-and-forget notifications through :class:`DisplaySurface`; no return
value is ever consumed.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

LOGGER = logging.getLogger(__name__)


class Severity(enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class DisplaySurface(Protocol):
    def present_update_decision(self, version: str) -> None: ...

    def dismiss_update_decision(self) -> None: ...

    def present_message(self, text: str, severity: Severity) -> None: ...

    def show_module_reading(self, index: int, percent: int, voltage_text: str, bar_value: int) -> None: ...

    def show_battery_details(self, module_id: int, fields: Mapping[str, str]) -> None: ...


_SEVERITY_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.WARNING,
}


class LoggingSurface:
    """Surface that only writes to the log (headless runs, development)."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER

    def present_update_decision(self, version: str) -> None:
        self._logger.info("[surface] Install update v%s? (awaiting confirm/cancel)", version)

    def dismiss_update_decision(self) -> None:
        self._logger.debug("[surface] Update decision dismissed")

    def present_message(self, text: str, severity: Severity) -> None:
        self._logger.log(_SEVERITY_LEVELS[severity], "[surface] %s", text)

    def show_module_reading(self, index: int, percent: int, voltage_text: str, bar_value: int) -> None:
        self._logger.debug("[surface] Module %d: %d%% (%s V)", index, percent, voltage_text)

    def show_battery_details(self, module_id: int, fields: Mapping[str, str]) -> None:
        self._logger.debug(
            "[surface] Battery %d: %s",
            module_id,
            ", ".join(f"{name}={value}" for name, value in fields.items()),
        )


class SurfaceFanout:
    """Forward every notification to several surfaces.

    A failing surface is logged and skipped so the others still update.
    """

    def __init__(self, surfaces: Iterable[DisplaySurface], logger: logging.Logger | None = None) -> None:
        self.surfaces = list(surfaces)
        self._logger = logger or LOGGER

    def _each(self, method: str, *args: object) -> None:
        for surface in self.surfaces:
            try:
                getattr(surface, method)(*args)
            except Exception as exc:  # noqa: BLE001 - one broken surface must not starve the rest
                self._logger.error("[surface] %s.%s failed: %s", type(surface).__name__, method, exc)

    def present_update_decision(self, version: str) -> None:
        self._each("present_update_decision", version)

    def dismiss_update_decision(self) -> None:
        self._each("dismiss_update_decision")

    def present_message(self, text: str, severity: Severity) -> None:
        self._each("present_message", text, severity)

    def show_module_reading(self, index: int, percent: int, voltage_text: str, bar_value: int) -> None:
        self._each("show_module_reading", index, percent, voltage_text, bar_value)

    def show_battery_details(self, module_id: int, fields: Mapping[str, str]) -> None:
        self._each("show_battery_details", module_id, fields)
