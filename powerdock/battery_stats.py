"""Per-module statistics panel.

When the user opens the info panel for one battery module the reader keeps
it fresh from the statistics file until the panel is closed.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable
from pathlib import Path
from typing import Any

from powerdock.rate_limit import LogOnce
from powerdock.surface import DisplaySurface
from powerdock.utils import finite_float

LOGGER = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


def format_duration(seconds: float) -> str:
    total = max(0, int(seconds)) if math.isfinite(seconds) else 0
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


# field name -> formatter, in panel order
DETAIL_FIELDS: dict[str, Callable[[float], str]] = {
    "total_charging_time": format_duration,
    "wh": lambda value: f"{value:.2f} Wh",
    "ah": lambda value: f"{value:.3f} Ah",
    "min_temp": lambda value: f"{value:.1f} C",
    "max_temp": lambda value: f"{value:.1f} C",
    "soh": lambda value: f"{value:.1f} %",
    "soc": lambda value: f"{value:.1f} %",
}


def format_details(module: dict[str, Any]) -> dict[str, str]:
    """Format the finite numeric detail fields present in ``module``."""
    fields: dict[str, str] = {}
    for name, formatter in DETAIL_FIELDS.items():
        value = finite_float(module.get(name))
        if value is not None:
            fields[name] = formatter(value)
    return fields


class BatteryStatsReader:
    def __init__(
        self,
        stats_path: Path,
        surface: DisplaySurface,
        *,
        module_count: int = 8,
        logger: logging.Logger | None = None,
    ) -> None:
        self.stats_path = stats_path
        self.surface = surface
        self.module_count = module_count
        self.selected: int | None = None
        self._once = LogOnce()
        self._logger = logger or LOGGER

    def select(self, module_id: int) -> bool:
        if not 0 <= module_id < self.module_count:
            self._logger.error("[stats] Invalid battery ID: %d", module_id)
            return False
        self._logger.info("[stats] Battery info selected: ID=%d", module_id)
        self.selected = module_id
        self.refresh()
        return True

    def clear_selection(self) -> None:
        self.selected = None

    def refresh(self) -> None:
        """Refresh the selected module's panel; no-op when nothing is selected."""
        module_id = self.selected
        if module_id is None:
            return

        try:
            raw = self.stats_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._logger.warning("[stats] Could not open %s", self.stats_path)
            self.surface.show_battery_details(module_id, {name: NOT_AVAILABLE for name in DETAIL_FIELDS})
            return
        except (OSError, UnicodeDecodeError, MemoryError) as exc:
            self._logger.warning("[stats] Could not read %s: %s", self.stats_path, exc)
            return

        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError):
            self._logger.error("[stats] Could not parse battery stats JSON")
            return

        modules = payload.get("modules") if isinstance(payload, dict) else None
        if not isinstance(modules, list):
            self._logger.error("[stats] modules is not an array in stats JSON")
            return

        module = next(
            (
                item
                for item in modules
                if isinstance(item, dict) and finite_float(item.get("id")) == module_id
            ),
            None,
        )
        if module is None:
            self._logger.warning("[stats] Module %d not found in stats", module_id)
            return

        fields = format_details(module)
        if fields:
            self.surface.show_battery_details(module_id, fields)
        if self._once.first(module_id):
            self._logger.debug("[stats] Battery %d info updated successfully", module_id)
