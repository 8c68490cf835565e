"""
Shared utility functions for parsing and data manipulation

Provides common helpers for:
- String parsing: Environment variable conversion (parse_bool, parse_int, parse_float)
- Numeric helpers: clamping, JSON number checks and finite float conversion
- Hostname sanitization for MQTT topic segments

These utilities are used throughout PowerDock for configuration parsing and data handling.
"""

from __future__ import annotations

import math
from typing import Any


def sanitize_hostname_for_topic(hostname: str) -> str:
    """Convert hostnames to MQTT topic-safe segments."""
    return hostname.lower().replace(".", "_").replace("/", "_").replace("+", "_").replace("#", "_")


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Interpret env-style booleans."""
    if value is None:
        return default
    stripped = value.strip().lower()
    if not stripped:
        return default
    return stripped in {"1", "true", "yes", "on"}


def parse_int(value: str | None, default: int) -> int:
    """Best-effort int parser with fallback."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_float(value: str | None, default: float) -> float:
    """Best-effort float parser with fallback."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def clamp(value: int, low: int, high: int) -> int:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))


def is_json_number(value: Any) -> bool:
    """True for JSON numbers (``bool`` is an ``int`` subclass and is rejected)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def finite_float(value: Any) -> float | None:
    """Return ``value`` as a finite float, or None for non-numbers, NaN, inf and overflow."""
    if not is_json_number(value):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None
