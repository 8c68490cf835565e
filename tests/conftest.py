"""Shared test fixtures and configuration for the PowerDock test suite.

This module provides reusable fixtures for common test scenarios including:
- A fake command runner that records invocations instead of executing
- A recording display surface
- Core configuration objects
- Feed file helpers
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
from powerdock.commands import COMMAND_NOT_FOUND, CommandResult
from powerdock.config import CoreConfig
from powerdock.surface import Severity

# ============================================================================
# Command runner
# ============================================================================


class FakeRunner:
    """Command runner returning canned results keyed by argv prefix."""

    def __init__(self, responses: dict[tuple[str, ...], tuple[int, str]] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[tuple[str, ...], bool]] = []

    def set(self, argv: Sequence[str], returncode: int = 0, stdout: str = "") -> None:
        self.responses[tuple(argv)] = (returncode, stdout)

    def run(self, argv: Sequence[str], *, detach: bool = False, timeout: float | None = None) -> CommandResult:
        command = tuple(argv)
        self.calls.append((command, detach))
        for prefix in sorted(self.responses, key=len, reverse=True):
            if command[: len(prefix)] == prefix:
                returncode, stdout = self.responses[prefix]
                return CommandResult(command, returncode, stdout)
        return CommandResult(command, COMMAND_NOT_FOUND)

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [command for command, _detach in self.calls]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


# ============================================================================
# Display surface
# ============================================================================


class RecordingSurface:
    """Display surface that records every notification it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def present_update_decision(self, version: str) -> None:
        self.events.append(("decision", version))

    def dismiss_update_decision(self) -> None:
        self.events.append(("dismiss",))

    def present_message(self, text: str, severity: Severity) -> None:
        self.events.append(("message", text, severity))

    def show_module_reading(self, index: int, percent: int, voltage_text: str, bar_value: int) -> None:
        self.events.append(("module", index, percent, voltage_text, bar_value))

    def show_battery_details(self, module_id: int, fields: dict[str, str]) -> None:
        self.events.append(("details", module_id, dict(fields)))

    @property
    def messages(self) -> list[str]:
        return [event[1] for event in self.events if event[0] == "message"]

    def of_kind(self, kind: str) -> list[tuple[Any, ...]]:
        return [event for event in self.events if event[0] == kind]


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture
def mock_logger():
    """Mock logger restricted to the logging.Logger interface."""
    return Mock(spec=logging.Logger)


# ============================================================================
# Configuration
# ============================================================================


@pytest.fixture
def core_env(tmp_path: Path) -> dict[str, str]:
    return {
        "POWERDOCK_HOSTNAME": "dock-01",
        "POWERDOCK_HOME": str(tmp_path),
        "POWERDOCK_CONF_PATH": str(tmp_path / "powerdock.conf"),
        "POWERDOCK_VERSION": "1.0.3",
    }


@pytest.fixture
def core_config(core_env: dict[str, str]) -> CoreConfig:
    return CoreConfig.from_env(core_env)


# ============================================================================
# Feed helpers
# ============================================================================


def feed_payload(*voltages: Any, **extra: Any) -> str:
    """Build a telemetry feed document padded past the plausibility floor."""
    modules = [{"bus_voltage": voltage, "current": 1.25, "temperature": 24.5} for voltage in voltages]
    payload = {"modules": modules, "timestamp": "2026-10-16T08:00:00Z"}
    payload.update(extra)
    return json.dumps(payload)


@pytest.fixture
def write_feed(tmp_path: Path):
    path = tmp_path / "gui_data.json"

    def _write(content: str | bytes) -> Path:
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    _write.path = path  # type: ignore[attr-defined]
    return _write


@pytest.fixture
def make_feed():
    """Factory fixture for feed documents (see :func:`feed_payload`)."""
    return feed_payload
