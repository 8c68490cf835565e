"""Network connectivity probe.

Answers "is there route-level network connectivity" from OS indicators:

1. NetworkManager service state (advisory, logged only)
2. ``nmcli`` general state
3. ``nmcli`` device state for the wireless interface, or a default route when
   the device query is unavailable

Each check is best-effort. A check that cannot run (tool absent, non-zero
exit, timeout) is treated as unknown and the probe moves on to the next one;
the answer is False only when no check establishes connectivity.
"""

from __future__ import annotations

import logging

from powerdock.commands import CommandRunner

LOGGER = logging.getLogger(__name__)

CHECK_TIMEOUT_SECONDS = 2.0
DEVICE_CONNECTED_CODE = "100"


class ConnectivityProbe:
    def __init__(
        self,
        runner: CommandRunner,
        *,
        interface: str = "wlan0",
        logger: logging.Logger | None = None,
    ) -> None:
        self.runner = runner
        self.interface = interface
        self._logger = logger or LOGGER

    def has_connectivity(self) -> bool:
        self._log_service_state()

        general = self._general_state()
        if general == "connected":
            self._logger.info("[net] Network connected (general state)")
            return True

        device = self._device_state()
        if device is not None:
            if self._device_is_connected(device):
                self._logger.info("[net] %s connected", self.interface)
                return True
            self._logger.debug("[net] %s not connected (state: %s)", self.interface, device)
        else:
            self._logger.debug("[net] Could not check %s state, trying route check", self.interface)
            if self._has_default_route():
                self._logger.info("[net] Network connected (via route check)")
                return True

        self._logger.debug("[net] No network connectivity")
        return False

    def _log_service_state(self) -> None:
        result = self.runner.run(
            ["systemctl", "is-active", "NetworkManager.service"],
            timeout=CHECK_TIMEOUT_SECONDS,
        )
        state = result.first_line or "unknown"
        if state != "active":
            self._logger.debug("[net] NetworkManager not active (%s)", state)
        else:
            self._logger.debug("[net] NetworkManager status: %s", state)

    def _general_state(self) -> str | None:
        result = self.runner.run(
            ["nmcli", "-t", "-f", "STATE", "general"],
            timeout=CHECK_TIMEOUT_SECONDS,
        )
        if not result.ok:
            self._logger.debug("[net] Could not check general network state (rc=%s)", result.returncode)
            return None
        state = result.first_line
        self._logger.debug("[net] General network state: %s", state or "<empty>")
        return state or None

    def _device_state(self) -> str | None:
        result = self.runner.run(
            ["nmcli", "-t", "-f", "GENERAL.STATE", "device", "show", self.interface],
            timeout=CHECK_TIMEOUT_SECONDS,
        )
        if not result.ok or not result.first_line:
            return None
        line = result.first_line
        # terse output: GENERAL.STATE:100 (connected)
        if line.startswith("GENERAL.STATE:"):
            line = line.split(":", 1)[1]
        return line.strip()

    @staticmethod
    def _device_is_connected(state: str) -> bool:
        code = state.split(" ", 1)[0]
        return code == DEVICE_CONNECTED_CODE or "(connected)" in state or state == "connected"

    def _has_default_route(self) -> bool:
        result = self.runner.run(["ip", "route", "show", "default"], timeout=CHECK_TIMEOUT_SECONDS)
        if not result.ok:
            self._logger.warning("[net] Could not check default route (rc=%s)", result.returncode)
            return False
        return result.first_line.startswith("default")
