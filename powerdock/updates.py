"""Update check and install state machine.

States::

    IDLE --check_for_update()--> CHECKING
    CHECKING --newer release--> AWAITING_CONFIRMATION(v)
    CHECKING --up to date / failure / no network--> IDLE
    AWAITING_CONFIRMATION(v) --confirm()--> INSTALLING(v) --> IDLE
    AWAITING_CONFIRMATION(v) --cancel()--> CANCELLED --> IDLE

Only one update flow runs at a time: a new check is rejected (not queued)
unless the machine is IDLE, and confirm/cancel are ignored outside
AWAITING_CONFIRMATION. All transitions happen synchronously on the caller's
thread.
"""

from __future__ import annotations

import enum
import logging
from typing import Protocol

from powerdock.credentials import CredentialLoader
from powerdock.installer import Installer
from powerdock.release_client import FetchErrorKind, ReleaseFetchError, ReleaseInfo
from powerdock.surface import DisplaySurface, Severity
from powerdock.version import is_newer

LOGGER = logging.getLogger(__name__)


class UpdateState(enum.Enum):
    IDLE = "idle"
    CHECKING = "checking"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    INSTALLING = "installing"
    CANCELLED = "cancelled"


class CheckOutcome(enum.Enum):
    NO_CONNECTIVITY = "no_connectivity"
    UPDATE_AVAILABLE = "update_available"
    UP_TO_DATE = "up_to_date"
    FAILED = "failed"
    INSTALL_STARTED = "install_started"
    INSTALL_FAILED = "install_failed"
    CANCELLED = "cancelled"


MSG_CHECKING = "Checking for updates..."
MSG_NO_CONNECTIVITY = "No WiFi connection"
MSG_UP_TO_DATE = "Software is up to date"
MSG_CHECK_FAILED = "OTA: Update check failed"
MSG_INSTALLING = "Installing update..."
MSG_INSTALL_STARTED = "Update started - check logs"
MSG_INSTALL_FAILED = "Update failed to start"
MSG_CANCELLED = "Update cancelled"

FETCH_ERROR_MESSAGES: dict[FetchErrorKind, str] = {
    FetchErrorKind.CONNECTION_FAILED: "OTA: Connection failed",
    FetchErrorKind.AUTH_FAILED: "OTA: Auth failed",
    FetchErrorKind.NOT_FOUND: "OTA: No releases found",
    FetchErrorKind.API_ERROR: "OTA: API error",
    FetchErrorKind.INVALID_RESPONSE: "OTA: Invalid response",
}


class ConnectivityCheck(Protocol):
    def has_connectivity(self) -> bool: ...


class ReleaseSource(Protocol):
    def fetch_latest_release(self, token: str | None = None) -> ReleaseInfo: ...


class UpdateOrchestrator:
    def __init__(
        self,
        *,
        current_version: str,
        connectivity: ConnectivityCheck,
        releases: ReleaseSource,
        credentials: CredentialLoader,
        installer: Installer,
        surface: DisplaySurface,
        logger: logging.Logger | None = None,
    ) -> None:
        self.current_version = current_version
        self.connectivity = connectivity
        self.releases = releases
        self.credentials = credentials
        self.installer = installer
        self.surface = surface
        self._logger = logger or LOGGER
        self._state = UpdateState.IDLE
        self._pending_version: str | None = None
        self.last_outcome: CheckOutcome | None = None
        self.last_error: FetchErrorKind | None = None

    @property
    def state(self) -> UpdateState:
        return self._state

    @property
    def pending_version(self) -> str | None:
        return self._pending_version

    def _to_idle(self) -> None:
        self._state = UpdateState.IDLE
        self._pending_version = None

    def check_for_update(self) -> bool:
        """Start one update check. Returns False if rejected because one is in flight."""
        if self._state is not UpdateState.IDLE:
            self._logger.info("[ota] Update check ignored; state is %s", self._state.value)
            return False

        self._state = UpdateState.CHECKING
        self.last_error = None
        self._logger.info("[ota] Checking for updates...")
        try:
            self._run_check()
        except Exception as exc:  # noqa: BLE001 - a failed check must never take the device down
            self._logger.error("[ota] Unexpected error during update check: %s", exc, exc_info=True)
            self.last_outcome = CheckOutcome.FAILED
            self._to_idle()
            self.surface.present_message(MSG_CHECK_FAILED, Severity.ERROR)
        return True

    def _run_check(self) -> None:
        if not self.connectivity.has_connectivity():
            self._logger.warning("[ota] No network connection, skipping update check")
            self.last_outcome = CheckOutcome.NO_CONNECTIVITY
            self._to_idle()
            self.surface.present_message(MSG_NO_CONNECTIVITY, Severity.ERROR)
            return

        self.surface.present_message(MSG_CHECKING, Severity.INFO)
        token = self.credentials.load_token()
        try:
            release = self.releases.fetch_latest_release(token)
        except ReleaseFetchError as exc:
            self.last_outcome = CheckOutcome.FAILED
            self.last_error = exc.kind
            self._to_idle()
            self.surface.present_message(FETCH_ERROR_MESSAGES[exc.kind], Severity.ERROR)
            return

        latest = release.version_text
        self._logger.info("[ota] Current version: %s", self.current_version)
        self._logger.info("[ota] Latest version: %s", latest)

        if is_newer(self.current_version, release.tag_version):
            self._logger.info("[ota] Update available!")
            self._state = UpdateState.AWAITING_CONFIRMATION
            self._pending_version = latest
            self.last_outcome = CheckOutcome.UPDATE_AVAILABLE
            self.surface.present_update_decision(latest)
            return

        self._logger.info("[ota] Software is up to date")
        self.last_outcome = CheckOutcome.UP_TO_DATE
        self._to_idle()
        self.surface.present_message(MSG_UP_TO_DATE, Severity.INFO)

    def confirm(self) -> bool:
        """Install the pending version. No-op unless awaiting confirmation."""
        if self._state is not UpdateState.AWAITING_CONFIRMATION or self._pending_version is None:
            self._logger.debug("[ota] Confirm ignored; state is %s", self._state.value)
            return False

        version = self._pending_version
        self._logger.info("[ota] Starting installation of version %s", version)
        self._state = UpdateState.INSTALLING
        self.surface.dismiss_update_decision()
        self.surface.present_message(MSG_INSTALLING, Severity.WARNING)
        try:
            result = self.installer.install(version)
            started = result.ok
        except Exception as exc:  # noqa: BLE001 - treat as a failed launch
            self._logger.error("[ota] Installer launch raised: %s", exc, exc_info=True)
            started = False
        finally:
            self._to_idle()

        if started:
            self.last_outcome = CheckOutcome.INSTALL_STARTED
            self.surface.present_message(MSG_INSTALL_STARTED, Severity.SUCCESS)
        else:
            self.last_outcome = CheckOutcome.INSTALL_FAILED
            self.surface.present_message(MSG_INSTALL_FAILED, Severity.ERROR)
        return True

    def cancel(self) -> bool:
        """Discard the pending version. No-op unless awaiting confirmation."""
        if self._state is not UpdateState.AWAITING_CONFIRMATION:
            self._logger.debug("[ota] Cancel ignored; state is %s", self._state.value)
            return False

        self._logger.info("[ota] Update v%s cancelled", self._pending_version)
        self._state = UpdateState.CANCELLED
        self._pending_version = None
        self.last_outcome = CheckOutcome.CANCELLED
        self.surface.dismiss_update_decision()
        self.surface.present_message(MSG_CANCELLED, Severity.ERROR)
        self._to_idle()
        return True

    def startup_check(self, enabled: bool) -> bool:
        """Run the one automatic check at process start, if allowed."""
        if not enabled:
            self._logger.info("[ota] Update checks disabled in settings")
            return False
        if not self.connectivity.has_connectivity():
            self._logger.warning("[ota] No network connection at startup, skipping update check")
            return False
        self._logger.info("[ota] Enabled, checking for updates...")
        return self.check_for_update()
