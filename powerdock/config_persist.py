"""Persist user settings to powerdock.conf.

Settings toggled on the device (currently the "check for updates" switch) are
written back to the conf file so they survive a restart. Writes are debounced
so a user flicking a switch back and forth causes one rewrite, and the file's
comments and layout are preserved.
"""

from __future__ import annotations

import fcntl
import logging
import re
import shutil
import threading
from pathlib import Path

from powerdock.config import DEFAULT_CONF_PATH

LOGGER = logging.getLogger(__name__)

DEBOUNCE_DELAY_SECONDS = 2.0
LOCK_FILE_SUFFIX = ".lock"
UPDATE_CHECKS_VAR = "POWERDOCK_UPDATE_CHECKS"

# VAR_NAME="value" or VAR_NAME=value
_ASSIGNMENT_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")

# # (default) VAR_NAME="value"
_DEFAULT_COMMENT_RE = re.compile(r"^#\s*\(default\)\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$")


def _quote_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def apply_changes(content: str, changes: dict[str, str], logger: logging.Logger | None = None) -> str:
    """Return ``content`` with the given assignments rewritten in place.

    Commented-out ``# (default)`` lines are uncommented when their variable
    changes. Variables not present in the file are reported and skipped.
    """
    log = logger or LOGGER
    remaining = dict(changes)
    result: list[str] = []

    for line in content.splitlines(keepends=True):
        stripped = line.rstrip("\n\r")
        match = _DEFAULT_COMMENT_RE.match(stripped) or _ASSIGNMENT_RE.match(stripped)
        if match and match.group(1) in remaining:
            var_name = match.group(1)
            new_line = f"{var_name}={_quote_value(remaining.pop(var_name))}"
            if line.endswith("\n"):
                new_line += "\n"
            result.append(new_line)
            continue
        result.append(line)

    for var_name in remaining:
        log.warning("Variable '%s' not found in config file, change not persisted", var_name)

    return "".join(result)


class ConfigPersister:
    """Debounced writer for powerdock.conf."""

    def __init__(
        self,
        config_path: Path | None = None,
        debounce_seconds: float = DEBOUNCE_DELAY_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config_path = config_path or DEFAULT_CONF_PATH
        self._debounce_seconds = debounce_seconds
        self._logger = logger or LOGGER
        self._pending_changes: dict[str, str] = {}
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._write_lock = threading.Lock()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def update(self, var_name: str, value: str) -> None:
        """Queue a variable update; the write happens after the debounce delay."""
        with self._lock:
            self._pending_changes[var_name] = value
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce_seconds, self.flush_sync)
            self._timer.daemon = True
            self._timer.start()

    def flush_sync(self) -> None:
        """Write any pending changes now (blocking)."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._pending_changes:
                return
            changes = self._pending_changes.copy()
            self._pending_changes.clear()

        try:
            self._write_changes(changes)
        except OSError as exc:
            self._logger.error("Failed to persist config changes: %s", exc)

    def stop(self) -> None:
        self.flush_sync()

    def _write_changes(self, changes: dict[str, str]) -> None:
        if not self._config_path.exists():
            self._logger.warning("Config file '%s' does not exist, skipping persistence", self._config_path)
            return

        lock_path = Path(str(self._config_path) + LOCK_FILE_SUFFIX)
        with self._write_lock, open(lock_path, "a", encoding="utf-8") as lock_fd:
            fcntl.flock(lock_fd.fileno(), fcntl.LOCK_EX)
            try:
                content = self._config_path.read_text(encoding="utf-8")
                backup_path = Path(str(self._config_path) + ".backup")
                try:
                    shutil.copy2(self._config_path, backup_path)
                    backup_path.chmod(0o600)
                except OSError as exc:
                    self._logger.warning("Failed to create config backup: %s", exc)

                self._config_path.write_text(apply_changes(content, changes, self._logger), encoding="utf-8")
                self._logger.info(
                    "Persisted %d config change(s) to '%s': %s",
                    len(changes),
                    self._config_path,
                    ", ".join(f"{k}={v!r}" for k, v in changes.items()),
                )
            finally:
                fcntl.flock(lock_fd.fileno(), fcntl.LOCK_UN)


class UpdatePreference:
    """The "check for updates" switch, backed by POWERDOCK_UPDATE_CHECKS."""

    def __init__(self, enabled: bool, persister: ConfigPersister, logger: logging.Logger | None = None) -> None:
        self._enabled = enabled
        self._persister = persister
        self._logger = logger or LOGGER

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        if enabled == self._enabled:
            return
        self._enabled = enabled
        self._logger.info("[ota] Update checks %s", "enabled" if enabled else "disabled")
        self._persister.update(UPDATE_CHECKS_VAR, "true" if enabled else "false")
