"""Command runner capability used for every shell-out in the core.

The core never calls :mod:`subprocess` directly; it is handed a
:class:`CommandRunner` so tests can substitute a recorder.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - network probes and installer launch rely on CLI calls
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

LOGGER = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124
COMMAND_FAILED_TO_START = 126


@dataclass(frozen=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def first_line(self) -> str:
        for line in self.stdout.splitlines():
            stripped = line.strip()
            if stripped:
                return stripped
        return ""


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        *,
        detach: bool = False,
        timeout: float | None = None,
    ) -> CommandResult: ...


class SubprocessRunner:
    """Run commands with :mod:`subprocess`.

    Missing executables, timeouts and launch failures are folded into the
    return code so callers only ever branch on :class:`CommandResult`.
    Detached commands are started in their own session and not waited for;
    their result reflects the launch only.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER

    def run(
        self,
        argv: Sequence[str],
        *,
        detach: bool = False,
        timeout: float | None = None,
    ) -> CommandResult:
        command = tuple(argv)
        if not command:
            raise ValueError("Command must not be empty")
        self._logger.debug("[cmd] Executing: %s", " ".join(command))
        if detach:
            return self._launch_detached(command)
        try:
            result = subprocess.run(  # nosec B603 - argv comes from configuration, no shell
                list(command),
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError:
            self._logger.debug("[cmd] Command not found: %s", command[0])
            return CommandResult(command, COMMAND_NOT_FOUND)
        except subprocess.TimeoutExpired:
            self._logger.debug("[cmd] Command timed out after %ss: %s", timeout, command[0])
            return CommandResult(command, COMMAND_TIMED_OUT)
        except OSError as exc:
            self._logger.debug("[cmd] Command failed to start: %s (%s)", command[0], exc)
            return CommandResult(command, COMMAND_FAILED_TO_START)
        return CommandResult(command, result.returncode, result.stdout or "")

    def _launch_detached(self, command: tuple[str, ...]) -> CommandResult:
        try:
            subprocess.Popen(  # nosec B603 - argv comes from configuration, no shell
                list(command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except FileNotFoundError:
            self._logger.debug("[cmd] Command not found: %s", command[0])
            return CommandResult(command, COMMAND_NOT_FOUND)
        except OSError as exc:
            self._logger.debug("[cmd] Command failed to start: %s (%s)", command[0], exc)
            return CommandResult(command, COMMAND_FAILED_TO_START)
        return CommandResult(command, 0)
