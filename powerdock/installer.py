"""Launch the external update installer."""

from __future__ import annotations

import logging

from powerdock.commands import CommandResult, CommandRunner
from powerdock.config import InstallerConfig

LOGGER = logging.getLogger(__name__)


class Installer:
    """Start the installer script detached for ``(owner, repo, version)``.

    Success means the command launched; the install itself runs on its own
    and reports through its own logs.
    """

    def __init__(
        self,
        config: InstallerConfig,
        runner: CommandRunner,
        *,
        owner: str,
        repo: str,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.owner = owner
        self.repo = repo
        self._logger = logger or LOGGER

    def command_for(self, version: str) -> list[str]:
        return [self.config.python, str(self.config.script), self.owner, self.repo, version]

    def install(self, version: str) -> CommandResult:
        command = self.command_for(version)
        self._logger.info("[ota] Running update installation for version %s", version)
        self._logger.debug("[ota] Executing: %s", " ".join(command))
        result = self.runner.run(command, detach=True)
        if result.ok:
            self._logger.info("[ota] Update installation started successfully")
        else:
            self._logger.error("[ota] Failed to start update installation (code: %d)", result.returncode)
        return result
