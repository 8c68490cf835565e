"""Wiring for the PowerDock core service."""

from __future__ import annotations

import argparse
import logging
import signal
from types import FrameType

from powerdock import __version__, systemd_notify
from powerdock.battery_stats import BatteryStatsReader
from powerdock.commands import CommandRunner, SubprocessRunner
from powerdock.config import CoreConfig, load_environment
from powerdock.config_persist import ConfigPersister, UpdatePreference
from powerdock.connectivity import ConnectivityProbe
from powerdock.credentials import CredentialLoader
from powerdock.installer import Installer
from powerdock.logging_setup import configure_logging
from powerdock.mqtt_surface import MqttDisplaySurface
from powerdock.release_client import ReleaseClient
from powerdock.scheduler import Scheduler
from powerdock.surface import DisplaySurface, LoggingSurface, SurfaceFanout
from powerdock.telemetry import TelemetryIngestor
from powerdock.updates import UpdateOrchestrator
from powerdock.utils import parse_bool

LOGGER = logging.getLogger("powerdock")

WATCHDOG_PERIOD_SECONDS = 10.0
COMMAND_POLL_SECONDS = 0.2


class PowerDockCore:
    def __init__(
        self,
        config: CoreConfig,
        *,
        runner: CommandRunner | None = None,
        surface: DisplaySurface | None = None,
        mqtt_surface: MqttDisplaySurface | None = None,
        release_client: ReleaseClient | None = None,
        scheduler: Scheduler | None = None,
        persister: ConfigPersister | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or LOGGER
        self.runner = runner or SubprocessRunner()
        self.mqtt_surface = mqtt_surface
        if surface is None:
            surfaces: list[DisplaySurface] = [LoggingSurface()]
            if mqtt_surface is not None:
                surfaces.append(mqtt_surface)
            surface = SurfaceFanout(surfaces)
        self.surface = surface
        self.scheduler = scheduler or Scheduler()
        self._persister = persister or ConfigPersister(config.conf_path)
        self.preference = UpdatePreference(config.update_checks_enabled, self._persister)

        self.release_client = release_client or ReleaseClient(config.release)
        self.connectivity = ConnectivityProbe(self.runner, interface=config.wifi_interface)
        self.updates = UpdateOrchestrator(
            current_version=config.release.current_version,
            connectivity=self.connectivity,
            releases=self.release_client,
            credentials=CredentialLoader(config.release.token_file),
            installer=Installer(
                config.installer,
                self.runner,
                owner=config.release.owner,
                repo=config.release.repo,
            ),
            surface=self.surface,
        )
        self.telemetry = TelemetryIngestor(
            config.telemetry.feed_file,
            self.surface,
            module_count=config.telemetry.module_count,
            voltage_min=config.telemetry.voltage_min,
            voltage_max=config.telemetry.voltage_max,
        )
        self.battery_stats = BatteryStatsReader(
            config.stats.stats_file,
            self.surface,
            module_count=config.telemetry.module_count,
        )

    def register_jobs(self) -> None:
        self.scheduler.every(self.config.telemetry.interval_ms / 1000, self.telemetry.poll, name="telemetry")
        self.scheduler.every(self.config.stats.interval_ms / 1000, self.battery_stats.refresh, name="battery-stats")
        self.scheduler.every(WATCHDOG_PERIOD_SECONDS, self._watchdog, name="watchdog")
        if self.mqtt_surface is not None:
            self.scheduler.every(COMMAND_POLL_SECONDS, self.process_commands, name="commands")

    def _watchdog(self) -> None:
        systemd_notify.watchdog()
        systemd_notify.status(f"update state: {self.updates.state.value}")

    def process_commands(self) -> None:
        if self.mqtt_surface is None:
            return
        for command, payload in self.mqtt_surface.drain_commands():
            self.handle_command(command, payload)

    def handle_command(self, command: str, payload: str = "") -> None:
        self.logger.debug("Command received: %s %r", command, payload)
        if command == "update/check":
            self.updates.check_for_update()
        elif command == "update/confirm":
            self.updates.confirm()
        elif command == "update/cancel":
            self.updates.cancel()
        elif command == "update/checks/set":
            self.preference.set_enabled(parse_bool(payload, False))
        elif command == "battery/select":
            if payload.strip().lower() in {"", "none", "off"}:
                self.battery_stats.clear_selection()
                return
            try:
                module_id = int(payload)
            except ValueError:
                self.logger.warning("Invalid battery selection payload: %r", payload)
                return
            self.battery_stats.select(module_id)
        else:
            self.logger.warning("Unknown command: %s", command)

    def start(self, *, startup_check: bool = True) -> None:
        self.logger.info("=== PowerDock core %s starting ===", self.config.release.current_version)
        if self.mqtt_surface is not None:
            self.mqtt_surface.connect()
        self.register_jobs()
        self.logger.info("=== Update startup check ===")
        if startup_check:
            self.updates.startup_check(self.preference.enabled)

    def close(self) -> None:
        self._persister.stop()
        self.release_client.close()
        if self.mqtt_surface is not None:
            self.mqtt_surface.disconnect()
        self.logger.info("=== PowerDock core exiting ===")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="PowerDock telemetry and update core")
    parser.add_argument("--log-level", default=None, help="Override POWERDOCK_LOG_LEVEL")
    parser.add_argument(
        "--log-target",
        choices=("stdout", "file", "both"),
        default=None,
        help="Override POWERDOCK_LOG_TARGET",
    )
    parser.add_argument("--no-startup-check", action="store_true", help="Skip the automatic update check")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = CoreConfig.from_env(load_environment())
    configure_logging(
        args.log_level or config.logging.level,
        args.log_target or config.logging.target,
        config.logging.log_file,
    )

    mqtt_surface = MqttDisplaySurface(config.mqtt) if config.mqtt.host else None
    core = PowerDockCore(config, mqtt_surface=mqtt_surface)

    def _handle_signal(signum: int, _frame: FrameType | None) -> None:
        LOGGER.info("Received signal %d, stopping", signum)
        systemd_notify.stopping()
        core.scheduler.stop()

    signal.signal(signal.SIGTERM, _handle_signal)
    signal.signal(signal.SIGINT, _handle_signal)

    try:
        core.start(startup_check=not args.no_startup_check)
        systemd_notify.ready(status="running")
        core.scheduler.run_forever()
    finally:
        core.close()
    return 0
