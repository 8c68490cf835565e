"""Configuration helpers for the PowerDock core."""

from __future__ import annotations

import logging
import os
import socket
from dataclasses import dataclass
from pathlib import Path

from powerdock import __version__
from powerdock.utils import (
    parse_bool,
    parse_float,
    parse_int,
    sanitize_hostname_for_topic,
    strip_or_none,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_HOME = Path("/home/powerdock")
DEFAULT_RELEASE_HOST = "api.github.com"
DEFAULT_RELEASE_OWNER = "DrFailbucket"
DEFAULT_RELEASE_REPO = "PowerDock"
DEFAULT_MODULE_COUNT = 8
LOG_TARGETS = {"stdout", "file", "both"}
DEFAULT_CONF_PATH = DEFAULT_HOME / "powerdock.conf"


def read_conf_file(path: Path) -> dict[str, str]:
    """Read ``VAR=value`` assignments from a shell-style conf file.

    Comments, blank lines and anything that is not a plain assignment are
    ignored. A missing or unreadable file yields an empty mapping.
    """
    values: dict[str, str] = {}
    try:
        with path.open(encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if key.startswith("export "):
                    key = key[len("export ") :].strip()
                if not key.isidentifier():
                    continue
                value = value.strip()
                if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
                    value = value[1:-1]
                values[key] = value
    except FileNotFoundError:
        pass
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning("Could not read config file %s: %s", path, exc)
        return {}
    return values


def load_environment(env: dict[str, str] | None = None) -> dict[str, str]:
    """Merge the conf file under the process environment (environment wins)."""
    source = dict(env if env is not None else os.environ)
    conf_path = Path(source.get("POWERDOCK_CONF_PATH") or DEFAULT_CONF_PATH)
    merged = read_conf_file(conf_path)
    merged.update(source)
    return merged


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    target: str
    log_file: Path


@dataclass(frozen=True)
class ReleaseConfig:
    host: str
    owner: str
    repo: str
    current_version: str
    timeout: float
    verify_tls: bool
    token_file: Path

    @property
    def latest_release_url(self) -> str:
        return f"https://{self.host}/repos/{self.owner}/{self.repo}/releases/latest"

    @property
    def user_agent(self) -> str:
        return f"PowerDock-OTA/{self.current_version}"


@dataclass(frozen=True)
class InstallerConfig:
    python: str
    script: Path


@dataclass(frozen=True)
class TelemetryConfig:
    feed_file: Path
    interval_ms: int
    module_count: int
    voltage_min: float
    voltage_max: float


@dataclass(frozen=True)
class StatsConfig:
    stats_file: Path
    interval_ms: int


@dataclass(frozen=True)
class MqttConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    tls_enabled: bool
    cert: str | None
    key: str | None
    ca_cert: str | None
    topic_base: str


@dataclass(frozen=True)
class CoreConfig:
    hostname: str
    conf_path: Path
    update_checks_enabled: bool
    wifi_interface: str
    logging: LoggingConfig
    release: ReleaseConfig
    installer: InstallerConfig
    telemetry: TelemetryConfig
    stats: StatsConfig
    mqtt: MqttConfig

    @staticmethod
    def from_env(env: dict[str, str] | None = None) -> CoreConfig:
        source = env if env is not None else os.environ
        hostname = source.get("POWERDOCK_HOSTNAME") or socket.gethostname()
        home = Path(source.get("POWERDOCK_HOME") or DEFAULT_HOME)

        log_target = (source.get("POWERDOCK_LOG_TARGET") or "both").strip().lower()
        if log_target not in LOG_TARGETS:
            log_target = "both"
        logging_config = LoggingConfig(
            level=(source.get("POWERDOCK_LOG_LEVEL") or "INFO").strip().upper(),
            target=log_target,
            log_file=Path(source.get("POWERDOCK_LOG_FILE") or home / "logfile.txt"),
        )

        release = ReleaseConfig(
            host=(source.get("POWERDOCK_RELEASE_HOST") or DEFAULT_RELEASE_HOST).strip().rstrip("/"),
            owner=source.get("POWERDOCK_RELEASE_OWNER") or DEFAULT_RELEASE_OWNER,
            repo=source.get("POWERDOCK_RELEASE_REPO") or DEFAULT_RELEASE_REPO,
            current_version=strip_or_none(source.get("POWERDOCK_VERSION")) or __version__,
            timeout=max(1.0, parse_float(source.get("POWERDOCK_RELEASE_TIMEOUT"), 10.0)),
            verify_tls=parse_bool(source.get("POWERDOCK_RELEASE_VERIFY_TLS"), True),
            token_file=Path(source.get("POWERDOCK_TOKEN_FILE") or home / "ota_config.json"),
        )

        installer = InstallerConfig(
            python=source.get("POWERDOCK_INSTALLER_PYTHON") or "python3",
            script=Path(source.get("POWERDOCK_INSTALLER_SCRIPT") or home / "ota_install.py"),
        )

        telemetry = TelemetryConfig(
            feed_file=Path(source.get("POWERDOCK_TELEMETRY_FILE") or home / "gui_data.json"),
            interval_ms=max(50, parse_int(source.get("POWERDOCK_TELEMETRY_INTERVAL_MS"), 500)),
            module_count=max(1, parse_int(source.get("POWERDOCK_MODULE_COUNT"), DEFAULT_MODULE_COUNT)),
            voltage_min=parse_float(source.get("POWERDOCK_VOLTAGE_MIN"), 18.0),
            voltage_max=parse_float(source.get("POWERDOCK_VOLTAGE_MAX"), 21.0),
        )
        if telemetry.voltage_max <= telemetry.voltage_min:
            raise ValueError("POWERDOCK_VOLTAGE_MAX must be greater than POWERDOCK_VOLTAGE_MIN")

        stats = StatsConfig(
            stats_file=Path(source.get("POWERDOCK_STATS_FILE") or home / "battery_stats.json"),
            interval_ms=max(100, parse_int(source.get("POWERDOCK_STATS_INTERVAL_MS"), 2000)),
        )

        topic_base = source.get("POWERDOCK_TOPIC_BASE") or f"powerdock/{sanitize_hostname_for_topic(hostname)}"
        mqtt = MqttConfig(
            host=strip_or_none(source.get("MQTT_HOST")),
            port=parse_int(source.get("MQTT_PORT"), 1883),
            username=strip_or_none(source.get("MQTT_USER") or source.get("MQTT_USERNAME")),
            password=strip_or_none(source.get("MQTT_PASS") or source.get("MQTT_PASSWORD")),
            tls_enabled=parse_bool(source.get("MQTT_TLS_ENABLED"), False),
            cert=strip_or_none(source.get("MQTT_CERT")),
            key=strip_or_none(source.get("MQTT_KEY")),
            ca_cert=strip_or_none(source.get("MQTT_CA_CERT")),
            topic_base=topic_base.rstrip("/"),
        )

        return CoreConfig(
            hostname=hostname,
            conf_path=Path(source.get("POWERDOCK_CONF_PATH") or DEFAULT_CONF_PATH),
            update_checks_enabled=parse_bool(source.get("POWERDOCK_UPDATE_CHECKS"), False),
            wifi_interface=source.get("POWERDOCK_WIFI_INTERFACE") or "wlan0",
            logging=logging_config,
            release=release,
            installer=installer,
            telemetry=telemetry,
            stats=stats,
            mqtt=mqtt,
        )
