"""MQTT bridge for the display surface.

Publishes surface notifications under ``<topic_base>/...`` and accepts update
and panel commands. Commands arrive on paho's network thread; they are only
queued there and handed to the core from :meth:`drain_commands`, which the
scheduler calls on its own thread.
"""

from __future__ import annotations

import json
import logging
import queue
import ssl
import threading
from collections.abc import Mapping

import paho.mqtt.client as mqtt

from powerdock.config import MqttConfig
from powerdock.surface import Severity

LOGGER = logging.getLogger(__name__)

COMMAND_TOPICS = (
    "update/check",
    "update/confirm",
    "update/cancel",
    "update/checks/set",
    "battery/select",
)


class MqttDisplaySurface:
    def __init__(self, config: MqttConfig, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger or LOGGER
        self._client: mqtt.Client | None = None
        self._lock = threading.Lock()
        self._commands: queue.SimpleQueue[tuple[str, str]] = queue.SimpleQueue()

    def topic(self, suffix: str) -> str:
        return f"{self.config.topic_base}/{suffix}"

    def connect(self) -> None:
        if not self.config.host:
            self._logger.debug("[mqtt] MQTT host not configured; MQTT surface disabled")
            return
        with self._lock:
            if self._client is not None:
                return
            callback_kwargs: dict[str, object] = {}
            if hasattr(mqtt, "CallbackAPIVersion"):
                callback_kwargs["callback_api_version"] = mqtt.CallbackAPIVersion.VERSION2
            client = mqtt.Client(
                client_id=f"powerdock-{self.config.topic_base.replace('/', '-')}",
                clean_session=True,
                **callback_kwargs,
            )
            if self.config.username:
                client.username_pw_set(self.config.username, self.config.password or "")
            if self.config.tls_enabled:
                tls_kwargs: dict[str, object] = {}
                if self.config.ca_cert:
                    tls_kwargs["ca_certs"] = self.config.ca_cert
                if self.config.cert:
                    tls_kwargs["certfile"] = self.config.cert
                if self.config.key:
                    tls_kwargs["keyfile"] = self.config.key
                tls_kwargs["tls_version"] = getattr(ssl, "PROTOCOL_TLS_CLIENT", ssl.PROTOCOL_TLS)
                client.tls_set(**tls_kwargs)
            client.will_set(self.topic("availability"), payload="offline", qos=1, retain=True)
            try:
                client.connect(self.config.host, self.config.port, keepalive=30)
            except (OSError, ValueError) as exc:
                self._logger.warning("[mqtt] Failed to connect to MQTT: %s", exc)
                return
            client.loop_start()
            self._client = client
        self._subscribe_commands()
        self._publish("availability", "online", retain=True, qos=1)

    def disconnect(self) -> None:
        with self._lock:
            client = self._client
            self._client = None
        if client:
            try:
                client.publish(self.topic("availability"), payload="offline", qos=1, retain=True)
            finally:
                client.loop_stop()
                client.disconnect()

    def is_connected(self) -> bool:
        client = self._client
        return bool(client and client.is_connected())

    def _publish(self, suffix: str, payload: str, *, retain: bool = False, qos: int = 0) -> None:
        client = self._client
        if not client:
            return
        result = client.publish(self.topic(suffix), payload=payload, qos=qos, retain=retain)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.debug("[mqtt] Failed to publish '%s' (rc=%s)", suffix, result.rc)

    def _subscribe_commands(self) -> None:
        client = self._client
        if not client:
            return
        for suffix in COMMAND_TOPICS:
            topic = self.topic(suffix)
            result, _mid = client.subscribe(topic)
            if result != mqtt.MQTT_ERR_SUCCESS:
                self._logger.warning("[mqtt] Failed to subscribe to topic: %s (rc=%s)", topic, result)
            client.message_callback_add(topic, self._make_callback(suffix))

    def _make_callback(self, command: str):  # type: ignore[no-untyped-def]
        def _callback(_client, _userdata, message):  # type: ignore[no-untyped-def]
            payload = message.payload.decode("utf-8", errors="ignore").strip()
            self._commands.put((command, payload))

        return _callback

    def drain_commands(self) -> list[tuple[str, str]]:
        """Return and clear all commands received since the last call."""
        drained: list[tuple[str, str]] = []
        while True:
            try:
                drained.append(self._commands.get_nowait())
            except queue.Empty:
                return drained

    def present_update_decision(self, version: str) -> None:
        self._publish("update/pending", version, retain=True, qos=1)

    def dismiss_update_decision(self) -> None:
        self._publish("update/pending", "", retain=True, qos=1)

    def present_message(self, text: str, severity: Severity) -> None:
        self._publish("status", json.dumps({"message": text, "severity": severity.value}))

    def show_module_reading(self, index: int, percent: int, voltage_text: str, bar_value: int) -> None:
        self._publish(f"modules/{index}/percent", str(percent), retain=True)
        self._publish(f"modules/{index}/voltage", voltage_text, retain=True)

    def show_battery_details(self, module_id: int, fields: Mapping[str, str]) -> None:
        self._publish(f"battery/{module_id}/details", json.dumps(dict(fields)), retain=True)
