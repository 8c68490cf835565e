"""systemd sd_notify support for the core service.

Notifications go to ``$NOTIFY_SOCKET``; without it (development, tests, no
systemd) every call is a silent no-op.
"""

from __future__ import annotations

import logging
import os
import socket

_logger = logging.getLogger(__name__)


def notify(**fields: str) -> bool:
    """Send ``KEY=value`` lines to systemd; return True if a datagram was sent."""
    addr = os.environ.get("NOTIFY_SOCKET")
    if not addr or not fields:
        return False
    if addr.startswith("@"):
        addr = "\0" + addr[1:]
    message = "\n".join(f"{key.upper()}={value}" for key, value in fields.items())
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as sock:
            sock.sendto(message.encode(), addr)
    except OSError as exc:
        _logger.debug("[sd_notify] Failed to send '%s': %s", message, exc)
        return False
    return True


def ready(status: str | None = None) -> bool:
    if status:
        return notify(ready="1", status=status)
    return notify(ready="1")


def watchdog() -> bool:
    return notify(watchdog="1")


def status(text: str) -> bool:
    return notify(status=text)


def stopping() -> bool:
    return notify(stopping="1")
