"""Optional release API token loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)

MAX_TOKEN_FILE_BYTES = 10_000
TOKEN_FIELD = "github_token"


class CredentialLoader:
    """Read the access token from a small local JSON file.

    Every failure mode (missing file, bad size, bad JSON, missing field) means
    "no token": the caller simply proceeds unauthenticated.
    """

    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.path = path
        self._logger = logger or LOGGER

    def load_token(self) -> str | None:
        self._logger.debug("[ota] Loading token from config file: %s", self.path)
        try:
            size = self.path.stat().st_size
        except FileNotFoundError:
            self._logger.info("[ota] Config file not found, continuing without authentication")
            return None
        except OSError as exc:
            self._logger.warning("[ota] Could not stat config file %s: %s", self.path, exc)
            return None

        if size <= 0 or size > MAX_TOKEN_FILE_BYTES:
            self._logger.warning("[ota] Invalid config file size: %d bytes", size)
            return None

        try:
            raw = self.path.read_bytes()[:MAX_TOKEN_FILE_BYTES]
            payload = json.loads(raw.decode("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            self._logger.warning("[ota] Failed to parse config JSON: %s", exc)
            return None

        token = payload.get(TOKEN_FIELD) if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token.strip():
            self._logger.debug("[ota] No %s field found in config", TOKEN_FIELD)
            return None
        self._logger.info("[ota] Token loaded successfully")
        return token.strip()
