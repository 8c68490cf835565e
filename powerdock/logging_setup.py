"""Process-wide logging configuration."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: str = "INFO", target: str = "stdout", log_file: Path | None = None) -> None:
    """Send log records to stdout, a log file, or both.

    An unusable log file is reported on stdout and logging continues there.
    """
    handlers: list[logging.Handler] = []
    if target in {"stdout", "both"}:
        handlers.append(logging.StreamHandler(sys.stdout))

    file_error: OSError | None = None
    if target in {"file", "both"} and log_file is not None:
        try:
            handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        except OSError as exc:
            file_error = exc
    if not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    if file_error is not None:
        logging.getLogger(__name__).warning("Could not open log file %s: %s", log_file, file_error)
