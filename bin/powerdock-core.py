#!/usr/bin/env python3
"""PowerDock core service: telemetry ingestion and update checks."""

from __future__ import annotations

import sys

from powerdock.app import main

if __name__ == "__main__":
    sys.exit(main())
