"""
PowerDock - battery charger control core

This is the root package for the PowerDock charger application, containing the
headless core that sits behind the touch display:

Core modules:
- telemetry: Live telemetry feed ingestion with debounced diagnostics
- battery_stats: Per-module statistics panel refresh
- updates: Update-check / confirm / install state machine
- release_client: Release API client (latest release lookup)
- connectivity: Network connectivity probe (NetworkManager / routes)
- credentials: Optional API token loading
- version: Dotted version parsing and comparison
- surface / mqtt_surface: Display surface protocol and MQTT bridge
- scheduler: Single-threaded periodic job driver
- app: Wiring and process entry point
"""

__version__ = "1.0.3"
