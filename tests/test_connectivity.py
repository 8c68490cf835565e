"""Tests for the network connectivity probe."""

from __future__ import annotations

import pytest
from powerdock.connectivity import ConnectivityProbe

SERVICE = ("systemctl", "is-active", "NetworkManager.service")
GENERAL = ("nmcli", "-t", "-f", "STATE", "general")
DEVICE = ("nmcli", "-t", "-f", "GENERAL.STATE", "device", "show", "wlan0")
ROUTE = ("ip", "route", "show", "default")


@pytest.fixture
def probe(fake_runner, mock_logger):
    return ConnectivityProbe(fake_runner, logger=mock_logger)


class TestConnectivityProbe:
    def test_general_state_connected(self, probe, fake_runner):
        """A connected general state answers True without further checks."""
        fake_runner.set(SERVICE, 0, "active\n")
        fake_runner.set(GENERAL, 0, "connected\n")

        assert probe.has_connectivity() is True
        assert DEVICE not in fake_runner.commands
        assert ROUTE not in fake_runner.commands

    @pytest.mark.parametrize(
        "device_output",
        ["GENERAL.STATE:100 (connected)\n", "100 (connected)\n", "GENERAL.STATE:connected\n"],
    )
    def test_device_state_connected(self, probe, fake_runner, device_output):
        fake_runner.set(GENERAL, 0, "disconnected\n")
        fake_runner.set(DEVICE, 0, device_output)

        assert probe.has_connectivity() is True

    def test_device_disconnected_is_negative(self, probe, fake_runner):
        """A readable but disconnected device state does not fall back to routes."""
        fake_runner.set(GENERAL, 0, "disconnected\n")
        fake_runner.set(DEVICE, 0, "GENERAL.STATE:30 (disconnected)\n")
        fake_runner.set(ROUTE, 0, "default via 192.168.1.1 dev eth0\n")

        assert probe.has_connectivity() is False
        assert ROUTE not in fake_runner.commands

    def test_route_fallback_when_nmcli_missing(self, probe, fake_runner):
        """Without nmcli, a default route is enough."""
        fake_runner.set(ROUTE, 0, "default via 192.168.1.1 dev wlan0 proto dhcp\n")

        assert probe.has_connectivity() is True

    def test_no_indicator_means_offline(self, probe, fake_runner):
        fake_runner.set(ROUTE, 0, "")
        assert probe.has_connectivity() is False

    def test_every_check_failing_is_false(self, probe, fake_runner):
        """Tools absent everywhere: the answer is False, never an exception."""
        assert probe.has_connectivity() is False
        assert fake_runner.commands == [SERVICE, GENERAL, DEVICE, ROUTE]

    def test_service_state_is_advisory(self, probe, fake_runner):
        """An inactive NetworkManager does not override a connected state."""
        fake_runner.set(SERVICE, 3, "inactive\n")
        fake_runner.set(GENERAL, 0, "connected\n")

        assert probe.has_connectivity() is True

    def test_checks_are_bounded(self, fake_runner):
        seen: list[float | None] = []
        inner = fake_runner.run

        def run(argv, *, detach=False, timeout=None):
            seen.append(timeout)
            return inner(argv, detach=detach, timeout=timeout)

        fake_runner.run = run
        ConnectivityProbe(fake_runner).has_connectivity()

        assert seen
        assert all(timeout is not None and timeout > 0 for timeout in seen)

    def test_custom_interface(self, fake_runner):
        fake_runner.set(("nmcli", "-t", "-f", "GENERAL.STATE", "device", "show", "wlp2s0"), 0, "100 (connected)")
        assert ConnectivityProbe(fake_runner, interface="wlp2s0").has_connectivity() is True

    @pytest.mark.parametrize("general", ["disconnected\n", "connected (site only)\n", "connecting\n"])
    def test_general_state_must_be_exactly_connected(self, probe, fake_runner, general):
        """Only a literal ``connected`` general state skips the device check."""
        fake_runner.set(GENERAL, 0, general)
        fake_runner.set(DEVICE, 0, "GENERAL.STATE:30 (disconnected)\n")

        assert probe.has_connectivity() is False
        assert DEVICE in fake_runner.commands
