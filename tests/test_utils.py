"""Tests for powerdock.utils."""

from __future__ import annotations

import pytest
from powerdock.utils import (
    clamp,
    finite_float,
    is_json_number,
    parse_bool,
    parse_float,
    parse_int,
    sanitize_hostname_for_topic,
    strip_or_none,
)


class TestParseBool:
    @pytest.mark.parametrize("value", ["1", "true", "TRUE", " yes ", "on"])
    def test_truthy(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "no", "off", "maybe"])
    def test_falsy(self, value):
        assert parse_bool(value, True) is False

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_uses_default(self, value):
        assert parse_bool(value, True) is True


def test_parse_int():
    assert parse_int("8", 1) == 8
    assert parse_int("eight", 1) == 1
    assert parse_int(None, 1) == 1


def test_parse_float():
    assert parse_float("18.5", 0.0) == 18.5
    assert parse_float("", 21.0) == 21.0


def test_strip_or_none():
    assert strip_or_none("  broker ") == "broker"
    assert strip_or_none("   ") is None
    assert strip_or_none(None) is None


def test_clamp():
    assert clamp(-4, 0, 100) == 0
    assert clamp(140, 0, 100) == 100
    assert clamp(42, 0, 100) == 42


@pytest.mark.parametrize(("value", "expected"), [(19, True), (19.5, True), (True, False), ("19.5", False), (None, False)])
def test_is_json_number(value, expected):
    assert is_json_number(value) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [(19, 19.0), (19.5, 19.5), (10**400, None), (float("nan"), None), (float("-inf"), None), (True, None), ("1", None)],
)
def test_finite_float(value, expected):
    assert finite_float(value) == expected


def test_sanitize_hostname_for_topic():
    assert sanitize_hostname_for_topic("Dock.Garage/1+#") == "dock_garage_1__"
