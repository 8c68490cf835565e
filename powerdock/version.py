"""Dotted version parsing and comparison.

Release feeds are loose about tag formats, so parsing never raises: each of the
first three dot-separated components contributes its leading digits, anything
else counts as 0.
"""

from __future__ import annotations

import re
from typing import NamedTuple

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


class Version(NamedTuple):
    major: int = 0
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def strip_tag_prefix(tag: str) -> str:
    """Drop a single leading ``v``/``V`` from a release tag."""
    tag = tag.strip()
    if tag[:1] in {"v", "V"}:
        return tag[1:]
    return tag


def _component(raw: str) -> int:
    match = _LEADING_DIGITS.match(raw)
    return int(match.group(1)) if match else 0


def parse_version(value: str | Version | None) -> Version:
    """Parse ``value`` into a :class:`Version`; missing or bad parts become 0."""
    if isinstance(value, Version):
        return value
    if not value:
        return Version()
    parts = strip_tag_prefix(value).split(".")
    numbers = [_component(part) for part in parts[:3]]
    numbers.extend([0] * (3 - len(numbers)))
    return Version(*numbers)


def is_newer(current: str | Version, candidate: str | Version) -> bool:
    """Return True iff ``candidate`` is strictly newer than ``current``."""
    return parse_version(candidate) > parse_version(current)
