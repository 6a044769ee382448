"""Loose value conversions used when reading Vault configuration documents."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import timedelta
from fractions import Fraction
from functools import total_ordering
from typing import Any

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def to_bool(value: Any) -> bool:
    """Convert a configuration value to a boolean, defaulting to False.

    Booleans pass through, integers are true when non-zero and strings are
    accepted in the usual ``true``/``false``/``1``/``0``/``t``/``f`` spellings.
    Anything else, including unparsable strings, is False.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE_STRINGS:
            return True
        return False
    return False


def to_string_map(value: Any) -> dict[str, Any]:
    """Convert a value to a mapping with string keys, or an empty dict.

    Mappings get their keys stringified; a string holding a JSON object is
    decoded. Everything else yields an empty dict.
    """
    if isinstance(value, dict):
        if all(isinstance(key, str) for key in value):
            return value
        return {str(key): item for key, item in value.items()}
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]+)")
_MAX_NANOSECONDS = (1 << 63) - 1


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"168h"``, ``"1h30m"`` or ``"-1.5s"``.

    Valid units are ns, us (or µs), ms, s, m and h. Precision below one
    microsecond is dropped. Raises ValueError on malformed input.
    """
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f'invalid duration "{text}"')

    total = Fraction(0)
    position = 0
    while position < len(rest):
        match = _DURATION_COMPONENT.match(rest, position)
        if match is None:
            raise ValueError(f'invalid duration "{text}"')
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f'invalid duration "{text}"')
        if unit not in _DURATION_UNITS:
            raise ValueError(f'unknown unit "{unit}" in duration "{text}"')
        amount = Fraction(int(whole or "0"))
        if fraction:
            amount += Fraction(int(fraction), 10 ** len(fraction))
        total += amount * _DURATION_UNITS[unit]
        position = match.end()

    nanoseconds = int(total)
    limit = _MAX_NANOSECONDS + 1 if negative else _MAX_NANOSECONDS
    if nanoseconds > limit:
        raise ValueError(f'invalid duration "{text}"')
    result = timedelta(microseconds=nanoseconds // 1000)
    return -result if negative else result


_VERSION_PATTERN = re.compile(
    r"v?([0-9]+)(\.[0-9]+)?(\.[0-9]+)?"
    r"(-([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?"
    r"(\+([0-9A-Za-z\-]+(\.[0-9A-Za-z\-]+)*))?"
)
_MAX_COMPONENT = (1 << 64) - 1


def _compare_identifier(left: str, right: str) -> int:
    left_numeric = left.isdigit()
    right_numeric = right.isdigit()
    if left_numeric and right_numeric:
        a, b = int(left), int(right)
        return (a > b) - (a < b)
    if left_numeric:
        return -1
    if right_numeric:
        return 1
    return (left > right) - (left < right)


def _compare_prerelease(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return 1
    if not right:
        return -1
    left_parts = left.split(".")
    right_parts = right.split(".")
    for a, b in zip(left_parts, right_parts):
        outcome = _compare_identifier(a, b)
        if outcome:
            return outcome
    return (len(left_parts) > len(right_parts)) - (len(left_parts) < len(right_parts))


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A semantic version; ordering and equality ignore build metadata."""

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""
    original: str = field(default="", repr=False)

    def _compare(self, other: Version) -> int:
        mine = (self.major, self.minor, self.patch)
        theirs = (other.major, other.minor, other.patch)
        if mine != theirs:
            return -1 if mine < theirs else 1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) == 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._compare(other) < 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text


def parse_version(text: str) -> Version:
    """Parse a possibly abbreviated semantic version such as ``v1.2``.

    Raises ValueError when the text is not a valid version.
    """
    match = _VERSION_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid semantic version: {text!r}")

    def component(raw: str | None) -> int:
        if raw is None:
            return 0
        number = int(raw.lstrip("."))
        if number > _MAX_COMPONENT:
            raise ValueError(f"version component out of range in {text!r}")
        return number

    major = component(match.group(1))
    minor = component(match.group(2))
    patch = component(match.group(3))
    prerelease = match.group(5) or ""
    metadata = match.group(9) or ""

    if prerelease:
        for segment in prerelease.split("."):
            if segment.isdigit() and len(segment) > 1 and segment.startswith("0"):
                raise ValueError(f"version segment starts with 0 in {text!r}")

    return Version(major, minor, patch, prerelease, metadata, text)