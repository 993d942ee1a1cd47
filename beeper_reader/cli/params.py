"""Custom click parameter types for durations, timestamps and formats."""

from __future__ import annotations

import re
from datetime import datetime, timedelta

import click

from beeper_reader.store import MessageFormat

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")

_UNITS = {
    "h": timedelta(hours=1),
    "m": timedelta(minutes=1),
    "s": timedelta(seconds=1),
    "ms": timedelta(milliseconds=1),
}


def parse_duration(value: str) -> timedelta:
    """Parse Go-style durations: `90s`, `45m`, `1h30m`, `500ms`."""
    value = value.strip()
    if not value:
        return timedelta(0)

    total = timedelta(0)
    pos = 0
    for match in _DURATION_PART_RE.finditer(value):
        if match.start() != pos:
            raise ValueError(f"invalid duration {value!r}")
        total += _UNITS[match.group(2)] * float(match.group(1))
        pos = match.end()
    if pos != len(value) or pos == 0:
        raise ValueError(f"invalid duration {value!r}")
    return total


_RFC3339_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; the UTC offset (or `Z`) is required."""
    match = _RFC3339_RE.match(value.strip())
    if match is None:
        raise ValueError(f"invalid RFC3339 time {value!r}")
    date, clock, fraction, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    # fromisoformat only takes 3 or 6 fractional digits before Python 3.11
    micros = f".{fraction[:6].ljust(6, '0')}" if fraction else ""
    return datetime.fromisoformat(f"{date}T{clock}{micros}{offset}")


class DurationType(click.ParamType):
    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, timedelta):
            return value
        try:
            return parse_duration(value)
        except ValueError as exc:
            self.fail(f"{exc} (use e.g. 60m, 1h30m, 90s)", param, ctx)


class TimestampType(click.ParamType):
    name = "timestamp"

    def convert(self, value, param, ctx):
        if isinstance(value, datetime):
            return value
        try:
            return parse_timestamp(value)
        except ValueError:
            self.fail(f"invalid time {value!r}: use RFC3339", param, ctx)


class FormatType(click.ParamType):
    name = "format"

    def convert(self, value, param, ctx):
        if isinstance(value, MessageFormat):
            return value
        normalized = (value or "").strip().lower() or MessageFormat.RICH.value
        try:
            return MessageFormat(normalized)
        except ValueError:
            self.fail(f"invalid format {value!r}: use plain or rich", param, ctx)


DURATION = DurationType()
TIMESTAMP = TimestampType()
FORMAT = FormatType()
