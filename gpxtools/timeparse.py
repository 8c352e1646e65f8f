"""Minimal ISO 8601 timestamp parsing as found in GPX ``<time>`` elements."""

from __future__ import annotations

import re
from typing import Optional

_INT_RE = re.compile(rb"[+-]?[0-9]+")


def days_from_civil(year: int, month: int, day: int) -> int:
    """Return the number of days between 1970-01-01 and the given civil date."""
    y = year - 1 if month <= 2 else year
    era = y // 400
    yoe = y - era * 400
    mp = month - 3 if month > 2 else month + 9
    doy = (153 * mp + 2) // 5 + day - 1
    doe = yoe * 365 + yoe // 4 - yoe // 100 + doy
    return era * 146097 + doe - 719468


def _parse_int(chunk: bytes) -> Optional[int]:
    if not _INT_RE.fullmatch(chunk):
        return None
    return int(chunk)


def parse_iso8601_epoch(text: str) -> Optional[float]:
    """Parse ``YYYY-MM-DDTHH:MM:SS[.fff][Z|±HH[:MM]]`` into Unix epoch seconds.

    Returns None when the text is too short or a numeric field is malformed.
    Unknown trailing characters are ignored and treated as UTC.
    """
    raw = text.strip().encode("utf-8")
    if len(raw) < 19:
        return None
    fields = []
    for start, end in ((0, 4), (5, 7), (8, 10), (11, 13), (14, 16), (17, 19)):
        value = _parse_int(raw[start:end])
        if value is None:
            return None
        fields.append(value)
    year, month, day, hour, minute, sec = fields

    i = 19
    frac = 0.0
    if raw[i:i + 1] == b".":
        i += 1
        digits = re.match(rb"[0-9]*", raw[i:]).group(0)
        i += len(digits)
        frac = float(b"0." + digits) if digits else 0.0

    offset = 0
    if i < len(raw):
        marker = raw[i:i + 1]
        if marker in (b"+", b"-"):
            sign = 1 if marker == b"+" else -1
            i += 1
            if len(raw) < i + 2:
                return None
            tz_hours = _parse_int(raw[i:i + 2])
            if tz_hours is None:
                return None
            i += 2
            if raw[i:i + 1] == b":":
                i += 1
            tz_minutes = 0
            if len(raw) >= i + 2:
                parsed = _parse_int(raw[i:i + 2])
                if parsed is None:
                    return None
                tz_minutes = parsed
            offset = sign * (tz_hours * 3600 + tz_minutes * 60)

    days = days_from_civil(year, month, day)
    secs = days * 86400 + hour * 3600 + minute * 60 + sec
    return float(secs) + frac - float(offset)