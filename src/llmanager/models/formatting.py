# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""Human-readable sizes and timestamps for the model table."""

import re
from datetime import datetime, timezone

# Ollama sends up to nanosecond precision; datetime only takes microseconds
_FRACTION = re.compile(r"(\.\d{6})\d+")


def format_bytes(size_bytes: int) -> str:
    """Decimal units, like `ollama list` (e.g. '4.7 GB', '562 MB')."""
    if size_bytes <= 0:
        return "0 MB"
    gb = size_bytes / 1000**3
    if gb >= 1:
        return f"{gb:.1f} GB"
    mb = size_bytes / 1000**2
    if mb >= 1:
        return f"{mb:.0f} MB"
    return f"{mb:.1f} MB"


def parse_timestamp(value: str) -> datetime | None:
    """Parses an RFC 3339 timestamp, returning None if it is not one."""
    if not value:
        return None
    text = _FRACTION.sub(r"\1", value.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


_UNITS = (
    ("year", 365 * 24 * 3600),
    ("month", 30 * 24 * 3600),
    ("week", 7 * 24 * 3600),
    ("day", 24 * 3600),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def _relative(delta_seconds: float) -> str:
    seconds = abs(int(delta_seconds))
    if seconds == 0:
        return "now"
    for unit, length in _UNITS:
        if seconds >= length:
            count = seconds // length
            break
    label = f"{count} {unit}" + ("s" if count != 1 else "")
    return f"in {label}" if delta_seconds > 0 else f"{label} ago"


def format_relative_date(value: str, now: datetime | None = None) -> str:
    """
    '4 minutes ago' / 'in 3 minutes' relative to `now`.

    Strings that are not timestamps come back unchanged.
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return _relative((parsed - now).total_seconds())
