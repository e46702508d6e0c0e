"""Datetime helpers: lax systemctl timestamps in, aware UTC datetimes out."""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pendulum

# systemctl show --timestamp=unix renders timestamps as "@<seconds>"
_UNIX_TIMESTAMP_RE = re.compile(r"^@(\d+(?:\.\d+)?)$")
_MICROSECONDS_RE = re.compile(r"^\d+$")
# "Mon 2026-02-02 22:21:29 UTC" and friends
_HUMAN_TIMESTAMP_RE = re.compile(
    r"^(?:[A-Za-z]{3}\s+)?(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})(?:\s+(UTC|GMT))?$"
)


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def parse_systemd_timestamp(value: str) -> datetime | None:
    """Parse a timestamp property value from ``systemctl show``.

    Accepts:
    - ``@1767225600`` (``--timestamp=unix``)
    - ``1767225600000000`` (raw microseconds, as in ``*USec`` properties)
    - ``Thu 2026-01-01 00:00:00 UTC``
    - anything else pendulum can parse leniently

    Empty values and ``n/a`` mean "never" and return None, as does text that
    cannot be parsed at all.
    """
    text = value.strip()
    if not text or text == "n/a":
        return None

    unix_match = _UNIX_TIMESTAMP_RE.match(text)
    if unix_match:
        return pendulum.from_timestamp(float(unix_match.group(1)))

    if _MICROSECONDS_RE.match(text):
        micros = int(text)
        if micros == 0:
            return None
        return pendulum.from_timestamp(micros / 1_000_000)

    human_match = _HUMAN_TIMESTAMP_RE.match(text)
    if human_match:
        text = human_match.group(1)

    try:
        parsed = pendulum.parse(text, tz="UTC", strict=False)
    except ValueError:
        return None
    if not isinstance(parsed, pendulum.DateTime):
        return None
    return parsed


def format_iso(dt: datetime) -> str:
    """Format a datetime as ISO 8601 for display. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()
