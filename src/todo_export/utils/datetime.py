"""Datetime utilities with consistent UTC timezone handling.

This module provides centralized datetime functions so every timestamp that
reaches a renderer is timezone-aware, and holds the wire formats the export
payloads rely on.
"""

import re
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


# Injectable "format(timestamp) -> str" capability used for human-facing dates
DateFormatter = Callable[[datetime], str]

# Fractional seconds of any length, e.g. ".12345" as sent by Postgres
FRACTION_RE = re.compile(r"([T ]\d{2}:\d{2}:\d{2})\.(\d+)")


def now_utc() -> datetime:
    """Return current datetime in UTC timezone.

    Returns:
        Current datetime with timezone=UTC
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string with timezone info.

    Args:
        dt: Datetime to convert, or None

    Returns:
        ISO format string with timezone, or None if input was None
    """
    if dt is None:
        return None

    return ensure_aware(dt).isoformat()


def to_js_iso_string(dt: datetime) -> str:
    """Render a datetime the way ``Date.prototype.toISOString`` does.

    Always UTC, millisecond precision, ``Z`` suffix, e.g.
    ``2025-01-10T18:00:00.000Z``.
    """
    utc = ensure_aware(dt).astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def format_ical_datetime(dt: datetime) -> str:
    """Render a datetime in the iCalendar UTC basic format ``YYYYMMDDTHHMMSSZ``."""
    return ensure_aware(dt).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 string into an aware datetime.

    Accepts the trailing ``Z`` produced by JavaScript and most backends.
    Empty values return None; anything unparseable raises ValueError.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    text = str(value).strip()
    if not text:
        return None

    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    # fromisoformat before 3.11 only takes 3 or 6 fraction digits
    text = FRACTION_RE.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)

    return ensure_aware(datetime.fromisoformat(text))


def get_timezone(name: Optional[str]):
    """Resolve an IANA zone name, falling back to UTC for empty names.

    Raises:
        ValueError: If the zone name is unknown
    """
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


class LocaleDateFormatter:
    """Human-facing date formatter mirroring the zh-CN locale rendering.

    The default pattern produces ``2025/1/10 18:00:00``: year, month and
    day without zero-padding, then a 24-hour clock. Timestamps are shown in
    the configured zone.
    """

    def __init__(self, tz_name: Optional[str] = "UTC", include_time: bool = True):
        self.tz_name = tz_name or "UTC"
        self.tz = get_timezone(tz_name)
        self.include_time = include_time

    def __call__(self, dt: datetime) -> str:
        return self.format(dt)

    def format(self, dt: datetime) -> str:
        local = ensure_aware(dt).astimezone(self.tz)
        date_part = f"{local.year}/{local.month}/{local.day}"
        if not self.include_time:
            return date_part
        return f"{date_part} {local:%H:%M:%S}"

    def __repr__(self) -> str:
        return f"LocaleDateFormatter(tz_name={self.tz_name!r}, include_time={self.include_time!r})"
