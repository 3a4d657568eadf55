"""Timestamp normalization helpers.

Every parser routes its timestamp text through :func:`parse_timestamp`, which
always returns a timezone-aware UTC datetime.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, tzinfo
from email.utils import parsedate_to_datetime
from enum import Enum

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTH_INDEX = {name: i + 1 for i, name in enumerate(MONTHS)}

# Unix values at or above this are milliseconds (year 2286 in seconds).
EPOCH_MILLIS_THRESHOLD = 10_000_000_000
YEAR_ROLLBACK_WINDOW = timedelta(days=180)

_ISO_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})?$"
)
_UNIX_RE = re.compile(r"^(\d+)(?:\.(\d+))?$")
_SYSLOG_RE = re.compile(r"^([A-Z][a-z]{2})\s+(\d{1,2})\s+(\d{2}):(\d{2}):(\d{2})")

_DETECT_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
_DETECT_SYSLOG_RE = re.compile(r"^\w+\s+\d{1,2}\s+\d{2}:\d{2}:\d{2}")

FALLBACK_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S,%f",
    "%d/%b/%Y:%H:%M:%S %z",
    "%b %d %Y %H:%M:%S",
    "%a %b %d %H:%M:%S %Y",
)


class TimestampFormat(str, Enum):
    ISO8601 = "iso8601"
    UNIX = "unix"
    SYSLOG = "syslog"
    UNKNOWN = "unknown"


def _to_utc(ts: datetime, default_tz: tzinfo) -> datetime:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=default_tz)
    return ts.astimezone(UTC)


def _parse_iso(text: str, default_tz: tzinfo) -> datetime | None:
    m = _ISO_RE.match(text)
    if not m:
        return None
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    fraction, offset = m.group(7), m.group(8)
    micros = int((fraction or "0")[:6].ljust(6, "0"))
    try:
        ts = datetime(year, month, day, hour, minute, second, micros)
    except ValueError:
        return None

    if offset is None:
        return _to_utc(ts, default_tz)
    if offset == "Z":
        return ts.replace(tzinfo=UTC)

    sign = 1 if offset[0] == "+" else -1
    delta = timedelta(hours=int(offset[1:3]), minutes=int(offset[4:6]))
    return (ts - sign * delta).replace(tzinfo=UTC)


def _parse_unix(text: str) -> datetime | None:
    m = _UNIX_RE.match(text)
    if not m:
        return None
    value = float(text)
    if int(m.group(1)) >= EPOCH_MILLIS_THRESHOLD:
        value /= 1000
    try:
        return datetime.fromtimestamp(value, UTC)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_syslog(text: str, now: datetime, default_tz: tzinfo) -> datetime | None:
    m = _SYSLOG_RE.match(text)
    if not m:
        return None
    month = _MONTH_INDEX.get(m.group(1))
    if month is None:
        return None
    day, hour, minute, second = (int(g) for g in m.groups()[1:])

    for year in (now.year, now.year - 1):
        try:
            ts = _to_utc(datetime(year, month, day, hour, minute, second), default_tz)
        except ValueError:
            continue
        if year == now.year and ts > now + YEAR_ROLLBACK_WINDOW:
            continue
        return ts
    return None


def _parse_generic(text: str, default_tz: tzinfo) -> datetime | None:
    try:
        return _to_utc(datetime.fromisoformat(text.replace("Z", "+00:00")), default_tz)
    except ValueError:
        pass
    try:
        return _to_utc(parsedate_to_datetime(text), default_tz)
    except (TypeError, ValueError, IndexError):
        pass
    for fmt in FALLBACK_FORMATS:
        try:
            return _to_utc(datetime.strptime(text, fmt), default_tz)
        except ValueError:
            continue
    return None


def try_parse_timestamp(
    text: str,
    *,
    now: datetime | None = None,
    default_tz: tzinfo = UTC,
) -> datetime | None:
    """Parse known timestamp shapes; None when nothing fits."""
    text = text.strip()
    if not text:
        return None
    now = _to_utc(now, default_tz) if now is not None else datetime.now(UTC)

    return (
        _parse_iso(text, default_tz)
        or _parse_unix(text)
        or _parse_syslog(text, now, default_tz)
        or _parse_generic(text, default_tz)
    )


def parse_timestamp(
    text: str,
    *,
    now: datetime | None = None,
    default_tz: tzinfo = UTC,
) -> datetime:
    """Parse a timestamp; falls back to ``now`` so no line is ever dropped."""
    ts = try_parse_timestamp(text, now=now, default_tz=default_tz)
    if ts is not None:
        return ts
    return _to_utc(now, default_tz) if now is not None else datetime.now(UTC)


def detect_timestamp_format(text: str) -> TimestampFormat:
    text = text.strip()
    if _DETECT_ISO_RE.match(text):
        return TimestampFormat.ISO8601
    if _UNIX_RE.match(text):
        return TimestampFormat.UNIX
    if _DETECT_SYSLOG_RE.match(text):
        return TimestampFormat.SYSLOG
    return TimestampFormat.UNKNOWN


def format_syslog_timestamp(ts: datetime) -> str:
    """Render ``Mon %2d HH:MM:SS`` (UTC), the BSD syslog layout."""
    ts = _to_utc(ts, UTC)
    return f"{MONTHS[ts.month - 1]} {ts.day:>2} {ts:%H:%M:%S}"
