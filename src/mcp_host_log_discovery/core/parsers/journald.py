"""journald JSON parser (``journalctl -o json`` output)."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..models import LogLevel, ParsedLogEntry
from .auth import AUTH_ACTIONS
from .base import extract_ip_address, extract_user, first_match, level_from_priority
from .syslog import SyslogParser

SERVICE_KEYS = ("_SYSTEMD_UNIT", "SYSLOG_IDENTIFIER", "_COMM")
HOSTNAME_KEYS = ("_HOSTNAME", "HOSTNAME")
PID_KEYS = ("_PID", "SYSLOG_PID")


def is_journald_json(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("{") and stripped.endswith("}")


def _first(fields: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = fields.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _message_text(value: Any) -> str:
    # journald emits non-UTF-8 payloads as arrays of byte values.
    if isinstance(value, list) and all(isinstance(b, int) for b in value):
        return bytes(b & 0xFF for b in value).decode("utf-8", errors="replace")
    if value is None:
        return ""
    return str(value)


def _realtime(value: Any) -> datetime | None:
    try:
        micros = int(value)
    except (TypeError, ValueError):
        return None
    try:
        return datetime.fromtimestamp(micros / 1_000_000, UTC)
    except (OverflowError, OSError, ValueError):
        return None


@dataclass(frozen=True, slots=True)
class JournaldJsonParser:
    """Parse journald JSON records; text lines fall through to the syslog parser."""

    text_parser: SyslogParser = field(default_factory=SyslogParser)

    @staticmethod
    def decode(line: str) -> dict[str, Any] | None:
        if not is_journald_json(line):
            return None
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    def from_fields(self, fields: Mapping[str, Any], line: str) -> ParsedLogEntry:
        message = _message_text(fields.get("MESSAGE")).strip()
        service = _first(fields, SERVICE_KEYS)
        pid_text = _first(fields, PID_KEYS)
        pid = int(pid_text) if pid_text and pid_text.isdigit() else None

        priority: int | None = None
        level = LogLevel.INFO
        prio_text = _first(fields, ("PRIORITY",))
        if prio_text and prio_text.isdigit():
            priority = int(prio_text)
            level = level_from_priority(priority)

        if not message:
            message = f"{service}[{pid}]" if service and pid else (service or line.strip())

        return ParsedLogEntry(
            message=message,
            level=level,
            timestamp=_realtime(fields.get("__REALTIME_TIMESTAMP")),
            hostname=_first(fields, HOSTNAME_KEYS),
            service=service,
            tag=_first(fields, ("SYSLOG_IDENTIFIER", "_COMM")),
            pid=pid,
            priority=priority,
            user=extract_user(message),
            action=first_match(message, AUTH_ACTIONS),
            ip_address=extract_ip_address(message),
        )

    def match_line(self, line: str) -> ParsedLogEntry | None:
        """Only JSON objects count as a journald match."""
        if not line.strip():
            return None
        fields = self.decode(line)
        if fields is None:
            return None
        return self.from_fields(fields, line)

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        entry = self.match_line(line)
        if entry is not None:
            return entry
        return self.text_parser.parse_journald_line(line)
