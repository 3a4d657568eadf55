"""Generic syslog parser (BSD, ISO-8601 and priority-prefixed variants)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import LogLevel, ParsedLogEntry
from ..timestamps import parse_timestamp
from .base import (
    BSD_TS,
    ISO_TS,
    SyslogParts,
    build_entry,
    compile_level_rules,
    infer_level,
    level_from_priority,
    normalize_level,
    raw_entry,
    split_syslog_line,
)


@dataclass(frozen=True, slots=True)
class SyslogParser:
    """Parse syslog lines from /var/log/syslog, /var/log/messages and friends."""

    _levels = compile_level_rules(
        (
            (LogLevel.ERROR, ("error", "err")),
            (LogLevel.WARNING, ("warn",)),
            (LogLevel.DEBUG, ("debug",)),
        )
    )

    _no_host = re.compile(
        rf"^(?P<ts>{BSD_TS})\s+(?P<tag>[^\s:\[\]]+)(?:\[(?P<pid>\d+)\])?:\s*(?P<msg>.*)$"
    )
    _bracket = re.compile(
        r"^\[(?P<date>\d{4}-\d{2}-\d{2})\s+(?P<time>\d{2}:\d{2}:\d{2})\]\s+"
        r"\[(?P<level>\w+)\]\s+(?P<msg>.*)$"
    )
    _iso_start = re.compile(rf"^(?P<ts>{ISO_TS})\s+(?P<msg>.*)$")

    def level_for(self, parts: SyslogParts) -> LogLevel:
        if parts.priority is not None:
            return level_from_priority(parts.priority)
        return infer_level(parts.message, self._levels)

    def match_line(self, line: str) -> ParsedLogEntry | None:
        """Parse syslog-shaped lines only; None for anything else."""
        if not line.strip():
            return None

        parts = split_syslog_line(line)
        if parts is None:
            m = self._no_host.match(line.strip())
            if m is None:
                return None
            parts = SyslogParts(
                timestamp=m.group("ts"),
                message=m.group("msg"),
                tag=m.group("tag"),
                pid=int(m.group("pid")) if m.group("pid") else None,
            )
        return build_entry(parts, line, self.level_for(parts))

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None

        entry = self.match_line(line)
        if entry is not None:
            return entry

        stripped = line.strip()
        m = self._bracket.match(stripped)
        if m:
            level = normalize_level(m.group("level"))
            message = m.group("msg").strip() or stripped
            return ParsedLogEntry(
                message=message,
                level=level,
                timestamp=parse_timestamp(f"{m.group('date')}T{m.group('time')}"),
            )

        m = self._iso_start.match(stripped)
        if m:
            message = m.group("msg").strip() or stripped
            return ParsedLogEntry(
                message=message,
                level=infer_level(message, self._levels),
                timestamp=parse_timestamp(m.group("ts")),
            )

        return raw_entry(line)

    def parse_journald_line(self, line: str) -> ParsedLogEntry | None:
        """Parse ``journalctl`` text output (short and short-iso modes)."""
        return self.parse_line(line)
