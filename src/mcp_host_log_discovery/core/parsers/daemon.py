"""Daemon log parser (daemon.log, mostly systemd unit chatter)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import LogLevel, ParsedLogEntry
from .base import build_entry, compile_level_rules, infer_level, raw_entry, split_syslog_line


@dataclass(frozen=True, slots=True)
class DaemonLogParser:
    _levels = compile_level_rules(
        (
            (LogLevel.ERROR, ("error", "failed", "fatal")),
            (LogLevel.WARNING, ("warning", "warn")),
            (LogLevel.DEBUG, ("debug",)),
        )
    )

    _unit = re.compile(
        r"\b(?:Started|Stopped|Reloaded|Starting|Stopping|Reloading)\s+([\w@.\-]+\.service)\b"
    )
    _failed_unit = re.compile(r"^([\w@.\-]+\.service):")

    def service_for(self, message: str, tag: str | None) -> str | None:
        """Prefer the systemd unit named in the message over the syslog tag."""
        m = self._unit.search(message) or self._failed_unit.search(message)
        if m:
            return m.group(1)
        return tag

    def match_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        parts = split_syslog_line(line)
        if parts is None:
            return None

        return build_entry(
            parts,
            line,
            infer_level(parts.message, self._levels),
            service=self.service_for(parts.message, parts.tag),
        )

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        return self.match_line(line) or raw_entry(line)
