"""Authentication log parser (auth.log / secure)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import LogLevel, ParsedLogEntry
from .base import (
    build_entry,
    compile_level_rules,
    extract_ip_address,
    extract_user,
    first_match,
    infer_level,
    raw_entry,
    split_syslog_line,
)


AUTH_ACTIONS = (
    ("authentication failure", re.compile(r"authentication failure", re.IGNORECASE)),
    ("accepted", re.compile(r"\baccepted\b", re.IGNORECASE)),
    ("failed", re.compile(r"\bfailed\b", re.IGNORECASE)),
    ("disconnected", re.compile(r"\bdisconnect(?:ed|ing)?\b", re.IGNORECASE)),
    ("session opened", re.compile(r"session opened", re.IGNORECASE)),
    ("session closed", re.compile(r"session closed", re.IGNORECASE)),
)


@dataclass(frozen=True, slots=True)
class AuthLogParser:
    """Parse sshd/sudo/PAM lines and pull out user, action and source address."""

    _levels = compile_level_rules(
        (
            (LogLevel.ERROR, ("failed", "failure", "error", "denied")),
            (LogLevel.WARNING, ("warning", "invalid")),
        )
    )

    def match_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        parts = split_syslog_line(line)
        if parts is None:
            return None

        message = parts.message
        return build_entry(
            parts,
            line,
            infer_level(message, self._levels),
            user=extract_user(message),
            action=first_match(message, AUTH_ACTIONS),
            ip_address=extract_ip_address(message),
        )

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        return self.match_line(line) or raw_entry(line)
