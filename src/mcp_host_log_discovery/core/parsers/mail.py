"""Mail log parser (postfix / sendmail style mail.log and maillog)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import LogLevel, ParsedLogEntry
from .base import (
    build_entry,
    compile_level_rules,
    extract_ipv4,
    extract_ipv6,
    first_match,
    infer_level,
    raw_entry,
    split_syslog_line,
)


@dataclass(frozen=True, slots=True)
class MailLogParser:
    """Parse MTA lines and extract queue id, action and peer address."""

    _levels = compile_level_rules(
        (
            (LogLevel.ERROR, ("error", "fatal", "reject", "panic")),
            (LogLevel.WARNING, ("warning", "warn")),
            (LogLevel.DEBUG, ("debug",)),
        )
    )

    _actions = (
        ("disconnect", re.compile(r"\bdisconnect from\b", re.IGNORECASE)),
        ("connect", re.compile(r"\bconnect from\b", re.IGNORECASE)),
        ("reject", re.compile(r"\breject", re.IGNORECASE)),
        ("bounce", re.compile(r"status=bounced|\bbounce", re.IGNORECASE)),
        ("defer", re.compile(r"status=deferred|\bdefer", re.IGNORECASE)),
        ("send", re.compile(r"status=sent\b", re.IGNORECASE)),
        ("deliver", re.compile(r"\bdeliver", re.IGNORECASE)),
        ("receive", re.compile(r"\bfrom=<|\breceived?\b", re.IGNORECASE)),
    )

    # Short hex ids, or postfix long ids (enable_long_queue_ids).
    _queue_id = re.compile(
        r"\b([0-9A-F]{6,12}"
        r"|[0-9B-DF-HJ-NP-TV-Zb-df-hj-np-tv-z]{10,15}z[0-9B-DF-HJ-NP-TV-Zb-df-hj-np-tv-z]{5,10}):"
    )

    @staticmethod
    def peer_address(message: str) -> str | None:
        """Bracketed IPv6, then bracketed IPv4, then a bare IPv4."""
        return (
            extract_ipv6(message, bracketed_only=True)
            or extract_ipv4(message, bracketed_only=True)
            or extract_ipv4(message)
        )

    def match_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        parts = split_syslog_line(line)
        if parts is None:
            return None

        message = parts.message
        queue = self._queue_id.search(message)
        return build_entry(
            parts,
            line,
            infer_level(message, self._levels),
            action=first_match(message, self._actions),
            ip_address=self.peer_address(message),
            queue_id=queue.group(1) if queue else None,
        )

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        return self.match_line(line) or raw_entry(line)
