"""Shared parser interface and heuristics used by every syslog dialect."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from ..grok import build_syslog_pattern
from ..models import LogLevel, ParsedLogEntry
from ..timestamps import parse_timestamp

BSD_TS = r"[A-Z][a-z]{2}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2}"
ISO_TS = r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?"
USER_NAME = r"([a-z_][a-z0-9_\-.]*\$?)"

LevelRules = Sequence[tuple[LogLevel, Sequence[str]]]


class LogLineParser(Protocol):
    """Parser interface for one log dialect."""

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        """Best-effort parse; only blank input yields None."""

    def match_line(self, line: str) -> ParsedLogEntry | None:
        """Structured parse; None when only the raw fallback would apply."""


@dataclass(frozen=True, slots=True)
class SyslogParts:
    """Envelope fields split off a syslog-shaped line."""

    timestamp: str
    message: str
    hostname: str | None = None
    tag: str | None = None
    pid: int | None = None
    priority: int | None = None


_ISO_LINE_RE = re.compile(rf"^(?P<ts>{ISO_TS})\s+(?P<rest>.*)$")
_ISO_REST_RE = re.compile(
    r"^(?:(?P<host>[^\s:\[\]]+)\s+)?(?P<tag>[^\s:\[\]]+)(?:\[(?P<pid>\d+)\])?:\s*(?P<msg>.*)$"
)
_FALLBACK_RE = re.compile(
    rf"^(?:<(?P<pri>\d{{1,3}})>)?(?P<ts>{BSD_TS})\s+(?P<host>[^\s:\[\]]+)\s+"
    r"(?P<tag>[^\s\[\]]+?)(?:\[(?P<pid>\d+)\])?:\s*(?P<msg>.*)$"
)
_OFFSET_NO_COLON_RE = re.compile(r"([+-]\d{2})(\d{2})$")

_SYSLOG_WITH_PRIORITY = build_syslog_pattern(with_priority=True)
_SYSLOG_BASE = build_syslog_pattern(with_priority=False)


def _int_or_none(value: str | None) -> int | None:
    return int(value) if value else None


def _split_iso(line: str) -> SyslogParts | None:
    m = _ISO_LINE_RE.match(line)
    if not m:
        return None
    rest = _ISO_REST_RE.match(m.group("rest"))
    if not rest:
        return None
    return SyslogParts(
        timestamp=_OFFSET_NO_COLON_RE.sub(r"\1:\2", m.group("ts")),
        message=rest.group("msg"),
        hostname=rest.group("host"),
        tag=rest.group("tag"),
        pid=_int_or_none(rest.group("pid")),
    )


def _split_grok(line: str) -> SyslogParts | None:
    for template in (_SYSLOG_WITH_PRIORITY, _SYSLOG_BASE):
        fields = template.parse(line)
        if fields is None:
            continue
        return SyslogParts(
            timestamp=fields["timestamp"],
            message=fields.get("message", ""),
            hostname=fields.get("hostname"),
            tag=fields.get("program"),
            pid=_int_or_none(fields.get("pid")),
            priority=_int_or_none(fields.get("priority")),
        )
    return None


def _split_fallback(line: str) -> SyslogParts | None:
    m = _FALLBACK_RE.match(line)
    if not m:
        return None
    return SyslogParts(
        timestamp=m.group("ts"),
        message=m.group("msg"),
        hostname=m.group("host"),
        tag=m.group("tag"),
        pid=_int_or_none(m.group("pid")),
        priority=_int_or_none(m.group("pri")),
    )


def split_syslog_line(line: str) -> SyslogParts | None:
    """Try the ISO variant, then the grok templates, then the fallback regex."""
    line = line.strip()
    return _split_iso(line) or _split_grok(line) or _split_fallback(line)


def raw_entry(line: str) -> ParsedLogEntry:
    return ParsedLogEntry(message=line.strip(), level=LogLevel.INFO)


def build_entry(parts: SyslogParts, line: str, level: LogLevel, **fields: object) -> ParsedLogEntry:
    """Assemble an entry from the envelope plus dialect-specific fields."""
    message = parts.message.strip()
    if not message:
        message = f"{parts.tag}[{parts.pid}]" if parts.tag and parts.pid else line.strip()
    values: dict[str, object] = {
        "timestamp": parse_timestamp(parts.timestamp),
        "hostname": parts.hostname,
        "service": parts.tag,
        "tag": parts.tag,
        "pid": parts.pid,
        "priority": parts.priority,
    }
    values.update(fields)
    return ParsedLogEntry(message=message, level=level, **values)


def compile_level_rules(rules: LevelRules) -> tuple[tuple[LogLevel, re.Pattern[str]], ...]:
    """Compile keyword lists into word-prefix regexes, preserving order."""
    return tuple(
        (level, re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + ")", re.IGNORECASE))
        for level, words in rules
    )


def infer_level(
    message: str,
    rules: Sequence[tuple[LogLevel, re.Pattern[str]]],
    default: LogLevel = LogLevel.INFO,
) -> LogLevel:
    for level, pattern in rules:
        if pattern.search(message):
            return level
    return default


LEVEL_NAMES: dict[str, LogLevel] = {
    "emerg": LogLevel.ERROR,
    "alert": LogLevel.ERROR,
    "crit": LogLevel.ERROR,
    "critical": LogLevel.ERROR,
    "err": LogLevel.ERROR,
    "error": LogLevel.ERROR,
    "fatal": LogLevel.ERROR,
    "severe": LogLevel.ERROR,
    "warn": LogLevel.WARNING,
    "warning": LogLevel.WARNING,
    "notice": LogLevel.INFO,
    "info": LogLevel.INFO,
    "information": LogLevel.INFO,
    "debug": LogLevel.DEBUG,
    "trace": LogLevel.DEBUG,
}


def normalize_level(value: str) -> LogLevel:
    """Map a level name (any case, common aliases) to a LogLevel."""
    return LEVEL_NAMES.get(value.strip().lower(), LogLevel.INFO)


def level_from_priority(priority: int) -> LogLevel:
    """Map a syslog priority (facility * 8 + severity) to a level."""
    severity = priority % 8
    if severity <= 3:
        return LogLevel.ERROR
    if severity == 4:
        return LogLevel.WARNING
    if severity <= 6:
        return LogLevel.INFO
    return LogLevel.DEBUG


_IPV4 = r"\d{1,3}(?:\.\d{1,3}){3}"
_IPV4_CONTEXT_RE = re.compile(rf"\b(?:from|IP|ip)\s+({_IPV4})(?!\d|\.\d)")
_IPV4_BARE_RE = re.compile(rf"(?<![\d.])({_IPV4})(?!\d|\.\d)")
_IPV4_BRACKET_RE = re.compile(rf"\[({_IPV4})\]")
_IPV6_BRACKET_RE = re.compile(r"\[([0-9a-fA-F:.]*:[0-9a-fA-F:.]*)\]")
_IPV6_CONTEXT_RE = re.compile(r"\b(?:from|IP|ip)\s+([0-9a-fA-F:.]*:[0-9a-fA-F:.]*)")
_IPV6_BARE_RE = re.compile(r"(?<![\w:])([0-9a-fA-F]{0,4}(?::[0-9a-fA-F]{0,4}){2,7})(?![\w:])")


def is_valid_ipv4(candidate: str) -> bool:
    parts = candidate.split(".")
    if len(parts) != 4:
        return False
    return all(p.isdigit() and 0 <= int(p) <= 255 for p in parts)


def is_plausible_ipv6(candidate: str) -> bool:
    if ":" not in candidate:
        return False
    try:
        ipaddress.IPv6Address(candidate)
    except ValueError:
        return False
    return True


def extract_ipv4(message: str, *, bracketed_only: bool = False) -> str | None:
    patterns = (_IPV4_BRACKET_RE,) if bracketed_only else (_IPV4_CONTEXT_RE, _IPV4_BARE_RE)
    for pattern in patterns:
        for m in pattern.finditer(message):
            if is_valid_ipv4(m.group(1)):
                return m.group(1)
    return None


def extract_ipv6(message: str, *, bracketed_only: bool = False) -> str | None:
    patterns = (
        (_IPV6_BRACKET_RE,)
        if bracketed_only
        else (_IPV6_BRACKET_RE, _IPV6_CONTEXT_RE, _IPV6_BARE_RE)
    )
    for pattern in patterns:
        for m in pattern.finditer(message):
            if is_plausible_ipv6(m.group(1)):
                return m.group(1)
    return None


def extract_ip_address(message: str) -> str | None:
    return extract_ipv4(message) or extract_ipv6(message)


_USER_FOR_USER_RE = re.compile(rf"for\s+user\s+{USER_NAME}", re.IGNORECASE)
_USER_LOGIN_RE = re.compile(
    rf"(?:accepted|failed)\s+(?:password|publickey)\s+for\s+(?:invalid\s+user\s+)?{USER_NAME}",
    re.IGNORECASE,
)
_USER_ASSIGN_RE = re.compile(rf"\buser\s*=\s*{USER_NAME}", re.IGNORECASE)
_USER_WORD_RE = re.compile(rf"\buser\s+{USER_NAME}", re.IGNORECASE)


def extract_user(message: str) -> str | None:
    """Pull a user name out of free text, most specific phrasing first."""
    for pattern in (_USER_FOR_USER_RE, _USER_LOGIN_RE, _USER_ASSIGN_RE):
        m = pattern.search(message)
        if m:
            return m.group(1)

    for m in _USER_WORD_RE.finditer(message):
        before = message[max(0, m.start() - 5) : m.start()].lower()
        if "for " not in before:
            return m.group(1)
    return None


def first_match(message: str, table: Sequence[tuple[str, re.Pattern[str]]]) -> str | None:
    """Return the label of the first regex in ``table`` that matches."""
    for label, pattern in table:
        if pattern.search(message):
            return label
    return None
