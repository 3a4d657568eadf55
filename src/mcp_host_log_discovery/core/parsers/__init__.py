"""Dialect parsers for system log files.

Each parser exposes ``parse_line`` (never None for non-blank input) and
``match_line`` (None unless the line has the dialect's structure).
"""

from __future__ import annotations

from ..models import LogType, ParsedLogEntry
from ..schemas import CustomParserConfig
from .auth import AuthLogParser
from .base import LogLineParser, level_from_priority, normalize_level
from .custom import CustomLogParser
from .daemon import DaemonLogParser
from .journald import JournaldJsonParser, is_journald_json
from .kernel import KernLogParser
from .mail import MailLogParser
from .syslog import SyslogParser

_PARSERS: dict[LogType, LogLineParser] = {
    LogType.SYSLOG: SyslogParser(),
    LogType.AUTH: AuthLogParser(),
    LogType.KERN: KernLogParser(),
    LogType.DAEMON: DaemonLogParser(),
    LogType.MAIL: MailLogParser(),
    LogType.JOURNALD: JournaldJsonParser(),
}


def parser_for(log_type: LogType | str) -> LogLineParser:
    """Return the dialect parser for a log type (syslog for anything else)."""
    try:
        key = LogType(log_type)
    except ValueError:
        key = LogType.SYSLOG
    return _PARSERS.get(key, _PARSERS[LogType.SYSLOG])


def parse_log_line(
    line: str,
    log_type: LogType | str = LogType.SYSLOG,
    *,
    custom_config: CustomParserConfig | None = None,
) -> ParsedLogEntry | None:
    """Parse one line for a file of the given type."""
    if not line.strip():
        return None
    if is_journald_json(line):
        entry = _PARSERS[LogType.JOURNALD].match_line(line)
        if entry is not None:
            return entry
    if log_type == LogType.CUSTOM and custom_config is not None and custom_config.regex:
        return CustomLogParser(custom_config).parse_line(line)
    return parser_for(log_type).parse_line(line)


__all__ = [
    "AuthLogParser",
    "CustomLogParser",
    "DaemonLogParser",
    "JournaldJsonParser",
    "KernLogParser",
    "LogLineParser",
    "MailLogParser",
    "SyslogParser",
    "is_journald_json",
    "level_from_priority",
    "normalize_level",
    "parse_log_line",
    "parser_for",
]
