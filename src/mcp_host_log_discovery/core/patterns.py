"""Format pattern library.

Each entry describes one log shape, how to recognise a line of it (a dialect
parser or a grok template) and the minimum match rate needed to win detection.
System entries come before application entries; detection breaks ties by
this order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .grok import COMBINED_ACCESS_LOG, COMMON_ACCESS_LOG, GrokTemplate, build_syslog_pattern
from .models import LogType
from .parsers import (
    AuthLogParser,
    DaemonLogParser,
    JournaldJsonParser,
    KernLogParser,
    LogLineParser,
    MailLogParser,
    SyslogParser,
)


class PatternCategory(str, Enum):
    SYSTEM = "system"
    APPLICATION = "application"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class LogPatternEntry:
    name: str
    category: PatternCategory
    log_type: LogType
    parser_type: str
    description: str
    confidence_threshold: int
    grok: GrokTemplate | None = None
    parser: LogLineParser | None = None
    examples: tuple[str, ...] = ()

    def matches(self, line: str) -> bool:
        """True when the line has this entry's shape (parser preferred over grok)."""
        if self.parser is not None:
            entry = self.parser.match_line(line)
            return entry is not None and bool(entry.message)
        if self.grok is not None:
            return self.grok.compile().regex.match(line.strip()) is not None
        return False

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "category": self.category.value,
            "log_type": self.log_type.value,
            "parser_type": self.parser_type,
            "description": self.description,
            "confidence_threshold": self.confidence_threshold,
            "grok": self.grok.template if self.grok is not None else None,
            "examples": list(self.examples),
        }


LOG_PATTERN_LIBRARY: tuple[LogPatternEntry, ...] = (
    LogPatternEntry(
        name="syslog-standard",
        category=PatternCategory.SYSTEM,
        log_type=LogType.SYSLOG,
        parser_type="syslog",
        description="BSD syslog: 'Mon D HH:MM:SS host tag[pid]: message' (or ISO-8601 timestamp).",
        confidence_threshold=80,
        grok=build_syslog_pattern(with_priority=False),
        parser=SyslogParser(),
        examples=(
            "Jan 15 10:30:45 web01 systemd[1]: Started Session 42 of user alice.",
            "2025-01-15T10:30:45.123456+00:00 web01 CRON[2211]: (root) CMD (run-parts /etc/cron.hourly)",
        ),
    ),
    LogPatternEntry(
        name="syslog-with-priority",
        category=PatternCategory.SYSTEM,
        log_type=LogType.SYSLOG,
        parser_type="syslog",
        description="BSD syslog with a leading <PRI> field, as written by some forwarders.",
        confidence_threshold=80,
        grok=build_syslog_pattern(with_priority=True),
        examples=("<34>Jan 15 10:30:45 web01 su[812]: 'su root' failed for alice on /dev/pts/0",),
    ),
    LogPatternEntry(
        name="auth-log",
        category=PatternCategory.SYSTEM,
        log_type=LogType.AUTH,
        parser_type="auth",
        description="Authentication events from sshd, sudo, su and PAM.",
        confidence_threshold=75,
        parser=AuthLogParser(),
        examples=(
            "Jan 15 10:30:45 web01 sshd[12345]: Accepted password for alice from 192.168.1.10 port 52211 ssh2",
            "Jan 15 10:31:02 web01 sshd[12350]: Failed password for invalid user admin from 203.0.113.7 port 4242 ssh2",
        ),
    ),
    LogPatternEntry(
        name="kern-log",
        category=PatternCategory.SYSTEM,
        log_type=LogType.KERN,
        parser_type="kern",
        description="Kernel ring buffer forwarded through syslog, with [uptime] stamps.",
        confidence_threshold=70,
        parser=KernLogParser(),
        examples=("Jan 15 10:30:45 web01 kernel: [ 1234.567890] usb 1-1: new high-speed USB device number 2",),
    ),
    LogPatternEntry(
        name="daemon-log",
        category=PatternCategory.SYSTEM,
        log_type=LogType.DAEMON,
        parser_type="daemon",
        description="Service manager and daemon messages.",
        confidence_threshold=70,
        parser=DaemonLogParser(),
        examples=("Jan 15 10:30:45 web01 systemd[1]: Started nginx.service - A high performance web server.",),
    ),
    LogPatternEntry(
        name="mail-log",
        category=PatternCategory.SYSTEM,
        log_type=LogType.MAIL,
        parser_type="mail",
        description="MTA logs (postfix, sendmail, exim via syslog).",
        confidence_threshold=70,
        parser=MailLogParser(),
        examples=(
            "Jan 15 10:30:45 mx1 postfix/smtpd[2301]: connect from mail.example.org[198.51.100.20]",
            "Jan 15 10:30:46 mx1 postfix/qmgr[1201]: 4F2A11C0D3: from=<bob@example.org>, size=1022, nrcpt=1 (queue active)",
        ),
    ),
    LogPatternEntry(
        name="journald-json",
        category=PatternCategory.SYSTEM,
        log_type=LogType.JOURNALD,
        parser_type="journald",
        description="One JSON object per line, as produced by 'journalctl -o json'.",
        confidence_threshold=80,
        parser=JournaldJsonParser(),
        examples=(
            '{"__REALTIME_TIMESTAMP":"1736937045000000","PRIORITY":"6","_HOSTNAME":"web01",'
            '"SYSLOG_IDENTIFIER":"sshd","_PID":"12345","MESSAGE":"Accepted publickey for alice"}',
        ),
    ),
    LogPatternEntry(
        name="apache-access",
        category=PatternCategory.APPLICATION,
        log_type=LogType.CUSTOM,
        parser_type="apache",
        description="Apache common/combined access log.",
        confidence_threshold=85,
        grok=GrokTemplate(
            "APACHE_ACCESS", COMMON_ACCESS_LOG + "(?: %{QS:referrer} %{QS:agent})?"
        ),
        examples=('192.168.1.20 - - [15/Jan/2025:10:30:45 +0000] "GET /index.html HTTP/1.1" 200 1043',),
    ),
    LogPatternEntry(
        name="nginx-access",
        category=PatternCategory.APPLICATION,
        log_type=LogType.CUSTOM,
        parser_type="nginx",
        description="nginx default 'combined' access log.",
        confidence_threshold=85,
        grok=GrokTemplate("NGINX_ACCESS", COMBINED_ACCESS_LOG),
        examples=(
            '203.0.113.9 - - [15/Jan/2025:10:30:45 +0000] "GET /api/v1/items HTTP/1.1" 200 512 '
            '"-" "curl/8.5.0"',
        ),
    ),
)


def patterns_by_category(category: PatternCategory | str) -> list[LogPatternEntry]:
    return [p for p in LOG_PATTERN_LIBRARY if p.category == PatternCategory(category)]


def system_patterns() -> list[LogPatternEntry]:
    return patterns_by_category(PatternCategory.SYSTEM)


def pattern_by_name(name: str) -> LogPatternEntry | None:
    for entry in LOG_PATTERN_LIBRARY:
        if entry.name == name:
            return entry
    return None


def patterns_by_log_type(log_type: LogType | str) -> list[LogPatternEntry]:
    return [p for p in LOG_PATTERN_LIBRARY if p.log_type == LogType(log_type)]
