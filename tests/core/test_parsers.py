from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from mcp_host_log_discovery.core.models import LogLevel, LogType
from mcp_host_log_discovery.core.parsers import (
    AuthLogParser,
    CustomLogParser,
    DaemonLogParser,
    JournaldJsonParser,
    KernLogParser,
    MailLogParser,
    SyslogParser,
    level_from_priority,
    parse_log_line,
    parser_for,
)
from mcp_host_log_discovery.core.parsers.base import extract_ipv4, extract_ipv6, extract_user
from mcp_host_log_discovery.core.schemas import CustomParserConfig

ALL_PARSERS = [
    SyslogParser(),
    AuthLogParser(),
    KernLogParser(),
    DaemonLogParser(),
    MailLogParser(),
    JournaldJsonParser(),
    CustomLogParser(CustomParserConfig(regex=r"^(?P<level>[A-Z]+): (?P<message>.*)$")),
]


@pytest.mark.parametrize("parser", ALL_PARSERS, ids=lambda p: type(p).__name__)
def test_parse_line_never_drops_a_line(parser) -> None:
    entry = parser.parse_line("complete garbage ~~~ 42")

    assert entry is not None
    assert entry.message == "complete garbage ~~~ 42"
    assert entry.level == LogLevel.INFO
    assert parser.match_line("complete garbage ~~~ 42") is None


@pytest.mark.parametrize("parser", ALL_PARSERS, ids=lambda p: type(p).__name__)
def test_blank_lines_parse_to_none(parser) -> None:
    assert parser.parse_line("   ") is None


def test_syslog_bsd_line() -> None:
    entry = SyslogParser().parse_line("Jan  5 14:32:01 myhost sshd[1234]: error: kex_exchange_identification")

    assert entry is not None
    assert entry.hostname == "myhost"
    assert entry.service == "sshd"
    assert entry.pid == 1234
    assert entry.level == LogLevel.ERROR
    assert entry.message == "error: kex_exchange_identification"
    assert (entry.timestamp.month, entry.timestamp.day) == (1, 5)


@pytest.mark.parametrize(("priority", "level"), [(11, LogLevel.ERROR), (12, LogLevel.WARNING), (14, LogLevel.INFO)])
def test_syslog_priority_sets_level(priority: int, level: LogLevel) -> None:
    entry = SyslogParser().parse_line(f"<{priority}>Jan  5 14:32:01 myhost app: plain message")

    assert entry is not None
    assert entry.priority == priority
    assert entry.level == level


def test_syslog_iso_line_with_offset() -> None:
    entry = SyslogParser().match_line("2025-01-05T14:32:01.000+02:00 myhost nginx[99]: worker started")

    assert entry is not None
    assert entry.timestamp == datetime(2025, 1, 5, 12, 32, 1, tzinfo=UTC)
    assert entry.hostname == "myhost"
    assert entry.service == "nginx"
    assert entry.pid == 99


def test_syslog_bracket_fallback() -> None:
    parser = SyslogParser()
    line = "[2025-01-05 14:32:01] [warning] disk almost full"

    entry = parser.parse_line(line)

    assert parser.match_line(line) is None
    assert entry is not None
    assert entry.level == LogLevel.WARNING
    assert entry.message == "disk almost full"
    assert entry.timestamp == datetime(2025, 1, 5, 14, 32, 1, tzinfo=UTC)


def test_empty_message_uses_tag_and_pid() -> None:
    entry = SyslogParser().match_line("Jan  5 14:32:01 myhost collectd[77]:")

    assert entry is not None
    assert entry.message == "collectd[77]"


def test_auth_login_fields() -> None:
    entry = AuthLogParser().parse_line(
        "Jan  5 14:32:01 myhost sshd[1234]: Accepted password for alice from 10.0.0.1 port 22 ssh2"
    )

    assert entry is not None
    assert entry.user == "alice"
    assert entry.action == "accepted"
    assert entry.ip_address == "10.0.0.1"
    assert entry.level == LogLevel.INFO


def test_auth_rejects_invalid_ipv4() -> None:
    entry = AuthLogParser().parse_line(
        "Jan  5 14:32:01 myhost sshd[1240]: Failed password for root from 999.1.1.1 port 22 ssh2"
    )

    assert entry is not None
    assert entry.ip_address is None
    assert entry.user == "root"
    assert entry.action == "failed"
    assert entry.level == LogLevel.ERROR


def test_ipv4_validation() -> None:
    assert extract_ipv4("connection from 999.1.1.1 port 22") is None
    assert extract_ipv4("connection from 192.168.1.1 port 22") == "192.168.1.1"
    assert extract_ipv4("build 1.2.3.4.5 done") is None


def test_ipv6_extraction() -> None:
    assert extract_ipv6("Accepted publickey for bob from 2001:db8::1 port 50022") == "2001:db8::1"
    assert extract_ipv6("at 12:30:45 nothing happened") is None


@pytest.mark.parametrize(
    ("message", "user"),
    [
        ("pam_unix(sshd:session): session opened for user alice by (uid=0)", "alice"),
        ("Accepted publickey for bob from 10.0.0.2 port 5000 ssh2", "bob"),
        ("Failed password for invalid user admin from 10.0.0.3 port 4242 ssh2", "admin"),
        ("pam_unix(sudo:auth): authentication failure; logname= uid=1000 ruser=carol rhost=  user=carol", "carol"),
        ("Invalid user test from 10.0.0.3 port 4242", "test"),
        ("Server listening on 0.0.0.0 port 22.", None),
    ],
)
def test_extract_user(message: str, user: str | None) -> None:
    assert extract_user(message) == user


def test_kernel_uptime_and_component() -> None:
    entry = KernLogParser().parse_line(
        "Jan  5 14:32:01 myhost kernel: [ 1234.567890] usb 1-1: new high-speed USB device number 2 using xhci_hcd"
    )

    assert entry is not None
    assert entry.kernel_timestamp == pytest.approx(1234.56789)
    assert entry.component == "USB"
    assert entry.message.startswith("usb 1-1:")


def test_kernel_interface_and_error_level() -> None:
    parser = KernLogParser()

    link = parser.parse_line("Jan  5 14:32:01 myhost kernel: [   12.000000] eth0: link is down")
    bug = parser.parse_line("Jan  5 14:32:02 myhost kernel: BUG: unable to handle page fault")

    assert link is not None and link.component == "eth0"
    assert bug is not None and bug.level == LogLevel.ERROR
    assert bug.kernel_timestamp is None


def test_mail_queue_id_action_and_peer() -> None:
    entry = MailLogParser().parse_line(
        "Jan  5 14:32:01 mail postfix/smtpd[2048]: 3F2A1B4C5D: connect from unknown[203.0.113.5]"
    )

    assert entry is not None
    assert entry.service == "postfix/smtpd"
    assert entry.queue_id == "3F2A1B4C5D"
    assert entry.action == "connect"
    assert entry.ip_address == "203.0.113.5"


def test_mail_reject_is_error() -> None:
    entry = MailLogParser().parse_line(
        "Jan  5 14:32:01 mail postfix/smtpd[2048]: NOQUEUE: reject: RCPT from unknown[198.51.100.7]: "
        "554 5.7.1 Relay access denied"
    )

    assert entry is not None
    assert entry.action == "reject"
    assert entry.level == LogLevel.ERROR
    assert entry.ip_address == "198.51.100.7"


def test_daemon_unit_name() -> None:
    parser = DaemonLogParser()

    started = parser.parse_line(
        "Jan  5 14:32:01 myhost systemd[1]: Started nginx.service - A high performance web server."
    )
    failed = parser.parse_line("Jan  5 14:32:05 myhost systemd[1]: cron.service: Failed with result 'exit-code'.")

    assert started is not None and started.service == "nginx.service"
    assert failed is not None and failed.service == "cron.service"
    assert failed.level == LogLevel.ERROR


def _journal_line(**fields: object) -> str:
    record: dict[str, object] = {
        "__REALTIME_TIMESTAMP": "1736087521000000",
        "PRIORITY": "3",
        "_HOSTNAME": "myhost",
        "_SYSTEMD_UNIT": "ssh.service",
        "SYSLOG_IDENTIFIER": "sshd",
        "_PID": "1234",
        "MESSAGE": "error: kex failed for user bob",
    }
    record.update(fields)
    return json.dumps(record)


def test_journald_json_fields() -> None:
    entry = JournaldJsonParser().parse_line(_journal_line())

    assert entry is not None
    assert entry.timestamp == datetime.fromtimestamp(1_736_087_521, UTC)
    assert entry.level == LogLevel.ERROR
    assert entry.hostname == "myhost"
    assert entry.service == "ssh.service"
    assert entry.tag == "sshd"
    assert entry.pid == 1234
    assert entry.user == "bob"


def test_journald_byte_array_message() -> None:
    entry = JournaldJsonParser().parse_line(_journal_line(MESSAGE=[104, 105]))

    assert entry is not None
    assert entry.message == "hi"


def test_journald_falls_back_to_text_and_raw() -> None:
    parser = JournaldJsonParser()

    text = parser.parse_line("Jan  5 14:32:01 myhost sshd[1234]: Server listening on :: port 22.")
    broken = parser.parse_line("{not json}")

    assert text is not None and text.service == "sshd"
    assert parser.match_line("{not json}") is None
    assert broken is not None and broken.message == "{not json}"


def test_custom_parser_group_indexes_and_level_mapping() -> None:
    config = CustomParserConfig(
        regex=r"^(\S+) \| (\w+) \| (.*)$",
        groups={"timestamp": 1, "level": 2, "message": 3},
        level_mapping={"E": "error"},
    )

    entry = CustomLogParser(config).parse_line("2025-01-05T14:32:01Z | E | boom")

    assert entry is not None
    assert entry.level == LogLevel.ERROR
    assert entry.message == "boom"
    assert entry.timestamp == datetime(2025, 1, 5, 14, 32, 1, tzinfo=UTC)


def test_custom_parser_named_groups_and_extra() -> None:
    config = CustomParserConfig(regex=r"(?P<level>\w+): (?P<message>.*?) user=(?P<user>\w+) code=(?P<code>\d+)")

    entry = CustomLogParser(config).parse_line("WARN: quota near limit user=dave code=42")

    assert entry is not None
    assert entry.level == LogLevel.WARNING
    assert entry.user == "dave"
    assert entry.extra == {"code": "42"}


def test_custom_parser_invalid_regex_degrades_to_raw() -> None:
    entry = CustomLogParser(CustomParserConfig(regex="(unclosed")).parse_line("some line")

    assert entry is not None
    assert entry.message == "some line"


@pytest.mark.parametrize(
    ("priority", "level"),
    [
        (0, LogLevel.ERROR),
        (3, LogLevel.ERROR),
        (4, LogLevel.WARNING),
        (5, LogLevel.INFO),
        (6, LogLevel.INFO),
        (7, LogLevel.DEBUG),
        (38, LogLevel.INFO),
        (15, LogLevel.DEBUG),
    ],
)
def test_level_from_priority(priority: int, level: LogLevel) -> None:
    assert level_from_priority(priority) == level


def test_dispatch() -> None:
    assert isinstance(parser_for("bogus"), SyslogParser)
    assert isinstance(parser_for(LogType.AUTH), AuthLogParser)

    journal = parse_log_line(_journal_line(), LogType.SYSLOG)
    raw = parse_log_line("{not json}", LogType.AUTH)

    assert journal is not None and journal.service == "ssh.service"
    assert raw is not None and raw.message == "{not json}"
    assert parse_log_line("", LogType.SYSLOG) is None


def test_to_dict_omits_unset_fields() -> None:
    entry = SyslogParser().parse_line("Jan  5 14:32:01 myhost cron: tick")

    assert entry is not None
    data = entry.to_dict()
    assert data["level"] == "info"
    assert data["hostname"] == "myhost"
    assert "pid" not in data
    assert "user" not in data
