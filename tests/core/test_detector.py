from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_host_log_discovery.core.detector import (
    detect_format_from_lines,
    detect_log_format,
    match_percentage,
    score_patterns,
    validate_detected_format,
)
from mcp_host_log_discovery.core.fs import LocalFileSystem, PathTranslator
from mcp_host_log_discovery.core.patterns import (
    LOG_PATTERN_LIBRARY,
    PatternCategory,
    pattern_by_name,
    patterns_by_category,
    patterns_by_log_type,
    system_patterns,
)


def _syslog_line(i: int) -> str:
    return f"Jan  5 14:{i % 60:02d}:01 web01 app[{100 + i}]: processed batch {i}"


@pytest.mark.parametrize(
    ("matches", "tested", "expected"),
    [(40, 50, 80), (1, 3, 33), (2, 3, 67), (1, 2, 50), (1, 8, 13), (0, 0, 0)],
)
def test_match_percentage_rounds_half_up(matches: int, tested: int, expected: int) -> None:
    assert match_percentage(matches, tested) == expected


def test_forty_of_fifty_lines_scores_eighty() -> None:
    lines = [_syslog_line(i) for i in range(40)] + [f"garbage line {i}" for i in range(10)]

    detected = detect_format_from_lines(lines)

    assert detected.pattern_name == "syslog-standard"
    assert detected.confidence == 80
    assert detected.sample_matches == 40
    assert detected.total_samples == 50


def test_blank_lines_are_not_scored() -> None:
    lines = ["", "   "] + [_syslog_line(i) for i in range(4)]

    detected = detect_format_from_lines(lines)

    assert detected.total_samples == 4
    assert detected.confidence == 100


def test_below_every_threshold_is_custom() -> None:
    lines = [_syslog_line(i) for i in range(3)] + [f"garbage line {i}" for i in range(7)]

    detected = detect_format_from_lines(lines)

    assert detected.format == "custom"
    assert detected.pattern_name == "unknown"
    assert detected.confidence == 0
    assert detected.pattern is None


def test_empty_sample_is_custom() -> None:
    assert detect_format_from_lines([]).total_samples == 0


def test_access_log_detects_apache(access_lines: list[str]) -> None:
    detected = detect_format_from_lines(access_lines)

    assert detected.pattern_name == "apache-access"
    assert detected.parser_type == "apache"
    assert detected.confidence == 100


def test_journald_json_detected() -> None:
    lines = [
        '{"__REALTIME_TIMESTAMP": "1736087521000000", "MESSAGE": "hello", "PRIORITY": "6"}',
        '{"__REALTIME_TIMESTAMP": "1736087522000000", "MESSAGE": "world", "PRIORITY": "4"}',
    ]

    assert detect_format_from_lines(lines).pattern_name == "journald-json"


def test_score_patterns_covers_library_in_order(access_lines: list[str]) -> None:
    scores = score_patterns(access_lines)

    assert [s.pattern_name for s in scores] == [e.name for e in LOG_PATTERN_LIBRARY]


def test_every_library_example_matches_its_entry() -> None:
    for entry in LOG_PATTERN_LIBRARY:
        assert entry.examples, entry.name
        for example in entry.examples:
            assert entry.matches(example), (entry.name, example)


def test_library_lookups() -> None:
    assert pattern_by_name("mail-log") is not None
    assert pattern_by_name("nope") is None
    assert {e.name for e in patterns_by_category(PatternCategory.APPLICATION)} == {
        "apache-access",
        "nginx-access",
    }
    assert len(system_patterns()) == 7
    assert [e.name for e in patterns_by_log_type("syslog")] == ["syslog-standard", "syslog-with-priority"]


@pytest.mark.asyncio
async def test_detect_and_validate_from_file(
    write_host_file: Callable[[str, str], Path],
    fs: LocalFileSystem,
    translator: PathTranslator,
) -> None:
    write_host_file("/var/log/app.log", "\n".join(_syslog_line(i) for i in range(120)) + "\n")

    detected = await detect_log_format("/var/log/app.log", fs=fs, translator=translator)

    assert detected.total_samples == 50
    assert detected.pattern_name == "syslog-standard"
    assert await validate_detected_format("/var/log/app.log", detected, fs=fs, translator=translator)


@pytest.mark.asyncio
async def test_validation_fails_when_the_file_changes_shape(
    write_host_file: Callable[[str, str], Path],
    fs: LocalFileSystem,
    translator: PathTranslator,
) -> None:
    lines = [_syslog_line(i) for i in range(50)] + [f"garbage line {i}" for i in range(50)]
    write_host_file("/var/log/mixed.log", "\n".join(lines) + "\n")

    detected = await detect_log_format("/var/log/mixed.log", fs=fs, translator=translator)

    assert detected.confidence == 100
    assert not await validate_detected_format("/var/log/mixed.log", detected, fs=fs, translator=translator)


@pytest.mark.asyncio
async def test_detect_reads_compressed_files(
    write_host_file: Callable[[str, str], Path],
    fs: LocalFileSystem,
    translator: PathTranslator,
    access_lines: list[str],
) -> None:
    write_host_file("/var/log/access.log.2.gz", "\n".join(access_lines) + "\n")

    detected = await detect_log_format("/var/log/access.log.2.gz", fs=fs, translator=translator)

    assert detected.pattern_name == "apache-access"
