from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_host_log_discovery import cli
from mcp_host_log_discovery.tools.discovery import (
    detect_log_format_impl,
    detect_logging_services_impl,
    discover_host_logs_impl,
    parse_log_lines_impl,
)

WriteHostFile = Callable[[str, str], Path]


def test_parse_log_lines_impl_auth(auth_lines: list[str]) -> None:
    out = parse_log_lines_impl(lines=["", *auth_lines], log_type="auth")

    assert out["count"] == 3
    assert out["log_type"] == "auth"
    first = out["entries"][0]
    assert first["user"] == "alice"
    assert first["ip_address"] == "10.0.0.1"
    assert first["service"] == "sshd"
    assert first["pid"] == 1234
    assert first["timestamp"].endswith("T14:32:01+00:00")


def test_parse_log_lines_impl_limit_and_validation(syslog_lines: list[str]) -> None:
    assert parse_log_lines_impl(lines=syslog_lines, limit=2)["count"] == 2
    assert parse_log_lines_impl(lines=syslog_lines, log_type=None)["log_type"] == "syslog"

    with pytest.raises(ValueError, match="Valid values"):
        parse_log_lines_impl(lines=syslog_lines, log_type="apache")
    with pytest.raises(ValueError):
        parse_log_lines_impl(lines=syslog_lines, limit=0)


def test_parse_log_lines_impl_custom_regex() -> None:
    out = parse_log_lines_impl(
        lines=["2025-01-05T10:00:00Z WARN disk almost full job=backup", "unstructured"],
        log_type="syslog",
        custom_regex=r"^(?P<timestamp>\S+) (?P<level>\w+) (?P<message>.*?) job=(?P<job>\w+)$",
    )

    assert out["log_type"] == "custom"
    matched, raw = out["entries"]
    assert matched["level"] == "warning"
    assert matched["message"] == "disk almost full"
    assert matched["extra"] == {"job": "backup"}
    assert matched["timestamp"] == "2025-01-05T10:00:00+00:00"
    assert raw["message"] == "unstructured"


def test_parse_log_lines_impl_custom_level_mapping() -> None:
    out = parse_log_lines_impl(
        lines=["E|boom"],
        custom_regex=r"^(\w)\|(.*)$",
        custom_groups={"level": 1, "message": 2},
        level_mapping={"E": "error"},
    )

    assert out["entries"][0]["level"] == "error"
    assert out["entries"][0]["message"] == "boom"


@pytest.mark.asyncio
async def test_detect_log_format_impl(
    write_host_file: WriteHostFile, host_root: Path, access_lines: list[str]
) -> None:
    write_host_file("/var/log/access.log", "\n".join(access_lines) + "\n")

    out = await detect_log_format_impl(
        log_path="/var/log/access.log", include_scores=True, host_root=str(host_root)
    )

    assert out["pattern_name"] == "apache-access"
    assert out["confidence"] == 100
    assert out["validated"] is True
    assert (out["sample_matches"], out["total_samples"]) == (3, 3)
    assert len(out["scores"]) == 9
    assert {"pattern_name": "nginx-access", "confidence": 0} in out["scores"]


@pytest.mark.asyncio
async def test_detect_log_format_impl_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        await detect_log_format_impl(log_path=str(tmp_path / "missing.log"))
    with pytest.raises(ValueError):
        await detect_log_format_impl(log_path=str(tmp_path / "missing.log"), sample_lines=0)


@pytest.mark.asyncio
async def test_discover_host_logs_impl_is_json_serializable(
    write_host_file: WriteHostFile,
    host_root: Path,
    monkeypatch: pytest.MonkeyPatch,
    syslog_lines: list[str],
) -> None:
    write_host_file("/var/log/syslog", "\n".join(syslog_lines) + "\n")
    write_host_file("/var/log/private/secret.log", "x\n")
    monkeypatch.setenv("HOST_ROOT_PATH", str(host_root))

    out = await discover_host_logs_impl(exclude_files=["*.tmp"], max_workers=2)

    assert out["base_path"] == "/var/log"
    assert out["primary_service"] == "none"
    assert [f["path"] for f in out["classification"]["system_base_files"]] == ["/var/log/syslog"]
    json.dumps(out)


@pytest.mark.asyncio
async def test_discover_host_logs_impl_rejects_relative_base_path() -> None:
    with pytest.raises(ValueError, match="absolute"):
        await discover_host_logs_impl(base_path="var/log")


@pytest.mark.asyncio
async def test_detect_logging_services_impl(write_host_file: WriteHostFile, host_root: Path) -> None:
    write_host_file("/etc/os-release", "ID=ubuntu\nVERSION_ID=24.04\n")
    write_host_file("/usr/bin/journalctl", "")

    out = await detect_logging_services_impl(host_root=str(host_root))

    assert out["os"]["type"] == "ubuntu"
    assert out["primary_service"] == "journald"
    assert out["rotation"]["system"] == "systemd"


def test_cli_parse(tmp_path: Path, capsys: pytest.CaptureFixture[str], auth_lines: list[str]) -> None:
    log = tmp_path / "auth.log"
    log.write_text("\n".join(auth_lines) + "\n", encoding="utf-8")

    cli.main(["parse", str(log), "--type", "auth", "--max", "2"])

    out = capsys.readouterr().out
    assert "[info] sshd: Accepted password for alice" in out
    assert "Parsed 2 entries as auth." in out


def test_cli_json_flag_before_subcommand(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], access_lines: list[str]
) -> None:
    log = tmp_path / "access.log"
    log.write_text("\n".join(access_lines) + "\n", encoding="utf-8")

    cli.main(["--json", "detect", str(log)])

    payload = json.loads(capsys.readouterr().out)
    assert payload["pattern_name"] == "apache-access"


def test_cli_missing_file_exits_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["detect", str(tmp_path / "missing.log")])

    assert exc.value.code == 2
    assert "missing.log" in capsys.readouterr().err


def test_cli_rejects_bad_limit(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    log = tmp_path / "app.log"
    log.write_text("x\n", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        cli.main(["parse", str(log), "--max", "0"])

    assert exc.value.code == 2
    assert "Error: limit must be > 0" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_server_registers_tools_and_resources() -> None:
    from mcp_host_log_discovery.server import log_server

    assert log_server.mcp.name == "host-log-discovery"
    tools = {t.name for t in await log_server.mcp.list_tools()}
    assert tools == {
        "discover_host_logs",
        "detect_log_format",
        "parse_log_lines",
        "detect_logging_services",
    }
    resources = {str(r.uri) for r in await log_server.mcp.list_resources()}
    assert "app://host-log-discovery/help" in resources
    assert "app://host-log-discovery/patterns" in resources
