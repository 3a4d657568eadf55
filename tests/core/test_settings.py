from __future__ import annotations

import errno
import gzip
import lzma
from pathlib import Path

import pytest

from mcp_host_log_discovery.core.fs import LocalFileSystem, PathTranslator
from mcp_host_log_discovery.core.settings import (
    DEFAULT_FILE_TIMEOUT,
    DiscoverySettings,
    resolve_file_timeout,
    resolve_host_root,
    resolve_max_workers,
    resolve_settings,
)


def test_max_workers_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOST_LOGS_MAX_WORKERS", "3")

    assert resolve_max_workers(None) == 3
    assert resolve_max_workers(7) == 7


def test_max_workers_default_is_bounded_cpu_count() -> None:
    assert 1 <= resolve_max_workers(None) <= 32


@pytest.mark.parametrize("raw", ["abc", "0", "-2"])
def test_max_workers_rejects_bad_env(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("HOST_LOGS_MAX_WORKERS", raw)

    with pytest.raises(ValueError, match="HOST_LOGS_MAX_WORKERS"):
        resolve_max_workers(None)


def test_file_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_file_timeout(None) == DEFAULT_FILE_TIMEOUT
    with pytest.raises(ValueError):
        resolve_file_timeout(0)

    monkeypatch.setenv("HOST_LOGS_FILE_TIMEOUT", "2.5")
    assert resolve_file_timeout(None) == 2.5
    assert resolve_file_timeout(1.0) == 1.0

    monkeypatch.setenv("HOST_LOGS_FILE_TIMEOUT", "soon")
    with pytest.raises(ValueError, match="HOST_LOGS_FILE_TIMEOUT"):
        resolve_file_timeout(None)


def test_host_root(monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_host_root() is None
    assert resolve_host_root(" /host/ ") == "/host"
    assert resolve_host_root("/") is None

    monkeypatch.setenv("HOST_ROOT_PATH", "/mnt/host/")
    assert resolve_host_root() == "/mnt/host"
    assert resolve_host_root("") is None


def test_resolve_settings_explicit_beats_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOST_LOGS_BASE_PATH", "/srv/logs")
    monkeypatch.setenv("HOST_LOGS_FILE_TIMEOUT", "9")

    from_env = resolve_settings()
    assert from_env.base_path == "/srv/logs"
    assert from_env.file_timeout == 9.0

    explicit = resolve_settings(DiscoverySettings(base_path="/opt/logs", file_timeout=1.5, max_workers=2))
    assert (explicit.base_path, explicit.file_timeout, explicit.max_workers) == ("/opt/logs", 1.5, 2)
    assert resolve_settings(explicit) == explicit


@pytest.mark.parametrize(
    "settings",
    [
        DiscoverySettings(sample_lines=0),
        DiscoverySettings(validation_lines=0),
        DiscoverySettings(min_auto_confidence=101),
        DiscoverySettings(max_workers=0),
    ],
)
def test_resolve_settings_rejects_invalid(settings: DiscoverySettings) -> None:
    with pytest.raises(ValueError):
        resolve_settings(settings)


def test_path_translator() -> None:
    t = PathTranslator("/host")

    assert t.to_local("/var/log/syslog") == "/host/var/log/syslog"
    assert t.to_local("/host/var/log/syslog") == "/host/var/log/syslog"
    assert t.to_local("relative.log") == "relative.log"
    assert t.to_host("/host/var/log/syslog") == "/var/log/syslog"
    assert t.to_host("/elsewhere/x.log") == "/elsewhere/x.log"
    assert PathTranslator().to_local("/var/log/syslog") == "/var/log/syslog"


@pytest.mark.asyncio
async def test_read_lines_window_and_compression(tmp_path: Path) -> None:
    fs = LocalFileSystem()
    plain = tmp_path / "plain.log"
    plain.write_text("a\nb\r\nc\nd\n", encoding="utf-8")
    packed = tmp_path / "packed.log.gz"
    with gzip.open(packed, "wt", encoding="utf-8") as f:
        f.write("x\ny\n")

    assert await fs.read_lines(str(plain), 2) == ["a", "b"]
    assert await fs.read_lines(str(plain), 10, start_line=2) == ["c", "d"]
    assert await fs.read_lines(str(plain), 0) == []
    assert await fs.read_lines(str(packed), 10) == ["x", "y"]
    with pytest.raises(ValueError):
        await fs.read_lines(str(plain), -1)


@pytest.mark.asyncio
async def test_read_rejects_directories_and_corrupt_archives(tmp_path: Path) -> None:
    fs = LocalFileSystem()
    broken = tmp_path / "broken.log.xz"
    broken.write_bytes(lzma.compress(b"hello\n" * 100)[:20])

    with pytest.raises(IsADirectoryError):
        await fs.read_lines(str(tmp_path), 5)
    with pytest.raises(OSError):
        await fs.read_lines(str(broken), 5)
    with pytest.raises(FileNotFoundError):
        await fs.read_text(str(tmp_path / "missing.log"))
    assert await fs.stat(str(tmp_path / "missing.log")) is None


@pytest.mark.asyncio
async def test_corrupt_gzip_body_is_an_io_error(tmp_path: Path) -> None:
    packed = bytearray(gzip.compress(b"".join(b"row %d\n" % i for i in range(400))))
    packed[10:40] = b"\xff" * 30
    broken = tmp_path / "broken.log.gz"
    broken.write_bytes(bytes(packed))
    fs = LocalFileSystem()

    with pytest.raises(OSError) as exc:
        await fs.read_lines(str(broken), 5)
    assert exc.value.errno == errno.EIO
    with pytest.raises(OSError):
        await fs.read_text(str(broken))
