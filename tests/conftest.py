from __future__ import annotations

import gzip
from collections.abc import Callable
from pathlib import Path

import pytest

from mcp_host_log_discovery.core.fs import LocalFileSystem, PathTranslator

_ENV_VARS = (
    "HOST_LOGS_MAX_WORKERS",
    "HOST_LOGS_FILE_TIMEOUT",
    "HOST_LOGS_BASE_PATH",
    "HOST_ROOT_PATH",
    "HOST_LOGS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    root = tmp_path / "host"
    root.mkdir()
    return root


@pytest.fixture
def translator(host_root: Path) -> PathTranslator:
    return PathTranslator(str(host_root))


@pytest.fixture
def fs() -> LocalFileSystem:
    return LocalFileSystem()


@pytest.fixture
def write_host_file(host_root: Path) -> Callable[[str, str], Path]:
    """Write ``text`` at a host path (e.g. /var/log/syslog) inside the fake root."""

    def _write(host_path: str, text: str = "") -> Path:
        path = host_root / host_path.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        if host_path.endswith(".gz"):
            with gzip.open(path, "wt", encoding="utf-8") as f:
                f.write(text)
        else:
            path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def syslog_lines() -> list[str]:
    return [
        "Jan  5 14:32:01 web01 systemd[1]: Started Session 12 of user alice.",
        "Jan  5 14:32:05 web01 CRON[2211]: (root) CMD (run-parts /etc/cron.hourly)",
        "Jan  5 14:33:10 web01 kernel: [ 5120.220001] eth0: link is up",
        "Jan  5 14:34:00 web01 dhclient[812]: DHCPACK of 10.0.0.12 from 10.0.0.1",
    ]


@pytest.fixture
def auth_lines() -> list[str]:
    return [
        "Jan  5 14:32:01 web01 sshd[1234]: Accepted password for alice from 10.0.0.1 port 22 ssh2",
        "Jan  5 14:32:09 web01 sshd[1240]: Failed password for invalid user admin from 203.0.113.9 port 4022 ssh2",
        "Jan  5 14:35:00 web01 sudo: pam_unix(sudo:session): session opened for user root by alice(uid=0)",
    ]


@pytest.fixture
def access_lines() -> list[str]:
    return [
        '192.168.1.20 - - [05/Jan/2025:14:32:01 +0000] "GET /index.html HTTP/1.1" 200 1043',
        '192.168.1.21 - - [05/Jan/2025:14:32:02 +0000] "POST /api/items HTTP/1.1" 201 87',
        '192.168.1.22 - bob [05/Jan/2025:14:32:03 +0000] "GET /missing HTTP/1.1" 404 -',
    ]


@pytest.fixture
def weird_lines() -> list[str]:
    return [
        "### batch 1 ### payload=ab12",
        "### batch 2 ### payload=cd34",
        "~~ checkpoint reached ~~",
    ]
