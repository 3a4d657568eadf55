"""Host distribution detection and per-distribution log defaults."""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from enum import Enum

from .fs import FileSystem, LocalFileSystem, PathTranslator
from .models import OSInfo

logger = logging.getLogger(__name__)

OS_RELEASE_FILES = ("/etc/os-release", "/usr/lib/os-release")
SYSTEMD_BINARIES = ("/usr/bin/systemd", "/lib/systemd/systemd", "/usr/lib/systemd/systemd")


class OSType(str, Enum):
    DEBIAN = "debian"
    UBUNTU = "ubuntu"
    MINT = "mint"
    CENTOS = "centos"
    FEDORA = "fedora"
    ARCH = "arch"
    SUSE = "suse"
    UNKNOWN = "unknown"


# Derivatives before the distributions they declare compatibility with.
_OS_IDS: tuple[tuple[OSType, frozenset[str]], ...] = (
    (OSType.MINT, frozenset({"linuxmint", "mint"})),
    (OSType.UBUNTU, frozenset({"ubuntu", "pop", "elementary", "zorin", "neon"})),
    (OSType.DEBIAN, frozenset({"debian", "raspbian", "kali"})),
    (OSType.CENTOS, frozenset({"centos", "rhel", "rocky", "almalinux", "ol", "scientific"})),
    (OSType.FEDORA, frozenset({"fedora"})),
    (OSType.ARCH, frozenset({"arch", "archlinux", "manjaro", "endeavouros"})),
    (OSType.SUSE, frozenset({"opensuse", "opensuse-leap", "opensuse-tumbleweed", "sles", "suse"})),
)

# Distributions whose default install logs to the journal only.
_JOURNAL_FIRST = frozenset({OSType.FEDORA, OSType.ARCH})

_DEFAULT_LOG_FILES: dict[OSType, tuple[str, ...]] = {
    OSType.DEBIAN: (
        "/var/log/syslog",
        "/var/log/auth.log",
        "/var/log/kern.log",
        "/var/log/daemon.log",
        "/var/log/mail.log",
        "/var/log/user.log",
    ),
    OSType.CENTOS: (
        "/var/log/messages",
        "/var/log/secure",
        "/var/log/maillog",
        "/var/log/cron",
        "/var/log/boot.log",
    ),
    OSType.ARCH: ("/var/log/messages", "/var/log/auth.log", "/var/log/pacman.log"),
    OSType.SUSE: ("/var/log/messages", "/var/log/warn", "/var/log/mail", "/var/log/firewall"),
    OSType.UNKNOWN: (
        "/var/log/syslog",
        "/var/log/messages",
        "/var/log/auth.log",
        "/var/log/secure",
        "/var/log/kern.log",
    ),
}
_DEFAULT_LOG_FILES[OSType.UBUNTU] = _DEFAULT_LOG_FILES[OSType.DEBIAN]
_DEFAULT_LOG_FILES[OSType.MINT] = _DEFAULT_LOG_FILES[OSType.DEBIAN]
_DEFAULT_LOG_FILES[OSType.FEDORA] = _DEFAULT_LOG_FILES[OSType.CENTOS]

_DEFAULT_PATTERNS: dict[OSType, tuple[str, ...]] = {
    OSType.DEBIAN: ("syslog*", "auth.log*", "kern.log*", "daemon.log*", "mail.log*", "*.log"),
    OSType.CENTOS: ("messages*", "secure*", "maillog*", "cron*", "*.log"),
    OSType.ARCH: ("messages*", "*.log"),
    OSType.SUSE: ("messages*", "warn*", "mail*", "*.log"),
    OSType.UNKNOWN: ("syslog*", "messages*", "secure*", "maillog*", "*.log"),
}
_DEFAULT_PATTERNS[OSType.UBUNTU] = _DEFAULT_PATTERNS[OSType.DEBIAN]
_DEFAULT_PATTERNS[OSType.MINT] = _DEFAULT_PATTERNS[OSType.DEBIAN]
_DEFAULT_PATTERNS[OSType.FEDORA] = _DEFAULT_PATTERNS[OSType.CENTOS]


def _os_type(value: OSType | str) -> OSType:
    try:
        return OSType(value)
    except ValueError:
        return OSType.UNKNOWN


def default_log_files(os_type: OSType | str) -> tuple[str, ...]:
    return _DEFAULT_LOG_FILES[_os_type(os_type)]


def default_file_patterns(os_type: OSType | str) -> tuple[str, ...]:
    return _DEFAULT_PATTERNS[_os_type(os_type)]


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines (shell quoting allowed) into a dict."""
    out: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        out[key.strip()] = " ".join(parts)
    return out


def classify_os(fields: Mapping[str, str]) -> OSType:
    """Classify by ``ID`` first, then by the most specific ``ID_LIKE`` entry."""
    os_id = fields.get("ID", "").strip().lower()
    for os_type, ids in _OS_IDS:
        if os_id in ids:
            return os_type

    like = set(fields.get("ID_LIKE", "").lower().split())
    for os_type, ids in _OS_IDS:
        if like & ids:
            return os_type
    return OSType.UNKNOWN


def os_info_from_release(fields: Mapping[str, str]) -> OSInfo:
    os_type = classify_os(fields)
    journal_first = os_type in _JOURNAL_FIRST
    return OSInfo(
        type=os_type.value,
        version=fields.get("VERSION_ID") or None,
        log_format="systemd" if journal_first else "syslog",
        uses_iso8601=journal_first,
    )


async def detect_os(
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
) -> OSInfo:
    """Identify the host distribution from os-release, falling back to init probes."""
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()

    for path in OS_RELEASE_FILES:
        try:
            text = await fs.read_text(translator.to_local(path))
        except OSError:
            continue
        fields = parse_os_release(text)
        if fields.get("ID") or fields.get("ID_LIKE"):
            return os_info_from_release(fields)

    for binary in SYSTEMD_BINARIES:
        if await fs.exists(translator.to_local(binary)):
            logger.debug("No os-release; found systemd at %s", binary)
            return OSInfo(type=OSType.UNKNOWN.value, log_format="systemd", uses_iso8601=True)

    logger.debug("No os-release and no systemd; assuming BSD syslog defaults")
    return OSInfo(type=OSType.UNKNOWN.value, log_format="syslog", uses_iso8601=False)
