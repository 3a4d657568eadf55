"""Path and facility helpers shared by the scanners and config parsers."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable

from .models import ConfiguredLogFile, LogType

SYSTEM_BASE_FILES: tuple[str, ...] = (
    "syslog",
    "messages",
    "auth.log",
    "secure",
    "kern.log",
    "daemon.log",
    "mail.log",
    "maillog",
)

FACILITY_LOG_TYPES: dict[str, LogType] = {
    "auth": LogType.AUTH,
    "authpriv": LogType.AUTH,
    "security": LogType.AUTH,
    "kern": LogType.KERN,
    "daemon": LogType.DAEMON,
    "mail": LogType.MAIL,
    "cron": LogType.CRON,
    "user": LogType.USER,
    "syslog": LogType.SYSLOG,
    "*": LogType.SYSLOG,
}

_ROTATED_RE = re.compile(r"\.\d+(?:\.(?:gz|bz2|xz))?$")
_DATED_RE = re.compile(r"[.-]\d{8}(?:\.(?:gz|bz2|xz))?$")
_COMPRESSED_RE = re.compile(r"\.(?:gz|bz2|xz)$")


def normalize_log_file_path(path: str) -> str:
    """Strip rotation, date-stamp and compression suffixes (``x.log.3.gz`` -> ``x.log``)."""
    for pattern in (_ROTATED_RE, _DATED_RE, _COMPRESSED_RE):
        stripped = pattern.sub("", path)
        if stripped != path:
            return stripped
    return path


def is_system_base_file(path: str) -> bool:
    name = posixpath.basename(normalize_log_file_path(path))
    return any(name == base or name.startswith(base) for base in SYSTEM_BASE_FILES)


def log_type_for_facility(facility: str | None) -> LogType:
    if not facility:
        return LogType.SYSLOG
    return FACILITY_LOG_TYPES.get(facility.strip().lower(), LogType.CUSTOM)


def log_type_for_path(path: str) -> LogType:
    """Guess a file's log type from its (rotation-stripped) name."""
    name = posixpath.basename(normalize_log_file_path(path)).lower()
    if name.startswith(("auth", "secure")):
        return LogType.AUTH
    if name.startswith("kern"):
        return LogType.KERN
    if name.startswith("daemon"):
        return LogType.DAEMON
    if name.startswith("mail"):
        return LogType.MAIL
    if name.startswith("cron"):
        return LogType.CRON
    if name.startswith(("syslog", "messages")):
        return LogType.SYSLOG
    if name == "user.log":
        return LogType.USER
    if "journal" in name:
        return LogType.JOURNALD
    return LogType.CUSTOM


def merge_configured_files(*groups: Iterable[ConfiguredLogFile]) -> list[ConfiguredLogFile]:
    """Concatenate groups, keeping the first entry for each path."""
    seen: set[str] = set()
    out: list[ConfiguredLogFile] = []
    for group in groups:
        for item in group:
            if item.path in seen:
                continue
            seen.add(item.path)
            out.append(item)
    return out
