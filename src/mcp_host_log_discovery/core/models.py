"""Core data models for host log discovery."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class LogLevel(str, Enum):
    """Normalized severity levels produced by the dialect parsers."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"


class LogType(str, Enum):
    """Kinds of log file the discovery pipeline distinguishes."""

    SYSLOG = "syslog"
    AUTH = "auth"
    KERN = "kern"
    DAEMON = "daemon"
    MAIL = "mail"
    CRON = "cron"
    USER = "user"
    JOURNALD = "journald"
    CUSTOM = "custom"


class ServiceType(str, Enum):
    JOURNALD = "journald"
    SYSLOG_NG = "syslog-ng"
    RSYSLOG = "rsyslog"
    NONE = "none"


class ClassificationCategory(str, Enum):
    SYSTEM_BASE = "systemBase"
    AUTO_DETECTED = "autoDetected"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class ParsedLogEntry:
    """Normalized record produced by every dialect parser."""

    message: str
    level: LogLevel = LogLevel.INFO
    timestamp: datetime | None = None
    hostname: str | None = None
    service: str | None = None
    tag: str | None = None
    pid: int | None = None
    user: str | None = None
    action: str | None = None
    ip_address: str | None = None
    queue_id: str | None = None
    component: str | None = None
    kernel_timestamp: float | None = None
    priority: int | None = None
    extra: dict[str, Any] | None = None  # custom-parser groups

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict, omitting unset fields."""
        out: dict[str, Any] = {"message": self.message, "level": self.level.value}
        for name in (
            "hostname",
            "service",
            "tag",
            "pid",
            "user",
            "action",
            "ip_address",
            "queue_id",
            "component",
            "kernel_timestamp",
            "priority",
            "extra",
        ):
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        if self.timestamp is not None:
            out["timestamp"] = self.timestamp.isoformat()
        return out


@dataclass(frozen=True, slots=True)
class ConfiguredLogFile:
    """A log file path recovered from a daemon configuration (or a default list)."""

    path: str
    type: LogType
    facility: str | None = None
    priority: str | None = None
    rotation_pattern: str | None = None  # daily|weekly|monthly|yearly
    keep_days: int | None = None
    compress: bool | None = None
    source: str = "config"  # config|default

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["type"] = self.type.value
        return {k: v for k, v in out.items() if v is not None}


@dataclass(frozen=True, slots=True)
class DetectedLoggingService:
    type: ServiceType
    active: bool
    config_path: str | None = None
    log_files: tuple[ConfiguredLogFile, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "active": self.active,
            "config_path": self.config_path,
            "log_files": [f.to_dict() for f in self.log_files],
        }


@dataclass(frozen=True, slots=True)
class OSInfo:
    """Host distribution family and its default log line conventions."""

    type: str
    version: str | None = None
    log_format: str = "syslog"  # syslog|systemd
    uses_iso8601: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ScannedFile:
    """One file found by the directory scan (host path, not translated)."""

    path: str
    log_type: LogType
    size: int = 0
    modified: datetime | None = None


@dataclass(frozen=True, slots=True)
class FileClassification:
    """Per-path verdict before it is turned into the output schema."""

    path: str
    category: ClassificationCategory
    log_type: LogType
    validated: bool = False
    parser_type: str | None = None
    pattern_name: str | None = None
    confidence: int = 0
    members: tuple[str, ...] = field(default_factory=tuple)
