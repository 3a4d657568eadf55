"""Logging-daemon detection (journald, syslog-ng, rsyslog)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from .discovery import RSYSLOG_CONFIG, SYSLOG_NG_CONFIGS, parse_rsyslog_config, parse_syslog_ng_config
from .fs import FileSystem, LocalFileSystem, PathTranslator
from .log_types import log_type_for_path
from .models import ConfiguredLogFile, DetectedLoggingService, OSInfo, ServiceType
from .os_detect import OSType, default_log_files

logger = logging.getLogger(__name__)

JOURNALD_BINARIES = (
    "/usr/bin/journalctl",
    "/bin/journalctl",
    "/usr/lib/systemd/systemd-journald",
    "/lib/systemd/systemd-journald",
)
JOURNALD_CONFIG = "/etc/systemd/journald.conf"
SYSLOG_NG_BINARIES = ("/usr/sbin/syslog-ng", "/sbin/syslog-ng")
RSYSLOG_BINARIES = ("/usr/sbin/rsyslogd", "/sbin/rsyslogd")

PRIMARY_SERVICE_ORDER = (ServiceType.JOURNALD, ServiceType.SYSLOG_NG, ServiceType.RSYSLOG)


async def _first_existing(
    paths: Sequence[str], fs: FileSystem, translator: PathTranslator
) -> str | None:
    for path in paths:
        if await fs.exists(translator.to_local(path)):
            return path
    return None


async def existing_default_files(
    os_type: OSType | str,
    *,
    fs: FileSystem,
    translator: PathTranslator,
) -> list[ConfiguredLogFile]:
    """OS default log files that actually exist, tagged with source ``default``."""
    out: list[ConfiguredLogFile] = []
    for path in default_log_files(os_type):
        if await fs.exists(translator.to_local(path)):
            out.append(ConfiguredLogFile(path=path, type=log_type_for_path(path), source="default"))
    return out


async def detect_journald(
    os_type: str, *, fs: FileSystem, translator: PathTranslator
) -> DetectedLoggingService | None:
    if await _first_existing(JOURNALD_BINARIES, fs, translator) is None:
        return None
    config = await _first_existing((JOURNALD_CONFIG,), fs, translator)
    files = await existing_default_files(os_type, fs=fs, translator=translator)
    return DetectedLoggingService(
        type=ServiceType.JOURNALD, active=True, config_path=config, log_files=tuple(files)
    )


async def detect_syslog_ng(
    os_type: str, *, fs: FileSystem, translator: PathTranslator
) -> DetectedLoggingService | None:
    binary = await _first_existing(SYSLOG_NG_BINARIES, fs, translator)
    config = await _first_existing(SYSLOG_NG_CONFIGS, fs, translator)
    if binary is None and config is None:
        return None

    files: list[ConfiguredLogFile] = []
    if config is not None:
        files = await parse_syslog_ng_config(config, fs=fs, translator=translator)
    if not files:
        files = await existing_default_files(os_type, fs=fs, translator=translator)
    return DetectedLoggingService(
        type=ServiceType.SYSLOG_NG,
        active=binary is not None,
        config_path=config,
        log_files=tuple(files),
    )


async def detect_rsyslog(
    os_type: str, *, fs: FileSystem, translator: PathTranslator
) -> DetectedLoggingService | None:
    binary = await _first_existing(RSYSLOG_BINARIES, fs, translator)
    config = await _first_existing((RSYSLOG_CONFIG,), fs, translator)
    if binary is None and config is None:
        return None

    files: list[ConfiguredLogFile] = []
    if config is not None:
        files = await parse_rsyslog_config(config, fs=fs, translator=translator)
    if not files:
        files = await existing_default_files(os_type, fs=fs, translator=translator)
    return DetectedLoggingService(
        type=ServiceType.RSYSLOG,
        active=binary is not None,
        config_path=config,
        log_files=tuple(files),
    )


async def detect_logging_services(
    os_info: OSInfo | None = None,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
) -> list[DetectedLoggingService]:
    """Probe the three daemons concurrently; a ``none`` entry if none is present."""
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    os_type = os_info.type if os_info is not None else OSType.UNKNOWN.value

    probes = await asyncio.gather(
        detect_journald(os_type, fs=fs, translator=translator),
        detect_syslog_ng(os_type, fs=fs, translator=translator),
        detect_rsyslog(os_type, fs=fs, translator=translator),
    )
    services = [s for s in probes if s is not None]
    for service in services:
        logger.debug(
            "Detected %s (active=%s, %d files)",
            service.type.value,
            service.active,
            len(service.log_files),
        )
    if services:
        return services

    files = await existing_default_files(os_type, fs=fs, translator=translator)
    return [DetectedLoggingService(type=ServiceType.NONE, active=False, log_files=tuple(files))]


def primary_logging_service(
    services: Sequence[DetectedLoggingService],
) -> DetectedLoggingService | None:
    """Pick the primary service: journald > syslog-ng > rsyslog among active ones.

    With nothing active the first detected service is returned.
    """
    for service_type in PRIMARY_SERVICE_ORDER:
        for service in services:
            if service.type == service_type and service.active:
                return service
    return services[0] if services else None
