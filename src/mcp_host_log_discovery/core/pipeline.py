"""End-to-end host log discovery."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from .classification import classify_scanned_files
from .discovery import LogRotationInfo, detect_log_rotation
from .discovery.common import expand_include
from .fs import FileSystem, LocalFileSystem, PathTranslator
from .models import ConfiguredLogFile, DetectedLoggingService, LogType, OSInfo, ScannedFile
from .os_detect import default_file_patterns, detect_os
from .scanning import ExcludeFilters, scan_log_files
from .schemas import ClassificationResult
from .services import detect_logging_services, primary_logging_service
from .settings import DiscoverySettings, resolve_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HostDiscoveryReport:
    base_path: str
    os: OSInfo
    services: tuple[DetectedLoggingService, ...]
    primary_service: DetectedLoggingService | None
    rotation: LogRotationInfo
    scanned_files: int
    classification: ClassificationResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_path": self.base_path,
            "os": self.os.to_dict(),
            "services": [s.to_dict() for s in self.services],
            "primary_service": (
                self.primary_service.type.value if self.primary_service is not None else None
            ),
            "rotation": self.rotation.to_dict(),
            "scanned_files": self.scanned_files,
            "classification": self.classification.model_dump(mode="json"),
        }


def configured_files_of(
    services: Iterable[DetectedLoggingService], rotation: LogRotationInfo
) -> list[ConfiguredLogFile]:
    out: list[ConfiguredLogFile] = []
    for service in services:
        out.extend(service.log_files)
    out.extend(rotation.configured_files)
    return out


async def merge_configured_into_scan(
    scanned: Sequence[ScannedFile],
    configured: Iterable[ConfiguredLogFile],
    *,
    fs: FileSystem,
    translator: PathTranslator,
    exclude: ExcludeFilters,
) -> list[ScannedFile]:
    """Add configured files that exist to the scan; config types override name guesses."""
    types: dict[str, LogType] = {}
    extra: list[ScannedFile] = []
    seen = {item.path for item in scanned}

    for cfg in configured:
        for path in await expand_include(cfg.path, fs, translator):
            if cfg.type != LogType.CUSTOM:
                types.setdefault(path, cfg.type)
            if path in seen or exclude.excludes(path):
                continue
            st = await fs.stat(translator.to_local(path))
            if st is None or not st.is_file:
                continue
            seen.add(path)
            extra.append(
                ScannedFile(path=path, log_type=types.get(path, cfg.type), size=st.size, modified=st.modified)
            )

    merged = [replace(item, log_type=types[item.path]) if item.path in types else item for item in scanned]
    merged.extend(extra)
    return merged


async def discover_host_logs(
    settings: DiscoverySettings | None = None,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
) -> HostDiscoveryReport:
    """Detect the host's logging setup and classify every candidate log file."""
    settings = resolve_settings(settings)
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator(settings.host_root)

    os_info = await detect_os(fs=fs, translator=translator)
    patterns = settings.patterns or default_file_patterns(os_info.type)
    logger.info("Discovering logs under %s (os=%s)", settings.base_path, os_info.type)

    services, rotation, scanned = await asyncio.gather(
        detect_logging_services(os_info, fs=fs, translator=translator),
        detect_log_rotation(fs=fs, translator=translator),
        scan_log_files(
            settings.base_path,
            patterns,
            fs=fs,
            translator=translator,
            exclude=settings.exclude,
        ),
    )

    candidates = await merge_configured_into_scan(
        scanned,
        configured_files_of(services, rotation),
        fs=fs,
        translator=translator,
        exclude=settings.exclude,
    )
    classification = await classify_scanned_files(
        candidates, fs=fs, translator=translator, settings=settings
    )
    return HostDiscoveryReport(
        base_path=settings.base_path,
        os=os_info,
        services=tuple(services),
        primary_service=primary_logging_service(services),
        rotation=rotation,
        scanned_files=len(candidates),
        classification=classification,
    )
