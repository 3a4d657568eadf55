"""MCP tool implementations.

Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

from mcp_host_log_discovery.core.detector import (
    DEFAULT_SAMPLE_LINES,
    detect_log_format,
    score_patterns,
    validate_detected_format,
)
from mcp_host_log_discovery.core.discovery import detect_log_rotation
from mcp_host_log_discovery.core.fs import LocalFileSystem, PathTranslator
from mcp_host_log_discovery.core.models import LogType
from mcp_host_log_discovery.core.os_detect import detect_os
from mcp_host_log_discovery.core.parsers import parse_log_line
from mcp_host_log_discovery.core.pipeline import discover_host_logs
from mcp_host_log_discovery.core.scanning import ExcludeFilters
from mcp_host_log_discovery.core.schemas import CustomParserConfig
from mcp_host_log_discovery.core.services import detect_logging_services, primary_logging_service
from mcp_host_log_discovery.core.settings import DiscoverySettings, resolve_host_root

DEFAULT_LIMIT = 200
HARD_LIMIT = 5000
MAX_SAMPLE_LINES = 1000
LOG_TYPES = [t.value for t in LogType]


def _parse_log_type(value: str | None) -> LogType:
    if not value:
        return LogType.SYSLOG
    try:
        return LogType(value.strip().lower())
    except ValueError as e:
        valid = ", ".join(LOG_TYPES)
        raise ValueError(f"Unknown log type '{value}'. Valid values: {valid}.") from e


def _translator(host_root: str | None) -> PathTranslator:
    return PathTranslator(resolve_host_root(host_root))


async def discover_host_logs_impl(
    *,
    base_path: str | None = None,
    patterns: Sequence[str] | None = None,
    exclude_files: Sequence[str] | None = None,
    exclude_directories: Sequence[str] | None = None,
    host_root: str | None = None,
    max_workers: int | None = None,
    file_timeout: float | None = None,
) -> dict[str, Any]:
    """Implementation for the `discover_host_logs` MCP tool."""
    if base_path is not None and not base_path.startswith("/"):
        raise ValueError("base_path must be an absolute host path")
    cfg = DiscoverySettings(
        base_path=base_path,
        patterns=tuple(patterns) if patterns else None,
        host_root=host_root,
        max_workers=max_workers,
        file_timeout=file_timeout,
        exclude=ExcludeFilters(
            files=tuple(exclude_files or ()),
            directories=tuple(exclude_directories or ()),
        ),
    )
    report = await discover_host_logs(cfg)
    return report.to_dict()


async def detect_log_format_impl(
    *,
    log_path: str,
    sample_lines: int = DEFAULT_SAMPLE_LINES,
    validate: bool = True,
    include_scores: bool = False,
    host_root: str | None = None,
) -> dict[str, Any]:
    """Implementation for the `detect_log_format` MCP tool.

    Raises FileNotFoundError for a missing file and ValueError for bad arguments.
    """
    if sample_lines <= 0:
        raise ValueError("sample_lines must be > 0")
    sample_lines = min(sample_lines, MAX_SAMPLE_LINES)

    fs = LocalFileSystem()
    translator = _translator(host_root)
    detected = await detect_log_format(log_path, sample_lines, fs=fs, translator=translator)
    out = detected.to_dict()
    if validate:
        out["validated"] = await validate_detected_format(
            log_path, detected, fs=fs, translator=translator
        )
    if include_scores:
        lines = await fs.read_lines(translator.to_local(log_path), sample_lines)
        out["scores"] = [
            {"pattern_name": s.pattern_name, "confidence": s.confidence}
            for s in score_patterns(lines)
        ]
    return out


def parse_log_lines_impl(
    *,
    lines: Sequence[str],
    log_type: str | None = None,
    limit: int | None = None,
    custom_regex: str | None = None,
    custom_groups: dict[str, int] | None = None,
    level_mapping: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Implementation for the `parse_log_lines` MCP tool."""
    kind = _parse_log_type(log_type)
    if limit is None:
        limit = DEFAULT_LIMIT
    if limit <= 0:
        raise ValueError("limit must be > 0")
    limit = min(limit, HARD_LIMIT)

    custom_config = None
    if custom_regex:
        kind = LogType.CUSTOM
        custom_config = CustomParserConfig(
            regex=custom_regex,
            groups=custom_groups or {},
            level_mapping=level_mapping or {},
        )

    entries: list[dict[str, Any]] = []
    for line in lines:
        entry = parse_log_line(line, kind, custom_config=custom_config)
        if entry is None:
            continue
        entries.append(entry.to_dict())
        if len(entries) >= limit:
            break
    return {"count": len(entries), "log_type": kind.value, "entries": entries}


async def detect_logging_services_impl(*, host_root: str | None = None) -> dict[str, Any]:
    """Implementation for the `detect_logging_services` MCP tool."""
    fs = LocalFileSystem()
    translator = _translator(host_root)
    os_info = await detect_os(fs=fs, translator=translator)
    services, rotation = await asyncio.gather(
        detect_logging_services(os_info, fs=fs, translator=translator),
        detect_log_rotation(fs=fs, translator=translator),
    )
    primary = primary_logging_service(services)
    return {
        "os": os_info.to_dict(),
        "services": [s.to_dict() for s in services],
        "primary_service": primary.type.value if primary is not None else None,
        "rotation": rotation.to_dict(),
    }
