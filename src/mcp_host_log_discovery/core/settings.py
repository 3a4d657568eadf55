"""Discovery settings with environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace

from .scanning import ExcludeFilters

MAX_WORKERS_ENV = "HOST_LOGS_MAX_WORKERS"
FILE_TIMEOUT_ENV = "HOST_LOGS_FILE_TIMEOUT"
BASE_PATH_ENV = "HOST_LOGS_BASE_PATH"
HOST_ROOT_ENV = "HOST_ROOT_PATH"
DEFAULT_BASE_PATH = "/var/log"
DEFAULT_FILE_TIMEOUT = 5.0


@dataclass(frozen=True, slots=True)
class DiscoverySettings:
    base_path: str | None = None  # None: $HOST_LOGS_BASE_PATH or /var/log
    patterns: tuple[str, ...] | None = None  # None: OS defaults
    host_root: str | None = None
    max_workers: int | None = None
    file_timeout: float | None = None  # None: $HOST_LOGS_FILE_TIMEOUT or 5s
    sample_lines: int = 50
    validation_lines: int = 100
    system_validation_lines: int = 10
    min_auto_confidence: int = 70
    exclude: ExcludeFilters = field(default_factory=ExcludeFilters)


def resolve_max_workers(max_workers: int | None) -> int:
    if max_workers is not None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        return max_workers

    env = os.getenv(MAX_WORKERS_ENV)
    if env:
        try:
            value = int(env)
        except ValueError as exc:
            raise ValueError(f"{MAX_WORKERS_ENV} must be an integer") from exc
        if value < 1:
            raise ValueError(f"{MAX_WORKERS_ENV} must be >= 1")
        return value

    cpu_count = os.cpu_count() or 1
    return min(32, cpu_count)


def resolve_file_timeout(file_timeout: float | None) -> float:
    if file_timeout is not None:
        if file_timeout <= 0:
            raise ValueError("file_timeout must be > 0")
        return file_timeout

    env = os.getenv(FILE_TIMEOUT_ENV)
    if not env:
        return DEFAULT_FILE_TIMEOUT
    try:
        value = float(env)
    except ValueError as exc:
        raise ValueError(f"{FILE_TIMEOUT_ENV} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{FILE_TIMEOUT_ENV} must be > 0")
    return value


def resolve_host_root(host_root: str | None = None) -> str | None:
    """Explicit value, else $HOST_ROOT_PATH; empty or "/" means no prefix."""
    if host_root is None:
        host_root = os.getenv(HOST_ROOT_ENV, "")
    return host_root.strip().rstrip("/") or None


def resolve_settings(cfg: DiscoverySettings | None = None) -> DiscoverySettings:
    """Return settings with environment overrides applied and validated."""
    if cfg is None:
        cfg = DiscoverySettings()

    base_path = cfg.base_path or os.getenv(BASE_PATH_ENV) or DEFAULT_BASE_PATH
    host_root = resolve_host_root(cfg.host_root)

    if cfg.sample_lines < 1 or cfg.validation_lines < 1 or cfg.system_validation_lines < 1:
        raise ValueError("sample sizes must be >= 1")
    if not 0 <= cfg.min_auto_confidence <= 100:
        raise ValueError("min_auto_confidence must be within 0..100")

    return replace(
        cfg,
        base_path=base_path,
        host_root=host_root,
        max_workers=resolve_max_workers(cfg.max_workers),
        file_timeout=resolve_file_timeout(cfg.file_timeout),
    )
