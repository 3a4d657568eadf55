"""Three-tier classification of scanned log files.

Rotated and compressed siblings are grouped under one canonical base path first,
so each rotation family is sampled once. Groups are then classified by a small
pool of asyncio workers, each file under its own timeout.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .detector import detect_log_format, validate_detected_format
from .fs import FileSystem, LocalFileSystem, PathTranslator, compression_suffix
from .log_types import is_system_base_file, log_type_for_path, normalize_log_file_path
from .models import ClassificationCategory, FileClassification, LogType, ScannedFile
from .parsers import parser_for
from .schemas import (
    AutoDetectedFile,
    ClassificationResult,
    CustomFile,
    FailedFile,
    SystemBaseFile,
)
from .settings import DiscoverySettings, resolve_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RotationGroup:
    base_path: str
    representative: ScannedFile
    log_type: LogType
    members: tuple[str, ...] = ()


def _representative_rank(base_path: str, item: ScannedFile) -> tuple[bool, bool, str]:
    # The live file first, then any uncompressed rotation, then compressed ones.
    return (item.path != base_path, compression_suffix(item.path) is not None, item.path)


def group_rotated_files(files: Iterable[ScannedFile]) -> list[RotationGroup]:
    """Group files by canonical base path, sorted by that path."""
    by_base: dict[str, list[ScannedFile]] = {}
    for item in files:
        by_base.setdefault(normalize_log_file_path(item.path), []).append(item)

    groups: list[RotationGroup] = []
    for base_path in sorted(by_base):
        items = sorted(by_base[base_path], key=lambda f: _representative_rank(base_path, f))
        # A type from a daemon config beats a guess from the file name.
        known = [f.log_type for f in items if f.log_type != LogType.CUSTOM]
        groups.append(
            RotationGroup(
                base_path=base_path,
                representative=items[0],
                log_type=known[0] if known else log_type_for_path(base_path),
                members=tuple(sorted({f.path for f in items})),
            )
        )
    return groups


async def _validate_system_file(
    group: RotationGroup,
    *,
    fs: FileSystem,
    translator: PathTranslator,
    sample_lines: int,
) -> bool:
    lines = await fs.read_lines(translator.to_local(group.representative.path), sample_lines)
    first = next((line for line in lines if line.strip()), None)
    if first is None:
        return False
    return parser_for(group.log_type).match_line(first) is not None


async def classify_file(
    group: RotationGroup,
    *,
    fs: FileSystem,
    translator: PathTranslator,
    settings: DiscoverySettings,
) -> FileClassification:
    """Classify one rotation group. OSError from the reads propagates."""
    if is_system_base_file(group.base_path):
        validated = await _validate_system_file(
            group, fs=fs, translator=translator, sample_lines=settings.system_validation_lines
        )
        return FileClassification(
            path=group.base_path,
            category=ClassificationCategory.SYSTEM_BASE,
            log_type=group.log_type,
            validated=validated,
            parser_type=group.log_type.value,
            members=group.members,
        )

    path = group.representative.path
    detected = await detect_log_format(
        path, settings.sample_lines, fs=fs, translator=translator
    )
    if detected.pattern is not None and detected.confidence >= settings.min_auto_confidence:
        validated = await validate_detected_format(
            path, detected, settings.validation_lines, fs=fs, translator=translator
        )
        return FileClassification(
            path=group.base_path,
            category=ClassificationCategory.AUTO_DETECTED,
            log_type=detected.pattern.log_type,
            validated=validated,
            parser_type=detected.parser_type,
            pattern_name=detected.pattern_name,
            confidence=detected.confidence,
            members=group.members,
        )

    return FileClassification(
        path=group.base_path,
        category=ClassificationCategory.CUSTOM,
        log_type=LogType.CUSTOM,
        confidence=detected.confidence,
        members=group.members,
    )


def build_classification_result(
    verdicts: Iterable[FileClassification | FailedFile],
) -> ClassificationResult:
    """Sort per-file verdicts into the output tiers, keeping their order."""
    result = ClassificationResult()
    for verdict in verdicts:
        if isinstance(verdict, FailedFile):
            result.failed_files.append(verdict)
            continue
        members = list(verdict.members)
        if verdict.category == ClassificationCategory.SYSTEM_BASE:
            result.system_base_files.append(
                SystemBaseFile(
                    path=verdict.path,
                    log_type=verdict.log_type,
                    validated=verdict.validated,
                    members=members,
                )
            )
        elif verdict.category == ClassificationCategory.AUTO_DETECTED:
            result.auto_detected_files.append(
                AutoDetectedFile(
                    path=verdict.path,
                    log_type=verdict.log_type,
                    parser_type=verdict.parser_type or verdict.log_type.value,
                    pattern_name=verdict.pattern_name or "",
                    confidence=verdict.confidence,
                    validated=verdict.validated,
                    members=members,
                )
            )
        else:
            result.custom_files.append(
                CustomFile(path=verdict.path, confidence=verdict.confidence, members=members)
            )
    return result


async def classify_scanned_files(
    files: Sequence[ScannedFile],
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
    settings: DiscoverySettings | None = None,
) -> ClassificationResult:
    """Classify scanned files into system-base, auto-detected, custom (and failed).

    Each rotation group is handled by one of a bounded set of workers under
    ``settings.file_timeout``. A group that times out or cannot be read lands
    in ``failed_files`` and is not retried.
    """
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    settings = resolve_settings(settings)

    groups = group_rotated_files(files)
    if not groups:
        return ClassificationResult()

    worker_count = min(settings.max_workers or 1, len(groups))
    # None marks the end of the work for one worker.
    work_queue: asyncio.Queue[int | None] = asyncio.Queue(maxsize=worker_count * 4)
    verdicts: dict[int, FileClassification | FailedFile] = {}

    async def feeder() -> None:
        try:
            for index in range(len(groups)):
                await work_queue.put(index)
        finally:
            for _ in range(worker_count):
                await work_queue.put(None)

    async def worker() -> None:
        while True:
            index = await work_queue.get()
            if index is None:
                return
            group = groups[index]
            try:
                verdicts[index] = await asyncio.wait_for(
                    classify_file(group, fs=fs, translator=translator, settings=settings),
                    timeout=settings.file_timeout,
                )
            except TimeoutError:
                logger.warning(
                    "Timed out classifying %s after %.1fs", group.base_path, settings.file_timeout
                )
                verdicts[index] = FailedFile(path=group.base_path, reason="timeout")
            except OSError as exc:
                logger.warning("Cannot read %s: %s", group.representative.path, exc)
                verdicts[index] = FailedFile(
                    path=group.base_path, reason=exc.strerror or str(exc)
                )

    tasks = [asyncio.create_task(feeder())]
    tasks.extend(asyncio.create_task(worker()) for _ in range(worker_count))
    try:
        await asyncio.gather(*tasks)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    result = build_classification_result(verdicts[i] for i in range(len(groups)))
    logger.info(
        "Classified %d groups: %d system, %d auto-detected, %d custom, %d failed",
        len(groups),
        len(result.system_base_files),
        len(result.auto_detected_files),
        len(result.custom_files),
        len(result.failed_files),
    )
    return result
