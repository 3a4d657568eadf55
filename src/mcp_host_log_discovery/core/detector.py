"""Format detection: score every library entry against a sample of lines."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .fs import FileSystem, LocalFileSystem, PathTranslator
from .models import LogType
from .patterns import LOG_PATTERN_LIBRARY, LogPatternEntry

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_LINES = 50
DEFAULT_VALIDATION_LINES = 100
VALIDATION_MIN_RATE = 70


@dataclass(frozen=True, slots=True)
class DetectedFormat:
    format: str
    confidence: int
    parser_type: str
    pattern_name: str
    sample_matches: int
    total_samples: int
    pattern: LogPatternEntry | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": self.format,
            "confidence": self.confidence,
            "parser_type": self.parser_type,
            "pattern_name": self.pattern_name,
            "sample_matches": self.sample_matches,
            "total_samples": self.total_samples,
        }


def match_percentage(matches: int, tested: int) -> int:
    """Integer percentage, rounding halves up."""
    if tested <= 0:
        return 0
    return (200 * matches + tested) // (2 * tested)


def _non_blank(lines: Iterable[str]) -> list[str]:
    return [line for line in lines if line.strip()]


def unknown_format(total_samples: int = 0) -> DetectedFormat:
    return DetectedFormat(
        format=LogType.CUSTOM.value,
        confidence=0,
        parser_type=LogType.CUSTOM.value,
        pattern_name="unknown",
        sample_matches=0,
        total_samples=total_samples,
    )


def score_pattern(entry: LogPatternEntry, lines: Sequence[str]) -> DetectedFormat:
    sample = _non_blank(lines)
    matches = sum(1 for line in sample if entry.matches(line))
    return DetectedFormat(
        format=entry.log_type.value,
        confidence=match_percentage(matches, len(sample)),
        parser_type=entry.parser_type,
        pattern_name=entry.name,
        sample_matches=matches,
        total_samples=len(sample),
        pattern=entry,
    )


def score_patterns(
    lines: Sequence[str],
    library: Sequence[LogPatternEntry] = LOG_PATTERN_LIBRARY,
) -> list[DetectedFormat]:
    """Confidence of every library entry, in library order."""
    sample = _non_blank(lines)
    return [score_pattern(entry, sample) for entry in library]


def detect_format_from_lines(
    lines: Sequence[str],
    library: Sequence[LogPatternEntry] = LOG_PATTERN_LIBRARY,
) -> DetectedFormat:
    """Best entry whose confidence clears its own threshold, else ``custom``."""
    sample = _non_blank(lines)
    if not sample:
        return unknown_format(0)

    survivors = [
        d
        for d in score_patterns(sample, library)
        if d.pattern is not None and d.confidence >= d.pattern.confidence_threshold
    ]
    if not survivors:
        return unknown_format(len(sample))

    # sorted() is stable, so ties keep library order.
    return sorted(survivors, key=lambda d: -d.confidence)[0]


async def detect_log_format(
    path: str,
    sample_lines: int = DEFAULT_SAMPLE_LINES,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
) -> DetectedFormat:
    """Sample the head of a (host) file and detect its format."""
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    lines = await fs.read_lines(translator.to_local(path), sample_lines)
    detected = detect_format_from_lines(lines)
    logger.debug(
        "Detected %s (%s%%) for %s", detected.pattern_name, detected.confidence, path
    )
    return detected


async def validate_detected_format(
    path: str,
    detected: DetectedFormat,
    sample_lines: int = DEFAULT_VALIDATION_LINES,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
    min_rate: int = VALIDATION_MIN_RATE,
) -> bool:
    """Re-test the winning entry on a larger sample; True at >= ``min_rate``%."""
    if detected.pattern is None:
        return False
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    lines = await fs.read_lines(translator.to_local(path), sample_lines)
    rescored = score_pattern(detected.pattern, lines)
    return rescored.total_samples > 0 and rescored.confidence >= min_rate
