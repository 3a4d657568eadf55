"""User-configured regex parser for files in the custom tier."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from ..models import LogLevel, ParsedLogEntry
from ..schemas import CustomParserConfig
from ..timestamps import parse_timestamp
from .base import normalize_level, raw_entry

logger = logging.getLogger(__name__)

_STR_FIELDS = {"hostname", "service", "tag", "user", "action", "ip_address", "queue_id", "component"}
_INT_FIELDS = {"pid", "priority"}


@lru_cache(maxsize=64)
def _compile(regex: str) -> re.Pattern[str] | None:
    if not regex:
        return None
    try:
        return re.compile(regex)
    except re.error as exc:
        logger.warning("Invalid custom parser regex %r: %s", regex, exc)
        return None


@dataclass(frozen=True, slots=True)
class CustomLogParser:
    config: CustomParserConfig

    def _level(self, raw: str | None) -> LogLevel:
        if not raw:
            return LogLevel.INFO
        mapped = self.config.level_mapping.get(raw) or self.config.level_mapping.get(raw.lower())
        if mapped:
            return normalize_level(mapped)
        return normalize_level(raw)

    def _captures(self, m: re.Match[str]) -> dict[str, str]:
        if not self.config.groups:
            return {k: v for k, v in m.groupdict().items() if v is not None}
        out: dict[str, str] = {}
        for name, index in self.config.groups.items():
            if 0 <= index <= (m.re.groups or 0):
                value = m.group(index)
                if value is not None:
                    out[name] = value
        return out

    def match_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        pattern = _compile(self.config.regex)
        if pattern is None:
            return None
        m = pattern.search(line)
        if m is None:
            return None

        captured = self._captures(m)
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for name, value in captured.items():
            if name in _INT_FIELDS and value.isdigit():
                known[name] = int(value)
            elif name in _STR_FIELDS:
                known[name] = value
            elif name not in ("message", "level", "timestamp"):
                extra[name] = value

        ts_text = captured.get("timestamp")
        return ParsedLogEntry(
            message=(captured.get("message") or "").strip() or line.strip(),
            level=self._level(captured.get("level")),
            timestamp=parse_timestamp(ts_text) if ts_text else None,
            extra=extra or None,
            **known,
        )

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        return self.match_line(line) or raw_entry(line)
