"""syslog-ng configuration parser.

syslog-ng configs are an object language: named ``destination`` and ``filter``
blocks, and ``log`` paths that wire them together. All statements (including
those pulled in by ``@include``) are collected first, then each ``log`` path is
resolved against the collected destinations and filters.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field

from ..fs import FileSystem, LocalFileSystem, PathTranslator
from ..log_types import log_type_for_facility, merge_configured_files
from ..models import ConfiguredLogFile, LogType
from .common import expand_include, read_config

logger = logging.getLogger(__name__)

SYSLOG_NG_CONFIGS = ("/etc/syslog-ng/syslog-ng.conf", "/etc/syslog-ng.conf")

_STATEMENT_RE = re.compile(r"(?<![\w@])(destination|filter|log)\s*(\w+)?\s*\{")
_INCLUDE_RE = re.compile(r"@include\s+(?:\"([^\"]+)\"|'([^']+)')")
_FILE_RE = re.compile(r"\bfile\(\s*[\"']([^\"']+)[\"']")
_FACILITY_RE = re.compile(r"(\bnot\s+)?\bfacility\(([^)]*)\)")


def _ref_re(kind: str) -> re.Pattern[str]:
    return re.compile(rf"\b{kind}\(\s*(\w+)\s*\)")


_FILTER_REF_RE = _ref_re("filter")
_DESTINATION_REF_RE = _ref_re("destination")


@dataclass(slots=True)
class SyslogNgObjects:
    """Statements collected from a config tree; first definition of a name wins."""

    destinations: dict[str, list[str]] = field(default_factory=dict)
    filters: dict[str, list[str]] = field(default_factory=dict)
    # (filter refs, destination refs, facilities of inline filters)
    logs: list[tuple[list[str], list[str], list[str]]] = field(default_factory=list)


def strip_comments(text: str) -> str:
    """Drop ``#`` comments that are not inside quoted strings."""
    out: list[str] = []
    quote: str | None = None
    i = 0
    while i < len(text):
        c = text[i]
        if quote:
            if c == "\\" and i + 1 < len(text):
                out.append(text[i : i + 2])
                i += 2
                continue
            if c == quote:
                quote = None
        elif c in "\"'":
            quote = c
        elif c == "#":
            end = text.find("\n", i)
            if end == -1:
                break
            i = end
            continue
        out.append(c)
        i += 1
    return "".join(out)


def _block_end(text: str, start: int) -> int:
    """Index of the ``}`` closing the block whose body starts at ``start``."""
    depth = 1
    quote: str | None = None
    i = start
    while i < len(text):
        c = text[i]
        if quote:
            if c == "\\":
                i += 1
            elif c == quote:
                quote = None
        elif c in "\"'":
            quote = c
        elif c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return len(text)


def _facilities(body: str) -> list[str]:
    out: list[str] = []
    for m in _FACILITY_RE.finditer(body):
        if m.group(1):
            continue
        out.extend(f for f in re.split(r"[\s,]+", m.group(2)) if f)
    return out


def collect_statements(text: str, objects: SyslogNgObjects) -> list[str]:
    """Add the statements in ``text`` to ``objects``; return include targets in order."""
    text = strip_comments(text)
    includes = [m.group(1) or m.group(2) for m in _INCLUDE_RE.finditer(text)]

    pos = 0
    while True:
        m = _STATEMENT_RE.search(text, pos)
        if m is None:
            break
        kind, name = m.group(1), m.group(2)
        end = _block_end(text, m.end())
        body = text[m.end() : end]
        pos = end + 1

        if kind == "destination" and name:
            paths = [p for p in _FILE_RE.findall(body) if "$" not in p]
            objects.destinations.setdefault(name, paths)
        elif kind == "filter" and name:
            objects.filters.setdefault(name, _facilities(body))
        elif kind == "log":
            objects.logs.append(
                (
                    _FILTER_REF_RE.findall(body),
                    _DESTINATION_REF_RE.findall(body),
                    _facilities(body),
                )
            )
    return includes


async def _collect(
    config_path: str,
    objects: SyslogNgObjects,
    fs: FileSystem,
    translator: PathTranslator,
    visited: frozenset[str],
) -> None:
    if config_path in visited:
        logger.debug("Skipping already visited syslog-ng config %s", config_path)
        return
    visited = visited | {config_path}

    text = await read_config(config_path, fs, translator)
    if text is None:
        return

    for target in collect_statements(text, objects):
        if not target.startswith("/"):
            target = posixpath.join(posixpath.dirname(config_path), target)
        for included in await expand_include(target, fs, translator):
            await _collect(included, objects, fs, translator, visited)


def resolve_log_paths(objects: SyslogNgObjects) -> list[ConfiguredLogFile]:
    """Turn collected ``log`` paths into configured files."""
    results: list[ConfiguredLogFile] = []
    for filter_names, destination_names, inline in objects.logs:
        facilities: list[str] = []
        for name in filter_names:
            facilities.extend(objects.filters.get(name, []))
        facilities.extend(inline)
        facility = facilities[0] if facilities else None
        log_type = log_type_for_facility(facility) if facility else LogType.SYSLOG

        for name in destination_names:
            for path in objects.destinations.get(name, []):
                if path.startswith("/"):
                    results.append(ConfiguredLogFile(path=path, type=log_type, facility=facility))
    return merge_configured_files(results)


async def parse_syslog_ng_config(
    config_path: str = SYSLOG_NG_CONFIGS[0],
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
    visited: frozenset[str] = frozenset(),
) -> list[ConfiguredLogFile]:
    """Parse a syslog-ng config tree into configured files.

    Only files reached through ``@include`` are read. A ``conf.d`` directory
    next to the main config is not scanned unless an ``@include`` names it.
    """
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    objects = SyslogNgObjects()
    await _collect(config_path, objects, fs, translator, visited)
    return resolve_log_paths(objects)
