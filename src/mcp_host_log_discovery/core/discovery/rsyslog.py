"""rsyslog configuration parser (legacy selector lines plus common RainerScript)."""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterator

from ..fs import FileSystem, LocalFileSystem, PathTranslator
from ..log_types import log_type_for_facility, merge_configured_files
from ..models import ConfiguredLogFile, LogType
from .common import expand_include, read_config

logger = logging.getLogger(__name__)

RSYSLOG_CONFIG = "/etc/rsyslog.conf"

_RULE_RE = re.compile(r"^(?P<selector>[^\s#]+)\s+(?P<sync>-?)(?P<dest>[^\s#]+)\s*$")
_ACTION_RE = re.compile(r"^(?P<selector>[^\s#]+)\s+action\((?P<args>.*)\)\s*;?\s*$", re.IGNORECASE)
_ARG_RE = re.compile(r'(\w+)\s*=\s*"([^"]*)"')
_LEGACY_INCLUDE_RE = re.compile(r"^\$IncludeConfig\s+(\S+)", re.IGNORECASE)
_INCLUDE_RE = re.compile(r'^include\(\s*file\s*=\s*"([^"]+)"', re.IGNORECASE)
_SKIPPED_PREFIXES = ("module(", "input(", "global(", "template(", "ruleset(", "$", "&", "if ", "}")


def parse_selector(selector: str) -> list[tuple[str, str]]:
    """Split ``fac1,fac2.prio;fac3.none`` into (facility, priority) pairs.

    Facilities whose clause priority is ``none`` are excluded.
    """
    out: list[tuple[str, str]] = []
    for clause in selector.split(";"):
        facilities, dot, priority = clause.strip().rpartition(".")
        if not dot or not facilities:
            continue
        if priority.lower() == "none":
            continue
        for facility in facilities.split(","):
            facility = facility.strip()
            if facility:
                out.append((facility, priority))
    return out


def rule_to_file(selector: str, destination: str) -> ConfiguredLogFile | None:
    """Turn one selector/destination rule into a configured file, if it writes a file."""
    path = destination.split(";", 1)[0]
    if not path.startswith("/"):
        return None
    clauses = parse_selector(selector)
    if not clauses:
        return None

    facility, priority = clauses[0]
    log_type = LogType.SYSLOG if facility == "*" else log_type_for_facility(facility)
    return ConfiguredLogFile(path=path, type=log_type, facility=facility, priority=priority)


def _join(head: str, tail: str) -> str:
    # Selector clauses continue right after ";" or ","; any other break was whitespace.
    if not head or not tail or head.endswith((";", ",")):
        return head + tail
    return f"{head} {tail}"


def logical_lines(text: str) -> Iterator[str]:
    """Yield stripped, non-comment lines with trailing-backslash continuations joined."""
    pending = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not pending and (not line or line.startswith("#")):
            continue
        if line.endswith("\\"):
            pending = _join(pending, line[:-1].strip())
            continue
        line, pending = _join(pending, line), ""
        if line:
            yield line
    if pending:
        yield pending


def _include_target(line: str) -> str | None:
    m = _LEGACY_INCLUDE_RE.match(line) or _INCLUDE_RE.match(line)
    return m.group(1) if m else None


def _parse_rule(line: str) -> ConfiguredLogFile | None:
    m = _ACTION_RE.match(line)
    if m:
        args = {k.lower(): v for k, v in _ARG_RE.findall(m.group("args"))}
        if args.get("type", "").lower() != "omfile" or "file" not in args:
            return None
        return rule_to_file(m.group("selector"), args["file"])

    m = _RULE_RE.match(line)
    if m:
        return rule_to_file(m.group("selector"), m.group("dest"))
    return None


async def parse_rsyslog_config(
    config_path: str = RSYSLOG_CONFIG,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
    visited: frozenset[str] = frozenset(),
) -> list[ConfiguredLogFile]:
    """Parse an rsyslog config (following includes) into configured files.

    A file's own rules are collected before those of the files it includes, so
    the main config wins when both name the same path.
    """
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    if config_path in visited:
        logger.debug("Skipping already visited rsyslog config %s", config_path)
        return []
    visited = visited | {config_path}

    text = await read_config(config_path, fs, translator)
    if text is None:
        return []

    results: list[ConfiguredLogFile] = []
    includes: list[str] = []
    for line in logical_lines(text):
        target = _include_target(line)
        if target is not None:
            if not target.startswith("/"):
                target = posixpath.join(posixpath.dirname(config_path), target)
            includes.append(target)
            continue

        if line.startswith(_SKIPPED_PREFIXES):
            continue

        configured = _parse_rule(line)
        if configured is not None:
            results.append(configured)

    for target in includes:
        for included in await expand_include(target, fs, translator):
            results.extend(
                await parse_rsyslog_config(
                    included, fs=fs, translator=translator, visited=visited
                )
            )

    return merge_configured_files(results)
