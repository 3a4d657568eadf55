"""Directory scanning for candidate log files (one level deep)."""

from __future__ import annotations

import fnmatch
import logging
import posixpath
import re
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache

from .fs import FileSystem, LocalFileSystem, PathTranslator
from .log_types import log_type_for_path
from .models import ScannedFile

logger = logging.getLogger(__name__)

DEFAULT_SCAN_PATTERNS: tuple[str, ...] = ("*.log", "syslog*", "messages*", "secure*", "maillog*")
ALWAYS_SKIPPED_DIRS = frozenset({"node_modules", ".git", "lost+found"})
_ROTATION_SUFFIX = r"(?:\.\d+|[.-]\d{8})?(?:\.(?:gz|bz2|xz))?"


@dataclass(frozen=True, slots=True)
class ExcludeFilters:
    """Glob filters applied before a scanned entry is considered."""

    files: tuple[str, ...] = ()
    directories: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()
    exclude_subdirectories: bool = True

    def excludes(self, path: str, *, is_dir: bool = False) -> bool:
        name = posixpath.basename(path.rstrip("/"))
        if any(fnmatch.fnmatchcase(path, p) for p in self.paths):
            return True
        if is_dir:
            return (
                self.exclude_subdirectories
                or name in ALWAYS_SKIPPED_DIRS
                or any(fnmatch.fnmatchcase(name, p) for p in self.directories)
            )
        parents = posixpath.dirname(path).split("/")
        if any(part in ALWAYS_SKIPPED_DIRS for part in parents):
            return True
        if any(fnmatch.fnmatchcase(part, p) for part in parents if part for p in self.directories):
            return True
        return any(fnmatch.fnmatchcase(name, p) for p in self.files)


@lru_cache(maxsize=128)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """File-name glob to regex; ``*.log`` style patterns also admit rotated variants."""
    out: list[str] = []
    for c in pattern:
        if c == "*":
            out.append(r"[^/]*")
        elif c == "?":
            out.append(r"[^/]")
        else:
            out.append(re.escape(c))
    expr = "".join(out)
    if pattern.endswith(".log"):
        expr += _ROTATION_SUFFIX
    return re.compile(f"^{expr}$")


def matches_patterns(name: str, patterns: Sequence[str]) -> bool:
    return any(glob_to_regex(p).match(name) for p in patterns)


async def scan_log_files(
    base_path: str,
    patterns: Sequence[str] = DEFAULT_SCAN_PATTERNS,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
    exclude: ExcludeFilters | None = None,
) -> list[ScannedFile]:
    """List files in ``base_path`` (not recursive) whose names match ``patterns``."""
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    exclude = exclude or ExcludeFilters()

    try:
        entries = await fs.list_dir(translator.to_local(base_path))
    except OSError as exc:
        logger.warning("Cannot scan %s: %s", base_path, exc)
        return []

    out: list[ScannedFile] = []
    for entry in entries:
        host_path = posixpath.join(base_path, entry.name)
        if entry.is_dir or not entry.is_file:
            continue
        if exclude.excludes(host_path):
            continue
        if not matches_patterns(entry.name, patterns):
            continue
        st = await fs.stat(entry.path)
        if st is None:
            logger.debug("Skipping %s: stat failed", host_path)
            continue
        out.append(
            ScannedFile(
                path=host_path,
                log_type=log_type_for_path(host_path),
                size=st.size,
                modified=st.modified,
            )
        )
    return out
