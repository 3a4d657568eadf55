"""Include resolution shared by the daemon configuration parsers."""

from __future__ import annotations

import fnmatch
import logging
import posixpath
from collections.abc import Callable

from ..fs import FileSystem, PathTranslator

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


def has_glob(path: str) -> bool:
    return any(c in _GLOB_CHARS for c in path)


async def read_config(path: str, fs: FileSystem, translator: PathTranslator) -> str | None:
    """Read a (host) config file; None if it cannot be read."""
    try:
        return await fs.read_text(translator.to_local(path))
    except OSError as exc:
        logger.debug("Cannot read config %s: %s", path, exc)
        return None


async def expand_include(
    target: str,
    fs: FileSystem,
    translator: PathTranslator,
    *,
    accept: Callable[[str], bool] | None = None,
) -> list[str]:
    """Resolve an include target (file, directory or glob) to sorted host file paths."""
    if has_glob(target):
        directory, pattern = posixpath.split(target)
    else:
        st = await fs.stat(translator.to_local(target))
        if st is None:
            logger.debug("Include target missing: %s", target)
            return []
        if st.is_file:
            return [target]
        if not st.is_dir:
            return []
        directory, pattern = target.rstrip("/") or "/", "*"

    try:
        entries = await fs.list_dir(translator.to_local(directory))
    except OSError as exc:
        logger.debug("Cannot list include directory %s: %s", directory, exc)
        return []

    out: list[str] = []
    for entry in entries:
        if not entry.is_file or not fnmatch.fnmatchcase(entry.name, pattern):
            continue
        if accept is not None and not accept(entry.name):
            continue
        out.append(posixpath.join(directory, entry.name))
    return sorted(out)
