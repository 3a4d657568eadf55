"""File-system access used by discovery.

Everything that touches the disk goes through a :class:`FileSystem` so the
pipeline can run against a mounted host root (``HOST_ROOT_PATH``) or a fake tree
in tests. Only bounded prefixes of log files are ever read.
"""

from __future__ import annotations

import asyncio
import bz2
import errno
import gzip
import logging
import lzma
import os
import stat as stat_mod
import zlib
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import IO, Any, Protocol

import aiofiles
from aiofiles.threadpool import wrap

logger = logging.getLogger(__name__)

COMPRESSED_OPENERS: dict[str, Callable[..., IO[Any]]] = {
    ".gz": gzip.open,
    ".bz2": bz2.open,
    ".xz": lzma.open,
}
# Decoder failures that are not OSError subclasses; reads re-raise them as EIO.
DECOMPRESSION_ERRORS = (EOFError, lzma.LZMAError, zlib.error)


@dataclass(frozen=True, slots=True)
class FileStat:
    size: int
    modified: datetime
    is_file: bool
    is_dir: bool


@dataclass(frozen=True, slots=True)
class DirEntry:
    name: str
    path: str
    is_file: bool
    is_dir: bool


class FileSystem(Protocol):
    async def list_dir(self, path: str) -> list[DirEntry]: ...

    async def stat(self, path: str) -> FileStat | None: ...

    async def exists(self, path: str) -> bool: ...

    async def read_text(self, path: str) -> str: ...

    async def read_lines(self, path: str, max_lines: int, start_line: int = 0) -> list[str]: ...


@dataclass(frozen=True, slots=True)
class PathTranslator:
    """Map host paths onto this process's view of the host filesystem."""

    host_root: str | None = None

    def to_local(self, host_path: str) -> str:
        if not self.host_root or not host_path.startswith("/"):
            return host_path
        if host_path == self.host_root or host_path.startswith(self.host_root + "/"):
            return host_path
        return self.host_root + host_path

    def to_host(self, local_path: str) -> str:
        if self.host_root and local_path.startswith(self.host_root + "/"):
            return local_path[len(self.host_root) :]
        return local_path


def compression_suffix(path: str) -> str | None:
    suffix = os.path.splitext(path)[1].lower()
    return suffix if suffix in COMPRESSED_OPENERS else None


@asynccontextmanager
async def _open_text(path: str, *, encoding: str, decode_errors: str):
    """Open a file for async text reading (plain, gzip, bzip2 or xz)."""
    suffix = compression_suffix(path)
    if suffix is not None:
        f = COMPRESSED_OPENERS[suffix](path, mode="rt", encoding=encoding, errors=decode_errors)
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
            yield f


@dataclass(frozen=True, slots=True)
class LocalFileSystem:
    """FileSystem backed by the local disk (aiofiles + worker threads)."""

    encoding: str = "utf-8"
    decode_errors: str = "replace"

    @staticmethod
    def _scandir(path: str) -> list[DirEntry]:
        out: list[DirEntry] = []
        with os.scandir(path) as it:
            for e in it:
                try:
                    out.append(DirEntry(e.name, e.path, e.is_file(), e.is_dir()))
                except OSError as exc:
                    logger.debug("Skipping unreadable entry %s: %s", e.path, exc)
        out.sort(key=lambda d: d.name)
        return out

    async def list_dir(self, path: str) -> list[DirEntry]:
        return await asyncio.to_thread(self._scandir, path)

    async def stat(self, path: str) -> FileStat | None:
        try:
            st = await asyncio.to_thread(os.stat, path)
        except OSError:
            return None
        return FileStat(
            size=st.st_size,
            modified=datetime.fromtimestamp(st.st_mtime, UTC),
            is_file=stat_mod.S_ISREG(st.st_mode),
            is_dir=stat_mod.S_ISDIR(st.st_mode),
        )

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def _ensure_regular(self, path: str) -> None:
        # FIFOs and devices would block the reader thread indefinitely.
        st = await asyncio.to_thread(os.stat, path)
        if stat_mod.S_ISDIR(st.st_mode):
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        if not stat_mod.S_ISREG(st.st_mode):
            raise OSError(errno.EINVAL, "Not a regular file", path)

    async def read_text(self, path: str) -> str:
        await self._ensure_regular(path)
        try:
            async with _open_text(
                path, encoding=self.encoding, decode_errors=self.decode_errors
            ) as f:
                return await f.read()
        except DECOMPRESSION_ERRORS as exc:
            raise OSError(errno.EIO, f"Corrupt compressed file: {exc}", path) from exc

    async def read_lines(self, path: str, max_lines: int, start_line: int = 0) -> list[str]:
        """Read up to ``max_lines`` lines starting at line ``start_line`` (0-based)."""
        if max_lines < 0 or start_line < 0:
            raise ValueError("max_lines and start_line must be >= 0")
        await self._ensure_regular(path)

        out: list[str] = []
        if max_lines == 0:
            return out
        try:
            async with _open_text(
                path, encoding=self.encoding, decode_errors=self.decode_errors
            ) as f:
                index = 0
                async for line in f:
                    if index >= start_line:
                        out.append(line.rstrip("\r\n"))
                        if len(out) >= max_lines:
                            break
                    index += 1
        except DECOMPRESSION_ERRORS as exc:
            # A bad gzip header is already an OSError (BadGzipFile).
            raise OSError(errno.EIO, f"Corrupt compressed file: {exc}", path) from exc
        return out
