"""logrotate configuration parser."""

from __future__ import annotations

import logging
import posixpath
import shlex
from dataclasses import dataclass, replace

from ..fs import FileSystem, LocalFileSystem, PathTranslator
from ..log_types import log_type_for_path, merge_configured_files
from ..models import ConfiguredLogFile
from .common import expand_include, read_config

logger = logging.getLogger(__name__)

LOGROTATE_BINARIES = ("/usr/sbin/logrotate", "/sbin/logrotate", "/usr/bin/logrotate")
LOGROTATE_CONFIG = "/etc/logrotate.conf"
LOGROTATE_DIR = "/etc/logrotate.d"
SYSTEMD_MARKERS = ("/usr/bin/journalctl", "/bin/journalctl")

ROTATION_PATTERNS = frozenset({"daily", "weekly", "monthly", "yearly"})
SCRIPT_DIRECTIVES = frozenset({"prerotate", "postrotate", "firstaction", "lastaction", "preremove"})
# logrotate's default tabooext list plus dotfiles.
TABOO_SUFFIXES = (
    "~",
    ",v",
    ".bak",
    ".cfsaved",
    ".disabled",
    ".dpkg-bak",
    ".dpkg-del",
    ".dpkg-dist",
    ".dpkg-new",
    ".dpkg-old",
    ".rpmnew",
    ".rpmorig",
    ".rpmsave",
    ".swp",
    ".ucf-dist",
    ".ucf-new",
    ".ucf-old",
)


@dataclass(frozen=True, slots=True)
class RotationPolicy:
    pattern: str | None = None
    keep: int | None = None
    compress: bool | None = None

    def apply(self, directive: str) -> RotationPolicy:
        """Return the policy updated by one directive line (unknown ones ignored)."""
        words = directive.split()
        key = words[0].lower()
        if key in ROTATION_PATTERNS:
            return replace(self, pattern=key)
        if key == "rotate" and len(words) > 1 and words[1].isdigit():
            return replace(self, keep=int(words[1]))
        if key == "compress":
            return replace(self, compress=True)
        if key == "nocompress":
            return replace(self, compress=False)
        return self


@dataclass(frozen=True, slots=True)
class LogRotationInfo:
    system: str  # logrotate|systemd|none
    active: bool
    config_path: str | None = None
    configured_files: tuple[ConfiguredLogFile, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "system": self.system,
            "active": self.active,
            "config_path": self.config_path,
            "configured_files": [f.to_dict() for f in self.configured_files],
        }


def _accept_include(name: str) -> bool:
    return not name.startswith(".") and not name.endswith(TABOO_SUFFIXES)


def _split_paths(text: str) -> list[str]:
    try:
        words = shlex.split(text)
    except ValueError:
        words = text.split()
    return [w for w in words if w.startswith("/")]


def _block_files(paths: list[str], policy: RotationPolicy) -> list[ConfiguredLogFile]:
    return [
        ConfiguredLogFile(
            path=path,
            type=log_type_for_path(path),
            rotation_pattern=policy.pattern,
            keep_days=policy.keep,
            compress=policy.compress,
        )
        for path in paths
    ]


async def parse_logrotate_config(
    config_path: str,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
    visited: frozenset[str] = frozenset(),
    defaults: RotationPolicy | None = None,
) -> list[ConfiguredLogFile]:
    """Parse one logrotate config (following ``include``) into configured files."""
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    if config_path in visited:
        logger.debug("Skipping already visited logrotate config %s", config_path)
        return []
    visited = visited | {config_path}

    text = await read_config(config_path, fs, translator)
    if text is None:
        return []

    results: list[ConfiguredLogFile] = []
    policy = defaults or RotationPolicy()
    block_paths: list[str] | None = None
    block_policy = policy
    pending: list[str] = []
    in_script = False

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if in_script:
            if line == "endscript":
                in_script = False
            continue

        if block_paths is not None:
            if line == "}":
                results.extend(_block_files(block_paths, block_policy))
                block_paths = None
            elif line.split()[0].lower() in SCRIPT_DIRECTIVES:
                in_script = True
            else:
                block_policy = block_policy.apply(line)
            continue

        if line.endswith("{"):
            block_paths = pending + _split_paths(line[:-1])
            block_policy = policy
            pending = []
            continue

        words = line.split()
        if words[0] == "include" and len(words) > 1:
            target = words[1]
            if not target.startswith("/"):
                target = posixpath.join(posixpath.dirname(config_path), target)
            for included in await expand_include(target, fs, translator, accept=_accept_include):
                results.extend(
                    await parse_logrotate_config(
                        included,
                        fs=fs,
                        translator=translator,
                        visited=visited,
                        defaults=policy,
                    )
                )
            continue

        if line.startswith(("/", '"', "'")):
            pending.extend(_split_paths(line))
            continue

        policy = policy.apply(line)

    if block_paths is not None:
        logger.debug("Unterminated block in %s: %s", config_path, " ".join(block_paths))
        results.extend(_block_files(block_paths, block_policy))
    return merge_configured_files(results)


async def _first_existing(
    paths: tuple[str, ...], fs: FileSystem, translator: PathTranslator
) -> str | None:
    for path in paths:
        if await fs.exists(translator.to_local(path)):
            return path
    return None


async def detect_log_rotation(
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
) -> LogRotationInfo:
    """Find which rotation mechanism the host uses and what logrotate manages."""
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()

    binary = await _first_existing(LOGROTATE_BINARIES, fs, translator)
    config = await _first_existing((LOGROTATE_CONFIG,), fs, translator)
    if binary is not None or config is not None:
        files: list[ConfiguredLogFile] = []
        if config is not None:
            files = await parse_logrotate_config(config, fs=fs, translator=translator)
        elif await fs.exists(translator.to_local(LOGROTATE_DIR)):
            files = await parse_logrotate_config_dir(LOGROTATE_DIR, fs=fs, translator=translator)
        return LogRotationInfo(
            system="logrotate",
            active=binary is not None,
            config_path=config,
            configured_files=tuple(files),
        )

    if await _first_existing(SYSTEMD_MARKERS, fs, translator) is not None:
        return LogRotationInfo(system="systemd", active=True)
    return LogRotationInfo(system="none", active=False)


async def parse_logrotate_config_dir(
    directory: str,
    *,
    fs: FileSystem | None = None,
    translator: PathTranslator | None = None,
) -> list[ConfiguredLogFile]:
    """Parse every snippet in a logrotate.d-style directory."""
    fs = fs or LocalFileSystem()
    translator = translator or PathTranslator()
    results: list[ConfiguredLogFile] = []
    for target in await expand_include(directory, fs, translator, accept=_accept_include):
        results.extend(await parse_logrotate_config(target, fs=fs, translator=translator))
    return merge_configured_files(results)
