"""Kernel ring-buffer log parser (kern.log)."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from ..models import LogLevel, ParsedLogEntry
from .base import (
    build_entry,
    compile_level_rules,
    first_match,
    infer_level,
    raw_entry,
    split_syslog_line,
)

_UPTIME_RE = re.compile(r"^\[\s*(\d+(?:\.\d+)?)\]\s*")
_INTERFACE_RE = re.compile(r"\b(docker\d+|br-[0-9a-f]+|veth[0-9a-f]+|eth\d+|enp\w+|wlan\d+|wlp\w+)\b")


@dataclass(frozen=True, slots=True)
class KernLogParser:
    """Parse kernel lines, separating the uptime stamp from the message."""

    _levels = compile_level_rules(
        (
            (LogLevel.ERROR, ("error", "panic", "oops", "bug:", "call trace")),
            (LogLevel.WARNING, ("warning", "warn")),
            (LogLevel.DEBUG, ("debug",)),
        )
    )

    _components = (
        ("perf", re.compile(r"\bperf:", re.IGNORECASE)),
        ("CPU", re.compile(r"\b(?:cpu\d*|smpboot|microcode)\b", re.IGNORECASE)),
        ("Memory", re.compile(r"\b(?:memory|oom|out of memory|page allocation)\b", re.IGNORECASE)),
        ("Disk", re.compile(r"\b(?:sd[a-z]\d*|nvme\d+n\d+|ata\d+|ext4-fs|xfs|blk_update_request)\b", re.IGNORECASE)),
        ("Network", re.compile(r"\b(?:net|tcp|ip_tables|nf_conntrack|netfilter|link is (?:up|down))\b", re.IGNORECASE)),
        ("USB", re.compile(r"\busb\b", re.IGNORECASE)),
        ("PCI", re.compile(r"\bpci\b", re.IGNORECASE)),
        ("ACPI", re.compile(r"\bacpi\b", re.IGNORECASE)),
        ("Thermal", re.compile(r"\bthermal\b", re.IGNORECASE)),
    )

    @classmethod
    def component_for(cls, message: str) -> str | None:
        """Best-effort subsystem name for a kernel message."""
        m = _INTERFACE_RE.search(message)
        if m:
            return m.group(1)
        return first_match(message, cls._components)

    def match_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        parts = split_syslog_line(line)
        if parts is None:
            return None

        message = parts.message.strip()
        uptime: float | None = None
        m = _UPTIME_RE.match(message)
        if m:
            uptime = float(m.group(1))
            message = message[m.end() :]
        parts = replace(parts, message=message)

        return build_entry(
            parts,
            line,
            infer_level(message, self._levels),
            kernel_timestamp=uptime,
            component=self.component_for(message),
        )

    def parse_line(self, line: str) -> ParsedLogEntry | None:
        if not line.strip():
            return None
        return self.match_line(line) or raw_entry(line)
