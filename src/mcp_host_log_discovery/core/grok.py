"""Grok-style pattern compiler.

Templates use ``%{MACRO}`` / ``%{MACRO:capture}`` references. Composite macros are
rewritten into base macros by a flat rule table (applied iteratively, with a hard
pass limit), then base macros are replaced by their regular-expression fragments
and the whole expression is anchored.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache

logger = logging.getLogger(__name__)

MAX_EXPANSION_PASSES = 10

BASE_PATTERNS: dict[str, str] = {
    "MONTH": r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)",
    "MONTHDAY": r"\d{1,2}",
    "TIME": r"\d{2}:\d{2}:\d{2}",
    "HOSTNAME": r"[\w\-.]+",
    "IPV4": r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}",
    "IPV6": r"(?:[0-9a-fA-F]{0,4}:){2,7}[0-9a-fA-F]{0,4}",
    "PROG": r"[\w\-./]+",
    "POSINT": r"\d+",
    "INT": r"[+-]?\d+",
    "NUMBER": r"[+-]?\d+(?:\.\d+)?",
    "USER": r"[a-zA-Z_][a-zA-Z0-9_\-.$]*",
    "WORD": r"\w+",
    "NOTSPACE": r"\S+",
    "DATA": r".*?",
    "GREEDYDATA": r".*",
    "QS": r'"(?:[^"\\]|\\.)*"',
    "HTTPDATE": r"\d{2}/\w{3}/\d{4}:\d{2}:\d{2}:\d{2} [+-]\d{4}",
    "TIMESTAMP_ISO8601": (
        r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?"
    ),
    "LOGLEVEL": (
        r"(?i:emerg(?:ency)?|alert|crit(?:ical)?|err(?:or)?|warn(?:ing)?"
        r"|notice|info|debug|trace|fatal)"
    ),
}

# ``{name}`` is replaced by the capture name of the reference being rewritten.
COMPOSITE_RULES: dict[str, str] = {
    "SYSLOGTIMESTAMP": "%{MONTH:{name}_month} +%{MONTHDAY:{name}_day} +%{TIME:{name}_time}",
    "IPORHOST": "(?:%{IP:{name}_ip}|%{HOSTNAME:{name}_hostname})",
    "IP": "(?:%{IPV4:{name}_ipv4}|%{IPV6:{name}_ipv6})",
    "PID": r"(?:\[%{POSINT:{name}}\])?",
    "PROGRAM": "%{PROG:{name}}",
    "USERNAME": "%{USER:{name}}",
    "PRIORITY": "<%{POSINT:{name}}>",
}

SYSLOGBASE = (
    "%{SYSLOGTIMESTAMP:timestamp} %{IPORHOST:hostname} "
    "%{PROGRAM:program}%{PID:pid}: %{GREEDYDATA:message}"
)
SYSLOG_WITH_PRIORITY = "<%{POSINT:priority}>" + SYSLOGBASE
COMMON_ACCESS_LOG = (
    r"%{IPORHOST:client} %{NOTSPACE:ident} %{NOTSPACE:auth} \[%{HTTPDATE:timestamp}\] "
    r'"%{WORD:method} %{NOTSPACE:request}(?: HTTP/%{NUMBER:http_version})?" '
    r"%{NUMBER:status} (?:%{NUMBER:bytes}|-)"
)
COMBINED_ACCESS_LOG = COMMON_ACCESS_LOG + " %{QS:referrer} %{QS:agent}"

NEVER_MATCH = r"(?!)"

_MACRO_RE = re.compile(r"%\{(\w+)(?::(\w+))?\}")
_CAPTURE_RE = re.compile(r"%\{\w+:(\w+)\}")
_ANON_CAPTURE_RE = re.compile(r":\{name\}\w*")
_SPACE_MARK = "\x00"


class UnknownMacroError(ValueError):
    """Raised internally when a template references an undefined macro."""


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """Anchored regular expression compiled from a grok template."""

    source_template: str
    capture_names: tuple[str, ...]
    regex: re.Pattern[str]
    groups: tuple[tuple[str, str], ...]  # (regex group name, capture name)
    valid: bool = True

    def match(self, line: str) -> dict[str, str] | None:
        """Return captured values keyed by the template's capture names."""
        m = self.regex.match(line)
        if m is None:
            return None

        out: dict[str, str] = {}
        own = set(self.capture_names)
        for name in self.capture_names:
            direct: str | None = None
            parts: list[str] = []
            prefix = f"{name}_"
            for group_name, logical in self.groups:
                value = m.group(group_name)
                if value is None:
                    continue
                if logical == name:
                    if direct is None:
                        direct = value
                elif logical.startswith(prefix) and logical not in own:
                    parts.append(value)
            if direct is not None:
                out[name] = direct
            elif parts:
                out[name] = " ".join(parts)
        return out


@dataclass(frozen=True, slots=True)
class GrokTemplate:
    name: str
    template: str

    def compile(self) -> CompiledPattern:
        return compile_grok(self.template)

    def parse(self, line: str) -> dict[str, str] | None:
        return self.compile().match(line)


def capture_names(template: str) -> tuple[str, ...]:
    """Ordered, de-duplicated capture names of a template (before expansion)."""
    seen: dict[str, None] = {}
    for name in _CAPTURE_RE.findall(template):
        seen.setdefault(name, None)
    return tuple(seen)


def _rewrite_composite(m: re.Match[str]) -> str:
    macro, name = m.group(1), m.group(2)
    rule = COMPOSITE_RULES.get(macro)
    if rule is None:
        return m.group(0)
    if name is None:
        return _ANON_CAPTURE_RE.sub("", rule)
    return rule.replace("{name}", name)


def expand_composites(template: str) -> str:
    """Rewrite composite macros until only base macros remain."""
    current = template
    for _ in range(MAX_EXPANSION_PASSES):
        expanded = _MACRO_RE.sub(_rewrite_composite, current)
        if expanded == current:
            return current
        current = expanded

    leftover = [m.group(1) for m in _MACRO_RE.finditer(current) if m.group(1) in COMPOSITE_RULES]
    if leftover:
        raise UnknownMacroError(f"composite expansion did not settle: {leftover[0]}")
    return current


def _collapse_whitespace(expr: str) -> str:
    """Turn literal whitespace runs into ``\\s+`` without doubling ``' +'`` separators."""
    expr = re.sub(r"\s+\+", _SPACE_MARK, expr)
    expr = re.sub(r"\s+", lambda _m: r"\s+", expr)
    return expr.replace(_SPACE_MARK, r"\s+")


def _substitute_base(expr: str) -> tuple[str, tuple[tuple[str, str], ...]]:
    groups: list[tuple[str, str]] = []
    used: dict[str, int] = {}

    def repl(m: re.Match[str]) -> str:
        macro, name = m.group(1), m.group(2)
        fragment = BASE_PATTERNS.get(macro)
        if fragment is None:
            raise UnknownMacroError(f"unknown grok macro: {macro}")
        if name is None:
            return f"(?:{fragment})"

        group_name = name if name.isidentifier() else f"_{name}"
        count = used.get(group_name, 0) + 1
        used[group_name] = count
        if count > 1:
            group_name = f"{group_name}__{count}"
        groups.append((group_name, name))
        return f"(?P<{group_name}>{fragment})"

    return _MACRO_RE.sub(repl, expr), tuple(groups)


def _never_matching(template: str) -> CompiledPattern:
    return CompiledPattern(
        source_template=template,
        capture_names=capture_names(template),
        regex=re.compile(NEVER_MATCH),
        groups=(),
        valid=False,
    )


@lru_cache(maxsize=256)
def compile_grok(template: str) -> CompiledPattern:
    """Compile a template; unknown macros yield a pattern that never matches."""
    try:
        expanded = expand_composites(template)
        expr, groups = _substitute_base(_collapse_whitespace(expanded))
        regex = re.compile(f"^{expr}$")
    except (UnknownMacroError, re.error) as exc:
        logger.warning("Grok template failed to compile (%s): %s", exc, template)
        return _never_matching(template)

    return CompiledPattern(
        source_template=template,
        capture_names=capture_names(template),
        regex=regex,
        groups=groups,
    )


def parse_grok(line: str, template: str) -> dict[str, str] | None:
    """Match one line against a template; None when it does not match."""
    return compile_grok(template).match(line)


def build_syslog_pattern(with_priority: bool = False) -> GrokTemplate:
    if with_priority:
        return GrokTemplate("SYSLOG_WITH_PRIORITY", SYSLOG_WITH_PRIORITY)
    return GrokTemplate("SYSLOGBASE", SYSLOGBASE)
