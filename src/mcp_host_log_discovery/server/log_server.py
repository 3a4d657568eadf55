"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: discovery, format detection and line parsing
- Resources: help text, the pattern library and the output schema

Run locally (stdio):
    python -m mcp_host_log_discovery.server.log_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_host_log_discovery.resources.registry import register_resources
from mcp_host_log_discovery.tools.discovery import (
    detect_log_format_impl,
    detect_logging_services_impl,
    discover_host_logs_impl,
    parse_log_lines_impl,
)

LOGGER = logging.getLogger(__name__)
LOG_LEVEL_ENV = "HOST_LOGS_LOG_LEVEL"


def _configure_logging() -> None:
    """Log to stderr; stdout carries the stdio transport."""
    level_name = os.getenv(LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("host-log-discovery", json_response=True)

register_resources(mcp)


@mcp.tool()
async def discover_host_logs(
    base_path: str | None = None,
    patterns: list[str] | None = None,
    exclude_files: list[str] | None = None,
    exclude_directories: list[str] | None = None,
    host_root: str | None = None,
    max_workers: int | None = None,
    file_timeout: float | None = None,
) -> dict[str, Any]:
    """Detect the host's logging setup and classify its log files.

    Parameters
    ----------
    base_path:
        Host directory to scan (one level, not recursive). Default: /var/log.
    patterns:
        File-name globs (e.g., ["*.log", "syslog*"]). Default: per-distribution list.
    exclude_files/exclude_directories:
        Globs for file names or parent directory names to skip.
    host_root:
        Where the host filesystem is mounted (e.g., /host). Default: $HOST_ROOT_PATH.
    max_workers:
        Concurrent file classifications. Default: $HOST_LOGS_MAX_WORKERS or CPU count.
    file_timeout:
        Seconds allowed per file before it is reported as failed.

    Returns
    -------
    dict:
        {"os", "services", "primary_service", "rotation", "scanned_files", "classification"}
        where classification holds system_base_files, auto_detected_files,
        custom_files and failed_files.
    """
    return await discover_host_logs_impl(
        base_path=base_path,
        patterns=patterns,
        exclude_files=exclude_files,
        exclude_directories=exclude_directories,
        host_root=host_root,
        max_workers=max_workers,
        file_timeout=file_timeout,
    )


@mcp.tool()
async def detect_log_format(
    log_path: str,
    sample_lines: int = 50,
    validate: bool = True,
    include_scores: bool = False,
    host_root: str | None = None,
) -> dict[str, Any]:
    """Detect the format of one log file from a sample of its first lines.

    Parameters
    ----------
    log_path:
        Host path of the file. Plain text, .gz, .bz2 and .xz are supported.
    sample_lines:
        Lines sampled for detection (capped at 1000).
    validate:
        Re-test the winning pattern on a 100-line sample.
    include_scores:
        Also return the confidence of every library pattern.

    Returns
    -------
    dict:
        {"format", "confidence", "parser_type", "pattern_name", "sample_matches",
        "total_samples", "validated"?, "scores"?}
    """
    return await detect_log_format_impl(
        log_path=log_path,
        sample_lines=sample_lines,
        validate=validate,
        include_scores=include_scores,
        host_root=host_root,
    )


@mcp.tool()
def parse_log_lines(
    lines: list[str],
    log_type: str = "syslog",
    limit: int | None = None,
    custom_regex: str | None = None,
    custom_groups: dict[str, int] | None = None,
    level_mapping: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Parse raw log lines into structured entries.

    Parameters
    ----------
    lines:
        Raw lines. Blank lines are skipped; JSON lines are read as journald exports.
    log_type:
        syslog, auth, kern, daemon, mail, cron, user, journald or custom.
    limit:
        Maximum number of entries returned (hard-capped in the implementation).
    custom_regex/custom_groups/level_mapping:
        A user-supplied pattern: the regex, field name -> group index, and raw
        level text -> error|warning|info|debug. Setting custom_regex implies custom.

    Returns
    -------
    dict:
        {"count": int, "log_type": str, "entries": list[dict]}
    """
    return parse_log_lines_impl(
        lines=lines,
        log_type=log_type,
        limit=limit,
        custom_regex=custom_regex,
        custom_groups=custom_groups,
        level_mapping=level_mapping,
    )


@mcp.tool()
async def detect_logging_services(host_root: str | None = None) -> dict[str, Any]:
    """Report the distribution, logging daemons and rotation setup of the host.

    Returns
    -------
    dict:
        {"os", "services", "primary_service", "rotation"}
    """
    return await detect_logging_services_impl(host_root=host_root)


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
