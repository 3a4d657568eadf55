"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from mcp_host_log_discovery.core.grok import BASE_PATTERNS, COMPOSITE_RULES
from mcp_host_log_discovery.core.patterns import LOG_PATTERN_LIBRARY, pattern_by_name
from mcp_host_log_discovery.core.schemas import ClassificationResult
from mcp_host_log_discovery.core.settings import (
    BASE_PATH_ENV,
    FILE_TIMEOUT_ENV,
    HOST_ROOT_ENV,
    MAX_WORKERS_ENV,
)

URI_PREFIX = "app://host-log-discovery"


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource(f"{URI_PREFIX}/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs and settings."""
        return (
            "Resources:\n"
            f"- {URI_PREFIX}/help\n"
            f"- {URI_PREFIX}/patterns\n"
            f"- {URI_PREFIX}/patterns/{{name}}\n"
            f"- {URI_PREFIX}/grok-macros\n"
            f"- {URI_PREFIX}/schemas/classification\n"
            "\nEnvironment:\n"
            f"- {HOST_ROOT_ENV}: mount point of the host filesystem (default: none)\n"
            f"- {BASE_PATH_ENV}: directory scanned for logs (default: /var/log)\n"
            f"- {MAX_WORKERS_ENV}: concurrent file classifications\n"
            f"- {FILE_TIMEOUT_ENV}: seconds allowed per file (default: 5)\n"
        )

    @mcp.resource(f"{URI_PREFIX}/patterns")
    def patterns() -> list[dict[str, object]]:
        """Return the format library in detection order."""
        return [entry.to_dict() for entry in LOG_PATTERN_LIBRARY]

    @mcp.resource(f"{URI_PREFIX}/patterns/{{name}}")
    def pattern(name: str) -> dict[str, object]:
        """Return one library entry by name."""
        entry = pattern_by_name(name)
        if entry is None:
            valid = ", ".join(e.name for e in LOG_PATTERN_LIBRARY)
            raise ValueError(f"Unknown pattern '{name}'. Valid values: {valid}.")
        return entry.to_dict()

    @mcp.resource(f"{URI_PREFIX}/grok-macros")
    def grok_macros() -> dict[str, dict[str, str]]:
        """Return the base and composite grok macros."""
        return {"base": dict(BASE_PATTERNS), "composite": dict(COMPOSITE_RULES)}

    @mcp.resource(f"{URI_PREFIX}/schemas/classification")
    def classification_schema() -> dict[str, Any]:
        """Return the JSON schema for classification results."""
        return ClassificationResult.model_json_schema()
