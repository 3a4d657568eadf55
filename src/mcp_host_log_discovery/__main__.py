"""Module entrypoint.

Allows:
    python -m mcp_host_log_discovery
"""

from __future__ import annotations

from mcp_host_log_discovery.server.log_server import main

if __name__ == "__main__":
    main()
