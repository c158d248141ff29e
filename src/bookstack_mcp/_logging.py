"""Logging setup for bookstack-mcp.

Modules log through ``logging.getLogger(__name__)``; this module attaches a
single stderr handler to the ``bookstack_mcp`` logger. stdout is reserved for
the MCP stdio transport, so nothing may be logged there.

Levels in use:
    DEBUG    outgoing API requests
    INFO     tool calls, completed writes, duplicate-check outcomes
    WARNING  duplicate checks that failed and were skipped
    ERROR    BookStack API errors

BOOKSTACK_MCP_LOG_LEVEL selects the level (default INFO).
"""

import logging
import os
import sys

PACKAGE_LOGGER = "bookstack_mcp"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach the stderr handler to the package logger.

    ``level`` overrides BOOKSTACK_MCP_LOG_LEVEL. Only the first call installs a
    handler; later calls just adjust the level.
    """
    level_name = (level or os.environ.get("BOOKSTACK_MCP_LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(level_name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolved)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
