"""Log output for the monday.com toolkit.

Records under the ``monday_mcp`` logger go to stderr, either as one JSON
object per line or as plain text. stdout is reserved for the stdio MCP
transport. Tool calls attach ``tool_name``, ``duration_ms`` and
``is_error`` through ``extra``; API calls attach ``operation``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "monday_mcp"

CONTEXT_FIELDS = ("tool_name", "operation", "duration_ms", "is_error", "api_version")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        )

        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["error"] = str(exc)
            entry["error_type"] = type(exc).__name__

        return json.dumps(entry, default=str)


def _formatter(json_output: bool) -> logging.Formatter:
    return StructuredFormatter() if json_output else logging.Formatter(PLAIN_FORMAT)


def configure_toolkit_logging(
    level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Route ``monday_mcp`` records to stderr.

    Calling it again reuses the installed handler and applies the new
    level and format to it.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR). Unknown names mean INFO.
        json_output: JSON lines when True, plain text otherwise.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    if package_logger.handlers:
        handler = package_logger.handlers[0]
    else:
        handler = logging.StreamHandler(sys.stderr)
        package_logger.addHandler(handler)

    handler.setLevel(log_level)
    handler.setFormatter(_formatter(json_output))
