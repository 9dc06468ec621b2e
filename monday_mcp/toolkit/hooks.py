"""Guardrail hooks for agents using the monday.com tools.

Implements audit logging and read-only enforcement using the Claude
Agent SDK hooks system.

- Audit logs include input hashes and a truncated input summary
- Read-only mode blocks write tools even when they were registered
"""

import asyncio
import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any

from claude_agent_sdk import HookMatcher

from monday_mcp.toolkit.config import env_flag
from monday_mcp.toolkit.tools import SERVER_NAME, WRITE_TOOLS

logger = logging.getLogger("monday_mcp.toolkit.hooks")

# --- Configuration ---

AUDIT_LOG_PATH = os.getenv(
    "MONDAY_AGENT_AUDIT_LOG",
    os.path.expanduser("~/.monday-mcp/agent-audit.jsonl"),
)

TOOL_PREFIX = f"mcp__{SERVER_NAME}__"

_WRITE_TOOL_NAMES = {TOOL_PREFIX + name for name in WRITE_TOOLS}

SUMMARY_VALUE_LIMIT = 200


# --- Denial Helper ---


def _deny(reason: str, event_name: str = "PreToolUse") -> dict[str, Any]:
    """Return a hook denial response."""
    return {
        "hookSpecificOutput": {
            "hookEventName": event_name,
            "permissionDecision": "deny",
            "permissionDecisionReason": reason,
        }
    }


# --- Hook: Read-only Enforcement ---


async def enforce_read_only(
    input_data: dict[str, Any],
    tool_use_id: str | None,
    context: Any,
) -> dict[str, Any]:
    """Block write tools while MONDAY_READ_ONLY is set.

    The flag is read on every call so it can be flipped at runtime.
    """
    if not env_flag("MONDAY_READ_ONLY"):
        return {}

    tool_name = input_data.get("tool_name", "")
    if tool_name in _WRITE_TOOL_NAMES:
        logger.warning("Blocked %s: read-only mode", tool_name)
        return _deny(
            f"{tool_name} modifies monday.com data and the agent is running in read-only mode.",
            input_data.get("hook_event_name", "PreToolUse"),
        )
    return {}


# --- Hook: Audit Logger ---

_audit_logger: logging.Logger | None = None
_audit_lock = asyncio.Lock()


def _get_audit_logger() -> logging.Logger:
    """Get or create a dedicated audit logger with rotation."""
    global _audit_logger
    if _audit_logger is not None:
        return _audit_logger

    log_dir = os.path.dirname(AUDIT_LOG_PATH)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    _audit_logger = logging.getLogger("monday_mcp.audit")
    _audit_logger.setLevel(logging.INFO)
    _audit_logger.propagate = False

    handler = RotatingFileHandler(
        AUDIT_LOG_PATH,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)

    return _audit_logger


def _hash_input(data: dict[str, Any]) -> str:
    """SHA-256 prefix of the canonical tool input."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]


def _summarize_input(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value if len(str(value)) < SUMMARY_VALUE_LIMIT else str(value)[:SUMMARY_VALUE_LIMIT] + "..."
        for key, value in data.items()
    }


async def audit_log_tool_call(
    input_data: dict[str, Any],
    tool_use_id: str | None,
    context: Any,
) -> dict[str, Any]:
    """Log every tool call to the audit trail."""
    tool_input = input_data.get("tool_input") or {}
    entry = {
        "event": "tool_call",
        "tool": input_data.get("tool_name", "unknown"),
        "tool_use_id": tool_use_id,
        "input_hash": _hash_input(tool_input),
        "input_summary": _summarize_input(tool_input),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    async with _audit_lock:
        _get_audit_logger().info(json.dumps(entry))

    return {}


async def audit_log_tool_result(
    input_data: dict[str, Any],
    tool_use_id: str | None,
    context: Any,
) -> dict[str, Any]:
    """Log tool results for observability."""
    entry = {
        "event": "tool_result",
        "tool": input_data.get("tool_name", "unknown"),
        "tool_use_id": tool_use_id,
        "is_error": input_data.get("is_error", False),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    async with _audit_lock:
        _get_audit_logger().info(json.dumps(entry))

    return {}


# --- Test Helpers ---


def reset_audit_logger() -> None:
    """Detach the audit logger so the next call reopens AUDIT_LOG_PATH. For testing only."""
    global _audit_logger
    if _audit_logger is not None:
        for handler in list(_audit_logger.handlers):
            handler.close()
            _audit_logger.removeHandler(handler)
    _audit_logger = None


# --- Assembled Hook Configuration ---


def monday_hooks() -> dict[str, list[HookMatcher]]:
    """Return the hook configuration for agents using the monday.com tools.

    Hook execution order for PreToolUse:
    1. Audit log (records every attempt)
    2. Read-only enforcement (blocks write tools)
    """
    return {
        "PreToolUse": [
            HookMatcher(matcher=".*", hooks=[audit_log_tool_call]),
            HookMatcher(matcher=f"{TOOL_PREFIX}.*", hooks=[enforce_read_only]),
        ],
        "PostToolUse": [
            HookMatcher(matcher=".*", hooks=[audit_log_tool_result]),
        ],
    }
