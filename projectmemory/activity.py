"""Activity logging for MCP tool calls.

Logs every MCP tool invocation to a JSONL file so humans can see which
attempts were checked and logged by their AI agent. Each line is a JSON object
with timestamp, tool name, session id, arguments, result preview, and duration.

The log file lives in the project directory by default.
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path

RESULT_PREVIEW_LIMIT = 500
DEFAULT_LOG_NAME = "projectmemory-activity.jsonl"


def _resolve_log_path(project_dir: Path | None = None) -> Path:
    """Find the log file path, checking env var then defaulting to the project dir."""
    env_path = os.getenv("PROJECTMEMORY_LOG_PATH")
    if env_path:
        return Path(env_path)

    if project_dir is None:
        project_dir = Path(os.getenv("PROJECTMEMORY_PROJECT_DIR", "."))
    return Path(project_dir) / DEFAULT_LOG_NAME


def log_tool_call(
    tool_name: str,
    arguments: dict,
    result_text: str,
    error: str | None,
    duration_ms: int,
    project_dir: Path | None = None,
) -> None:
    """Append a tool call entry to the activity log. Never raises."""
    try:
        entry = {
            "timestamp": datetime.now().isoformat(),
            "tool_name": tool_name,
            "session_id": arguments.get("session_id"),
            "arguments": arguments,
            "result_preview": result_text[:RESULT_PREVIEW_LIMIT] if result_text else "",
            "error": error,
            "duration_ms": duration_ms,
        }
        log_path = _resolve_log_path(project_dir)
        with open(log_path, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")
    except Exception:
        pass  # Never crash the MCP server for logging


def read_activity_log(
    limit: int = 20,
    tool_name: str | None = None,
    session_id: str | None = None,
    log_path: Path | None = None,
    project_dir: Path | None = None,
) -> list[dict]:
    """Read recent activity log entries.

    Returns entries in reverse chronological order (most recent first).
    """
    path = log_path or _resolve_log_path(project_dir)
    if not path.exists():
        return []

    entries: list[dict] = []
    for line in path.read_text().splitlines():
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue

        if tool_name and entry.get("tool_name") != tool_name:
            continue
        if session_id and entry.get("session_id") != session_id:
            continue

        entries.append(entry)

    entries.reverse()
    return entries[:limit]
