"""MCP server for projectmemory.

Exposes project memory to AI coding agents via the Model Context Protocol:
load the project's decisions/attempts/blockers at the start of a session,
check a proposed fix against what has already been tried, and log new attempts.

Usage:
    projectmemory serve [--project-dir /path/to/project]
    uv run python -m projectmemory.mcp_server [--project-dir /path/to/project]

Configure in Claude Code (.mcp.json):
    {
      "mcpServers": {
        "projectmemory": {
          "command": "projectmemory",
          "args": ["serve"],
          "env": {"PROJECTMEMORY_PROJECT_DIR": "/path/to/project"}
        }
      }
    }
"""

from __future__ import annotations

import json
import os
import sys
import time
from pathlib import Path

import mcp.server.stdio
import mcp.types as types
from mcp.server import Server

from projectmemory.activity import log_tool_call
from projectmemory.config import Config
from projectmemory.context.formatter import format_context_for_prompt
from projectmemory.context.loader import ContextLoader, MissingProjectStateError
from projectmemory.storage.cache import SessionStore
from projectmemory.storage.files import ProjectFiles
from projectmemory.tracking.attempts import AttemptTracker


def _resolve_project_dir() -> Path:
    """Find the project, checking CLI args, env var, then current directory."""
    for i, arg in enumerate(sys.argv):
        if arg == "--project-dir" and i + 1 < len(sys.argv):
            return Path(sys.argv[i + 1])

    env_dir = os.getenv("PROJECTMEMORY_PROJECT_DIR")
    if env_dir:
        return Path(env_dir)

    return Path(".")


CONFIG = Config.load()
PROJECT_DIR = _resolve_project_dir()
SESSIONS = SessionStore()
TRACKER = AttemptTracker.from_config(CONFIG)
# Project each session was loaded from; log_attempt persists there
SESSION_FILES: dict[str, ProjectFiles] = {}

server = Server("projectmemory")


def _files(project_path: str | None = None) -> ProjectFiles:
    return ProjectFiles(Path(project_path) if project_path else PROJECT_DIR, CONFIG)


def _text(payload: dict | str) -> list[types.TextContent]:
    if isinstance(payload, str):
        return [types.TextContent(type="text", text=payload)]
    return [types.TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


_SESSION_PROPERTY = {
    "type": "string",
    "description": "Session ID returned by load_context",
}


@server.list_tools()
async def list_tools() -> list[types.Tool]:
    return [
        types.Tool(
            name="load_context",
            description=(
                "IMPORTANT: Call this at the START of every session, before proposing changes. "
                "Loads the project's recorded decisions, recent work, failed approaches and "
                "active blockers, and returns them as prompt-ready context plus a session ID "
                "for the other tools."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": {
                        "type": "string",
                        "description": "Optional: reuse an existing session ID",
                    },
                    "project_path": {
                        "type": "string",
                        "description": "Optional: project root (defaults to the configured project)",
                    },
                },
            },
        ),
        types.Tool(
            name="check_approach",
            description=(
                "Call this BEFORE trying a fix. Checks whether a similar approach was "
                "already tried for the same issue. Returns whether it failed before (do not "
                "retry), worked before (reuse it), or any lessons learned from earlier attempts."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": _SESSION_PROPERTY,
                    "issue": {"type": "string", "description": "The problem being solved"},
                    "proposed_approach": {
                        "type": "string",
                        "description": "What you plan to try",
                    },
                },
                "required": ["session_id", "issue", "proposed_approach"],
            },
        ),
        types.Tool(
            name="log_attempt",
            description=(
                "Call this AFTER trying a fix to record whether it worked. Failed approaches "
                "are flagged if proposed again, in this session and, with persist=true, in "
                "future sessions via ATTEMPTS.md."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": _SESSION_PROPERTY,
                    "issue": {"type": "string", "description": "The problem being solved"},
                    "approach": {"type": "string", "description": "What was tried"},
                    "code_or_command": {
                        "type": "string",
                        "description": "The code or command that was run",
                    },
                    "result": {
                        "type": "string",
                        "enum": ["success", "failure", "partial"],
                    },
                    "error_message": {"type": "string"},
                    "lessons_learned": {"type": "string"},
                    "persist": {
                        "type": "boolean",
                        "description": "Also write the attempt to ATTEMPTS.md (default true)",
                    },
                },
                "required": ["session_id", "issue", "approach", "result"],
            },
        ),
        types.Tool(
            name="get_failed_attempts",
            description=(
                "List approaches that already failed for an issue, formatted for the prompt."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": _SESSION_PROPERTY,
                    "issue": {"type": "string"},
                },
                "required": ["session_id", "issue"],
            },
        ),
        types.Tool(
            name="suggest_alternatives",
            description=(
                "Suggest untried directions for an issue based on how earlier attempts failed."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": _SESSION_PROPERTY,
                    "issue": {"type": "string"},
                },
                "required": ["session_id", "issue"],
            },
        ),
        types.Tool(
            name="clear_session",
            description="Drop the cached context and attempt buffer for a session.",
            inputSchema={
                "type": "object",
                "properties": {"session_id": _SESSION_PROPERTY},
                "required": ["session_id"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[types.TextContent]:
    start = time.time()
    result: list[types.TextContent] = []
    error: str | None = None
    try:
        result = _dispatch_tool(name, arguments)
        return result
    except MissingProjectStateError as e:
        error = str(e)
        result = _text(f"No project context loaded: {e}")
        return result
    except Exception as e:
        error = str(e)
        result = _text(f"Error: {e}")
        return result
    finally:
        duration_ms = int((time.time() - start) * 1000)
        result_text = result[0].text if result else ""
        log_tool_call(name, arguments, result_text, error, duration_ms, project_dir=PROJECT_DIR)


def _dispatch_tool(name: str, arguments: dict) -> list[types.TextContent]:
    """Route a tool call to the appropriate handler."""
    if name == "load_context":
        return _handle_load_context(arguments.get("session_id"), arguments.get("project_path"))
    elif name == "check_approach":
        return _handle_check_approach(
            arguments["session_id"], arguments["issue"], arguments["proposed_approach"]
        )
    elif name == "log_attempt":
        return _handle_log_attempt(arguments)
    elif name == "get_failed_attempts":
        return _handle_failed_attempts(arguments["session_id"], arguments["issue"])
    elif name == "suggest_alternatives":
        return _handle_suggest(arguments["session_id"], arguments["issue"])
    elif name == "clear_session":
        SESSIONS.teardown(arguments["session_id"])
        SESSION_FILES.pop(arguments["session_id"], None)
        return _text({"success": True, "session_id": arguments["session_id"]})
    else:
        return _text(f"Unknown tool: {name}")


def _handle_load_context(
    session_id: str | None, project_path: str | None
) -> list[types.TextContent]:
    session = SESSIONS.init(session_id)
    files = _files(project_path)
    loader = ContextLoader(CONFIG, SESSIONS.contexts)
    loaded = loader.load_project(files, session)
    SESSION_FILES[session.session_id] = files
    context = loaded.context

    # The attempt buffer starts from the persisted history
    SESSIONS.attempts.clear(session)
    for attempt in context.recent_attempts:
        SESSIONS.attempts.add(session, attempt)

    return _text({
        "success": True,
        "session_id": session.session_id,
        "context": format_context_for_prompt(context),
        "warnings": loaded.warnings,
        "critical_decisions": [
            f"{d.decision}: {d.reasoning}"
            for d in context.decisions
            if d.impact in ("critical", "high")
        ],
        "failed_approaches": [
            f"{a.approach}: {a.error_message or 'Failed'}"
            for a in context.recent_attempts
            if a.result == "failure" and a.should_not_retry
        ],
        "active_blockers": [b.description for b in context.blockers],
    })


def _handle_check_approach(
    session_id: str, issue: str, proposed_approach: str
) -> list[types.TextContent]:
    attempts = SESSIONS.attempts.get(session_id)
    check = TRACKER.has_been_tried(issue, proposed_approach, attempts)

    previous = check.previous_attempt
    if check.already_tried and previous is not None and previous.result == "failure":
        return _text({
            "proceed": False,
            "warning": "SIMILAR APPROACH TRIED BEFORE",
            "previous_attempt": {
                "approach": previous.approach,
                "result": previous.result,
                "error": previous.error_message,
            },
            "recommendation": check.recommendation,
            "suggested_alternatives": TRACKER.suggest_alternatives(issue, attempts),
        })

    return _text({
        "proceed": True,
        "already_tried": check.already_tried,
        "recommendation": check.recommendation,
    })


def _handle_log_attempt(arguments: dict) -> list[types.TextContent]:
    session_id = arguments["session_id"]
    attempt = TRACKER.create_attempt(
        issue=arguments["issue"],
        approach=arguments["approach"],
        code_or_command=arguments.get("code_or_command", ""),
        result=arguments["result"],
        error_message=arguments.get("error_message"),
        lessons_learned=arguments.get("lessons_learned"),
    )

    previous = TRACKER.has_been_tried(
        attempt.issue, attempt.approach, SESSIONS.attempts.get(session_id)
    )
    SESSIONS.attempts.add(session_id, attempt)

    written_to = None
    if arguments.get("persist", True):
        files = SESSION_FILES.get(session_id) or _files()
        written_to = str(files.append_attempts([attempt]))

    payload: dict = {
        "success": True,
        "attempt_id": attempt.id,
        "was_already_tried": previous.already_tried,
        "should_not_retry": attempt.should_not_retry,
        "written_to": written_to,
    }
    if attempt.result != "success":
        alternatives = TRACKER.suggest_alternatives(
            attempt.issue, SESSIONS.attempts.get(session_id)
        )
        payload["suggested_alternatives"] = alternatives
        payload["recommendation"] = (
            f"Try: {alternatives[0]}" if alternatives else "Consider asking the user for help."
        )
    return _text(payload)


def _handle_failed_attempts(session_id: str, issue: str) -> list[types.TextContent]:
    rendered = TRACKER.format_for_prompt(issue, SESSIONS.attempts.get(session_id))
    return _text(rendered or f"No failed attempts recorded for: {issue}")


def _handle_suggest(session_id: str, issue: str) -> list[types.TextContent]:
    suggestions = TRACKER.suggest_alternatives(issue, SESSIONS.attempts.get(session_id))
    return _text({"issue": issue, "suggestions": suggestions})


async def main(project_dir: Path | None = None) -> None:
    global PROJECT_DIR
    if project_dir is not None:
        PROJECT_DIR = project_dir
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
