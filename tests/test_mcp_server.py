"""Tests for projectmemory.mcp_server — tool handlers against a populated project."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from projectmemory import mcp_server
from projectmemory.extraction.attempts import parse_attempts
from projectmemory.storage.cache import SessionStore
from projectmemory.storage.files import ProjectFiles


def _call(name: str, arguments: dict):
    text = mcp_server._dispatch_tool(name, arguments)[0].text
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@pytest.fixture
def server(project_dir):
    """Point the module-level server state at a fresh store and the sample project."""
    with patch.object(mcp_server, "SESSIONS", SessionStore()), \
            patch.object(mcp_server, "SESSION_FILES", {}), \
            patch.object(mcp_server, "PROJECT_DIR", project_dir):
        yield mcp_server


class TestLoadContext:
    def test_returns_context_and_session(self, server):
        data = _call("load_context", {"session_id": "s1"})
        assert data["success"] is True
        assert data["session_id"] == "s1"
        assert data["context"].startswith("## PROJECT CONTEXT")
        assert data["active_blockers"] == ["Stripe webhook secret"]
        assert data["failed_approaches"] == ["kill process on port 3000: permission denied"]
        assert server.SESSIONS.contexts.has("s1")
        assert len(server.SESSIONS.attempts.get("s1")) == 3

    def test_generates_session_id(self, server):
        assert _call("load_context", {})["session_id"].startswith("session_")

    def test_missing_state_raises(self, server, tmp_path):
        with pytest.raises(mcp_server.MissingProjectStateError):
            _call("load_context", {"project_path": str(tmp_path / "empty")})
        assert not server.SESSIONS.contexts.has("s1")


class TestCheckApproach:
    def test_blocks_failed_approach(self, server):
        _call("load_context", {"session_id": "s1"})
        data = _call("check_approach", {
            "session_id": "s1",
            "issue": "port 3000 in use",
            "proposed_approach": "kill the process listening on port 3000",
        })
        assert data["proceed"] is False
        assert data["previous_attempt"]["error"] == "permission denied"
        assert data["suggested_alternatives"]

    def test_allows_new_approach(self, server):
        _call("load_context", {"session_id": "s1"})
        data = _call("check_approach", {
            "session_id": "s1",
            "issue": "port 3000 in use",
            "proposed_approach": "use docker compose port mapping",
        })
        assert data["proceed"] is True
        assert data["already_tried"] is False


class TestLogAttempt:
    def test_logs_to_session_and_file(self, server, project_dir):
        _call("load_context", {"session_id": "s1"})
        data = _call("log_attempt", {
            "session_id": "s1",
            "issue": "port 3000 in use",
            "approach": "use fuser to free the port",
            "result": "failure",
            "error_message": "fuser: command not found",
        })

        assert data["success"] is True
        assert data["should_not_retry"] is True
        assert "Check if the command/module is installed" in data["suggested_alternatives"]
        assert len(server.SESSIONS.attempts.get("s1")) == 4
        persisted = parse_attempts(ProjectFiles(project_dir).read_attempts())
        assert any(a.approach == "use fuser to free the port" for a in persisted)

    def test_session_only(self, server, project_dir):
        before = ProjectFiles(project_dir).read_attempts()
        _call("log_attempt", {
            "session_id": "s2",
            "issue": "x",
            "approach": "y",
            "result": "success",
            "persist": False,
        })
        assert ProjectFiles(project_dir).read_attempts() == before
        assert len(server.SESSIONS.attempts.get("s2")) == 1


class TestOtherTools:
    def test_failed_attempts(self, server):
        _call("load_context", {"session_id": "s1"})
        text = _call("get_failed_attempts", {"session_id": "s1", "issue": "port 3000 in use"})
        assert "- **kill process on port 3000**" in text

    def test_failed_attempts_none(self, server):
        text = _call("get_failed_attempts", {"session_id": "s1", "issue": "nothing"})
        assert text == "No failed attempts recorded for: nothing"

    def test_clear_session(self, server):
        _call("load_context", {"session_id": "s1"})
        _call("clear_session", {"session_id": "s1"})
        assert not server.SESSIONS.contexts.has("s1")
        assert server.SESSIONS.attempts.get("s1") == []

    def test_unknown_tool(self, server):
        assert _call("nope", {}) == "Unknown tool: nope"


class TestProjectPath:
    @pytest.fixture
    def other_project(self, tmp_path):
        files = ProjectFiles(tmp_path / "other")
        files.init_memory_dir("other")
        return files

    def test_attempts_persist_to_loaded_project(self, server, project_dir, other_project):
        default_attempts = ProjectFiles(project_dir).read_attempts()
        _call("load_context", {"session_id": "s1", "project_path": str(other_project.project_dir)})

        data = _call("log_attempt", {
            "session_id": "s1",
            "issue": "vite port taken",
            "approach": "set server.port in vite config",
            "result": "success",
        })

        assert data["written_to"] == str(other_project.memory_dir / "ATTEMPTS.md")
        assert [a.approach for a in parse_attempts(other_project.read_attempts())] == [
            "set server.port in vite config"
        ]
        assert ProjectFiles(project_dir).read_attempts() == default_attempts

    def test_clear_session_forgets_project(self, server, other_project):
        _call("load_context", {"session_id": "s1", "project_path": str(other_project.project_dir)})
        _call("clear_session", {"session_id": "s1"})
        assert "s1" not in server.SESSION_FILES

    def test_failed_approach_without_error(self, server, other_project, make_attempt):
        other_project.append_attempts([make_attempt("kill process on port 3000", error_message=None)])
        data = _call("load_context", {"session_id": "s1", "project_path": str(other_project.project_dir)})
        assert data["failed_approaches"] == ["kill process on port 3000: Failed"]
