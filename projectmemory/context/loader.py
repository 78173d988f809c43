"""Builds a ProjectContext from the memory files.

Loading is a pure function of the provided texts: the caller (or ProjectFiles)
does the reading. Only the state JSON is required; every markdown input may be
missing and simply contributes nothing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from projectmemory.config import Config
from projectmemory.extraction.attempts import parse_attempts
from projectmemory.extraction.blockers import parse_blockers
from projectmemory.extraction.decisions import parse_decisions
from projectmemory.extraction.devlog import parse_devlog
from projectmemory.extraction.models import (
    Attempt,
    Blocker,
    Decision,
    DevlogEntry,
    FileChange,
    ProjectContext,
    TechStack,
)
from projectmemory.storage.cache import ContextCache, SessionHandle

if TYPE_CHECKING:
    from projectmemory.storage.files import ProjectFiles

logger = logging.getLogger(__name__)


class MissingProjectStateError(Exception):
    """The project state JSON is absent or unreadable, so no context can be built."""


@dataclass
class LoadResult:
    context: ProjectContext
    warnings: list[str] = field(default_factory=list)


class ContextLoader:
    """Parses memory files into a ProjectContext and optionally caches it per session."""

    def __init__(self, config: Config | None = None, cache: ContextCache | None = None) -> None:
        self._config = config or Config()
        self._cache = cache

    def load(
        self,
        decisions_text: str | None = None,
        devlog_text: str | None = None,
        attempts_text: str | None = None,
        blockers_text: str | None = None,
        state_json: str | dict | None = None,
    ) -> LoadResult:
        state = _parse_state(state_json)

        decisions = parse_decisions(decisions_text)
        devlog = parse_devlog(devlog_text)
        attempts = parse_attempts(attempts_text)
        blockers = [b for b in parse_blockers(blockers_text) if b.status == "active"]

        build = state.get("build") if isinstance(state.get("build"), dict) else {}

        context = ProjectContext(
            version=str(state.get("version") or "1.0"),
            project_name=state.get("projectName") or "Unknown",
            project_type=state.get("projectType") or "existing",
            current_phase=build.get("currentPhase") or "development",
            last_updated=state.get("lastUpdated") or datetime.now().isoformat(),
            stack=_parse_stack(state.get("stack")),
            built_features=_string_list(state.get("builtFeatures")),
            pending_features=_string_list(state.get("pendingFeatures")),
            recent_commits=[],
            recent_changes=recent_changes(devlog, self._config.recent_changes_entries),
            decisions=decisions,
            recent_attempts=recent_attempts(attempts, self._config.recent_attempts_limit),
            blockers=blockers,
        )

        warnings = build_warnings(decisions, blockers, attempts)
        logger.info(
            f"Loaded context for {context.project_name}: {len(decisions)} decisions, "
            f"{len(attempts)} attempts, {len(blockers)} active blockers"
        )
        for warning in warnings:
            logger.warning(warning)

        return LoadResult(context=context, warnings=warnings)

    def load_for_session(
        self,
        session: SessionHandle | str,
        decisions_text: str | None = None,
        devlog_text: str | None = None,
        attempts_text: str | None = None,
        blockers_text: str | None = None,
        state_json: str | dict | None = None,
    ) -> LoadResult:
        """Load and cache. Nothing is cached if loading fails."""
        result = self.load(decisions_text, devlog_text, attempts_text, blockers_text, state_json)
        if self._cache is not None:
            self._cache.set(session, result.context)
        return result

    def load_project(
        self, files: ProjectFiles, session: SessionHandle | str | None = None
    ) -> LoadResult:
        texts = dict(
            decisions_text=files.read_decisions(),
            devlog_text=files.read_devlog(),
            attempts_text=files.read_attempts(),
            blockers_text=files.read_blockers(),
            state_json=files.read_state(),
        )
        if session is None:
            return self.load(**texts)
        return self.load_for_session(session, **texts)


def load_context(
    decisions_text: str | None = None,
    devlog_text: str | None = None,
    attempts_text: str | None = None,
    blockers_text: str | None = None,
    state_json: str | dict | None = None,
) -> ProjectContext:
    """Build a ProjectContext with default settings. Raises MissingProjectStateError."""
    loader = ContextLoader()
    return loader.load(decisions_text, devlog_text, attempts_text, blockers_text, state_json).context


def recent_changes(entries: list[DevlogEntry], limit: int) -> list[FileChange]:
    """File changes from the `limit` most recent devlog entries, newest first."""
    newest = sorted(entries, key=lambda e: e.date, reverse=True)[:limit]
    return [
        FileChange(path=fc.path, type="modified", timestamp=entry.date, summary=fc.change)
        for entry in newest
        for fc in entry.files_changed
    ]


def recent_attempts(attempts: list[Attempt], limit: int) -> list[Attempt]:
    """The `limit` most recent attempts. Ties keep file order."""
    return sorted(attempts, key=lambda a: a.timestamp, reverse=True)[:limit]


def build_warnings(
    decisions: list[Decision], blockers: list[Blocker], attempts: list[Attempt]
) -> list[str]:
    """Advisory notes for the caller. These never block loading."""
    warnings: list[str] = []

    critical = [d for d in decisions if d.impact == "critical"]
    if critical:
        warnings.append(f"{len(critical)} critical decisions in effect - review before making changes")

    active = [b for b in blockers if b.status == "active"]
    if active:
        warnings.append(f"{len(active)} active blockers - check BLOCKED.md")

    do_not_retry = [a for a in attempts if a.result == "failure" and a.should_not_retry]
    if do_not_retry:
        warnings.append(f'{len(do_not_retry)} approaches marked as "do not retry"')

    return warnings


def _parse_state(state_json: str | dict | None) -> dict[str, Any]:
    if state_json is None:
        raise MissingProjectStateError(
            "No project state found - is this a projectmemory project? Run 'projectmemory init'."
        )
    if isinstance(state_json, dict):
        return state_json
    if not state_json.strip():
        raise MissingProjectStateError("Project state file is empty")

    try:
        state = json.loads(state_json)
    except json.JSONDecodeError as e:
        raise MissingProjectStateError(f"Project state is not valid JSON: {e}") from e

    if not isinstance(state, dict):
        raise MissingProjectStateError(
            f"Project state must be a JSON object, got {type(state).__name__}"
        )
    return state


def _string_list(raw: Any) -> list[str]:
    """A JSON array of strings; anything else (including a bare string) is empty."""
    if not isinstance(raw, list):
        return []
    return [str(item) for item in raw]


def _parse_stack(raw: Any) -> TechStack:
    if not isinstance(raw, dict):
        return TechStack()

    defaults = TechStack()
    payments = raw.get("payments")
    if isinstance(payments, list):
        payments = ", ".join(str(p) for p in payments) or None

    return TechStack(
        framework=raw.get("framework") or defaults.framework,
        database=raw.get("database") or defaults.database,
        orm=raw.get("orm") or defaults.orm,
        auth=raw.get("auth") or defaults.auth,
        ui=raw.get("ui") or defaults.ui,
        payments=payments or None,
    )
