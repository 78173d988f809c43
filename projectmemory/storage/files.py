"""Reads and writes the memory files of one project directory.

Layout (names relative to the project root, directory and state file configurable):

    .projectmemory.json          project state (required)
    .projectmemory/DECISIONS.md
    .projectmemory/DEVLOG.md
    .projectmemory/ATTEMPTS.md
    .projectmemory/BLOCKED.md
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from projectmemory.config import Config
from projectmemory.extraction.attempts import parse_attempts
from projectmemory.extraction.decisions import parse_decisions
from projectmemory.extraction.models import Attempt, Decision
from projectmemory.storage.writer import (
    ATTEMPTS_HEADER,
    BLOCKERS_HEADER,
    DECISIONS_HEADER,
    DEVLOG_HEADER,
    format_attempts_markdown,
    generate_decisions_file,
)

logger = logging.getLogger(__name__)

DECISIONS_FILE = "DECISIONS.md"
DEVLOG_FILE = "DEVLOG.md"
ATTEMPTS_FILE = "ATTEMPTS.md"
BLOCKERS_FILE = "BLOCKED.md"


class ProjectFiles:
    """File access for a project's memory directory. Missing files read as None."""

    def __init__(self, project_dir: Path, config: Config | None = None) -> None:
        self._config = config or Config()
        self.project_dir = Path(project_dir)
        self.memory_dir = self.project_dir / self._config.memory_dir
        self.state_path = self.project_dir / self._config.state_file

    def read_state(self) -> str | None:
        return _read(self.state_path)

    def read_decisions(self) -> str | None:
        return _read(self.memory_dir / DECISIONS_FILE)

    def read_devlog(self) -> str | None:
        return _read(self.memory_dir / DEVLOG_FILE)

    def read_attempts(self) -> str | None:
        return _read(self.memory_dir / ATTEMPTS_FILE)

    def read_blockers(self) -> str | None:
        return _read(self.memory_dir / BLOCKERS_FILE)

    def append_attempts(self, attempts: list[Attempt]) -> Path:
        """Merge new attempts into the parsed history and rewrite ATTEMPTS.md."""
        existing = parse_attempts(self.read_attempts())
        known_ids = {a.id for a in existing}
        merged = existing + [a for a in attempts if a.id not in known_ids]

        path = self.memory_dir / ATTEMPTS_FILE
        self.memory_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(format_attempts_markdown(merged))
        logger.info(f"Wrote {len(merged)} attempts to {path}")
        return path

    def append_decision(self, decision: Decision) -> Path:
        decisions = parse_decisions(self.read_decisions())
        decisions.append(decision)

        path = self.memory_dir / DECISIONS_FILE
        self.memory_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(generate_decisions_file(decisions))
        logger.info(f"Wrote {len(decisions)} decisions to {path}")
        return path

    def init_memory_dir(self, project_name: str) -> list[Path]:
        """Create the memory files that don't exist yet. Returns the created paths."""
        created: list[Path] = []
        self.memory_dir.mkdir(parents=True, exist_ok=True)

        templates = {
            DECISIONS_FILE: DECISIONS_HEADER,
            DEVLOG_FILE: DEVLOG_HEADER,
            ATTEMPTS_FILE: ATTEMPTS_HEADER,
            BLOCKERS_FILE: BLOCKERS_HEADER,
        }
        for name, header in templates.items():
            path = self.memory_dir / name
            if not path.exists():
                path.write_text(header)
                created.append(path)

        if not self.state_path.exists():
            state = {
                "version": "1.0",
                "projectName": project_name,
                "projectType": "existing",
                "lastUpdated": datetime.now().isoformat(),
                "builtFeatures": [],
                "pendingFeatures": [],
            }
            self.state_path.write_text(json.dumps(state, indent=2) + "\n")
            created.append(self.state_path)

        return created


def _read(path: Path) -> str | None:
    if not path.exists():
        return None
    return path.read_text()
