"""Configuration loading for projectmemory.

Config sources (in priority order):
1. Explicit arguments passed to functions
2. Environment variables (PROJECTMEMORY_PROJECT_DIR, etc.)
3. .env file in current directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MEMORY_DIR = ".projectmemory"
DEFAULT_STATE_FILE = ".projectmemory.json"
DEFAULT_SIMILARITY_THRESHOLD = 0.7
DEFAULT_MIN_WORD_LENGTH = 3
DEFAULT_RECENT_ATTEMPTS = 10
DEFAULT_RECENT_CHANGES = 5
DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass
class Config:
    project_dir: Path = Path(".")
    memory_dir: str = DEFAULT_MEMORY_DIR  # relative to project_dir
    state_file: str = DEFAULT_STATE_FILE  # relative to project_dir
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    min_word_length: int = DEFAULT_MIN_WORD_LENGTH  # shorter words are noise
    recent_attempts_limit: int = DEFAULT_RECENT_ATTEMPTS
    recent_changes_entries: int = DEFAULT_RECENT_CHANGES  # devlog entries, not files
    anthropic_api_key: str = ""
    model: str = DEFAULT_MODEL

    @classmethod
    def load(cls) -> Config:
        return cls(
            project_dir=Path(os.getenv("PROJECTMEMORY_PROJECT_DIR", ".")),
            memory_dir=os.getenv("PROJECTMEMORY_MEMORY_DIR", DEFAULT_MEMORY_DIR),
            state_file=os.getenv("PROJECTMEMORY_STATE_FILE", DEFAULT_STATE_FILE),
            similarity_threshold=float(
                os.getenv("PROJECTMEMORY_SIMILARITY_THRESHOLD", str(DEFAULT_SIMILARITY_THRESHOLD))
            ),
            min_word_length=int(
                os.getenv("PROJECTMEMORY_MIN_WORD_LENGTH", str(DEFAULT_MIN_WORD_LENGTH))
            ),
            recent_attempts_limit=int(
                os.getenv("PROJECTMEMORY_RECENT_ATTEMPTS", str(DEFAULT_RECENT_ATTEMPTS))
            ),
            recent_changes_entries=int(
                os.getenv("PROJECTMEMORY_RECENT_CHANGES", str(DEFAULT_RECENT_CHANGES))
            ),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            model=os.getenv("PROJECTMEMORY_MODEL", DEFAULT_MODEL),
        )

    def validate(self) -> list[str]:
        """Return a list of config issues."""
        issues = []
        if not 0.0 <= self.similarity_threshold <= 1.0:
            issues.append(
                f"Similarity threshold must be between 0 and 1 (PROJECTMEMORY_SIMILARITY_THRESHOLD), "
                f"got {self.similarity_threshold}"
            )
        if self.min_word_length < 1:
            issues.append("Minimum word length must be at least 1 (PROJECTMEMORY_MIN_WORD_LENGTH)")
        if self.recent_attempts_limit < 1:
            issues.append("Recent attempts limit must be at least 1 (PROJECTMEMORY_RECENT_ATTEMPTS)")
        if self.recent_changes_entries < 1:
            issues.append("Recent changes window must be at least 1 (PROJECTMEMORY_RECENT_CHANGES)")
        return issues
