"""Core data models for projectmemory."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

DECISION_CATEGORIES = (
    "architecture",
    "tech-stack",
    "patterns",
    "security",
    "data-model",
    "api-design",
    "ui-design",
    "integration",
    "deployment",
    "business-logic",
)
IMPACT_LEVELS = ("low", "medium", "high", "critical")
DECISION_AUTHORS = ("user", "ai", "system")
ATTEMPT_RESULTS = ("success", "failure", "partial")
BLOCKER_CATEGORIES = ("error", "missing-info", "waiting-external", "needs-decision")
BLOCKER_STATUSES = ("active", "resolved", "bypassed")
TASK_SIZES = ("trivial", "small", "medium", "large")
DEVLOG_STATUSES = ("completed", "in_progress", "blocked")


@dataclass
class Decision:
    id: str  # md5("<date>-<title>")[:8]
    timestamp: str  # ISO date from the section heading
    decision: str  # What was decided (the heading title)
    category: str  # one of DECISION_CATEGORIES
    reasoning: str = ""
    alternatives_considered: list[str] = field(default_factory=list)
    made_by: str = "ai"  # "user" | "ai" | "system"
    user_approved: bool = False
    reversible: bool = True
    impact: str = "low"  # one of IMPACT_LEVELS
    related_files: list[str] = field(default_factory=list)
    related_decisions: list[str] = field(default_factory=list)  # reserved, never populated


@dataclass
class Attempt:
    id: str
    timestamp: str
    issue: str
    issue_hash: str  # hashing.issue_hash(issue)
    approach: str
    code_or_command: str = ""
    result: str = "partial"  # "success" | "failure" | "partial"
    error_message: str | None = None
    lessons_learned: str | None = None
    should_not_retry: bool = False


@dataclass
class Blocker:
    id: str
    created_at: str
    description: str
    category: str  # one of BLOCKER_CATEGORIES
    error_message: str | None = None
    attempts_made: list[str] = field(default_factory=list)
    status: str = "active"  # "active" | "resolved"
    resolved_at: str | None = None
    resolution: str | None = None


@dataclass
class FileChangeEntry:
    path: str
    change: str


@dataclass
class DevlogEntry:
    date: str
    title: str
    session_id: str = ""
    task_size: str = "medium"
    status: str = "completed"
    what_was_done: list[str] = field(default_factory=list)
    files_changed: list[FileChangeEntry] = field(default_factory=list)
    decisions_made: list[str] = field(default_factory=list)
    next_steps: list[str] = field(default_factory=list)


@dataclass
class FileChange:
    path: str
    type: str  # "added" | "modified" | "deleted"
    timestamp: str
    summary: str


@dataclass
class TechStack:
    framework: str = "nextjs"
    database: str = "supabase"
    orm: str = "drizzle"
    auth: str = "supabase"
    ui: str = "shadcn"
    payments: str | None = None


@dataclass
class ProjectContext:
    version: str
    project_name: str
    project_type: str  # "new" | "existing"
    current_phase: str
    last_updated: str
    stack: TechStack = field(default_factory=TechStack)
    built_features: list[str] = field(default_factory=list)
    pending_features: list[str] = field(default_factory=list)
    recent_commits: list[str] = field(default_factory=list)  # reserved, never populated
    recent_changes: list[FileChange] = field(default_factory=list)
    decisions: list[Decision] = field(default_factory=list)
    recent_attempts: list[Attempt] = field(default_factory=list)
    blockers: list[Blocker] = field(default_factory=list)  # active only

    def to_dict(self) -> dict:
        return asdict(self)
