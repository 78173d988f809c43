"""Keyword heuristics that derive record fields the markdown doesn't state.

Each function takes the record (or its text) and returns the derived value, so
the rules can be exercised one trigger at a time.
"""

from __future__ import annotations

import re

from projectmemory.extraction.models import IMPACT_LEVELS, Attempt

# First match wins, so order matters ("design" resolves to architecture
# before ui-design gets a chance).
DECISION_CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("architecture", ("architect", "structure", "design")),
    ("tech-stack", ("stack", "framework", "library", "libraries")),
    ("patterns", ("pattern", "convention")),
    ("security", ("security", "auth", "encrypt")),
    ("data-model", ("schema", "database", "table")),
    ("api-design", ("api", "endpoint", "route")),
    ("ui-design", ("ui", "component", "design")),
    ("integration", ("integration", "third-party", "external")),
    ("deployment", ("deploy", "infra", "hosting")),
]
DEFAULT_DECISION_CATEGORY = "business-logic"

BLOCKER_CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("error", ("error", "exception", "failed")),
    ("missing-info", ("missing", "need", "require")),
    ("waiting-external", ("waiting", "external", "api key")),
]
DEFAULT_BLOCKER_CATEGORY = "needs-decision"

# Keywords this short only count as whole words ("ui" must not match "build");
# longer ones match anywhere ("auth" in "oauth")
_WHOLE_WORD_MAX_LENGTH = 3

IMPACT_RE = re.compile(r"impact:\s*(" + "|".join(IMPACT_LEVELS) + r")\b")
IRREVERSIBLE_RE = re.compile(r"\birreversible\b")

RETRY_ESCAPE_HATCH = "might work"


def infer_decision_category(title: str, body: str) -> str:
    return _first_category(f"{title} {body}", DECISION_CATEGORY_KEYWORDS, DEFAULT_DECISION_CATEGORY)


def infer_blocker_category(body: str) -> str:
    return _first_category(body, BLOCKER_CATEGORY_KEYWORDS, DEFAULT_BLOCKER_CATEGORY)


def extract_impact(text: str) -> str:
    """Impact from an `impact: <level>` mention, defaulting to low."""
    match = IMPACT_RE.search(text.lower().replace("**", ""))
    if match:
        return match.group(1)
    return "low"


def is_reversible(body: str, labeled_value: str | None = None) -> bool:
    """True unless the decision is explicitly marked irreversible."""
    if labeled_value is not None and labeled_value.strip().lower() in ("no", "false"):
        return False
    normalized = body.lower().replace("**", "")
    if "reversible: no" in normalized:
        return False
    return not IRREVERSIBLE_RE.search(normalized)


def should_not_retry(attempt: Attempt) -> bool:
    """A failed attempt is final unless its lesson contains "might work" (case-sensitive)."""
    if attempt.result != "failure":
        return False
    if not attempt.lessons_learned:
        return True
    return RETRY_ESCAPE_HATCH not in attempt.lessons_learned


def _first_category(
    text: str, table: list[tuple[str, tuple[str, ...]]], default: str
) -> str:
    text_lower = text.lower()
    for category, keywords in table:
        for keyword in keywords:
            if _matches(keyword, text_lower):
                return category
    return default


def _matches(keyword: str, text: str) -> bool:
    if len(keyword) <= _WHOLE_WORD_MAX_LENGTH:
        return re.search(r"\b" + re.escape(keyword) + r"\b", text) is not None
    return keyword in text
