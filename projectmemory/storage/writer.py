"""Render records back into the memory-file markdown dialect.

Everything written here parses back through projectmemory.extraction.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from projectmemory.extraction.models import (
    DECISION_AUTHORS,
    DECISION_CATEGORIES,
    IMPACT_LEVELS,
    Attempt,
    Decision,
)

ATTEMPTS_HEADER = """\
# Attempt History

This file tracks what has been tried for each issue.
**AI must check this file before suggesting fixes to avoid repeating failed approaches.**

"""

DECISIONS_HEADER = """\
# Project Decisions

This file tracks all significant decisions made during development.
**AI must check this file before making changes that could contradict existing decisions.**

"""

DEVLOG_HEADER = "# Development Log\n\n"
BLOCKERS_HEADER = "# Blockers\n\n"

RESULT_LABELS = {"success": "Success", "failure": "Failed", "partial": "Partial"}


def format_attempts_markdown(attempts: list[Attempt]) -> str:
    """Render ATTEMPTS.md: attempts grouped by issue, oldest first within each issue."""
    by_issue: dict[str, list[Attempt]] = {}
    for attempt in attempts:
        by_issue.setdefault(attempt.issue_hash, []).append(attempt)

    sections: list[str] = []
    for issue_attempts in by_issue.values():
        lines = [f"## Issue: {issue_attempts[0].issue}", ""]

        ordered = sorted(issue_attempts, key=lambda a: a.timestamp)
        for number, attempt in enumerate(ordered, 1):
            heading = f"### Attempt {number} ({RESULT_LABELS.get(attempt.result, 'Partial')})"
            if attempt.should_not_retry:
                heading += " - DO NOT RETRY"
            lines.extend([heading, ""])

            if attempt.timestamp:
                lines.append(f"**Timestamp:** {attempt.timestamp}")
            lines.extend([f"**Approach:** {attempt.approach}", ""])

            if attempt.code_or_command:
                lines.extend(["```", attempt.code_or_command, "```", ""])
            if attempt.error_message:
                lines.extend([f"**Error:** {attempt.error_message}", ""])
            if attempt.lessons_learned:
                lines.extend([f"**Lesson:** {attempt.lessons_learned}", ""])

        lines.extend(["---", ""])
        sections.append("\n".join(lines))

    return ATTEMPTS_HEADER + "\n".join(sections)


def create_decision(
    decision: str,
    category: str,
    reasoning: str,
    impact: str,
    made_by: str = "ai",
    alternatives_considered: list[str] | None = None,
    user_approved: bool | None = None,
    reversible: bool = True,
    related_files: list[str] | None = None,
) -> Decision:
    if category not in DECISION_CATEGORIES:
        raise ValueError(f"Invalid decision category: {category!r}")
    if impact not in IMPACT_LEVELS:
        raise ValueError(f"Invalid impact level: {impact!r}")
    if made_by not in DECISION_AUTHORS:
        raise ValueError(f"Invalid decision author: {made_by!r}")

    return Decision(
        id=uuid.uuid4().hex[:8],
        timestamp=datetime.now().strftime("%Y-%m-%d"),
        decision=decision,
        category=category,
        reasoning=reasoning,
        alternatives_considered=list(alternatives_considered or []),
        made_by=made_by,
        user_approved=user_approved if user_approved is not None else made_by == "user",
        reversible=reversible,
        impact=impact,
        related_files=list(related_files or []),
        related_decisions=[],
    )


def format_decision_markdown(decision: Decision) -> str:
    approval = " (user approved)" if decision.user_approved else ""
    lines = [
        f"## {decision.timestamp} - {decision.decision}",
        "",
        f"**Category:** {decision.category}",
        f"**Impact:** {decision.impact}",
        f"**Reversible:** {'Yes' if decision.reversible else 'No'}",
        f"**Made by:** {decision.made_by}{approval}",
        "",
        f"**Reasoning:** {decision.reasoning}",
        "",
    ]

    if decision.alternatives_considered:
        lines.append("**Alternatives considered:**")
        lines.extend(f"- {alt}" for alt in decision.alternatives_considered)
        lines.append("")

    if decision.related_files:
        lines.append("**Related files:**")
        lines.extend(f"- `{path}`" for path in decision.related_files)
        lines.append("")

    lines.extend(["---", ""])
    return "\n".join(lines)


def generate_decisions_file(decisions: list[Decision]) -> str:
    """Render DECISIONS.md, newest decision first."""
    ordered = sorted(decisions, key=lambda d: d.timestamp, reverse=True)
    return DECISIONS_HEADER + "\n".join(format_decision_markdown(d) for d in ordered)
