"""DECISIONS.md parsing.

Each decision is a section headed `## YYYY-MM-DD - Title`:

    ## 2024-06-15 - Use Drizzle for database access

    **Category:** data-model
    **Impact:** high
    **Reversible:** No
    **Made by:** user (user approved)

    **Reasoning:** Type-safe queries without a heavy runtime.

    **Alternatives considered:**
    - Prisma
    - raw SQL

Sections whose heading doesn't match are dropped whole.
"""

from __future__ import annotations

import re

from projectmemory.extraction import heuristics
from projectmemory.extraction.hashing import record_id
from projectmemory.extraction.markdown import split_sections
from projectmemory.extraction.models import (
    DECISION_AUTHORS,
    DECISION_CATEGORIES,
    IMPACT_LEVELS,
    Decision,
)

TITLE_RE = re.compile(r"^(?P<date>\d{4}-\d{2}-\d{2})\s*-\s*(?P<title>.+)$")


def parse_decisions(content: str | None) -> list[Decision]:
    decisions: list[Decision] = []

    for section in split_sections(content):
        match = TITLE_RE.match(section.title)
        if not match:
            continue

        date, title = match.group("date"), match.group("title").strip()
        body = section.body

        decisions.append(
            Decision(
                id=record_id(date, title),
                timestamp=date,
                decision=title,
                category=_category(body.field("Category"), title, body.text),
                reasoning=body.field("Reasoning") or "",
                alternatives_considered=body.items("Alternatives considered", "Alternatives"),
                made_by=_made_by(body.field("Made by")),
                user_approved="user approved" in body.text.lower(),
                reversible=heuristics.is_reversible(body.text, body.field("Reversible")),
                impact=_impact(body.field("Impact"), body.text),
                related_files=[_strip_backticks(f) for f in body.items("Related files")],
                related_decisions=[],
            )
        )

    return decisions


def _category(labeled: str | None, title: str, body: str) -> str:
    if labeled and labeled.strip().lower() in DECISION_CATEGORIES:
        return labeled.strip().lower()
    return heuristics.infer_decision_category(title, body)


def _impact(labeled: str | None, body: str) -> str:
    if labeled and labeled.strip().lower() in IMPACT_LEVELS:
        return labeled.strip().lower()
    return heuristics.extract_impact(body)


def _made_by(value: str | None) -> str:
    """`ai (user approved)` -> `ai`; unknown authors fall back to ai."""
    if not value:
        return "ai"
    first_word = value.split()[0].lower()
    return first_word if first_word in DECISION_AUTHORS else "ai"


def _strip_backticks(text: str) -> str:
    return text.strip().strip("`").strip()
