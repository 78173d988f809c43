"""BLOCKED.md parsing: one section per obstacle, headed `## [YYYY-MM-DD] - Description`."""

from __future__ import annotations

import re

from projectmemory.extraction import heuristics
from projectmemory.extraction.hashing import record_id
from projectmemory.extraction.markdown import split_sections
from projectmemory.extraction.models import Blocker

TITLE_RE = re.compile(r"^\[(?P<date>\d{4}-\d{2}-\d{2})\]\s*-\s*(?P<title>.+)$")
RESOLVED_MARKER = "status: resolved"


def parse_blockers(content: str | None) -> list[Blocker]:
    blockers: list[Blocker] = []

    for section in split_sections(content):
        match = TITLE_RE.match(section.title)
        if not match:
            continue

        date, title = match.group("date"), match.group("title").strip()
        body = section.body

        blockers.append(
            Blocker(
                id=record_id(date, title),
                created_at=date,
                description=title,
                category=heuristics.infer_blocker_category(body.text),
                error_message=body.field("Error"),
                attempts_made=body.items("Attempted Solutions", "Attempts made"),
                status="resolved" if RESOLVED_MARKER in body.normalized_text() else "active",
                resolved_at=body.field("Resolved at"),
                resolution=body.field("Resolution"),
            )
        )

    return blockers
