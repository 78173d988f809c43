"""DEVLOG.md parsing: one section per working session, headed `## [YYYY-MM-DD] - Title`."""

from __future__ import annotations

import re

from projectmemory.extraction.markdown import split_sections
from projectmemory.extraction.models import DEVLOG_STATUSES, TASK_SIZES, DevlogEntry

TITLE_RE = re.compile(r"^\[(?P<date>\d{4}-\d{2}-\d{2})\]\s*-\s*(?P<title>.+)$")


def parse_devlog(content: str | None) -> list[DevlogEntry]:
    entries: list[DevlogEntry] = []

    for section in split_sections(content):
        match = TITLE_RE.match(section.title)
        if not match:
            continue

        body = section.body
        entries.append(
            DevlogEntry(
                date=match.group("date"),
                title=match.group("title").strip(),
                session_id=body.field("Session") or "",
                task_size=_choice(body.field("Task Size"), TASK_SIZES, "medium"),
                status=_choice(body.field("Status"), DEVLOG_STATUSES, "completed"),
                what_was_done=body.items("What was done"),
                files_changed=body.file_changes(),
                decisions_made=body.items("Decisions made"),
                next_steps=body.items("Next steps"),
            )
        )

    return entries


def _choice(value: str | None, allowed: tuple[str, ...], default: str) -> str:
    if not value:
        return default
    normalized = value.strip().lower().replace(" ", "_")
    return normalized if normalized in allowed else default
