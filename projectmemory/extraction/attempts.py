"""ATTEMPTS.md parsing.

Attempts are grouped by issue, then numbered:

    ## Issue: port 3000 in use

    ### Attempt 1 (Failed)

    **Approach:** kill process on port 3000

    ```bash
    kill -9 $(lsof -t -i:3000)
    ```

    Error: permission denied

    ### Attempt 2 (Success)

    **Approach:** restart dev server on a different port
    **Lesson:** PORT=3001 is enough, no need to kill anything
"""

from __future__ import annotations

import logging
import re

from projectmemory.extraction import heuristics
from projectmemory.extraction.hashing import issue_hash
from projectmemory.extraction.markdown import Section, split_lines, split_sections
from projectmemory.extraction.models import Attempt

logger = logging.getLogger(__name__)

ISSUE_RE = re.compile(r"^Issue:\s*(?P<issue>.+)$")
ATTEMPT_RE = re.compile(r"^Attempt\s+(?P<number>\d+)\b\s*(?:\((?P<outcome>[^)]*)\))?")
ERROR_LINE_RE = re.compile(r"^Error:\s*(?P<message>.+)$")


def parse_attempts(content: str | None) -> list[Attempt]:
    attempts: list[Attempt] = []

    for section in split_sections(content):
        match = ISSUE_RE.match(section.title)
        if not match:
            continue

        issue = match.group("issue").strip()
        key = issue_hash(issue)
        index = 0
        for sub in split_lines(section.lines, "### "):
            attempt = _parse_attempt(sub, issue, key, index)
            if attempt is None:
                continue
            attempts.append(attempt)
            index += 1

    logger.debug(f"Parsed {len(attempts)} attempts")
    return attempts


def _parse_attempt(sub: Section, issue: str, key: str, index: int) -> Attempt | None:
    match = ATTEMPT_RE.match(sub.title)
    if not match:
        return None

    body = sub.body
    attempt = Attempt(
        id=f"{key}-{index}",
        timestamp=body.field("Timestamp", "Date") or "",
        issue=issue,
        issue_hash=key,
        approach=body.field("Approach") or f"Attempt {match.group('number')}",
        code_or_command=body.code_block(),
        result=_result(match.group("outcome")),
        error_message=body.field("Error") or _error_line(body.text_lines()),
        lessons_learned=body.field("Lesson", "Lessons learned", "Lessons"),
    )
    attempt.should_not_retry = heuristics.should_not_retry(attempt)
    return attempt


def _result(outcome: str | None) -> str:
    if not outcome:
        return "partial"
    outcome = outcome.lower()
    if "success" in outcome:
        return "success"
    if "fail" in outcome:
        return "failure"
    return "partial"


def _error_line(lines: list[str]) -> str | None:
    for line in lines:
        match = ERROR_LINE_RE.match(line)
        if match:
            return match.group("message").strip()
    return None
