"""Short, stable digests used as grouping keys and record ids.

These are not security-relevant. md5 is used because its output is stable
across runs and platforms, and 8 hex characters are plenty for one project's
worth of issues.
"""

from __future__ import annotations

import hashlib

HASH_LENGTH = 8


def normalize_issue(issue: str) -> str:
    return issue.lower().strip()


def issue_hash(issue: str) -> str:
    """Grouping key for an issue description.

    Issues that differ only in case or surrounding whitespace hash identically.
    """
    return _short_md5(normalize_issue(issue))


def record_id(*parts: str) -> str:
    """Stable id for a record, e.g. record_id(date, title) for decisions."""
    return _short_md5("-".join(parts))


def _short_md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()[:HASH_LENGTH]
