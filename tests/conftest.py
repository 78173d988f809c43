"""Shared test fixtures for projectmemory."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from projectmemory.config import Config
from projectmemory.extraction.hashing import issue_hash
from projectmemory.extraction.models import Attempt
from projectmemory.storage.files import ATTEMPTS_FILE, BLOCKERS_FILE, DECISIONS_FILE, DEVLOG_FILE

PORT_ISSUE = "port 3000 in use"

DECISIONS_MD = """\
# Project Decisions

Intro text that is not a decision.

## 2024-06-15 - Use Drizzle for database access

**Category:** data-model
**Impact:** critical
**Reversible:** No
**Made by:** user (user approved)

**Reasoning:** Type-safe queries without a heavy runtime.

**Alternatives considered:**
- Prisma
- raw SQL

**Related files:**
- `src/db/schema.ts`
- `drizzle.config.ts`

---

## 2024-06-10 - Adopt server actions for mutations

**Reasoning:** Fewer API routes to maintain. impact: high

---

## 2024-06-01 - Keep invoices in cents

**Reasoning:** Avoid floating point rounding on money.

---
"""

DEVLOG_MD = """\
# Development Log

## [2024-06-14] - Invoice export

**Session:** abc123
**Task Size:** large
**Status:** in_progress

**What was done:**
- Added CSV export
- Wired export button

**Files changed:**
- `src/export/csv.ts` - new CSV writer
- `src/app/invoices/page.tsx` - export button

**Next steps:**
- Add PDF export

## [2024-06-16] - Fix login redirect

**Status:** completed

**Files changed:**
- `src/middleware.ts` - redirect loop fix
"""

ATTEMPTS_MD = """\
# Attempt History

## Issue: port 3000 in use

### Attempt 1 (Failed)

**Timestamp:** 2024-06-15T10:00:00
**Approach:** kill process on port 3000

```bash
kill -9 $(lsof -t -i:3000)
```

Error: permission denied

### Attempt 2 (Success)

**Timestamp:** 2024-06-15T10:05:00
**Approach:** restart dev server on a different port
**Lesson:** PORT=3001 is enough

---

## Issue: build fails on CI

### Attempt 1 (Failed)

**Timestamp:** 2024-06-16T09:00:00
**Approach:** clear the npm cache
**Error:** ENOENT path not found
**Lesson:** a clean install might work instead

---
"""

BLOCKERS_MD = """\
# Blockers

## [2024-06-12] - Stripe webhook secret

**Error:** webhook signature verification failed

**Attempted Solutions:**
- Regenerated the secret
- Checked raw body parsing

## [2024-06-13] - Waiting on design for settings page

**Status:** Resolved
**Resolution:** Designs delivered
**Resolved at:** 2024-06-14
"""

STATE = {
    "version": "2.1",
    "projectName": "invoicer",
    "projectType": "new",
    "lastUpdated": "2024-06-16T12:00:00",
    "build": {"currentPhase": "beta"},
    "stack": {"framework": "nextjs", "database": "postgres", "payments": "stripe"},
    "builtFeatures": ["auth", "invoices"],
    "pendingFeatures": ["pdf export"],
}


def _make_attempt(
    approach: str,
    result: str = "failure",
    issue: str = PORT_ISSUE,
    error_message: str | None = None,
    lessons_learned: str | None = None,
    should_not_retry: bool | None = None,
    code_or_command: str = "",
    timestamp: str = "2024-06-15T10:00:00",
    attempt_id: str = "a1",
) -> Attempt:
    if should_not_retry is None:
        should_not_retry = result == "failure"
    return Attempt(
        id=attempt_id,
        timestamp=timestamp,
        issue=issue,
        issue_hash=issue_hash(issue),
        approach=approach,
        code_or_command=code_or_command,
        result=result,
        error_message=error_message,
        lessons_learned=lessons_learned,
        should_not_retry=should_not_retry,
    )


@pytest.fixture
def make_attempt():
    """Factory for Attempt records on PORT_ISSUE unless told otherwise."""
    return _make_attempt


@pytest.fixture
def decisions_md() -> str:
    return DECISIONS_MD


@pytest.fixture
def devlog_md() -> str:
    return DEVLOG_MD


@pytest.fixture
def attempts_md() -> str:
    return ATTEMPTS_MD


@pytest.fixture
def blockers_md() -> str:
    return BLOCKERS_MD


@pytest.fixture
def state_json() -> str:
    return json.dumps(STATE)


@pytest.fixture
def memory_texts(state_json: str) -> dict:
    return {
        "decisions_text": DECISIONS_MD,
        "devlog_text": DEVLOG_MD,
        "attempts_text": ATTEMPTS_MD,
        "blockers_text": BLOCKERS_MD,
        "state_json": state_json,
    }


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def project_dir(tmp_path: Path, config: Config, state_json: str) -> Path:
    """A project directory with every memory file populated."""
    memory_dir = tmp_path / config.memory_dir
    memory_dir.mkdir()
    (memory_dir / DECISIONS_FILE).write_text(DECISIONS_MD)
    (memory_dir / DEVLOG_FILE).write_text(DEVLOG_MD)
    (memory_dir / ATTEMPTS_FILE).write_text(ATTEMPTS_MD)
    (memory_dir / BLOCKERS_FILE).write_text(BLOCKERS_MD)
    (tmp_path / config.state_file).write_text(state_json)
    return tmp_path
