"""In-memory, per-session caches.

Entries live until the caller clears them; there is no TTL and no eviction.
Access is assumed single-threaded. A multi-request host must serialize
access per session id itself.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from projectmemory.extraction.models import Attempt, ProjectContext


@dataclass(frozen=True)
class SessionHandle:
    session_id: str


SessionKey = SessionHandle | str


def _key(session: SessionKey) -> str:
    if isinstance(session, SessionHandle):
        return session.session_id
    return session


class ContextCache:
    """One loaded ProjectContext per session."""

    def __init__(self) -> None:
        self._entries: dict[str, ProjectContext] = {}

    def get(self, session: SessionKey) -> ProjectContext | None:
        return self._entries.get(_key(session))

    def set(self, session: SessionKey, context: ProjectContext) -> None:
        self._entries[_key(session)] = context

    def has(self, session: SessionKey) -> bool:
        return _key(session) in self._entries

    def clear(self, session: SessionKey) -> None:
        self._entries.pop(_key(session), None)


class AttemptCache:
    """Attempts made during a session, before they are written back to ATTEMPTS.md."""

    def __init__(self) -> None:
        self._entries: dict[str, list[Attempt]] = {}

    def get(self, session: SessionKey) -> list[Attempt]:
        return list(self._entries.get(_key(session), []))

    def add(self, session: SessionKey, attempt: Attempt) -> None:
        self._entries.setdefault(_key(session), []).append(attempt)

    def clear(self, session: SessionKey) -> None:
        self._entries.pop(_key(session), None)


class SessionStore:
    """Owns both caches and the session lifecycle."""

    def __init__(self) -> None:
        self.contexts = ContextCache()
        self.attempts = AttemptCache()

    def init(self, session_id: str | None = None) -> SessionHandle:
        return SessionHandle(session_id or f"session_{uuid.uuid4().hex[:8]}")

    def teardown(self, session: SessionKey) -> None:
        self.contexts.clear(session)
        self.attempts.clear(session)
