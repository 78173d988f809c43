"""Attempt tracking: has this fix already been tried for this issue?

Attempts are grouped by issue hash. A proposed approach is compared to each
prior attempt on the same issue by word-set Jaccard similarity; a close match
against a final failure says "don't retry", a close match against a success
says "reuse it".
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime

from projectmemory.config import DEFAULT_MIN_WORD_LENGTH, DEFAULT_SIMILARITY_THRESHOLD, Config
from projectmemory.extraction import heuristics
from projectmemory.extraction.hashing import issue_hash
from projectmemory.extraction.models import ATTEMPT_RESULTS, Attempt

logger = logging.getLogger(__name__)

DEFAULT_STOP_WORDS = frozenset({
    "the", "and", "for", "with", "from", "that", "this", "then", "than",
    "into", "onto", "are", "was", "were", "been", "being", "has", "have",
    "had", "but", "its", "our", "their", "them", "there", "all", "any",
    "also", "just", "via",
})

_EDGE_PUNCTUATION = ".,;:!?()[]{}\"'"


@dataclass
class TriedResult:
    already_tried: bool
    previous_attempt: Attempt | None = None
    recommendation: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


class AttemptTracker:
    """Compares proposed approaches against the attempt history."""

    def __init__(
        self,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        min_word_length: int = DEFAULT_MIN_WORD_LENGTH,
        stop_words: frozenset[str] = DEFAULT_STOP_WORDS,
    ) -> None:
        self.similarity_threshold = similarity_threshold
        self.min_word_length = min_word_length
        self.stop_words = stop_words

    @classmethod
    def from_config(cls, config: Config) -> AttemptTracker:
        return cls(
            similarity_threshold=config.similarity_threshold,
            min_word_length=config.min_word_length,
        )

    def create_attempt(
        self,
        issue: str,
        approach: str,
        code_or_command: str,
        result: str,
        error_message: str | None = None,
        lessons_learned: str | None = None,
    ) -> Attempt:
        """Record a new attempt made during the current session."""
        if result not in ATTEMPT_RESULTS:
            raise ValueError(f"Invalid attempt result: {result!r} (expected one of {ATTEMPT_RESULTS})")

        attempt = Attempt(
            id=uuid.uuid4().hex[:8],
            timestamp=datetime.now().isoformat(),
            issue=issue,
            issue_hash=issue_hash(issue),
            approach=approach,
            code_or_command=code_or_command,
            result=result,
            error_message=error_message,
            lessons_learned=lessons_learned,
        )
        attempt.should_not_retry = heuristics.should_not_retry(attempt)
        return attempt

    def has_been_tried(
        self, issue: str, proposed_approach: str, attempts: list[Attempt]
    ) -> TriedResult:
        """Check whether `proposed_approach` repeats a known outcome for `issue`.

        The first sufficiently similar attempt in list order decides; candidates
        are not ranked by recency.
        """
        issue_attempts = self._for_issue(issue, attempts)

        for attempt in issue_attempts:
            score = self.similarity(proposed_approach, attempt.approach)
            if score <= self.similarity_threshold:
                continue

            if attempt.result == "failure" and attempt.should_not_retry:
                logger.info(f"Approach matches failed attempt {attempt.id} (similarity {score:.2f})")
                error = attempt.error_message or "no error message recorded"
                return TriedResult(
                    already_tried=True,
                    previous_attempt=attempt,
                    recommendation=(
                        f'This approach was tried and failed: "{attempt.approach}". '
                        f"Error: {error}. Try a different approach."
                    ),
                )
            if attempt.result == "success":
                logger.info(f"Approach matches successful attempt {attempt.id} (similarity {score:.2f})")
                return TriedResult(
                    already_tried=True,
                    previous_attempt=attempt,
                    recommendation=(
                        f'This approach worked before: "{attempt.approach}". '
                        "Reuse the same solution."
                    ),
                )

        lessons = [a.lessons_learned for a in issue_attempts if a.lessons_learned]
        if lessons:
            return TriedResult(
                already_tried=False,
                recommendation=f"Previous attempts provided insights: {'; '.join(lessons)}",
            )

        return TriedResult(already_tried=False)

    def get_failed_attempts(self, issue: str, attempts: list[Attempt]) -> list[Attempt]:
        return [a for a in self._for_issue(issue, attempts) if a.result == "failure"]

    def get_successful_approaches(self, category: str, attempts: list[Attempt]) -> list[Attempt]:
        """Successful attempts whose issue or approach mentions `category`."""
        category_lower = category.lower()
        return [
            a for a in attempts
            if a.result == "success"
            and (category_lower in a.issue.lower() or category_lower in a.approach.lower())
        ]

    def suggest_alternatives(self, issue: str, attempts: list[Attempt]) -> list[str]:
        """Derive untried directions from how previous attempts failed."""
        failed = self.get_failed_attempts(issue, attempts)
        if not failed:
            return []

        suggestions: list[str] = []

        commands = [a.code_or_command.lower() for a in failed]
        used_bash = any("bash" in c or "sh " in c for c in commands)
        used_powershell = any("powershell" in c for c in commands)
        used_node = any("node " in c or "npx " in c for c in commands)

        if used_bash and not used_powershell:
            suggestions.append("Try using PowerShell instead of bash (better Windows compatibility)")
        if used_powershell and not used_bash:
            suggestions.append("Try using a POSIX shell script instead of PowerShell (better macOS/Linux compatibility)")
        if not used_node:
            suggestions.append("Try using a Node.js script instead of shell commands")

        for attempt in failed:
            error = (attempt.error_message or "").lower()
            if "not found" in error:
                suggestions.append("Check if the command/module is installed")
            if "permission" in error:
                suggestions.append("Try running with elevated permissions or check file permissions")
            if "path" in error or "space" in error:
                suggestions.append("Try quoting paths or using a different path format")
            if "timeout" in error:
                suggestions.append("Try increasing timeout or breaking into smaller operations")

        # Deduplicate, keeping first-trigger order
        return list(dict.fromkeys(suggestions))

    def format_for_prompt(self, issue: str, attempts: list[Attempt]) -> str:
        """Render the failed attempts for one issue, for injection before a fix."""
        failed = self.get_failed_attempts(issue, attempts)
        if not failed:
            return ""

        lines = ["## FAILED APPROACHES (Do not retry these)", ""]
        for attempt in failed:
            lines.append(f"- **{attempt.approach}**")
            if attempt.error_message:
                lines.append(f"  Error: {attempt.error_message}")
            if attempt.lessons_learned:
                lines.append(f"  Lesson: {attempt.lessons_learned}")
            lines.append("")

        return "\n".join(lines)

    def word_set(self, text: str) -> set[str]:
        words: set[str] = set()
        for raw in text.lower().split():
            word = raw.strip(_EDGE_PUNCTUATION)
            if len(word) >= self.min_word_length and word not in self.stop_words:
                words.add(word)
        return words

    def similarity(self, first: str, second: str) -> float:
        """Jaccard similarity of the two texts' word sets."""
        words1 = self.word_set(first)
        words2 = self.word_set(second)
        union = words1 | words2
        if not union:
            return 0.0
        return len(words1 & words2) / len(union)

    def _for_issue(self, issue: str, attempts: list[Attempt]) -> list[Attempt]:
        key = issue_hash(issue)
        return [a for a in attempts if a.issue_hash == key]
