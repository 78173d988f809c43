"""Ask Claude a question with the project memory injected as system context.

The rendered context (and, when an issue is given, that issue's failed
approaches) is passed verbatim as system text blocks, so the model sees
exactly what format_context_for_prompt produced.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field

import anthropic

from projectmemory.config import DEFAULT_MODEL
from projectmemory.context.formatter import format_context_for_prompt
from projectmemory.extraction.models import Attempt, ProjectContext
from projectmemory.tracking.attempts import AttemptTracker

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BASE_DELAY = 2.0  # seconds
MAX_TOKENS = 1024

ASSISTANT_INSTRUCTIONS = """\
You are a coding assistant working inside an existing project. The project \
context below is authoritative: follow the critical decisions, do not propose \
approaches listed as failed, and mention any active blocker that affects the \
question. If the context doesn't cover something, say so instead of guessing."""


@dataclass
class AnswerResult:
    question: str
    answer: str
    issue: str | None = None
    system_blocks: list[str] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


def build_system_blocks(
    context: ProjectContext,
    issue: str | None = None,
    attempts: list[Attempt] | None = None,
    tracker: AttemptTracker | None = None,
) -> list[str]:
    """System prompt sections, in the order they are sent."""
    blocks = [ASSISTANT_INSTRUCTIONS, format_context_for_prompt(context)]
    if issue:
        tracker = tracker or AttemptTracker()
        history = attempts if attempts is not None else context.recent_attempts
        failed = tracker.format_for_prompt(issue, history)
        if failed:
            blocks.append(failed)
    return blocks


class AssistantEngine:
    """Sends questions to Claude with project memory as system context."""

    def __init__(
        self,
        anthropic_client: anthropic.Anthropic,
        model: str = DEFAULT_MODEL,
        tracker: AttemptTracker | None = None,
    ) -> None:
        self._client = anthropic_client
        self._model = model
        self._tracker = tracker or AttemptTracker()

    def ask(
        self,
        question: str,
        context: ProjectContext,
        issue: str | None = None,
        attempts: list[Attempt] | None = None,
    ) -> AnswerResult:
        blocks = build_system_blocks(context, issue, attempts, self._tracker)
        answer = self._complete(question, blocks)
        return AnswerResult(question=question, answer=answer, issue=issue, system_blocks=blocks)

    def _complete(self, question: str, blocks: list[str]) -> str:
        system = [{"type": "text", "text": block} for block in blocks]

        for attempt in range(MAX_RETRIES):
            try:
                response = self._client.messages.create(
                    model=self._model,
                    max_tokens=MAX_TOKENS,
                    system=system,
                    messages=[{"role": "user", "content": question}],
                )
                break
            except anthropic.RateLimitError:
                if attempt < MAX_RETRIES - 1:
                    delay = RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(f"Rate limited, retrying in {delay}s...")
                    time.sleep(delay)
                else:
                    return "Unable to answer: API rate limit exceeded. Try again later."
            except anthropic.APIError as e:
                logger.error(f"API error while answering: {e}")
                return f"Unable to answer due to an API error: {e}"

        if not response.content:
            return "No response from API."

        return response.content[0].text.strip()
