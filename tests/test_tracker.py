"""Tests for projectmemory.tracking.attempts — similarity checks and suggestions."""

from __future__ import annotations

import json

import pytest

from projectmemory.config import Config
from projectmemory.extraction.hashing import issue_hash
from projectmemory.tracking.attempts import AttemptTracker

ISSUE = "port 3000 in use"


@pytest.fixture
def tracker() -> AttemptTracker:
    return AttemptTracker()


class TestHasBeenTried:
    def test_similar_failed_approach_is_flagged(self, tracker, make_attempt):
        failed = make_attempt(
            "kill process on port 3000",
            result="failure",
            error_message="permission denied",
            should_not_retry=True,
        )
        result = tracker.has_been_tried(ISSUE, "kill the process listening on port 3000", [failed])

        assert result.already_tried is True
        assert result.previous_attempt is failed
        assert "permission denied" in result.recommendation
        assert "Try a different approach" in result.recommendation

    def test_identical_successful_approach_is_reused(self, tracker, make_attempt):
        worked = make_attempt("restart dev server on a different port", result="success")
        result = tracker.has_been_tried(ISSUE, "restart dev server on a different port", [worked])

        assert result.already_tried is True
        assert result.previous_attempt is worked
        assert "Reuse the same solution" in result.recommendation

    def test_no_history(self, tracker):
        result = tracker.has_been_tried(ISSUE, "anything", [])
        assert result.already_tried is False
        assert result.previous_attempt is None
        assert result.recommendation == ""

    def test_other_issues_are_ignored(self, tracker, make_attempt):
        failed = make_attempt("kill process on port 3000", issue="database locked")
        result = tracker.has_been_tried(ISSUE, "kill process on port 3000", [failed])
        assert result.already_tried is False

    def test_issue_matching_ignores_case(self, tracker, make_attempt):
        failed = make_attempt("kill process on port 3000")
        result = tracker.has_been_tried("  PORT 3000 in use", "kill process on port 3000", [failed])
        assert result.already_tried is True

    def test_retryable_failure_is_not_flagged(self, tracker, make_attempt):
        failed = make_attempt(
            "kill process on port 3000",
            result="failure",
            lessons_learned="with sudo it might work",
            should_not_retry=False,
        )
        result = tracker.has_been_tried(ISSUE, "kill process on port 3000", [failed])
        assert result.already_tried is False
        assert result.recommendation == "Previous attempts provided insights: with sudo it might work"

    def test_dissimilar_approach_collects_lessons(self, tracker, make_attempt):
        attempts = [
            make_attempt("kill process on port 3000", lessons_learned="needs sudo", attempt_id="a1"),
            make_attempt("reboot machine", result="partial", lessons_learned="slow", attempt_id="a2"),
        ]
        result = tracker.has_been_tried(ISSUE, "change the dev server port", attempts)
        assert result.already_tried is False
        assert result.recommendation == "Previous attempts provided insights: needs sudo; slow"

    def test_first_match_in_list_order_wins(self, tracker, make_attempt):
        first = make_attempt("restart dev server", result="success", attempt_id="a1")
        second = make_attempt("restart dev server", result="failure", attempt_id="a2")
        result = tracker.has_been_tried(ISSUE, "restart dev server", [first, second])
        assert result.previous_attempt is first

    def test_similarity_at_threshold_is_not_a_match(self, tracker, make_attempt):
        # 7 shared words out of 10 distinct: exactly 0.7
        prior = make_attempt("alpha bravo charlie delta echo foxtrot golf")
        proposed = "alpha bravo charlie delta echo foxtrot golf hotel india juliet"
        assert tracker.similarity(prior.approach, proposed) == pytest.approx(0.7)
        assert tracker.has_been_tried(ISSUE, proposed, [prior]).already_tried is False

    def test_to_json(self, tracker, make_attempt):
        failed = make_attempt("kill process on port 3000", error_message="denied")
        result = tracker.has_been_tried(ISSUE, "kill process on port 3000", [failed])
        data = json.loads(result.to_json())
        assert data["already_tried"] is True
        assert data["previous_attempt"]["approach"] == "kill process on port 3000"


class TestSimilarity:
    def test_short_words_and_stop_words_are_ignored(self, tracker):
        assert tracker.word_set("Kill the process on port 3000.") == {"kill", "process", "port", "3000"}

    def test_empty_texts(self, tracker):
        assert tracker.similarity("", "") == 0.0
        assert tracker.similarity("a an of", "to be") == 0.0

    def test_configurable_threshold(self, make_attempt):
        tracker = AttemptTracker.from_config(Config(similarity_threshold=0.3))
        prior = make_attempt("kill process on port 3000")
        assert tracker.has_been_tried(ISSUE, "kill node on port 8080", [prior]).already_tried is True

    def test_configurable_word_length(self):
        tracker = AttemptTracker(min_word_length=5)
        assert tracker.word_set("kill process port 3000") == {"process"}


class TestCreateAttempt:
    def test_creates_failure(self, tracker):
        attempt = tracker.create_attempt(ISSUE, "kill it", "kill -9 123", "failure", "denied")
        assert attempt.issue_hash == issue_hash(ISSUE)
        assert len(attempt.id) == 8
        assert attempt.timestamp
        assert attempt.error_message == "denied"
        assert attempt.should_not_retry is True

    def test_success_is_retryable(self, tracker):
        attempt = tracker.create_attempt(ISSUE, "restart", "", "success")
        assert attempt.should_not_retry is False

    def test_invalid_result(self, tracker):
        with pytest.raises(ValueError, match="Invalid attempt result"):
            tracker.create_attempt(ISSUE, "x", "", "maybe")


class TestQueries:
    def test_failed_attempts_subset(self, tracker, make_attempt):
        attempts = [
            make_attempt("a", result="failure", attempt_id="1"),
            make_attempt("b", result="success", attempt_id="2"),
            make_attempt("c", result="failure", issue="other", attempt_id="3"),
            make_attempt("d", result="partial", attempt_id="4"),
        ]
        failed = tracker.get_failed_attempts(ISSUE, attempts)
        assert [a.id for a in failed] == ["1"]
        assert all(a in attempts for a in failed)

    def test_successful_approaches_by_category(self, tracker, make_attempt):
        attempts = [
            make_attempt("restart Docker daemon", result="success", attempt_id="1"),
            make_attempt("docker prune", result="failure", attempt_id="2"),
            make_attempt("x", result="success", issue="docker network down", attempt_id="3"),
        ]
        found = tracker.get_successful_approaches("docker", attempts)
        assert [a.id for a in found] == ["1", "3"]


class TestSuggestAlternatives:
    def test_no_failures_no_suggestions(self, tracker, make_attempt):
        assert tracker.suggest_alternatives(ISSUE, [make_attempt("x", result="success")]) == []

    def test_bash_failure(self, tracker, make_attempt):
        failed = make_attempt("script", code_or_command="bash ./kill.sh")
        suggestions = tracker.suggest_alternatives(ISSUE, [failed])
        assert suggestions[0].startswith("Try using PowerShell instead of bash")
        assert "Try using a Node.js script instead of shell commands" in suggestions

    def test_powershell_failure(self, tracker, make_attempt):
        failed = make_attempt("script", code_or_command="powershell Stop-Process")
        suggestions = tracker.suggest_alternatives(ISSUE, [failed])
        assert any("POSIX shell" in s for s in suggestions)
        assert not any("instead of bash" in s for s in suggestions)

    def test_node_already_used(self, tracker, make_attempt):
        failed = make_attempt("script", code_or_command="npx kill-port 3000")
        assert not any("Node.js" in s for s in tracker.suggest_alternatives(ISSUE, [failed]))

    def test_error_hints_are_deduplicated(self, tracker, make_attempt):
        attempts = [
            make_attempt("a", error_message="command not found", attempt_id="1"),
            make_attempt("b", error_message="kill: not found", attempt_id="2"),
            make_attempt("c", error_message="Permission denied", attempt_id="3"),
            make_attempt("d", error_message="ETIMEDOUT timeout", attempt_id="4"),
            make_attempt("e", error_message="bad path with space", attempt_id="5"),
        ]
        suggestions = tracker.suggest_alternatives(ISSUE, attempts)
        assert suggestions == [
            "Try using a Node.js script instead of shell commands",
            "Check if the command/module is installed",
            "Try running with elevated permissions or check file permissions",
            "Try increasing timeout or breaking into smaller operations",
            "Try quoting paths or using a different path format",
        ]


class TestFormatForPrompt:
    def test_empty_when_nothing_failed(self, tracker, make_attempt):
        assert tracker.format_for_prompt(ISSUE, [make_attempt("x", result="success")]) == ""

    def test_renders_failures(self, tracker, make_attempt):
        attempts = [
            make_attempt("kill process", error_message="denied", lessons_learned="needs sudo"),
            make_attempt("restart", result="success", attempt_id="2"),
        ]
        assert tracker.format_for_prompt(ISSUE, attempts) == (
            "## FAILED APPROACHES (Do not retry these)\n"
            "\n"
            "- **kill process**\n"
            "  Error: denied\n"
            "  Lesson: needs sudo\n"
        )
