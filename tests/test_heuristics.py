"""Tests for projectmemory.extraction.heuristics — one keyword trigger at a time."""

from __future__ import annotations

import pytest

from projectmemory.extraction.heuristics import (
    extract_impact,
    infer_blocker_category,
    infer_decision_category,
    is_reversible,
    should_not_retry,
)


class TestDecisionCategory:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Split the app into a monorepo structure", "architecture"),
            ("Switch test framework", "tech-stack"),
            ("Use the repository pattern", "patterns"),
            ("Move auth to middleware", "security"),
            ("Add invoices table", "data-model"),
            ("Version the public API", "api-design"),
            ("Reuse the button component", "ui-design"),
            ("Add third-party analytics", "integration"),
            ("Deploy previews per branch", "deployment"),
            ("Adopt OAuth for login", "security"),
            ("Redesign settings page", "architecture"),
            ("Restructure the monorepo", "architecture"),
            ("Charge late fees after 30 days", "business-logic"),
        ],
    )
    def test_keyword_triggers(self, title, expected):
        assert infer_decision_category(title, "") == expected

    def test_design_resolves_to_architecture_first(self):
        assert infer_decision_category("Redesign the settings page", "new design") == "architecture"

    def test_short_keywords_need_whole_words(self):
        # "ui" in "build" and "api" in "capital" must not trigger
        assert infer_decision_category("Build with capital letters", "") == "business-logic"

    def test_body_is_scanned_too(self):
        assert infer_decision_category("Keep it simple", "We chose the drizzle schema") == "data-model"


class TestBlockerCategory:
    @pytest.mark.parametrize(
        "body,expected",
        [
            ("TypeError exception on load", "error"),
            ("Missing credentials for staging", "missing-info"),
            ("Waiting for the vendor", "waiting-external"),
            ("Should we use tabs or spaces?", "needs-decision"),
        ],
    )
    def test_keyword_triggers(self, body, expected):
        assert infer_blocker_category(body) == expected


class TestExtractImpact:
    def test_inline_mention(self):
        assert extract_impact("Note. Impact: High") == "high"

    def test_bold_label(self):
        assert extract_impact("**Impact:** critical") == "critical"

    def test_unknown_level_defaults_to_low(self):
        assert extract_impact("impact: enormous") == "low"

    def test_missing_defaults_to_low(self):
        assert extract_impact("nothing here") == "low"


class TestIsReversible:
    def test_default_reversible(self):
        assert is_reversible("Use Tailwind") is True

    def test_labeled_no(self):
        assert is_reversible("", labeled_value="No") is False

    def test_body_marker(self):
        assert is_reversible("**Reversible:** no") is False

    def test_irreversible_word(self):
        assert is_reversible("This migration is irreversible.") is False


class TestShouldNotRetry:
    def test_failure_without_lesson(self, make_attempt):
        assert should_not_retry(make_attempt("x", result="failure")) is True

    def test_failure_with_plain_lesson(self, make_attempt):
        attempt = make_attempt("x", result="failure", lessons_learned="needs sudo")
        assert should_not_retry(attempt) is True

    def test_might_work_escape_hatch(self, make_attempt):
        attempt = make_attempt("x", result="failure", lessons_learned="a smaller batch might work")
        assert should_not_retry(attempt) is False

    def test_escape_hatch_is_case_sensitive(self, make_attempt):
        attempt = make_attempt("x", result="failure", lessons_learned="Might work with sudo")
        assert should_not_retry(attempt) is True

    @pytest.mark.parametrize("result", ["success", "partial"])
    def test_non_failures_are_retryable(self, make_attempt, result):
        assert should_not_retry(make_attempt("x", result=result)) is False
