"""Unit tests for shotqa.engine.failure_classifier — TCC denial detection."""

from __future__ import annotations

import pytest

from shotqa.engine.failure_classifier import (
    DEFAULT_RULES,
    ClassifierRule,
    FailureClassifier,
    TCCDetectionOutcome,
    build_actionable_message,
    classify,
    is_syntax_error,
)

PERMISSION_ERRORS = [
    "execution error: Not authorized to send Apple events to System Events. (-1743)",
    "execution error: System Events got an error: osascript is not allowed assistive access. (-1719)",
    "osascript is not allowed to send keystrokes",
    "Terminal is not allowed to access System Events",
    "NOT AUTHORIZED to send Apple events",
    "error (-1743)",
]

NON_PERMISSION_ERRORS = [
    "syntax error: Expected end of line but found identifier. (-2741)",
    "execution error: The variable foo is not defined. (-2753)",
    "execution error: System Events got an error: AppleEvent timed out. (-1712)",
    "osascript: timeout waiting for reply",
    "execution error: Can’t get window 1 of process \"Finder\". Invalid index. (-1728)",
    "execution error: Finder got an error: Connection is invalid. (-609)",
]


# ---------------------------------------------------------------------------
# 1. Permission denials
# ---------------------------------------------------------------------------

class TestPermissionDetection:
    @pytest.mark.parametrize("stderr", PERMISSION_ERRORS)
    def test_permission_errors_are_detected(self, stderr):
        outcome = classify(stderr)
        assert outcome.is_permission_error is True

    @pytest.mark.parametrize("stderr", PERMISSION_ERRORS)
    def test_message_names_the_settings_path(self, stderr):
        message = classify(stderr).actionable_message
        assert "System Settings" in message
        assert "Privacy & Security" in message
        assert "Automation" in message
        assert "Terminal/Xcode" in message

    def test_host_app_is_configurable(self):
        classifier = FailureClassifier(host_app="iTerm2")
        outcome = classifier.classify("Not authorized to send Apple events (-1743)")
        assert "iTerm2" in outcome.actionable_message

    def test_message_matches_builder(self):
        assert classify("(-1743)").actionable_message == build_actionable_message()


# ---------------------------------------------------------------------------
# 2. Negative cases
# ---------------------------------------------------------------------------

class TestNonPermissionErrors:
    @pytest.mark.parametrize("stderr", NON_PERMISSION_ERRORS)
    def test_other_errors_are_not_permission(self, stderr):
        outcome = classify(stderr)
        assert outcome == TCCDetectionOutcome(is_permission_error=False, actionable_message="")

    @pytest.mark.parametrize("stderr", ["", "   ", "\n\t"])
    def test_blank_input_is_not_permission(self, stderr):
        assert classify(stderr) == TCCDetectionOutcome.not_permission_error()

    def test_non_string_input_does_not_raise(self):
        assert classify(None).is_permission_error is False  # type: ignore[arg-type]

    def test_syntax_rule_wins_over_permission_signature(self):
        """Negative rules are checked first, so a mixed message is not a TCC denial."""
        stderr = "syntax error: Expected end of line but found \"not authorized\". (-2741)"
        assert classify(stderr).is_permission_error is False

    def test_timeout_wins_over_permission_signature(self):
        stderr = "AppleEvent timed out while not authorized (-1712)"
        assert classify(stderr).is_permission_error is False


# ---------------------------------------------------------------------------
# 3. Purity
# ---------------------------------------------------------------------------

class TestPurity:
    @pytest.mark.parametrize("stderr", PERMISSION_ERRORS + NON_PERMISSION_ERRORS)
    def test_classify_is_idempotent(self, stderr):
        assert classify(stderr) == classify(stderr)

    def test_outcome_is_frozen(self):
        outcome = classify("(-1743)")
        with pytest.raises(AttributeError):
            outcome.is_permission_error = False  # type: ignore[misc]


# ---------------------------------------------------------------------------
# 4. Rule extension
# ---------------------------------------------------------------------------

class TestRuleExtension:
    def test_default_rules_are_ordered_negative_first(self):
        first_permission = next(i for i, r in enumerate(DEFAULT_RULES) if r.is_permission)
        assert all(not r.is_permission for r in DEFAULT_RULES[:first_permission])

    def test_extra_rules_are_appended(self):
        extra = ClassifierRule("sandbox", r"sandbox denied apple event", True)
        classifier = FailureClassifier(extra_rules=[extra])

        assert classifier.rules[-1] == extra
        assert classifier.classify("Sandbox denied Apple event").is_permission_error is True
        assert classify("Sandbox denied Apple event").is_permission_error is False

    def test_extra_rules_do_not_override_existing_verdicts(self):
        catch_all = ClassifierRule("everything", r".", True)
        classifier = FailureClassifier(extra_rules=[catch_all])

        assert classifier.classify("syntax error: oops").is_permission_error is False

    def test_custom_rule_list_replaces_defaults(self):
        classifier = FailureClassifier(rules=[ClassifierRule("only", r"nope", True)])
        assert classifier.classify("Not authorized (-1743)").is_permission_error is False


# ---------------------------------------------------------------------------
# 5. Syntax detection helper
# ---------------------------------------------------------------------------

class TestIsSyntaxError:
    @pytest.mark.parametrize(
        "stderr",
        [
            "syntax error: Expected end of line but found identifier. (-2741)",
            "Expected “then” but found end of script.",
            "A “tell” can’t go after this identifier. (-2740)",
        ],
    )
    def test_syntax_errors(self, stderr):
        assert is_syntax_error(stderr) is True

    @pytest.mark.parametrize(
        "stderr",
        ["", "The variable foo is not defined. (-2753)", "Not authorized (-1743)"],
    )
    def test_not_syntax_errors(self, stderr):
        assert is_syntax_error(stderr) is False
