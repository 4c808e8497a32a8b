"""ShotQA Failure Classifier -- TCC permission detection for osascript errors.

macOS gates Apple-event automation behind TCC (Transparency, Consent, and
Control).  When the invoking process (Terminal, iTerm, Xcode, ...) has not
been granted Automation access, ``osascript`` fails with error text that looks
a lot like any other script failure.  This module recognises those denials so
the harness can tell the user exactly which switch to flip, instead of
reporting a generic non-zero exit.

Matching is an ordered list of rules, first match wins.  Negative rules
(syntax and timeout signatures) come first so that a scripting bug is never
reported as a permission problem.  Append rules via ``extra_rules`` to
recognise new signatures without changing existing behaviour.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Iterable

DEFAULT_HOST_APP = "Terminal/Xcode"


@dataclasses.dataclass(frozen=True)
class TCCDetectionOutcome:
    """Result of TCC error detection."""

    is_permission_error: bool
    actionable_message: str = ""  # empty unless is_permission_error

    @classmethod
    def not_permission_error(cls) -> TCCDetectionOutcome:
        return cls(is_permission_error=False, actionable_message="")


@dataclasses.dataclass(frozen=True)
class ClassifierRule:
    """One signature: a case-insensitive regex and the verdict it implies."""

    name: str
    pattern: str
    is_permission: bool

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text, re.IGNORECASE) is not None


# Syntax/compile-time signatures (AppleScript error space -2700..-2799).
SYNTAX_RULES: tuple[ClassifierRule, ...] = (
    ClassifierRule("syntax_error_text", r"syntax error", False),
    ClassifierRule("expected_token", r"\bexpected\b.+\bbut found\b", False),
    ClassifierRule("expected_end_of_line", r"expected end of line", False),
    ClassifierRule("cant_go_after", r"can[’']t go after", False),
    ClassifierRule("syntax_code_2740", r"\(-2740\)", False),
    ClassifierRule("syntax_code_2741", r"\(-2741\)", False),
)

# Evaluated in order; first match decides.
DEFAULT_RULES: tuple[ClassifierRule, ...] = (
    *SYNTAX_RULES,
    ClassifierRule("undefined_variable", r"variable is not defined|\(-2753\)", False),
    ClassifierRule("apple_event_timeout", r"\(-1712\)", False),
    ClassifierRule("timed_out", r"timed out", False),
    ClassifierRule("timeout", r"\btimeout\b", False),
    ClassifierRule("not_allowed_access", r"is not allowed\b.*\baccess", True),
    ClassifierRule("osascript_not_allowed", r"osascript is not allowed", True),
    ClassifierRule("not_authorized", r"not authorized", True),
    ClassifierRule("code_1743", r"\(-1743\)", True),
    ClassifierRule("code_1719", r"\(-1719\)", True),
)


def build_actionable_message(host_app: str = DEFAULT_HOST_APP) -> str:
    """Remediation text shown whenever a permission denial is detected."""
    return (
        "TCC Automation permissions NOT granted. "
        "Fix: open System Settings → Privacy & Security → Automation "
        f"and enable control of System Events for {host_app} "
        "(the process running ShotQA), then re-run."
    )


class FailureClassifier:
    """Ordered rule engine over captured stderr text."""

    def __init__(
        self,
        rules: Iterable[ClassifierRule] | None = None,
        extra_rules: Iterable[ClassifierRule] = (),
        host_app: str = DEFAULT_HOST_APP,
    ) -> None:
        self._rules: tuple[ClassifierRule, ...] = (
            *(DEFAULT_RULES if rules is None else tuple(rules)),
            *tuple(extra_rules),
        )
        self._message = build_actionable_message(host_app)

    @property
    def rules(self) -> tuple[ClassifierRule, ...]:
        return self._rules

    def classify(self, stderr: str) -> TCCDetectionOutcome:
        """Decide whether *stderr* is a TCC permission denial.  Never raises."""
        if not isinstance(stderr, str) or not stderr.strip():
            return TCCDetectionOutcome.not_permission_error()

        for rule in self._rules:
            if rule.matches(stderr):
                if rule.is_permission:
                    return TCCDetectionOutcome(is_permission_error=True, actionable_message=self._message)
                return TCCDetectionOutcome.not_permission_error()

        return TCCDetectionOutcome.not_permission_error()


_DEFAULT_CLASSIFIER = FailureClassifier()


def classify(stderr: str) -> TCCDetectionOutcome:
    """Classify *stderr* with the default rule set."""
    return _DEFAULT_CLASSIFIER.classify(stderr)


def is_syntax_error(stderr: str) -> bool:
    """True if *stderr* carries an AppleScript compile/syntax error signature."""
    if not isinstance(stderr, str) or not stderr.strip():
        return False
    return any(rule.matches(stderr) for rule in SYNTAX_RULES)
