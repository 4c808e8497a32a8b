"""Unit tests for shotqa.models — defaults and thresholds."""

from __future__ import annotations

from shotqa.models import (
    BLANK_BYTES_PER_PIXEL,
    DEFAULT_HIDE_MODE,
    DEFAULT_SCRIPT_TIMEOUT,
    HIDE_MODES,
    MIN_BYTES_PER_PIXEL,
    MIN_SCREENSHOT_HEIGHT,
    MIN_SCREENSHOT_WIDTH,
    MIN_WINDOW_SIZE,
    SCRIPT_INTERPRETER,
)


# ---------------------------------------------------------------------------
# 1. Script execution defaults
# ---------------------------------------------------------------------------

class TestScriptDefaults:
    def test_default_timeout_is_positive(self):
        assert DEFAULT_SCRIPT_TIMEOUT > 0

    def test_interpreter_is_osascript(self):
        assert SCRIPT_INTERPRETER == ("osascript",)

    def test_default_hide_mode_is_a_known_mode(self):
        assert DEFAULT_HIDE_MODE in HIDE_MODES


# ---------------------------------------------------------------------------
# 2. Validation thresholds
# ---------------------------------------------------------------------------

class TestThresholds:
    def test_minimum_screenshot_is_800_by_600(self):
        assert (MIN_SCREENSHOT_WIDTH, MIN_SCREENSHOT_HEIGHT) == (800, 600)

    def test_blank_bound_is_below_suspicious_bound(self):
        """A blank image must be detectable before the file-size rule catches it."""
        assert BLANK_BYTES_PER_PIXEL < MIN_BYTES_PER_PIXEL

    def test_min_window_size_is_below_screenshot_minimum(self):
        assert MIN_WINDOW_SIZE < min(MIN_SCREENSHOT_WIDTH, MIN_SCREENSHOT_HEIGHT)
