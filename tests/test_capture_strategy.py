"""Unit tests for shotqa.engine.capture_strategy — window vs fullscreen."""

from __future__ import annotations

import pytest

from shotqa.engine.capture_strategy import CaptureMethod, WindowCaptureStrategy
from shotqa.engine.protocols import ContentProbe, Frame, WindowDescriptor


def _window(exists: bool, width: float = 1200, height: float = 800, hittable: bool = True) -> WindowDescriptor:
    return WindowDescriptor(exists=exists, is_hittable=hittable, frame=Frame(0, 0, width, height))


@pytest.fixture
def strategy() -> WindowCaptureStrategy:
    return WindowCaptureStrategy()


# ---------------------------------------------------------------------------
# 1. Existing windows
# ---------------------------------------------------------------------------

class TestExistingWindow:
    def test_normal_window_uses_window_capture(self, strategy):
        assert strategy.decide_capture_method(_window(True)) is CaptureMethod.WINDOW

    def test_tiny_window_falls_back(self, strategy):
        assert strategy.decide_capture_method(_window(True, 50, 30)) is CaptureMethod.FULLSCREEN

    @pytest.mark.parametrize("width,height", [(99, 800), (1200, 99), (0, 0)])
    def test_either_dimension_below_minimum_falls_back(self, strategy, width, height):
        assert strategy.decide_capture_method(_window(True, width, height)) is CaptureMethod.FULLSCREEN

    def test_minimum_size_is_inclusive(self, strategy):
        assert strategy.decide_capture_method(_window(True, 100, 100)) is CaptureMethod.WINDOW

    def test_not_hittable_window_is_still_captured(self, strategy):
        assert strategy.decide_capture_method(_window(True, hittable=False)) is CaptureMethod.WINDOW

    def test_probe_is_ignored_when_window_exists(self, strategy):
        probe = ContentProbe(has_sidebar=True)
        assert strategy.decide_capture_method(_window(True, 50, 30), probe) is CaptureMethod.FULLSCREEN

    def test_custom_minimum(self):
        strategy = WindowCaptureStrategy(min_window_size=500)
        assert strategy.decide_capture_method(_window(True, 400, 800)) is CaptureMethod.FULLSCREEN


# ---------------------------------------------------------------------------
# 2. Missing windows and the content probe
# ---------------------------------------------------------------------------

class TestMissingWindow:
    def test_no_descriptor_means_fullscreen(self, strategy):
        assert strategy.decide_capture_method(None, None) is CaptureMethod.FULLSCREEN

    def test_missing_window_without_probe_falls_back(self, strategy):
        assert strategy.decide_capture_method(_window(False)) is CaptureMethod.FULLSCREEN

    def test_empty_probe_falls_back(self, strategy):
        assert strategy.decide_capture_method(_window(False), ContentProbe()) is CaptureMethod.FULLSCREEN

    @pytest.mark.parametrize(
        "probe",
        [
            ContentProbe(has_sidebar=True),
            ContentProbe(has_buttons=True),
            ContentProbe(has_outline_rows=True),
            ContentProbe(extra={"has_toolbar": True}),
        ],
    )
    def test_any_content_signal_overrides_missing_window(self, strategy, probe):
        assert strategy.decide_capture_method(_window(False), probe) is CaptureMethod.WINDOW

    def test_false_extra_signals_do_not_count(self, strategy):
        probe = ContentProbe(extra={"has_toolbar": False})
        assert strategy.decide_capture_method(_window(False), probe) is CaptureMethod.FULLSCREEN

    def test_probe_override_ignores_frame(self, strategy):
        probe = ContentProbe(has_buttons=True)
        assert strategy.decide_capture_method(_window(False, 0, 0), probe) is CaptureMethod.WINDOW


class TestPurity:
    def test_same_inputs_same_decision(self, strategy):
        window, probe = _window(False), ContentProbe(has_sidebar=True)
        decisions = {strategy.decide_capture_method(window, probe) for _ in range(5)}
        assert decisions == {CaptureMethod.WINDOW}

    def test_inputs_are_hashable_values(self):
        probe = ContentProbe(has_sidebar=True, extra={"has_toolbar": True})

        assert hash(probe) == hash(ContentProbe(has_sidebar=True, extra={"has_toolbar": True}))
        assert len({_window(False), _window(False)}) == 1
        assert probe != ContentProbe(has_sidebar=True)
