"""Unit tests for shotqa.engine.orchestrator — the capture pipeline."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeCapture, FakeExecutor
from shotqa.engine.app_hiding import AppHidingScriptGenerator
from shotqa.engine.capture_strategy import CaptureMethod
from shotqa.engine.orchestrator import (
    ScreenshotOrchestrator,
    ScreenshotValidationError,
    TCCPermissionRequiredError,
    WindowNotAccessibleError,
)
from shotqa.engine.protocols import CapturedImage, ContentProbe, Frame, WindowDescriptor
from shotqa.engine.script_executor import (
    PermissionDeniedError,
    ScriptExecutionFailedError,
    ScriptExecutionResult,
    ScriptSyntaxError,
    ScriptTimeoutError,
)
from shotqa.engine.validator import ValidationFailureReason

WINDOW = WindowDescriptor(exists=True, is_hittable=True, frame=Frame(0, 0, 1440, 900), window_id=42)


def _orchestrator(executor=None, capture=None, **kwargs) -> ScreenshotOrchestrator:
    return ScreenshotOrchestrator(
        executor=executor or FakeExecutor(),
        capture=capture or FakeCapture(),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# 1. Background app suppression
# ---------------------------------------------------------------------------

class TestHideBackgroundApps:
    def test_runs_quit_script_with_configured_timeout(self):
        executor = FakeExecutor()
        _orchestrator(executor, timeout=12.5).hide_background_apps(["Slack"])

        script, timeout = executor.calls[0]
        assert "tell application appName to quit" in script
        assert '"Slack"' in script
        assert timeout == 12.5

    def test_hide_mode_runs_hide_script(self):
        executor = FakeExecutor()
        _orchestrator(executor, hide_mode="hide").hide_background_apps()

        assert "set visible of process appName to false" in executor.calls[0][0]

    def test_explicit_timeout_overrides_default(self):
        executor = FakeExecutor()
        _orchestrator(executor).hide_background_apps(timeout=3)
        assert executor.calls[0][1] == 3

    def test_invalid_hide_mode_rejected(self):
        with pytest.raises(ValueError, match="hide_mode"):
            _orchestrator(hide_mode="minimize")

    def test_app_under_test_is_protected(self):
        executor = FakeExecutor()
        generator = AppHidingScriptGenerator(app_names=["ListAll"])
        _orchestrator(executor, script_generator=generator).hide_background_apps()

        assert 'appName contains "ListAll"' in executor.calls[0][0]

    def test_permission_denial_becomes_tcc_error_without_retry(self):
        denial = PermissionDeniedError("open System Settings", "(-1743)")
        executor = FakeExecutor(denial, ScriptExecutionResult.success())

        with pytest.raises(TCCPermissionRequiredError, match="open System Settings"):
            _orchestrator(executor, retry_count=3).hide_background_apps()

        assert len(executor.calls) == 1

    def test_generic_failure_is_retried(self):
        executor = FakeExecutor(ScriptExecutionFailedError(1, "busy"), ScriptExecutionResult.success())

        _orchestrator(executor, retry_count=1).hide_background_apps()

        assert len(executor.calls) == 2

    def test_generic_failure_raises_after_retries(self):
        failure = ScriptExecutionFailedError(1, "busy")
        executor = FakeExecutor(failure, failure, failure)

        with pytest.raises(ScriptExecutionFailedError):
            _orchestrator(executor, retry_count=2).hide_background_apps()

        assert len(executor.calls) == 3

    @pytest.mark.parametrize("error", [ScriptTimeoutError(30.0), ScriptSyntaxError("bad", "syntax error")])
    def test_timeout_and_syntax_propagate_unretried(self, error):
        executor = FakeExecutor(error, ScriptExecutionResult.success())

        with pytest.raises(type(error)):
            _orchestrator(executor, retry_count=3).hide_background_apps()

        assert len(executor.calls) == 1


# ---------------------------------------------------------------------------
# 2. Capture and validate
# ---------------------------------------------------------------------------

class TestCaptureScreenshot:
    def test_window_capture(self):
        capture = FakeCapture()

        result = _orchestrator(capture=capture).capture_screenshot(WINDOW)

        assert capture.calls == ["window"]
        assert capture.windows == [WINDOW]
        assert result.capture_method is CaptureMethod.WINDOW
        assert result.was_validated is True

    def test_missing_window_uses_fullscreen(self):
        capture = FakeCapture()

        result = _orchestrator(capture=capture).capture_screenshot(None)

        assert capture.calls == ["fullscreen"]
        assert result.capture_method is CaptureMethod.FULLSCREEN

    def test_content_probe_enables_window_capture(self):
        capture = FakeCapture()
        hidden = WindowDescriptor(exists=False, is_hittable=False, frame=Frame(0, 0, 1440, 900), window_id=42)

        _orchestrator(capture=capture).capture_screenshot(hidden, ContentProbe(has_sidebar=True))

        assert capture.calls == ["window"]

    def test_fallback_disabled_raises(self):
        capture = FakeCapture()

        with pytest.raises(WindowNotAccessibleError):
            _orchestrator(capture=capture).capture_screenshot(None, fallback_to_fullscreen=False)

        assert capture.calls == []

    def test_invalid_image_raises_validation_error(self):
        tiny = CapturedImage(width=50, height=30, byte_size=1_000)
        capture = FakeCapture(window_image=tiny)

        with pytest.raises(ScreenshotValidationError) as exc_info:
            _orchestrator(capture=capture).capture_screenshot(WINDOW)

        assert exc_info.value.reason is ValidationFailureReason.TOO_SMALL
        assert exc_info.value.image == tiny


# ---------------------------------------------------------------------------
# 3. Full flow
# ---------------------------------------------------------------------------

class TestCaptureAndValidate:
    def test_names_result_with_prefix(self):
        result = _orchestrator().capture_and_validate("01-main", WINDOW)
        assert result.filename == "Mac-01-main.png"

    def test_hides_apps_before_capture(self):
        executor = FakeExecutor()
        _orchestrator(executor).capture_and_validate("01-main", WINDOW, excluding=["Slack"])

        assert len(executor.calls) == 1
        assert '"Slack"' in executor.calls[0][0]

    def test_hide_apps_can_be_skipped(self):
        executor = FakeExecutor()
        _orchestrator(executor).capture_and_validate("01-main", WINDOW, hide_apps=False)
        assert executor.calls == []

    def test_tcc_error_stops_before_capture(self):
        executor = FakeExecutor(PermissionDeniedError("fix it", "(-1743)"))
        capture = FakeCapture()

        with pytest.raises(TCCPermissionRequiredError):
            _orchestrator(executor, capture).capture_and_validate("01-main", WINDOW)

        assert capture.calls == []

    def test_image_file_is_renamed(self, make_png):
        path = make_png("capture-window-20260101-120000.png", 800, 600)
        image = CapturedImage(width=800, height=600, byte_size=path.stat().st_size, path=path)
        capture = FakeCapture(window_image=image)

        result = _orchestrator(capture=capture, filename_prefix="AppStore-").capture_and_validate("02-detail", WINDOW)

        target = path.with_name("AppStore-02-detail.png")
        assert result.image_path == str(target)
        assert target.is_file()
        assert not path.exists()
        assert result.image is not None and result.image.path == Path(target)
