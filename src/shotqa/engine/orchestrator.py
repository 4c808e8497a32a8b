"""ShotQA Orchestrator -- suppress background apps, capture, validate.

Coordinates the pipeline for one screenshot:

1. Quit (or hide) background apps via the generated AppleScript.
2. Decide window vs fullscreen capture.
3. Capture through the injected ``ScreenshotCapturing`` collaborator.
4. Validate the image.

Script errors are translated into screenshot-level errors here.  TCC denials
are never retried: only a human can fix them.  Timeouts and syntax errors
propagate as-is; generic execution failures are retried up to
``retry_count`` times.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Iterable

from shotqa.engine.app_hiding import AppHidingScriptGenerator
from shotqa.engine.capture_strategy import CaptureMethod, WindowCaptureStrategy
from shotqa.engine.failure_classifier import build_actionable_message
from shotqa.engine.protocols import (
    CapturedImage,
    ContentProbe,
    ScreenshotCapturing,
    ScriptExecuting,
    WindowDescriptor,
)
from shotqa.engine.script_executor import (
    PermissionDeniedError,
    ScriptExecutionFailedError,
)
from shotqa.engine.validator import ScreenshotValidator, ValidationFailureReason, ValidationOutcome
from shotqa.models import DEFAULT_FILENAME_PREFIX, DEFAULT_SCRIPT_TIMEOUT, HIDE_MODES

logger = logging.getLogger("shotqa.engine.orchestrator")


# ---------------------------------------------------------------------------
# Screenshot errors
# ---------------------------------------------------------------------------

class ScreenshotError(Exception):
    """Base class for screenshot-level failures."""

    @property
    def user_message(self) -> str:
        return str(self)


class WindowNotAccessibleError(ScreenshotError):
    def __init__(self, detail: str = "") -> None:
        message = "Window is not accessible for screenshot"
        super().__init__(f"{message}: {detail}" if detail else message)


class TCCPermissionRequiredError(ScreenshotError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or build_actionable_message())


class CaptureTimedOutError(ScreenshotError):
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Screenshot capture timed out after {timeout:g}s")


class ScreenshotValidationError(ScreenshotError):
    def __init__(self, reason: ValidationFailureReason, image: CapturedImage | None = None) -> None:
        self.reason = reason
        self.image = image
        detail = ""
        if image is not None:
            detail = f" ({image.width}x{image.height}, {image.byte_size} bytes)"
        super().__init__(f"Screenshot validation failed: {reason.value}{detail}")


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ScreenshotResult:
    """Result of a captured and validated screenshot."""

    filename: str
    was_validated: bool
    capture_method: CaptureMethod
    image_path: str | None = None
    validation: ValidationOutcome | None = None
    image: CapturedImage | None = None


# ---------------------------------------------------------------------------
# ScreenshotOrchestrator
# ---------------------------------------------------------------------------

class ScreenshotOrchestrator:
    """Runs the full capture flow for named screenshots.

    Usage::

        orchestrator = ScreenshotOrchestrator(
            executor=AppleScriptExecutor(),
            capture=ScreencaptureCapture(Path("/tmp/shots")),
        )
        result = orchestrator.capture_and_validate("01-main", window=descriptor)
    """

    def __init__(
        self,
        executor: ScriptExecuting,
        capture: ScreenshotCapturing,
        strategy: WindowCaptureStrategy | None = None,
        validator: ScreenshotValidator | None = None,
        script_generator: AppHidingScriptGenerator | None = None,
        retry_count: int = 0,
        timeout: float = DEFAULT_SCRIPT_TIMEOUT,
        hide_mode: str = "quit",
        filename_prefix: str = DEFAULT_FILENAME_PREFIX,
    ) -> None:
        if hide_mode not in HIDE_MODES:
            raise ValueError(f"hide_mode must be one of {HIDE_MODES}, got {hide_mode!r}")
        self._executor = executor
        self._capture = capture
        self._strategy = strategy or WindowCaptureStrategy()
        self._validator = validator or ScreenshotValidator()
        self._script_generator = script_generator or AppHidingScriptGenerator()
        self._retry_count = max(0, retry_count)
        self._timeout = timeout
        self._hide_mode = hide_mode
        self._filename_prefix = filename_prefix

    # -- Background apps -----------------------------------------------------

    def suppression_script(self, excluding: Iterable[str] = ()) -> str:
        if self._hide_mode == "hide":
            return self._script_generator.generate_hide_script(excluding)
        return self._script_generator.generate_quit_script(excluding)

    def hide_background_apps(self, excluding: Iterable[str] = (), timeout: float | None = None) -> None:
        """Quit or hide every foreground app not on the allow-list.

        Raises:
            TCCPermissionRequiredError: Automation permission missing.
            ScriptTimeoutError / ScriptSyntaxError: propagated without retry.
            ScriptExecutionFailedError: after all retries are exhausted.
        """
        script = self.suppression_script(list(excluding))
        timeout_to_use = timeout if timeout is not None else self._timeout
        max_attempts = self._retry_count + 1

        for attempt in range(1, max_attempts + 1):
            try:
                result = self._executor.execute(script, timeout_to_use)
                logger.info("Background apps %s in %.2fs", "hidden" if self._hide_mode == "hide" else "quit", result.duration)
                return
            except PermissionDeniedError as exc:
                raise TCCPermissionRequiredError(exc.message) from exc
            except ScriptExecutionFailedError as exc:
                if attempt >= max_attempts:
                    raise
                logger.warning(
                    "Background app suppression failed (attempt %d/%d, exit %d); retrying",
                    attempt,
                    max_attempts,
                    exc.exit_code,
                )

    # -- Capture -------------------------------------------------------------

    def capture_screenshot(
        self,
        window: WindowDescriptor | None,
        content: ContentProbe | None = None,
        fallback_to_fullscreen: bool = True,
    ) -> ScreenshotResult:
        """Capture and validate one screenshot.

        Raises:
            WindowNotAccessibleError: fullscreen needed but fallback disabled.
            ScreenshotValidationError: the captured image failed validation.
        """
        method = self._strategy.decide_capture_method(window, content)

        if method is CaptureMethod.FULLSCREEN and not fallback_to_fullscreen:
            raise WindowNotAccessibleError("fullscreen fallback disabled")

        if method is CaptureMethod.WINDOW:
            if window is None:
                raise WindowNotAccessibleError()
            image = self._capture.capture_window(window)
        else:
            image = self._capture.capture_full_screen()
        logger.info("Captured %s: %dx%d, %d bytes", method.value, image.width, image.height, image.byte_size)

        outcome = self._validator.validate(image)
        if not outcome.is_valid and outcome.failure_reason is not None:
            raise ScreenshotValidationError(outcome.failure_reason, image)

        return ScreenshotResult(
            filename=image.path.name if image.path else "screenshot.png",
            was_validated=True,
            capture_method=method,
            image_path=str(image.path) if image.path else None,
            validation=outcome,
            image=image,
        )

    def capture_and_validate(
        self,
        name: str,
        window: WindowDescriptor | None,
        content: ContentProbe | None = None,
        fallback_to_fullscreen: bool = True,
        excluding: Iterable[str] = (),
        hide_apps: bool = True,
    ) -> ScreenshotResult:
        """Suppress background apps, then capture and validate *name*."""
        if hide_apps:
            self.hide_background_apps(excluding)

        result = self.capture_screenshot(window, content, fallback_to_fullscreen)
        filename = f"{self._filename_prefix}{name}.png"

        image_path = result.image_path
        if result.image is not None and result.image.path is not None and result.image.path.name != filename:
            target = result.image.path.with_name(filename)
            result.image.path.replace(target)
            image_path = str(target)
            result.image = dataclasses.replace(result.image, path=Path(target))

        result.filename = filename
        result.image_path = image_path
        return result
