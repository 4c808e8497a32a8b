"""ShotQA engine — screenshot pipeline modules.

Provides the capture pipeline:
- AppleScriptExecutor: runs osascript with a hard timeout, classifies failures
- FailureClassifier: detects TCC permission denials in osascript stderr
- AppHidingScriptGenerator: AppleScript that quits/hides background apps
- WindowCaptureStrategy: window vs fullscreen decision
- ScreenshotValidator: rejects undersized, truncated or blank captures
- ScreenshotOrchestrator: suppress -> decide -> capture -> validate
- CaptureReportGenerator: markdown report of a capture run
"""

from shotqa.engine.app_hiding import AppHidingScriptGenerator
from shotqa.engine.capture_strategy import CaptureMethod, WindowCaptureStrategy
from shotqa.engine.failure_classifier import FailureClassifier, TCCDetectionOutcome, classify
from shotqa.engine.orchestrator import (
    CaptureTimedOutError,
    ScreenshotError,
    ScreenshotOrchestrator,
    ScreenshotResult,
    ScreenshotValidationError,
    TCCPermissionRequiredError,
    WindowNotAccessibleError,
)
from shotqa.engine.protocols import CapturedImage, ContentProbe, Frame, RunningApp, WindowDescriptor
from shotqa.engine.report_generator import CaptureReportGenerator, CaptureRun, Finding, ShotReport
from shotqa.engine.script_executor import (
    AppleScriptExecutor,
    PermissionDeniedError,
    ScriptExecutionError,
    ScriptExecutionFailedError,
    ScriptExecutionResult,
    ScriptLaunchError,
    ScriptSyntaxError,
    ScriptTimeoutError,
)
from shotqa.engine.validator import ScreenshotValidator, ValidationFailureReason, ValidationOutcome

# The macOS collaborators are NOT eagerly imported here because they are
# platform-specific (screencapture, pyobjc).  Import them directly when needed:
#   from shotqa.engine.macos import QuartzWindowQuery, RealWorkspace, ScreencaptureCapture

__all__ = [
    "AppHidingScriptGenerator",
    "AppleScriptExecutor",
    "CaptureMethod",
    "CaptureReportGenerator",
    "CaptureRun",
    "CaptureTimedOutError",
    "CapturedImage",
    "ContentProbe",
    "FailureClassifier",
    "Finding",
    "Frame",
    "PermissionDeniedError",
    "RunningApp",
    "ScreenshotError",
    "ScreenshotOrchestrator",
    "ScreenshotResult",
    "ScreenshotValidationError",
    "ScreenshotValidator",
    "ScriptExecutionError",
    "ScriptExecutionFailedError",
    "ScriptExecutionResult",
    "ScriptLaunchError",
    "ScriptSyntaxError",
    "ScriptTimeoutError",
    "ShotReport",
    "TCCDetectionOutcome",
    "TCCPermissionRequiredError",
    "ValidationFailureReason",
    "ValidationOutcome",
    "WindowCaptureStrategy",
    "WindowDescriptor",
    "WindowNotAccessibleError",
    "classify",
]
