"""Screenshot pipeline boundaries.

These protocols define the contract between ShotQA's capture pipeline and the
operating system.  Production implementations live in
``shotqa.engine.script_executor`` and ``shotqa.engine.macos``; tests inject
fakes at the same seams.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Mapping, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from shotqa.engine.script_executor import ScriptExecutionResult


@dataclasses.dataclass(frozen=True)
class Frame:
    """On-screen rectangle in points."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclasses.dataclass(frozen=True)
class WindowDescriptor:
    """Snapshot of the target window as reported by the UI layer.

    ``exists`` is not always trustworthy: SwiftUI windows are sometimes
    reported as missing while fully rendered.  See ``ContentProbe``.
    """

    exists: bool
    is_hittable: bool
    frame: Frame
    window_id: int | None = None  # CGWindowID, when known
    title: str = ""


@dataclasses.dataclass(frozen=True)
class ContentProbe:
    """Structural evidence that the app's content is actually on screen.

    Only consulted when the window descriptor reports ``exists=False``.
    ``extra`` carries additional named signals (e.g. ``{"has_toolbar": True}``).
    """

    has_sidebar: bool = False
    has_buttons: bool = False
    has_outline_rows: bool = False
    extra: Mapping[str, bool] = dataclasses.field(default_factory=dict, hash=False)

    @property
    def has_visible_content(self) -> bool:
        return (
            self.has_sidebar
            or self.has_buttons
            or self.has_outline_rows
            or any(self.extra.values())
        )


@dataclasses.dataclass(frozen=True)
class CapturedImage:
    """Pixel dimensions and encoded size of a captured screenshot."""

    width: int
    height: int
    byte_size: int
    path: Path | None = None


@dataclasses.dataclass(frozen=True)
class RunningApp:
    """A running application as reported by NSWorkspace."""

    bundle_identifier: str | None
    localized_name: str | None
    activation_policy: int  # NSApplicationActivationPolicy raw value

    @property
    def is_regular_app(self) -> bool:
        """True for ordinary Dock apps (NSApplicationActivationPolicyRegular)."""
        return self.activation_policy == 0


@runtime_checkable
class BoundedProcess(Protocol):
    """One external interpreter process, launched once.

    ``start`` must return immediately; ``on_exit`` is called exactly once,
    from any thread, after the process has exited and its output is
    collected.  ``kill`` forcibly terminates the process and reaps it.
    """

    returncode: int | None
    stdout: str
    stderr: str

    def start(self, script: str, on_exit: Callable[[], None]) -> None: ...

    def kill(self) -> None: ...


ProcessFactory = Callable[[Sequence[str]], BoundedProcess]


@runtime_checkable
class ScriptExecuting(Protocol):
    """Runs an automation script with a hard wall-clock timeout."""

    def execute(self, script: str, timeout: float) -> ScriptExecutionResult: ...


@runtime_checkable
class ScreenshotCapturing(Protocol):
    """Produces a screenshot for a capture decision."""

    def capture_window(self, window: WindowDescriptor) -> CapturedImage: ...

    def capture_full_screen(self) -> CapturedImage: ...


@runtime_checkable
class WorkspaceQuerying(Protocol):
    """Lists running applications."""

    def running_applications(self) -> list[RunningApp]: ...
