"""ShotQA macOS collaborators -- real window query, capture and workspace.

Captures screenshots with ``screencapture``, reads window state from
``CGWindowListCopyWindowInfo``, probes the Accessibility tree for structural
content, and lists running apps through ``NSWorkspace``.

pyobjc dependencies are conditionally imported so that ShotQA continues to
work on systems where pyobjc is not installed (e.g. Linux CI, or macOS
without the ``[native]`` extra).  ``ScreencaptureCapture`` only needs the
``screencapture`` CLI and Pillow.
"""

from __future__ import annotations

import itertools
import logging
import subprocess
import time
from pathlib import Path
from typing import Any

from shotqa.engine.orchestrator import CaptureTimedOutError, WindowNotAccessibleError
from shotqa.engine.protocols import CapturedImage, ContentProbe, Frame, RunningApp, WindowDescriptor
from shotqa.engine.validator import describe_image_file
from shotqa.models import SCREENCAPTURE_TIMEOUT

logger = logging.getLogger("shotqa.engine.macos")

# ---------------------------------------------------------------------------
# Conditional pyobjc imports
# ---------------------------------------------------------------------------
HAS_PYOBJC = False

try:
    from ApplicationServices import (  # type: ignore[import-untyped]
        AXIsProcessTrusted,
        AXUIElementCopyAttributeValue,
        AXUIElementCreateApplication,
        kAXErrorSuccess,
    )
    from Cocoa import NSWorkspace  # type: ignore[import-untyped]
    from Quartz import (  # type: ignore[import-untyped]
        CGWindowListCopyWindowInfo,
        kCGNullWindowID,
        kCGWindowListOptionAll,
    )

    HAS_PYOBJC = True
except ImportError:
    pass

# Accessibility roles that count as evidence of rendered app content.
_SIDEBAR_ROLES = frozenset({"AXSplitGroup", "AXList"})
_BUTTON_ROLES = frozenset({"AXButton"})
_OUTLINE_ROLES = frozenset({"AXOutline", "AXRow"})


def _require_pyobjc() -> None:
    if not HAS_PYOBJC:
        raise RuntimeError(
            "pyobjc is required for native macOS window queries. "
            "Install it with: pip install 'shotqa[native]'"
        )


# ---------------------------------------------------------------------------
# Screen capture
# ---------------------------------------------------------------------------

class ScreencaptureCapture:
    """``ScreenshotCapturing`` backed by the ``screencapture`` CLI."""

    def __init__(self, output_dir: Path, timeout: float = SCREENCAPTURE_TIMEOUT) -> None:
        self._output_dir = Path(output_dir)
        self._timeout = timeout
        self._sequence = itertools.count(1)

    def capture_window(self, window: WindowDescriptor) -> CapturedImage:
        if window.window_id is not None:
            # -o: no window shadow
            args = ["-o", "-l", str(window.window_id)]
        else:
            f = window.frame
            if f.width <= 0 or f.height <= 0:
                raise WindowNotAccessibleError("no window id and empty frame")
            args = ["-R", f"{int(f.x)},{int(f.y)},{int(f.width)},{int(f.height)}"]
        return self._run(args, "window")

    def capture_full_screen(self) -> CapturedImage:
        return self._run([], "fullscreen")

    def _next_path(self, label: str) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        # unique per instance, even within the same second
        stamp = time.strftime("%Y%m%d-%H%M%S")
        return self._output_dir / f"capture-{label}-{stamp}-{next(self._sequence):03d}.png"

    def _run(self, args: list[str], label: str) -> CapturedImage:
        filepath = self._next_path(label)
        cmd = ["screencapture", "-x", *args, str(filepath)]

        try:
            subprocess.run(cmd, capture_output=True, timeout=self._timeout, check=True)
        except subprocess.TimeoutExpired as exc:
            raise CaptureTimedOutError(self._timeout) from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode(errors="replace").strip() if exc.stderr else ""
            raise WindowNotAccessibleError(f"screencapture exited {exc.returncode}: {stderr}") from exc

        if not filepath.is_file():
            # screencapture can exit 0 without writing a file
            raise WindowNotAccessibleError(f"screencapture produced no file at {filepath}")

        logger.debug("Screenshot saved: %s", filepath)
        return describe_image_file(filepath)


# ---------------------------------------------------------------------------
# Window query
# ---------------------------------------------------------------------------

class QuartzWindowQuery:
    """Builds ``WindowDescriptor`` / ``ContentProbe`` for an app by name."""

    def __init__(self, app_name: str, max_depth: int = 8) -> None:
        _require_pyobjc()
        self._app_name = app_name
        self._max_depth = max_depth

    def _app_windows(self) -> list[dict[str, Any]]:
        windows = CGWindowListCopyWindowInfo(kCGWindowListOptionAll, kCGNullWindowID) or []
        needle = self._app_name.lower()
        return [
            w for w in windows
            if needle in str(w.get("kCGWindowOwnerName", "")).lower()
            and int(w.get("kCGWindowLayer", 0)) == 0
        ]

    def window_descriptor(self) -> WindowDescriptor | None:
        """Largest normal-layer window of the app, or None if it has none."""
        candidates = self._app_windows()
        if not candidates:
            return None

        def area(w: dict[str, Any]) -> float:
            b = w.get("kCGWindowBounds", {})
            return float(b.get("Width", 0)) * float(b.get("Height", 0))

        win = max(candidates, key=area)
        bounds = win.get("kCGWindowBounds", {})
        on_screen = bool(win.get("kCGWindowIsOnscreen", False))
        return WindowDescriptor(
            exists=on_screen,
            is_hittable=on_screen and float(win.get("kCGWindowAlpha", 1.0)) > 0,
            frame=Frame(
                x=float(bounds.get("X", 0)),
                y=float(bounds.get("Y", 0)),
                width=float(bounds.get("Width", 0)),
                height=float(bounds.get("Height", 0)),
            ),
            window_id=int(win["kCGWindowNumber"]) if win.get("kCGWindowNumber") else None,
            title=str(win.get("kCGWindowName") or ""),
        )

    def content_probe(self) -> ContentProbe:
        """Walk the app's Accessibility tree looking for structural elements."""
        if not AXIsProcessTrusted():
            logger.warning("Accessibility API not trusted; content probe is empty")
            return ContentProbe()

        pid = self._app_pid()
        if pid is None:
            return ContentProbe()

        roles: set[str] = set()
        self._collect_roles(AXUIElementCreateApplication(pid), roles, 0)
        return ContentProbe(
            has_sidebar=bool(roles & _SIDEBAR_ROLES),
            has_buttons=bool(roles & _BUTTON_ROLES),
            has_outline_rows=bool(roles & _OUTLINE_ROLES),
            extra={
                "has_toolbar": "AXToolbar" in roles,
                "has_text_fields": "AXTextField" in roles,
            },
        )

    def _app_pid(self) -> int | None:
        for win in self._app_windows():
            pid = win.get("kCGWindowOwnerPID")
            if pid:
                return int(pid)
        return None

    def _collect_roles(self, element: Any, roles: set[str], depth: int) -> None:
        if depth > self._max_depth:
            return
        role = _ax_attribute(element, "AXRole")
        if role:
            roles.add(str(role))
        for child in _ax_attribute(element, "AXChildren") or []:
            self._collect_roles(child, roles, depth + 1)


def _ax_attribute(element: Any, attr: str) -> Any:
    """Read an accessibility attribute; None if missing or unreadable."""
    try:
        err, value = AXUIElementCopyAttributeValue(element, attr, None)
    except Exception as exc:
        logger.debug("AX read of %s failed: %s", attr, exc)
        return None
    return value if err == kAXErrorSuccess else None


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------

class RealWorkspace:
    """``WorkspaceQuerying`` backed by ``NSWorkspace``."""

    def __init__(self) -> None:
        _require_pyobjc()

    def running_applications(self) -> list[RunningApp]:
        apps = NSWorkspace.sharedWorkspace().runningApplications()
        return [
            RunningApp(
                bundle_identifier=str(app.bundleIdentifier()) if app.bundleIdentifier() else None,
                localized_name=str(app.localizedName()) if app.localizedName() else None,
                activation_policy=int(app.activationPolicy()),
            )
            for app in apps
            if not app.isTerminated()
        ]
