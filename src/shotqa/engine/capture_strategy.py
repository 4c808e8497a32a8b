"""ShotQA Capture Strategy -- window capture or fullscreen fallback.

SwiftUI on macOS sometimes reports ``window.exists == False`` for a window
that is rendered and perfectly capturable.  When that happens the caller may
pass a ``ContentProbe``; any structural element it finds (sidebar, buttons,
outline rows, ...) is taken as stronger evidence than the existence flag.
Drop the probe override once the framework reports existence correctly.
"""

from __future__ import annotations

import enum
import logging

from shotqa.engine.protocols import ContentProbe, WindowDescriptor
from shotqa.models import MIN_WINDOW_SIZE

logger = logging.getLogger("shotqa.engine.capture_strategy")


class CaptureMethod(enum.Enum):
    WINDOW = "window"
    FULLSCREEN = "fullscreen"


class WindowCaptureStrategy:
    """Pure decision function; re-invoked by the caller per capture attempt."""

    def __init__(self, min_window_size: float = MIN_WINDOW_SIZE) -> None:
        self._min_size = min_window_size

    def decide_capture_method(
        self,
        window: WindowDescriptor | None,
        content: ContentProbe | None = None,
    ) -> CaptureMethod:
        if window is None:
            return CaptureMethod.FULLSCREEN

        if window.exists:
            # Not hittable is fine: a window behind a sheet is still capturable.
            if window.frame.width < self._min_size or window.frame.height < self._min_size:
                logger.debug(
                    "Window frame %gx%g below %g; using fullscreen",
                    window.frame.width,
                    window.frame.height,
                    self._min_size,
                )
                return CaptureMethod.FULLSCREEN
            return CaptureMethod.WINDOW

        if content is not None and content.has_visible_content:
            logger.debug("Window reported missing but content probe found UI; using window capture")
            return CaptureMethod.WINDOW

        return CaptureMethod.FULLSCREEN
