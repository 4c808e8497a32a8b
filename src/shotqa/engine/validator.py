"""ShotQA Screenshot Validator -- reject undersized, truncated or blank captures.

A zero exit from ``screencapture`` does not mean the PNG is usable.  The
checks here are cheap and run in priority order:

1. Dimensions below the minimum (800x600 by default) -> ``TOO_SMALL``.
2. Fewer than ~0.01 bytes per pixel -> ``SUSPICIOUS_FILE_SIZE``.
   (2880x1800 = 5,184,000 px needs at least ~52KB.)
3. Blank detection only when asked for: a byte size below ~0.001 bytes per
   pixel, or, when the file is at hand, a single value in every band.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from shotqa.engine.protocols import CapturedImage
from shotqa.models import (
    BLANK_BYTES_PER_PIXEL,
    MIN_BYTES_PER_PIXEL,
    MIN_SCREENSHOT_HEIGHT,
    MIN_SCREENSHOT_WIDTH,
)

logger = logging.getLogger("shotqa.engine.validator")


class ValidationFailureReason(enum.Enum):
    TOO_SMALL = "too_small"
    SUSPICIOUS_FILE_SIZE = "suspicious_file_size"
    BLANK_IMAGE = "blank_image"


@dataclasses.dataclass(frozen=True)
class ValidationOutcome:
    """Result of screenshot validation."""

    is_valid: bool
    failure_reason: ValidationFailureReason | None = None

    @classmethod
    def valid(cls) -> ValidationOutcome:
        return cls(is_valid=True, failure_reason=None)

    @classmethod
    def invalid(cls, reason: ValidationFailureReason) -> ValidationOutcome:
        return cls(is_valid=False, failure_reason=reason)


class ScreenshotValidator:
    """Validates captured screenshots for size and plausibility."""

    def __init__(
        self,
        min_width: int = MIN_SCREENSHOT_WIDTH,
        min_height: int = MIN_SCREENSHOT_HEIGHT,
    ) -> None:
        self._min_width = min_width
        self._min_height = min_height

    def validate(self, image: CapturedImage, detect_blank: bool = False) -> ValidationOutcome:
        """Validate *image*.  First failing rule wins; dimensions come first."""
        if not self._is_valid_size(image):
            return ValidationOutcome.invalid(ValidationFailureReason.TOO_SMALL)

        if detect_blank and self._looks_blank(image):
            return ValidationOutcome.invalid(ValidationFailureReason.BLANK_IMAGE)

        if not self._is_valid_file_size(image):
            return ValidationOutcome.invalid(ValidationFailureReason.SUSPICIOUS_FILE_SIZE)

        return ValidationOutcome.valid()

    def check_blank(self, image: CapturedImage) -> ValidationOutcome:
        """Probe only for blankness, ignoring the other rules."""
        if self._looks_blank(image):
            return ValidationOutcome.invalid(ValidationFailureReason.BLANK_IMAGE)
        return ValidationOutcome.valid()

    def validate_file(self, path: Path, detect_blank: bool = False) -> ValidationOutcome:
        """Validate an image file on disk."""
        return self.validate(describe_image_file(path), detect_blank=detect_blank)

    # -- Rules ---------------------------------------------------------------

    def _is_valid_size(self, image: CapturedImage) -> bool:
        return image.width >= self._min_width and image.height >= self._min_height

    @staticmethod
    def _is_valid_file_size(image: CapturedImage) -> bool:
        minimum_expected = int(image.width * image.height * MIN_BYTES_PER_PIXEL)
        return image.byte_size >= minimum_expected

    @staticmethod
    def _looks_blank(image: CapturedImage) -> bool:
        if image.byte_size < int(image.width * image.height * BLANK_BYTES_PER_PIXEL):
            return True
        if image.path is None:
            return False
        try:
            with Image.open(image.path) as img:
                extrema = img.getextrema()
        except (OSError, UnidentifiedImageError) as exc:
            logger.warning("Could not inspect pixels of %s: %s", image.path, exc)
            return False
        # Single-band images return one (min, max) pair, multi-band a tuple of pairs.
        bands = extrema if isinstance(extrema[0], tuple) else (extrema,)
        return all(lo == hi for lo, hi in bands)


def describe_image_file(path: Path) -> CapturedImage:
    """Read dimensions (Pillow) and byte size of an image file.

    Unreadable or non-image files are described as 0x0 so that validation
    reports them as ``TOO_SMALL`` rather than raising.
    """
    path = Path(path)
    byte_size = path.stat().st_size if path.is_file() else 0
    try:
        with Image.open(path) as img:
            width, height = img.size
    except (OSError, UnidentifiedImageError) as exc:
        logger.warning("Not a readable image: %s (%s)", path, exc)
        width, height = 0, 0
    return CapturedImage(width=width, height=height, byte_size=byte_size, path=path)
