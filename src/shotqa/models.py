"""Centralized defaults and thresholds."""

# Script execution
DEFAULT_SCRIPT_TIMEOUT = 30.0  # seconds
DEFAULT_RETRY_COUNT = 0
SCRIPT_INTERPRETER = ("osascript",)

# Background app suppression
HIDE_MODES = ("quit", "hide")
DEFAULT_HIDE_MODE = "quit"

# Capture strategy: windows smaller than this in either dimension are unusable
MIN_WINDOW_SIZE = 100

# Screenshot validation
MIN_SCREENSHOT_WIDTH = 800
MIN_SCREENSHOT_HEIGHT = 600
MIN_BYTES_PER_PIXEL = 0.01
BLANK_BYTES_PER_PIXEL = 0.001

# Output
DEFAULT_FILENAME_PREFIX = "Mac-"
SCREENCAPTURE_TIMEOUT = 10  # seconds
REPORT_FILENAME = "capture-report.md"
