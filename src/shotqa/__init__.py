"""ShotQA -- verified macOS App Store screenshots."""

__version__ = "0.4.0"
