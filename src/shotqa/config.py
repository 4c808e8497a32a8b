"""ShotQA configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from shotqa.models import (
    DEFAULT_FILENAME_PREFIX,
    DEFAULT_HIDE_MODE,
    DEFAULT_RETRY_COUNT,
    DEFAULT_SCRIPT_TIMEOUT,
    HIDE_MODES,
    MIN_SCREENSHOT_HEIGHT,
    MIN_SCREENSHOT_WIDTH,
    MIN_WINDOW_SIZE,
)

PROJECT_DIR_NAME = ".shotqa"


class ShotQAConfigError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


@dataclass
class ShotQAConfig:
    """Configuration for a ShotQA capture run."""

    # Paths
    project_dir: Path = field(default_factory=lambda: Path(PROJECT_DIR_NAME))
    evidence_dir: Path = field(default_factory=lambda: Path(PROJECT_DIR_NAME) / "evidence")

    # Script execution
    script_timeout: float = DEFAULT_SCRIPT_TIMEOUT
    retry_count: int = DEFAULT_RETRY_COUNT

    # Background apps
    hide_mode: str = DEFAULT_HIDE_MODE
    excluded_apps: list[str] = field(default_factory=list)
    app_names: list[str] = field(default_factory=list)  # app under test, never quit

    # Capture
    min_width: int = MIN_SCREENSHOT_WIDTH
    min_height: int = MIN_SCREENSHOT_HEIGHT
    min_window_size: int = MIN_WINDOW_SIZE
    fallback_to_fullscreen: bool = True
    filename_prefix: str = DEFAULT_FILENAME_PREFIX

    @classmethod
    def from_file(cls, config_path: Path) -> ShotQAConfig:
        """Load config from a YAML file."""
        if not config_path.exists():
            raise ShotQAConfigError(f"Config file not found: {config_path}\n\nTo fix: shotqa init")
        with open(config_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ShotQAConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ShotQAConfigError(f"Config file must be a YAML mapping: {config_path}")
        return cls._from_dict(data, config_path.parent)

    @classmethod
    def _from_dict(cls, data: dict[str, Any], project_dir: Path) -> ShotQAConfig:
        """Create config from a dictionary."""
        config = cls()
        config.project_dir = project_dir

        if "evidence_dir" in data:
            config.evidence_dir = project_dir / data["evidence_dir"]
        else:
            config.evidence_dir = project_dir / "evidence"

        if "script_timeout" in data:
            config.script_timeout = _convert(float, data["script_timeout"], "script_timeout")
            if config.script_timeout <= 0:
                raise ShotQAConfigError(
                    f"script_timeout must be positive, got: {data['script_timeout']!r}"
                )
        if "retry_count" in data:
            config.retry_count = _convert(int, data["retry_count"], "retry_count")
            if config.retry_count < 0:
                raise ShotQAConfigError(f"retry_count must be >= 0, got: {data['retry_count']!r}")

        if "hide_mode" in data:
            mode = str(data["hide_mode"]).lower()
            if mode not in HIDE_MODES:
                raise ShotQAConfigError(
                    f"hide_mode must be one of {', '.join(HIDE_MODES)}, got: {data['hide_mode']!r}"
                )
            config.hide_mode = mode

        if "excluded_apps" in data:
            config.excluded_apps = _string_list(data["excluded_apps"], "excluded_apps")
        if "app_names" in data:
            config.app_names = _string_list(data["app_names"], "app_names")

        screenshot = data.get("screenshot")
        if isinstance(screenshot, dict):
            config.min_width = _convert(int, screenshot.get("min_width", config.min_width), "screenshot.min_width")
            config.min_height = _convert(int, screenshot.get("min_height", config.min_height), "screenshot.min_height")
        if "min_window_size" in data:
            config.min_window_size = _convert(int, data["min_window_size"], "min_window_size")
        if "fallback_to_fullscreen" in data:
            config.fallback_to_fullscreen = bool(data["fallback_to_fullscreen"])
        if "filename_prefix" in data:
            config.filename_prefix = str(data["filename_prefix"])

        return config


def _convert(kind: type, value: Any, key: str) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        expected = "a number" if kind is float else "an integer"
        raise ShotQAConfigError(f"{key} must be {expected}, got: {value!r}") from exc


def _string_list(value: Any, key: str) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ShotQAConfigError(f"{key} must be a list of app names, got: {value!r}")
    return [str(v) for v in value]


def find_project_dir(start: Path | None = None) -> Path:
    """Find the .shotqa/ project directory, searching upward from *start* (default cwd)."""
    current = start or Path.cwd()
    for base in [current, *current.parents]:
        candidate = base / PROJECT_DIR_NAME
        if candidate.is_dir():
            return candidate
    # Fallback: cwd/.shotqa (created by `shotqa init`)
    return current / PROJECT_DIR_NAME


def load_config(project_dir: Path) -> ShotQAConfig:
    """Load ``config.yaml`` from *project_dir*, or defaults rooted there if absent."""
    config_path = project_dir / "config.yaml"
    if config_path.is_file():
        return ShotQAConfig.from_file(config_path)
    config = ShotQAConfig()
    config.project_dir = project_dir
    config.evidence_dir = project_dir / "evidence"
    return config
