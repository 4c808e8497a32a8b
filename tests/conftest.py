"""Shared fixtures for ShotQA unit tests."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Callable

import pytest
import yaml
from PIL import Image

from shotqa.engine.protocols import CapturedImage, WindowDescriptor
from shotqa.engine.script_executor import ScriptExecutionResult


# ---------------------------------------------------------------------------
# Fixture: temporary project directory with .shotqa/ structure
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Create a temporary .shotqa/ project directory with full structure."""
    shotqa_dir = tmp_path / ".shotqa"
    (shotqa_dir / "evidence").mkdir(parents=True)

    # Write a minimal valid config
    config_data = {
        "app_names": ["ListAll"],
        "hide_mode": "quit",
        "script_timeout": 15,
        "retry_count": 1,
    }
    (shotqa_dir / "config.yaml").write_text(
        yaml.dump(config_data, default_flow_style=False), encoding="utf-8"
    )

    return shotqa_dir


# ---------------------------------------------------------------------------
# Fixture: sample config YAML string
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_config_yaml() -> str:
    """Return a valid ShotQA config.yaml as a string."""
    return """\
app_names:
  - ListAll
excluded_apps:
  - Slack
  - Music
hide_mode: hide
script_timeout: 45
retry_count: 2
screenshot:
  min_width: 1280
  min_height: 800
min_window_size: 200
fallback_to_fullscreen: false
filename_prefix: "AppStore-"
evidence_dir: shots
"""


# ---------------------------------------------------------------------------
# Fixture: PNG factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_png(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing PNGs: ``make_png(name, width, height, noisy=True)``.

    Noisy images are random RGB and compress poorly (always pass the file size
    check); solid images compress to a few KB.
    """

    def _make(name: str, width: int, height: int, noisy: bool = True, color=(40, 120, 200)) -> Path:
        path = tmp_path / name
        if noisy:
            img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
        else:
            img = Image.new("RGB", (width, height), color)
        img.save(path, format="PNG")
        return path

    return _make


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeProcess:
    """``BoundedProcess`` that "exits" after *delay* seconds on a timer thread.

    ``delay=None`` simulates a script that never finishes.
    """

    def __init__(
        self,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        delay: float | None = 0.0,
        start_error: OSError | None = None,
    ) -> None:
        self._final = (returncode, stdout, stderr)
        self._delay = delay
        self._start_error = start_error
        self._timer: threading.Timer | None = None
        self.returncode: int | None = None
        self.stdout = ""
        self.stderr = ""
        self.argv: tuple[str, ...] = ()
        self.script: str | None = None
        self.killed = False

    def start(self, script: str, on_exit: Callable[[], None]) -> None:
        if self._start_error is not None:
            raise self._start_error
        self.script = script
        if self._delay is None:
            return
        self._timer = threading.Timer(self._delay, self._finish, args=(on_exit,))
        self._timer.daemon = True
        self._timer.start()

    def _finish(self, on_exit: Callable[[], None]) -> None:
        self.returncode, self.stdout, self.stderr = self._final
        on_exit()

    def kill(self) -> None:
        self.killed = True
        if self._timer is not None:
            self._timer.cancel()
        self.returncode = -9


def process_factory(process: FakeProcess):
    """Factory that hands out *process* and records the argv it was built with."""

    def _factory(argv):
        process.argv = tuple(argv)
        return process

    return _factory


class FakeExecutor:
    """``ScriptExecuting`` that replays queued outcomes (results or exceptions)."""

    def __init__(self, *outcomes) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[tuple[str, float]] = []

    def execute(self, script: str, timeout: float) -> ScriptExecutionResult:
        self.calls.append((script, timeout))
        outcome = self._outcomes.pop(0) if self._outcomes else ScriptExecutionResult.success()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeCapture:
    """``ScreenshotCapturing`` returning fixed images and recording calls."""

    def __init__(
        self,
        window_image: CapturedImage | None = None,
        fullscreen_image: CapturedImage | None = None,
    ) -> None:
        default = CapturedImage(width=2880, height=1800, byte_size=500_000)
        self.window_image = window_image or default
        self.fullscreen_image = fullscreen_image or default
        self.calls: list[str] = []
        self.windows: list[WindowDescriptor] = []

    def capture_window(self, window: WindowDescriptor) -> CapturedImage:
        self.calls.append("window")
        self.windows.append(window)
        return self.window_image

    def capture_full_screen(self) -> CapturedImage:
        self.calls.append("fullscreen")
        return self.fullscreen_image
