"""shotqa capture — Capture, validate and name one or more screenshots.

Background apps are suppressed once, before the first screenshot.  Each
screenshot is then captured (window or fullscreen), validated and saved to
the evidence directory as ``<prefix><name>.png``.  A markdown report of the
run is written next to the images.
"""

from __future__ import annotations

import datetime as dt
import logging
import random
import time
from pathlib import Path
from typing import Callable

import typer
from rich.console import Console
from rich.panel import Panel

from shotqa.config import ShotQAConfig, ShotQAConfigError, find_project_dir, load_config
from shotqa.engine.app_hiding import AppHidingScriptGenerator
from shotqa.engine.capture_strategy import WindowCaptureStrategy
from shotqa.engine.orchestrator import (
    CaptureTimedOutError,
    ScreenshotError,
    ScreenshotOrchestrator,
    ScreenshotValidationError,
    TCCPermissionRequiredError,
    WindowNotAccessibleError,
)
from shotqa.engine.protocols import ContentProbe, WindowDescriptor
from shotqa.engine.report_generator import CaptureReportGenerator, CaptureRun, Finding, ShotReport
from shotqa.engine.script_executor import AppleScriptExecutor, ScriptExecutionError, ScriptLaunchError
from shotqa.engine.validator import ScreenshotValidator
from shotqa.models import REPORT_FILENAME

logger = logging.getLogger("shotqa.cli.capture")

console = Console()

WindowSource = Callable[[], tuple[WindowDescriptor | None, ContentProbe | None]]


class EnvironmentProblem(Exception):
    """Capture cannot continue without a change to the machine (permissions, tooling)."""


def _generate_run_id() -> str:
    ts = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%d-%H%M%S")
    suffix = "".join(random.choices("abcdefghijklmnopqrstuvwxyz0123456789", k=4))
    return f"SQA-RUN-{ts}-{suffix}"


def _finding_for(exc: Exception, name: str) -> Finding:
    if isinstance(exc, TCCPermissionRequiredError):
        return Finding("critical", "permission", str(exc), name)
    if isinstance(exc, CaptureTimedOutError):
        return Finding("high", "timeout", str(exc), name)
    if isinstance(exc, ScreenshotValidationError):
        return Finding("high", "validation", str(exc), name)
    if isinstance(exc, WindowNotAccessibleError):
        return Finding("medium", "capture", str(exc), name)
    return Finding("high", "script", str(exc), name)


def run_capture(
    orchestrator: ScreenshotOrchestrator,
    names: list[str],
    app_name: str,
    window_source: WindowSource,
    excluding: list[str] | None = None,
    hide_apps: bool = True,
    fallback_to_fullscreen: bool = True,
    hide_mode: str = "quit",
) -> CaptureRun:
    """Capture every name in *names* and collect the results into a ``CaptureRun``.

    Suppression failures abort the run.  Capture and validation failures are
    recorded against their screenshot and the run continues.

    Raises:
        EnvironmentProblem: TCC denial or an osascript that cannot be spawned.
        ScriptExecutionError: suppression timed out or failed after retries.
    """
    run = CaptureRun(
        run_id=_generate_run_id(),
        app_name=app_name,
        start_time=dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds"),
        duration_seconds=0.0,
        background_apps=hide_mode if hide_apps else "skipped",
    )
    run_start = time.monotonic()

    if hide_apps:
        try:
            orchestrator.hide_background_apps(excluding or [])
        except (TCCPermissionRequiredError, ScriptLaunchError) as exc:
            raise EnvironmentProblem(str(exc)) from exc

    for name in names:
        shot_start = time.monotonic()
        try:
            window, content = window_source()
            result = orchestrator.capture_and_validate(
                name,
                window,
                content,
                fallback_to_fullscreen=fallback_to_fullscreen,
                hide_apps=False,
            )
        except ScreenshotError as exc:
            logger.warning("Screenshot %s failed: %s", name, exc)
            image = exc.image if isinstance(exc, ScreenshotValidationError) else None
            run.shots.append(
                ShotReport(
                    name=name,
                    passed=False,
                    width=image.width if image else 0,
                    height=image.height if image else 0,
                    byte_size=image.byte_size if image else 0,
                    image_path=str(image.path) if image and image.path else None,
                    error=exc.user_message,
                    duration_seconds=time.monotonic() - shot_start,
                )
            )
            run.findings.append(_finding_for(exc, name))
            continue

        image = result.image
        run.shots.append(
            ShotReport(
                name=name,
                passed=True,
                capture_method=result.capture_method.value,
                width=image.width if image else 0,
                height=image.height if image else 0,
                byte_size=image.byte_size if image else 0,
                image_path=result.image_path,
                duration_seconds=time.monotonic() - shot_start,
            )
        )

    run.duration_seconds = time.monotonic() - run_start
    return run


def _build_orchestrator(config: ShotQAConfig, timeout: float) -> ScreenshotOrchestrator:
    from shotqa.engine.macos import ScreencaptureCapture

    return ScreenshotOrchestrator(
        executor=AppleScriptExecutor(),
        capture=ScreencaptureCapture(config.evidence_dir),
        strategy=WindowCaptureStrategy(min_window_size=config.min_window_size),
        validator=ScreenshotValidator(min_width=config.min_width, min_height=config.min_height),
        script_generator=AppHidingScriptGenerator(app_names=config.app_names),
        retry_count=config.retry_count,
        timeout=timeout,
        hide_mode=config.hide_mode,
        filename_prefix=config.filename_prefix,
    )


def _window_source(app_name: str, fullscreen: bool) -> WindowSource:
    if fullscreen:
        return lambda: (None, None)

    from shotqa.engine.macos import QuartzWindowQuery

    query = QuartzWindowQuery(app_name)

    def source() -> tuple[WindowDescriptor | None, ContentProbe | None]:
        return query.window_descriptor(), query.content_probe()

    return source


def _print_summary(run: CaptureRun, report_path: Path) -> None:
    passed = sum(1 for s in run.shots if s.passed)
    if run.passed:
        border, verdict = "green", "[bold green]ALL SCREENSHOTS VALID[/bold green]"
    else:
        border, verdict = "red", "[bold red]CAPTURE FAILED[/bold red]"

    lines = [verdict, ""]
    for shot in run.shots:
        mark = "[green]PASS[/green]" if shot.passed else "[red]FAIL[/red]"
        detail = shot.image_path or shot.error or ""
        lines.append(f"  {mark}  {shot.name}  [dim]{detail}[/dim]")
    lines += [
        "",
        f"  Screenshots: {passed}/{len(run.shots)} valid",
        f"  Duration:    {run.duration_seconds:.1f}s",
        f"  Run ID:      {run.run_id}",
        f"  Report:      {report_path}",
    ]

    console.print()
    console.print(Panel("\n".join(lines), border_style=border))
    console.print()


def capture(
    names: list[str] = typer.Argument(..., help="Screenshot name(s), e.g. 01-main. Saved as <prefix><name>.png."),
    app: str | None = typer.Option(
        None,
        "--app",
        "-a",
        help="App whose window to capture. Defaults to the first entry of app_names.",
    ),
    fullscreen: bool = typer.Option(
        False,
        "--fullscreen",
        help="Skip the window query and capture the whole screen.",
    ),
    no_hide: bool = typer.Option(
        False,
        "--no-hide",
        help="Leave background apps alone.",
    ),
    exclude: list[str] = typer.Option(
        [],
        "--exclude",
        "-e",
        help="Additional app name to leave running. Repeatable.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="osascript timeout in seconds. Overrides script_timeout from config.",
    ),
    dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Path to .shotqa/ directory.",
    ),
) -> None:
    """Suppress background apps, then capture and validate each named screenshot."""
    project_dir = dir or find_project_dir()
    try:
        config = load_config(project_dir)
    except ShotQAConfigError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Config Error[/red]", border_style="red"))
        raise typer.Exit(code=2)

    app_name = app or (config.app_names[0] if config.app_names else "")
    if not app_name and not fullscreen:
        console.print(
            Panel(
                "[red]No app to capture.[/red]\n\n"
                "Pass [bold]--app NAME[/bold], set [cyan]app_names[/cyan] in config.yaml, "
                "or use [bold]--fullscreen[/bold].",
                title="[red]Config Error[/red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=2)

    timeout_to_use = timeout if timeout is not None else config.script_timeout
    if timeout_to_use <= 0:
        console.print(f"[red]--timeout must be positive:[/red] {timeout_to_use}")
        raise typer.Exit(code=2)

    if app and app not in config.app_names:
        config.app_names.append(app)

    try:
        window_source = _window_source(app_name, fullscreen)
    except RuntimeError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Environment Error[/red]", border_style="red"))
        raise typer.Exit(code=3)

    orchestrator = _build_orchestrator(config, timeout_to_use)

    try:
        run = run_capture(
            orchestrator,
            names,
            app_name=app_name or "fullscreen",
            window_source=window_source,
            excluding=[*config.excluded_apps, *exclude],
            hide_apps=not no_hide,
            fallback_to_fullscreen=config.fallback_to_fullscreen or fullscreen,
            hide_mode=config.hide_mode,
        )
    except EnvironmentProblem as exc:
        console.print(Panel(str(exc), title="[red]Environment Error[/red]", border_style="red"))
        raise typer.Exit(code=3)
    except ScriptExecutionError as exc:
        console.print(Panel(f"[red]{exc.user_message}[/red]", title="[red]Background App Suppression Failed[/red]", border_style="red"))
        raise typer.Exit(code=1)

    config.evidence_dir.mkdir(parents=True, exist_ok=True)
    report_path = config.evidence_dir / REPORT_FILENAME
    report_path.write_text(CaptureReportGenerator().generate(run), encoding="utf-8")

    _print_summary(run, report_path)

    if not run.passed:
        raise typer.Exit(code=1)
