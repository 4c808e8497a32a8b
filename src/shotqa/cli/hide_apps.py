"""shotqa hide-apps — Quit or hide background apps before a capture session.

By default the generated AppleScript is executed through ``osascript``.
``--print`` only writes the script to stdout; ``--dry-run`` lists which
running apps the script would touch without sending any Apple events.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shotqa.config import ShotQAConfig, ShotQAConfigError, find_project_dir, load_config
from shotqa.engine.app_hiding import AppHidingScriptGenerator, lint_script
from shotqa.engine.script_executor import (
    AppleScriptExecutor,
    PermissionDeniedError,
    ScriptExecutionError,
    ScriptLaunchError,
)
from shotqa.models import HIDE_MODES

logger = logging.getLogger("shotqa.cli.hide_apps")

console = Console(stderr=True)
output_console = Console()


def _load(project_dir: Path) -> ShotQAConfig:
    try:
        return load_config(project_dir)
    except ShotQAConfigError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Config Error[/red]", border_style="red"))
        raise typer.Exit(code=2)


def hide_apps(
    print_only: bool = typer.Option(
        False,
        "--print",
        help="Print the generated AppleScript and exit.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="List running apps that would be affected, without touching them (needs pyobjc).",
    ),
    mode: str | None = typer.Option(
        None,
        "--mode",
        "-m",
        help="quit or hide. Overrides hide_mode from config.",
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
    """Quit (or hide) every foreground app except the system essentials and the app under test."""
    config = _load(dir or find_project_dir())

    hide_mode = (mode or config.hide_mode).lower()
    if hide_mode not in HIDE_MODES:
        console.print(f"[red]--mode must be one of {', '.join(HIDE_MODES)}:[/red] {mode}")
        raise typer.Exit(code=2)

    timeout_to_use = timeout if timeout is not None else config.script_timeout
    if timeout_to_use <= 0:
        console.print(f"[red]--timeout must be positive:[/red] {timeout_to_use}")
        raise typer.Exit(code=2)

    generator = AppHidingScriptGenerator(app_names=config.app_names)
    excluded = [*config.excluded_apps, *exclude]

    if hide_mode == "hide":
        script = generator.generate_hide_script(excluded)
    else:
        script = generator.generate_quit_script(excluded)

    logger.debug("Suppression script (%s mode):\n%s", hide_mode, script)

    problems = lint_script(script)
    if problems:
        for problem in problems:
            console.print(f"[red]Script check failed:[/red] {problem}")
        raise typer.Exit(code=1)

    if print_only:
        output_console.print(script, markup=False, highlight=False, soft_wrap=True, end="")
        return

    if dry_run:
        _preview(generator, excluded, hide_mode)
        return

    executor = AppleScriptExecutor()
    try:
        result = executor.execute(script, timeout_to_use)
    except ScriptLaunchError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]osascript unavailable[/red]", border_style="red"))
        raise typer.Exit(code=3)
    except PermissionDeniedError as exc:
        console.print(Panel(exc.message, title="[red]Automation Permission Required[/red]", border_style="red"))
        raise typer.Exit(code=3)
    except ScriptExecutionError as exc:
        console.print(Panel(f"[red]{exc.user_message}[/red]", title="[red]Script Failed[/red]", border_style="red"))
        raise typer.Exit(code=1)

    verb = "hidden" if hide_mode == "hide" else "quit"
    console.print(f"[green]Background apps {verb}[/green] [dim]({result.duration:.2f}s)[/dim]")
    if result.stderr.strip():
        # osascript writes `log` output to stderr
        console.print(result.stderr.strip(), style="dim", markup=False)


def _preview(generator: AppHidingScriptGenerator, excluded: list[str], hide_mode: str) -> None:
    from shotqa.engine.macos import RealWorkspace

    try:
        workspace = RealWorkspace()
    except RuntimeError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Dry Run Unavailable[/red]", border_style="red"))
        raise typer.Exit(code=3)

    action = "hide" if hide_mode == "hide" else "quit"
    table = Table(title=f"Background apps ({hide_mode} mode)", border_style="cyan")
    table.add_column("App", style="bold")
    table.add_column("Bundle ID", style="dim")
    table.add_column("Action")

    for app in workspace.running_applications():
        if not app.is_regular_app or not app.localized_name:
            continue
        affected = generator.would_quit(app.localized_name, excluded)
        table.add_row(
            app.localized_name,
            app.bundle_identifier or "-",
            f"[yellow]{action}[/yellow]" if affected else "[green]keep[/green]",
        )

    output_console.print(table)
