"""shotqa doctor — Check that this terminal may drive System Events.

Runs a read-only AppleScript (counting processes) through the same executor
the capture pipeline uses and reports whether Automation access is granted.
"""

from __future__ import annotations

import shutil
import sys

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shotqa.engine.script_executor import (
    AppleScriptExecutor,
    PermissionDeniedError,
    ScriptExecutionError,
    ScriptLaunchError,
)

console = Console()

PROBE_SCRIPT = 'tell application "System Events" to count (every process whose background only is false)\n'


def doctor(
    timeout: float = typer.Option(
        10.0,
        "--timeout",
        "-t",
        help="Seconds to wait for the probe script.",
    ),
) -> None:
    """Check the tools and permissions a capture run needs."""
    table = Table(title="ShotQA Doctor", border_style="cyan")
    table.add_column("Check", style="bold")
    table.add_column("Status")
    table.add_column("Detail", style="dim")

    exit_code = 0

    for tool in ("osascript", "screencapture"):
        found = shutil.which(tool)
        table.add_row(tool, "[green]found[/green]" if found else "[red]missing[/red]", found or "not on PATH")
        if not found:
            exit_code = 3

    from shotqa.engine.macos import HAS_PYOBJC

    table.add_row(
        "pyobjc",
        "[green]installed[/green]" if HAS_PYOBJC else "[yellow]not installed[/yellow]",
        "window queries enabled" if HAS_PYOBJC else "fullscreen only; pip install 'shotqa[native]'",
    )

    message = ""
    if sys.platform != "darwin":
        table.add_row("Automation", "[yellow]skipped[/yellow]", f"not macOS ({sys.platform})")
        exit_code = 3
    else:
        try:
            result = AppleScriptExecutor().execute(PROBE_SCRIPT, timeout)
            table.add_row("Automation", "[green]granted[/green]", f"{result.stdout.strip()} foreground apps")
        except PermissionDeniedError as exc:
            table.add_row("Automation", "[red]denied[/red]", "System Events")
            message = exc.message
            exit_code = 3
        except ScriptLaunchError as exc:
            table.add_row("Automation", "[red]unavailable[/red]", str(exc))
            exit_code = 3
        except ScriptExecutionError as exc:
            table.add_row("Automation", "[red]error[/red]", exc.user_message)
            exit_code = exit_code or 1

    console.print()
    console.print(table)
    console.print()

    if message:
        console.print(Panel(message, title="[red]Automation Permission Required[/red]", border_style="red"))

    if exit_code:
        raise typer.Exit(code=exit_code)
