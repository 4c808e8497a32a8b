"""shotqa validate — Check existing screenshot files against the capture rules.

Useful for screenshots produced outside ShotQA (Xcode UI tests, manual
captures) before they are uploaded.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shotqa.config import ShotQAConfigError, find_project_dir, load_config
from shotqa.engine.validator import ScreenshotValidator, describe_image_file

console = Console()


def validate(
    images: list[Path] = typer.Argument(..., help="PNG file(s) to validate."),
    blank: bool = typer.Option(
        False,
        "--blank",
        help="Also reject blank (single-colour) images.",
    ),
    min_width: int | None = typer.Option(None, "--min-width", help="Override screenshot.min_width."),
    min_height: int | None = typer.Option(None, "--min-height", help="Override screenshot.min_height."),
    dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Path to .shotqa/ directory.",
    ),
) -> None:
    """Validate screenshot files for minimum size, plausible file size and (optionally) blankness.

    Exits 1 if any file is invalid.
    """
    try:
        config = load_config(dir or find_project_dir())
    except ShotQAConfigError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Config Error[/red]", border_style="red"))
        raise typer.Exit(code=2)

    validator = ScreenshotValidator(
        min_width=min_width if min_width is not None else config.min_width,
        min_height=min_height if min_height is not None else config.min_height,
    )

    table = Table(title="Screenshot Validation", border_style="cyan")
    table.add_column("File", style="bold")
    table.add_column("Size")
    table.add_column("Bytes", justify="right")
    table.add_column("Result")

    failures = 0
    for path in images:
        if not path.is_file():
            table.add_row(str(path), "-", "-", "[red]MISSING[/red]")
            failures += 1
            continue

        image = describe_image_file(path)
        outcome = validator.validate(image, detect_blank=blank)
        if outcome.is_valid:
            result = "[green]VALID[/green]"
        else:
            failures += 1
            reason = outcome.failure_reason.value if outcome.failure_reason else "invalid"
            result = f"[red]INVALID[/red] [dim]({reason})[/dim]"
        table.add_row(str(path), f"{image.width}x{image.height}", str(image.byte_size), result)

    console.print()
    console.print(table)
    console.print()

    if failures:
        console.print(f"[red]{failures} of {len(images)} screenshot(s) failed validation.[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]All {len(images)} screenshot(s) valid.[/green]")
