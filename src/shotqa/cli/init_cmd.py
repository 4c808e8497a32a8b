"""shotqa init — Initialize a .shotqa/ project directory.

Creates the directory structure and a commented config template.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.tree import Tree

from shotqa.config import PROJECT_DIR_NAME

console = Console()

_SAMPLE_CONFIG = """\
# ShotQA project configuration

# App under test (never quit by the suppression script)
app_names:
  - MyApp

# Extra apps to leave running while capturing
excluded_apps: []

# quit | hide
hide_mode: quit

# osascript timeout (seconds) and retries for transient failures
script_timeout: 30
retry_count: 1

# Minimum accepted screenshot size
screenshot:
  min_width: 800
  min_height: 600

# Use fullscreen capture when the window cannot be captured
fallback_to_fullscreen: true

filename_prefix: "Mac-"
"""


def init(
    dir: Path = typer.Option(
        Path("."),
        "--dir",
        "-d",
        help="Parent directory for .shotqa/ project. Defaults to current directory.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing .shotqa/ directory.",
    ),
) -> None:
    """Initialize a new ShotQA project directory.

    Creates .shotqa/ with an evidence/ subdirectory and a config.yaml template.
    """
    project_dir = dir.resolve() / PROJECT_DIR_NAME

    if project_dir.exists() and not force:
        console.print(
            Panel(
                f"[yellow]Directory already exists:[/yellow] {project_dir}\n\n"
                "Use [bold]--force[/bold] to overwrite.",
                title="Already Initialized",
                border_style="yellow",
            )
        )
        raise typer.Exit(code=2)

    (project_dir / "evidence").mkdir(parents=True, exist_ok=True)

    config_path = project_dir / "config.yaml"
    config_path.write_text(_SAMPLE_CONFIG, encoding="utf-8")

    tree = Tree(f"[bold green]{project_dir}[/bold green]", guide_style="dim")
    tree.add("[cyan]config.yaml[/cyan]")
    tree.add("[blue]evidence/[/blue]")

    console.print()
    console.print(
        Panel(
            tree,
            title="[bold green]ShotQA Initialized[/bold green]",
            border_style="green",
        )
    )
    console.print()
    console.print("[dim]Next steps:[/dim]")
    console.print("  1. Set [cyan]app_names[/cyan] in [cyan].shotqa/config.yaml[/cyan]")
    console.print("  2. Run [bold]shotqa doctor[/bold] to check Automation permission")
    console.print("  3. Run [bold]shotqa capture 01-main --app MyApp[/bold]")
    console.print()
