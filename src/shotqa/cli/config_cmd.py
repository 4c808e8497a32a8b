"""shotqa config — View and manage ShotQA configuration.

Subcommands: show, set.
"""

from __future__ import annotations

from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shotqa.config import ShotQAConfigError, find_project_dir, load_config
from shotqa.models import HIDE_MODES

console = Console()

config_app = typer.Typer(
    name="config",
    help="View and manage ShotQA configuration.",
    no_args_is_help=True,
)

_FLOAT_KEYS = ("script_timeout",)
_INT_KEYS = ("retry_count", "min_window_size")
_SCREENSHOT_KEYS = ("min_width", "min_height")  # stored under `screenshot:`
_BOOL_KEYS = ("fallback_to_fullscreen",)
_LIST_KEYS = ("excluded_apps", "app_names")
_STR_KEYS = ("hide_mode", "evidence_dir", "filename_prefix")
_KNOWN_KEYS = (*_FLOAT_KEYS, *_INT_KEYS, *_SCREENSHOT_KEYS, *_BOOL_KEYS, *_LIST_KEYS, *_STR_KEYS)


def _load_raw_config(project_dir: Path) -> dict:
    """Load the raw YAML config dict."""
    config_path = project_dir / "config.yaml"
    if not config_path.is_file():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


def _save_raw_config(project_dir: Path, data: dict) -> None:
    """Write the config dict to config.yaml."""
    config_path = project_dir / "config.yaml"
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


@config_app.command(name="show")
def config_show(
    dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Path to .shotqa/ directory.",
    ),
) -> None:
    """Show the resolved ShotQA configuration.

    Displays all effective config values, merging config.yaml with defaults.
    """
    project_dir = dir or find_project_dir()
    config_path = project_dir / "config.yaml"

    try:
        config = load_config(project_dir)
    except ShotQAConfigError as exc:
        console.print(Panel(f"[red]{exc}[/red]", title="[red]Config Error[/red]", border_style="red"))
        raise typer.Exit(code=2)

    table = Table(title="ShotQA Configuration", border_style="cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Project Dir", str(project_dir))
    table.add_row("Config File", f"{config_path} ({'exists' if config_path.is_file() else 'missing'})")
    table.add_row("Evidence Dir", str(config.evidence_dir))
    table.add_row("", "")
    table.add_row("App Names", ", ".join(config.app_names) or "-")
    table.add_row("Excluded Apps", ", ".join(config.excluded_apps) or "-")
    table.add_row("Hide Mode", config.hide_mode)
    table.add_row("Script Timeout", f"{config.script_timeout:g}s")
    table.add_row("Retry Count", str(config.retry_count))
    table.add_row("Min Screenshot", f"{config.min_width}x{config.min_height}")
    table.add_row("Min Window Size", str(config.min_window_size))
    table.add_row("Fullscreen Fallback", str(config.fallback_to_fullscreen))
    table.add_row("Filename Prefix", config.filename_prefix)

    console.print()
    console.print(table)
    console.print()


@config_app.command(name="set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key to set."),
    value: str = typer.Argument(..., help="Value to set (comma-separated for lists)."),
    dir: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Path to .shotqa/ directory.",
    ),
) -> None:
    """Set a configuration value in .shotqa/config.yaml.

    Examples:
      shotqa config set script_timeout 45
      shotqa config set hide_mode hide
      shotqa config set min_width 1280
      shotqa config set excluded_apps "Slack,Music"
    """
    if key not in _KNOWN_KEYS:
        console.print(f"[red]Unknown config key:[/red] {key}")
        console.print(f"[dim]Known keys: {', '.join(_KNOWN_KEYS)}[/dim]")
        raise typer.Exit(code=2)

    project_dir = dir or find_project_dir()
    data = _load_raw_config(project_dir)

    coerced_value: object = value
    if key in _FLOAT_KEYS:
        try:
            coerced_value = float(value)
        except ValueError:
            console.print(f"[red]Invalid float value for '{key}':[/red] {value}")
            raise typer.Exit(code=2)
    elif key in _INT_KEYS or key in _SCREENSHOT_KEYS:
        try:
            coerced_value = int(value)
        except ValueError:
            console.print(f"[red]Invalid integer value for '{key}':[/red] {value}")
            raise typer.Exit(code=2)
    elif key in _BOOL_KEYS:
        coerced_value = value.lower() in ("true", "1", "yes")
    elif key in _LIST_KEYS:
        coerced_value = [v.strip() for v in value.split(",") if v.strip()]
    elif key == "hide_mode" and value.lower() not in HIDE_MODES:
        console.print(f"[red]hide_mode must be one of {', '.join(HIDE_MODES)}:[/red] {value}")
        raise typer.Exit(code=2)

    if key in _SCREENSHOT_KEYS:
        screenshot = data.get("screenshot")
        if not isinstance(screenshot, dict):
            screenshot = {}
        screenshot[key] = coerced_value
        data["screenshot"] = screenshot
    else:
        data[key] = coerced_value
    _save_raw_config(project_dir, data)

    console.print(f"[green]Set[/green] {key} = {coerced_value} [dim]in {project_dir / 'config.yaml'}[/dim]")
