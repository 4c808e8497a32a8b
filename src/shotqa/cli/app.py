"""ShotQA CLI — Main Typer entry point.

Registers all subcommands and provides --version / --verbose global options.
"""

from __future__ import annotations

import typer
from rich.console import Console

from shotqa import __version__

# ── Banner ────────────────────────────────────────────────────────────────

BANNER = r"""
 ___  _           _    ___    _
/ __|| |_   ___  | |_ / _ \  /_\
\__ \| ' \ / _ \ |  _| (_) |/ _ \
|___/|_||_|\___/  \__|\__\_/_/ \_\
"""

TAGLINE = "Verified macOS App Store screenshots, no stray windows."

console = Console()

# ── Version callback ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(BANNER, style="bold cyan")
        console.print(f"  {TAGLINE}", style="dim")
        console.print(f"  v{__version__}\n", style="bold")
        raise typer.Exit()


# ── Main app ──────────────────────────────────────────────────────────────

app = typer.Typer(
    name="shotqa",
    help=f"{BANNER}\n{TAGLINE}",
    rich_markup_mode="rich",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show ShotQA version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
) -> None:
    """ShotQA -- screenshot capture harness for macOS apps.

    Clears background apps, picks window or fullscreen capture, validates the PNG.
    """
    if verbose:
        import logging

        logging.basicConfig(level=logging.DEBUG, format="%(name)s  %(message)s")


# ── Register subcommands ──────────────────────────────────────────────────
# Each subcommand is a separate module to keep this file lean.

from shotqa.cli.capture import capture  # noqa: E402
from shotqa.cli.config_cmd import config_app  # noqa: E402
from shotqa.cli.doctor import doctor  # noqa: E402
from shotqa.cli.hide_apps import hide_apps  # noqa: E402
from shotqa.cli.init_cmd import init  # noqa: E402
from shotqa.cli.validate import validate  # noqa: E402

app.command(name="init", help="Initialize a .shotqa/ project directory.")(init)
app.command(name="capture", help="Capture and validate a named screenshot.")(capture)
app.command(name="hide-apps", help="Print, preview or run the background-app suppression script.")(hide_apps)
app.command(name="validate", help="Validate screenshot image files.")(validate)
app.command(name="doctor", help="Check Automation (TCC) permission for osascript.")(doctor)
app.add_typer(config_app, name="config", help="View and manage ShotQA configuration.")
