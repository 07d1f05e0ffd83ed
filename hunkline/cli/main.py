"""Top-level CLI callback: global flags."""

import typer

from hunkline import __version__
from hunkline.cli.utils import configure_logging


def main_command(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log git invocations and refresh sequencing to stderr",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """Interactive git staging: status, diffs and line-level stage/unstage/discard."""
    if version:
        typer.echo(f"hunkline {__version__}")
        raise typer.Exit(0)

    configure_logging(verbose)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
