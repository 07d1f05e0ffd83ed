"""CLI entry point for hunkline.

This module provides the main CLI application that combines all commands
and subcommands into a single unified interface.
"""

import typer

from hunkline.cli.config import config_app
from hunkline.cli.main import main_command
from hunkline.cli.stage import discard_command, stage_command, unstage_command
from hunkline.cli.status import status_command

# Main application
app = typer.Typer(
    name="hunkline",
    help="hunkline: interactive git staging at file, hunk and line granularity",
    add_completion=False,
)

# Add subcommand groups
app.add_typer(config_app, name="config")

# Add individual commands
app.command("status")(status_command)
app.command("stage")(stage_command)
app.command("unstage")(unstage_command)
app.command("discard")(discard_command)

# Set the main callback for global flags
app.callback(invoke_without_command=True)(main_command)


__all__ = [
    "app",
    "config_app",
    "main_command",
    "status_command",
    "stage_command",
    "unstage_command",
    "discard_command",
]
