"""CLI command for showing the rendered status view."""

from typing import Optional

import typer

from hunkline.cli.utils import colorize_row, open_session
from hunkline.git import FILE_SECTIONS, GitError


def status_command(
    level: Optional[int] = typer.Option(
        None,
        "--level",
        "-l",
        min=1,
        max=4,
        help="Visibility level: 1 sections, 2 files, 3 hunk headers, 4 full diffs",
    ),
    expand: Optional[list[str]] = typer.Option(
        None,
        "--expand",
        "-e",
        help="Fully expand the diff of this path (repeatable)",
    ),
    color: bool = typer.Option(
        False,
        "--color",
        help="Colorize the output",
    ),
) -> None:
    """Show branch, file sections and diffs the way the status buffer renders them."""
    try:
        session = open_session()
    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if level is not None:
        session.expansion.set_visibility_level(level)

    for path in expand or []:
        found = False
        for section in FILE_SECTIONS:
            if session.tree.find(section, path) is not None:
                session.expansion.expand_fully(section, path)
                found = True
        if not found:
            typer.echo(f"Warning: {path} has no changes", err=True)

    result = session.render()
    if color:
        typer.echo("\n".join(colorize_row(row) for row in result.rows))
    else:
        typer.echo(result.to_text())
