"""CLI commands for staging, unstaging and discarding changes."""

from typing import Optional

import typer

from hunkline.cli.utils import open_session, parse_line_range
from hunkline.diff import SynthesisMode
from hunkline.git import GitError


def _run_action(
    mode: SynthesisMode,
    path: str,
    hunk: Optional[int],
    lines: Optional[str],
    force: bool = False,
    intent: bool = False,
) -> None:
    line_range = parse_line_range(lines)
    if line_range is not None and hunk is None:
        raise typer.BadParameter("--lines needs --hunk")

    try:
        session = open_session()
    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    result = session.act_on_path(
        mode,
        path,
        hunk_index=hunk - 1 if hunk is not None else None,
        lines=line_range,
        force=force,
        intent=intent,
    )
    if not result.ok:
        typer.echo(f"Error: {result.message}", err=True)
        raise typer.Exit(1)
    typer.echo(result.message)


def _hunk_option():
    return typer.Option(None, "--hunk", min=1, help="Act on this hunk only (1-based)")


def _lines_option():
    return typer.Option(
        None,
        "--lines",
        "-L",
        help="Act on lines A-B of the hunk only (1-based, counted within the hunk)",
    )


def stage_command(
    path: str = typer.Argument(..., help="File to stage, relative to the repository root"),
    hunk: Optional[int] = _hunk_option(),
    lines: Optional[str] = _lines_option(),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Stage conflicted files even if they still contain conflict markers",
    ),
    intent: bool = typer.Option(
        False,
        "--intent-to-add",
        "-N",
        help="Record an untracked file as intent-to-add instead of staging its content",
    ),
) -> None:
    """Stage a file, one hunk, or a range of lines."""
    _run_action(SynthesisMode.STAGE, path, hunk, lines, force=force, intent=intent)


def unstage_command(
    path: str = typer.Argument(..., help="File to unstage, relative to the repository root"),
    hunk: Optional[int] = _hunk_option(),
    lines: Optional[str] = _lines_option(),
) -> None:
    """Unstage a file, one hunk, or a range of lines."""
    _run_action(SynthesisMode.UNSTAGE, path, hunk, lines)


def discard_command(
    path: str = typer.Argument(..., help="File to discard changes in, relative to the repository root"),
    hunk: Optional[int] = _hunk_option(),
    lines: Optional[str] = _lines_option(),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Bypass confirmation prompt",
    ),
) -> None:
    """Discard unstaged changes in a file, one hunk, or a range of lines."""
    if not yes:
        confirm = typer.confirm(f"Discard changes in {path}? This cannot be undone.", default=False)
        if not confirm:
            typer.echo("Discard cancelled.", err=True)
            raise typer.Exit(0)
    _run_action(SynthesisMode.DISCARD, path, hunk, lines)
