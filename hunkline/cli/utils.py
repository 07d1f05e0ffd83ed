"""Shared helpers for the hunkline CLI commands."""

import logging
from typing import Optional

import typer

from hunkline.git import get_repo_root
from hunkline.render.model import Row, RowKind
from hunkline.session import BufferSession


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr: DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def open_session() -> BufferSession:
    """Open a session on the current repository and load its status.

    Raises:
        GitError: If not in a git repository or git fails.
    """
    session = BufferSession(get_repo_root())
    session.refresh()
    return session


def parse_line_range(value: Optional[str]) -> Optional[tuple[int, int]]:
    """Parse a 1-based 'A-B' (or single 'A') line range into 0-based indices.

    Raises:
        typer.BadParameter: If the range is malformed.
    """
    if value is None:
        return None
    first, sep, last = value.partition("-")
    try:
        start = int(first)
        end = int(last) if sep else start
    except ValueError:
        raise typer.BadParameter(f"Expected a line range like 3-5, got {value!r}")
    if start < 1 or end < start:
        raise typer.BadParameter(f"Invalid line range {value!r}")
    return start - 1, end - 1


def colorize_row(row: Row) -> str:
    """Add ANSI color codes to a rendered row.

    - Red for removed lines (-)
    - Green for added lines (+)
    - Cyan for hunk headers (@@)
    - Bold for section headers
    """
    text = f"{row.gutter or ' '} {row.text}".rstrip()
    if row.kind is RowKind.SECTION_HEADER:
        return typer.style(text, bold=True)
    if row.kind is RowKind.HUNK_HEADER:
        return typer.style(text, fg=typer.colors.CYAN)
    if row.kind is RowKind.PHANTOM_LINE:
        return typer.style(text, dim=True)
    if row.kind is RowKind.DIFF_LINE:
        if row.text.startswith("+"):
            return typer.style(text, fg=typer.colors.GREEN)
        if row.text.startswith("-"):
            return typer.style(text, fg=typer.colors.RED)
    return text
