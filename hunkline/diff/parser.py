"""Diff parser for the hunkline diff engine.

Contains functions for parsing unified diff output:
- parse_unified_diff: Parse unified diff output from git diff
- build_untracked_diff: Build a synthetic add-only FileDiff from raw file bytes
- unquote_path: Undo git's C-style quoting of a path
- _parse_file_block: Parse a single file block from the diff
- _parse_hunks: Parse hunks from the hunk portion of a file diff
- _parse_hunk: Parse one hunk body, numbering its lines
"""

import codecs
import re
from dataclasses import replace
from typing import Optional

from hunkline.diff.exceptions import ParseError
from hunkline.diff.models import (
    DiffLine,
    FileDiff,
    FileStatus,
    Hunk,
    LineKind,
    format_hunk_header,
)


_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@ ?(.*)$")
_DIFF_GIT_RE = re.compile(r"^diff --git (\"?a/.*\"?) (\"?b/.*\"?)$")

# Git only inspects the start of a file when guessing whether it is binary
_BINARY_SNIFF_BYTES = 8000


def parse_unified_diff(diff_output: str) -> list[FileDiff]:
    """Parse unified diff output from 'git diff'.

    Args:
        diff_output: Raw output from git diff

    Returns:
        List of FileDiff objects, in output order.

    Raises:
        ParseError: If a file or hunk header is malformed.
    """
    files: list[FileDiff] = []

    if not diff_output.strip():
        return files

    # Split by file blocks
    # Each file starts with 'diff --git a/... b/...'; combined diffs of
    # unmerged paths ('diff --cc') are skipped
    file_blocks = re.split(r"(?=^diff --(?:git|cc|combined) )", diff_output, flags=re.MULTILINE)

    for block in file_blocks:
        if not block.startswith("diff --git"):
            continue

        lines = block.split("\n")
        if block.endswith("\n"):
            # split() leaves an empty element after the final newline
            lines.pop()
        files.append(_parse_file_block(lines))

    return files


def unquote_path(name: str) -> str:
    """Undo git's C-style quoting of path names."""
    if len(name) >= 2 and name.startswith('"') and name.endswith('"'):
        raw = codecs.escape_decode(name[1:-1].encode("utf-8", "surrogateescape"))[0]
        return raw.decode("utf-8", "surrogateescape")
    return name


def _strip_prefix(name: str, prefix: str) -> str:
    name = unquote_path(name.rstrip("\t"))
    if name.startswith(prefix):
        return name[len(prefix):]
    return name


def _paths_from_diff_git(line: str) -> tuple[str, str]:
    """Extract the a/ and b/ paths from a 'diff --git' line."""
    rest = line[len("diff --git "):]

    # Unrenamed paths appear twice: "a/<p> b/<p>", which survives spaces in <p>
    if rest.startswith("a/") and (len(rest) - 5) % 2 == 0:
        n = (len(rest) - 5) // 2
        candidate = rest[2:2 + n]
        if rest == f"a/{candidate} b/{candidate}":
            return candidate, candidate

    match = _DIFF_GIT_RE.match(line)
    if not match:
        raise ParseError(f"Malformed diff header: {line!r}")
    return _strip_prefix(match.group(1), "a/"), _strip_prefix(match.group(2), "b/")


def _parse_file_block(lines: list[str]) -> FileDiff:
    """Parse a single file block from the diff.

    Args:
        lines: Lines of the file block, starting at 'diff --git'

    Returns:
        FileDiff object

    Raises:
        ParseError: If the block's headers or hunks are malformed.
    """
    old_path, new_path = _paths_from_diff_git(lines[0])
    status = FileStatus.MODIFIED
    rename_from: Optional[str] = None
    rename_to: Optional[str] = None

    header_lines: list[str] = []
    hunk_start_idx: Optional[int] = None

    for i, line in enumerate(lines):
        if line.startswith("@@"):
            hunk_start_idx = i
            break
        if line.startswith("* Unmerged path "):
            continue
        header_lines.append(line)

        if line.startswith("GIT binary patch") or (
            line.startswith("Binary files ") and line.endswith(" differ")
        ):
            # Keep the full block so the diff still round-trips
            return FileDiff(
                path=new_path,
                status=status,
                header_lines=tuple(lines),
                hunks=(),
                old_path=rename_from,
                is_binary=True,
            )

        if line.startswith("new file mode"):
            status = FileStatus.ADDED
        elif line.startswith("deleted file mode"):
            status = FileStatus.DELETED
        elif line.startswith("rename from "):
            rename_from = unquote_path(line[len("rename from "):])
        elif line.startswith("rename to "):
            rename_to = unquote_path(line[len("rename to "):])
        elif line.startswith("--- "):
            name = line[len("--- "):]
            if name == "/dev/null":
                status = FileStatus.ADDED
            else:
                old_path = _strip_prefix(name, "a/")
        elif line.startswith("+++ "):
            name = line[len("+++ "):]
            if name == "/dev/null":
                status = FileStatus.DELETED
                new_path = old_path
            else:
                new_path = _strip_prefix(name, "b/")

    if rename_from is not None or rename_to is not None:
        status = FileStatus.RENAMED
        old_path = rename_from or old_path
        new_path = rename_to or new_path

    hunks: tuple[Hunk, ...] = ()
    if hunk_start_idx is not None:
        hunks = tuple(_parse_hunks(lines[hunk_start_idx:], new_path))

    return FileDiff(
        path=new_path,
        status=status,
        header_lines=tuple(header_lines),
        hunks=hunks,
        old_path=old_path if status is FileStatus.RENAMED else None,
    )


def _parse_hunks(lines: list[str], file_path: str) -> list[Hunk]:
    """Parse hunks from the hunk portion of a file diff.

    Args:
        lines: Lines starting from first @@
        file_path: Path to the file, for error messages

    Returns:
        List of Hunk objects
    """
    hunks: list[Hunk] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("@@"):
            hunk, i = _parse_hunk(lines, i, file_path)
            hunks.append(hunk)
        elif line.startswith("* Unmerged path "):
            i += 1
        elif not line and not any(lines[i:]):
            break
        else:
            raise ParseError(f"Unexpected line outside of a hunk in {file_path}: {line!r}")
    return hunks


def _parse_hunk(lines: list[str], start: int, file_path: str) -> tuple[Hunk, int]:
    """Parse one hunk beginning at lines[start].

    Line numbers come from two independent counters seeded from the header;
    each line advances only the side(s) it exists on.

    Returns:
        Tuple of (Hunk, index of the first line after the hunk)
    """
    header = lines[start]
    match = _HUNK_HEADER_RE.match(header)
    if not match:
        raise ParseError(f"Malformed hunk header in {file_path}: {header!r}")

    old_start = int(match.group(1))
    old_count = int(match.group(2)) if match.group(2) is not None else 1
    new_start = int(match.group(3))
    new_count = int(match.group(4)) if match.group(4) is not None else 1

    old_lineno, new_lineno = old_start, new_start
    remaining_old, remaining_new = old_count, new_count
    body: list[DiffLine] = []

    i = start + 1
    while remaining_old > 0 or remaining_new > 0:
        if i >= len(lines):
            raise ParseError(f"Truncated hunk in {file_path}: {header!r}")
        line = lines[i]
        i += 1

        if line.startswith("\\"):
            _mark_no_newline(body, file_path)
            continue

        # An empty line is a context line whose trailing space was stripped
        kind = LineKind.from_marker(line[:1]) if line else LineKind.CONTEXT
        if kind is None:
            raise ParseError(f"Unknown line marker in {file_path}: {line!r}")

        text = line[1:]
        if kind is LineKind.CONTEXT and remaining_old > 0 and remaining_new > 0:
            body.append(DiffLine(kind, text, old_lineno=old_lineno, new_lineno=new_lineno))
            old_lineno += 1
            new_lineno += 1
            remaining_old -= 1
            remaining_new -= 1
        elif kind is LineKind.REMOVE and remaining_old > 0:
            body.append(DiffLine(kind, text, old_lineno=old_lineno))
            old_lineno += 1
            remaining_old -= 1
        elif kind is LineKind.ADD and remaining_new > 0:
            body.append(DiffLine(kind, text, new_lineno=new_lineno))
            new_lineno += 1
            remaining_new -= 1
        else:
            raise ParseError(f"Hunk body does not match its header in {file_path}: {header!r}")

    while i < len(lines) and lines[i].startswith("\\"):
        _mark_no_newline(body, file_path)
        i += 1

    hunk = Hunk(
        old_start=old_start,
        old_count=old_count,
        new_start=new_start,
        new_count=new_count,
        header_text=match.group(5) or "",
        lines=tuple(body),
        header=header,
    )
    return hunk, i


def _mark_no_newline(body: list[DiffLine], file_path: str) -> None:
    if not body:
        raise ParseError(f"No-newline marker without a preceding line in {file_path}")
    body[-1] = replace(body[-1], no_newline=True)


def build_untracked_diff(path: str, content: bytes, mode: str = "100644") -> FileDiff:
    """Build a synthetic add-only FileDiff from an untracked file's raw bytes.

    The whole file becomes one hunk with old_start=0, old_count=0 and every
    line an Add, so untracked files flow through rendering and patch
    synthesis exactly like tracked ones.

    Args:
        path: Path relative to the repository root
        content: Raw file bytes
        mode: Git file mode for the header

    Returns:
        FileDiff with status UNTRACKED
    """
    header = (
        f"diff --git a/{path} b/{path}",
        f"new file mode {mode}",
    )

    if b"\0" in content[:_BINARY_SNIFF_BYTES]:
        return FileDiff(
            path=path,
            status=FileStatus.UNTRACKED,
            header_lines=header + (f"Binary files /dev/null and b/{path} differ",),
            is_binary=True,
        )

    text = content.decode("utf-8", "surrogateescape")
    if not text:
        return FileDiff(path=path, status=FileStatus.UNTRACKED, header_lines=header)

    header = header + ("--- /dev/null", f"+++ b/{path}")
    missing_newline = not text.endswith("\n")
    raw_lines = text.split("\n")
    if not missing_newline:
        raw_lines.pop()

    body = [
        DiffLine(LineKind.ADD, line_text, new_lineno=lineno)
        for lineno, line_text in enumerate(raw_lines, start=1)
    ]
    if missing_newline:
        body[-1] = replace(body[-1], no_newline=True)

    hunk = Hunk(
        old_start=0,
        old_count=0,
        new_start=1,
        new_count=len(body),
        lines=tuple(body),
        header=format_hunk_header(0, 0, 1, len(body)),
    )
    return FileDiff(
        path=path,
        status=FileStatus.UNTRACKED,
        header_lines=header,
        hunks=(hunk,),
    )
