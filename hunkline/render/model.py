"""Render model for the status view.

Contains:
- RowKind: Type of a rendered row
- LineRef: What a row points back to (section, file, hunk, line)
- Row: One rendered row
- RenderResult: Rendered rows plus the row -> LineRef index
- render_status: Render a StatusTree with its diffs into rows
- resolve: Look up the LineRef of a row position
- selection_from_rows: Turn a range of rendered rows into a Selection

Rendering never fails: expansion entries for files that are gone, missing
diffs and out-of-range hunk indices are ignored.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from hunkline.diff.exceptions import SelectionError
from hunkline.diff.models import FileDiff, Selection
from hunkline.diff.synthesis import select_lines
from hunkline.git.diff import DiffKey
from hunkline.git.status import Section, StatusEntry, StatusTree
from hunkline.git.worktree import WorktreeEntry
from hunkline.pending_ops import PendingOp, PendingOpKind, PendingOpRegistry, normalize_path
from hunkline.render.expansion import ExpansionState, ExpansionStore
from hunkline.user_config import HunklineConfig

CLEAN_TREE_NOTICE = "Nothing to commit, working tree clean"
BINARY_NOTICE = "Binary files differ"
PHANTOM_LABEL = "(creating...)"


class RowKind(str, Enum):
    """Type of a rendered row."""

    HEAD = "head"
    SECTION_HEADER = "section_header"
    FILE_ENTRY = "file_entry"
    HUNK_HEADER = "hunk_header"
    DIFF_LINE = "diff_line"
    PHANTOM_LINE = "phantom_line"
    NOTICE = "notice"
    BLANK = "blank"


@dataclass(frozen=True)
class LineRef:
    """The entity a rendered row was produced from."""

    section: Section
    path: Optional[str] = None
    hunk_index: Optional[int] = None
    line_index: Optional[int] = None


@dataclass(frozen=True)
class Row:
    """One rendered row.

    `gutter` is the single-character sign column (spinner, current
    worktree marker). `pending` marks rows whose target has an in-flight
    operation.
    """

    kind: RowKind
    text: str = ""
    ref: Optional[LineRef] = None
    gutter: str = ""
    pending: bool = False


@dataclass
class RenderResult:
    """Rendered rows and the index from row position to LineRef."""

    rows: list[Row] = field(default_factory=list)
    line_index: dict[int, LineRef] = field(default_factory=dict)

    def add(self, row: Row) -> None:
        if row.ref is not None:
            self.line_index[len(self.rows)] = row.ref
        self.rows.append(row)

    def to_text(self) -> str:
        """Render the rows as plain text with a two-column gutter."""
        return "\n".join(f"{row.gutter or ' '} {row.text}".rstrip() for row in self.rows)


def _status_char(section: Section, entry: StatusEntry) -> Optional[str]:
    if section is Section.STAGED:
        return entry.index_status
    if section is Section.UNSTAGED:
        return entry.worktree_status
    return None


def _file_row_text(section: Section, entry: StatusEntry, sign: str) -> str:
    display = entry.path
    if section is Section.STAGED and entry.orig_path:
        display = f"{entry.orig_path} -> {entry.path}"
    status_char = _status_char(section, entry)
    if status_char:
        return f"{sign} {status_char} {display}"
    return f"{sign}   {display}"


def _render_file_diff(
    result: RenderResult,
    section: Section,
    file_diff: FileDiff,
    expansion: ExpansionStore,
) -> None:
    path = file_diff.path
    entry = expansion.get_file(section, path)
    if entry.state is ExpansionState.COLLAPSED:
        return

    if file_diff.is_binary:
        result.add(Row(RowKind.NOTICE, BINARY_NOTICE, LineRef(section, path)))
        return

    for hunk_index, hunk in enumerate(file_diff.hunks):
        result.add(Row(RowKind.HUNK_HEADER, hunk.header_line, LineRef(section, path, hunk_index)))
        if not expansion.is_hunk_visible(section, path, hunk_index):
            continue
        for line_index, line in enumerate(hunk.lines):
            result.add(
                Row(
                    RowKind.DIFF_LINE,
                    line.kind.marker + line.text,
                    LineRef(section, path, hunk_index, line_index),
                )
            )


def _render_file_section(
    result: RenderResult,
    section: Section,
    tree: StatusTree,
    diffs: dict[DiffKey, FileDiff],
    expansion: ExpansionStore,
    pending: set[str],
    spinner: str,
    config: HunklineConfig,
) -> bool:
    entries = tree.entries(section)
    if not entries:
        return False

    result.add(
        Row(RowKind.SECTION_HEADER, f"{section.title} ({len(entries)})", LineRef(section))
    )
    if not expansion.is_section_collapsed(section):
        sign = config.signs.for_section(section)
        for entry in entries:
            is_pending = normalize_path(entry.path) in pending
            result.add(
                Row(
                    RowKind.FILE_ENTRY,
                    _file_row_text(section, entry, sign),
                    LineRef(section, entry.path),
                    gutter=spinner if is_pending else "",
                    pending=is_pending,
                )
            )
            file_diff = diffs.get((section, entry.path))
            if file_diff is not None:
                _render_file_diff(result, section, file_diff, expansion)
    result.add(Row(RowKind.BLANK))
    return True


def _short_path(path: str) -> str:
    home = os.path.expanduser("~")
    if home and home != "/" and (path == home or path.startswith(home + "/")):
        path = "~" + path[len(home):]
    if not path.endswith("/"):
        path += "/"
    return path


def _render_worktrees(
    result: RenderResult,
    worktrees: list[WorktreeEntry],
    ops: list[PendingOp],
    expansion: ExpansionStore,
    spinner: str,
    repo_root: str,
    min_count: int,
) -> None:
    listed = {normalize_path(worktree.path) for worktree in worktrees}
    phantoms = [op for op in ops if op.kind is PendingOpKind.ADD and op.target_path not in listed]

    if len(worktrees) + len(phantoms) < min_count and not phantoms:
        return

    result.add(
        Row(
            RowKind.SECTION_HEADER,
            f"{Section.WORKTREES.title} ({len(worktrees)})",
            LineRef(Section.WORKTREES),
        )
    )

    if not expansion.is_section_collapsed(Section.WORKTREES):
        pending = {op.target_path for op in ops}
        labels = [worktree.branch or "(detached)" for worktree in worktrees]
        width = max([len(label) for label in labels], default=0)
        if phantoms:
            width = max(width, len(PHANTOM_LABEL))

        for worktree, label in zip(worktrees, labels):
            path = normalize_path(worktree.path)
            is_pending = path in pending
            if is_pending:
                gutter = spinner
            elif path == repo_root:
                gutter = "*"
            elif worktree.locked:
                gutter = "L"
            else:
                gutter = ""
            result.add(
                Row(
                    RowKind.FILE_ENTRY,
                    f"{label:<{width}}  {_short_path(worktree.path)}",
                    LineRef(Section.WORKTREES, worktree.path),
                    gutter=gutter,
                    pending=is_pending,
                )
            )

        for op in phantoms:
            result.add(
                Row(
                    RowKind.PHANTOM_LINE,
                    f"{PHANTOM_LABEL:<{width}}  {_short_path(op.target_path)}",
                    LineRef(Section.WORKTREES, op.target_path),
                    gutter=spinner,
                    pending=True,
                )
            )

    result.add(Row(RowKind.BLANK))


def _head_rows(result: RenderResult, tree: StatusTree) -> None:
    head = f"Head:     {tree.branch}"
    if tree.head_subject:
        head += f"  {tree.head_subject}"
    result.add(Row(RowKind.HEAD, head))

    if tree.upstream:
        merge = f"Merge:    {tree.upstream}"
        if tree.ahead or tree.behind:
            merge += f" [+{tree.ahead}/-{tree.behind}]"
        result.add(Row(RowKind.HEAD, merge))

    result.add(Row(RowKind.BLANK))


def render_status(
    tree: StatusTree,
    diffs: dict[DiffKey, FileDiff],
    expansion: ExpansionStore,
    pending_ops: PendingOpRegistry,
    config: HunklineConfig,
    repo_root: Union[str, Path],
) -> RenderResult:
    """Render a status tree into rows.

    Args:
        tree: Parsed repository status
        diffs: File diffs keyed by (section, path)
        expansion: Expansion state of the session
        pending_ops: Registry of in-flight operations
        config: Configuration (section order, signs, worktree threshold)
        repo_root: Repository root, used to scope pending operations

    Returns:
        RenderResult with rows and the row -> LineRef index.
    """
    root = normalize_path(str(repo_root))
    ops = pending_ops.all_pending(root)
    pending = {op.target_path for op in ops}
    spinner = pending_ops.spinner_char()

    result = RenderResult()
    _head_rows(result, tree)

    rendered_files = False
    for section in config.status.sections:
        if section is Section.WORKTREES:
            _render_worktrees(
                result,
                tree.worktrees,
                ops,
                expansion,
                spinner,
                root,
                config.status.worktrees_min_count,
            )
        elif _render_file_section(
            result, section, tree, diffs, expansion, pending, spinner, config
        ):
            rendered_files = True

    if not rendered_files and not tree.has_file_changes:
        result.add(Row(RowKind.NOTICE, CLEAN_TREE_NOTICE))

    return result


def resolve(line_index: dict[int, LineRef], position: int) -> Optional[LineRef]:
    """Return the LineRef of a row position, or None for rows without one."""
    return line_index.get(position)


def selection_from_rows(
    result: RenderResult,
    diffs: dict[DiffKey, FileDiff],
    start: int,
    end: int,
) -> Selection:
    """Build a Selection from a range of rendered rows.

    A range holding only a hunk header selects the whole hunk.

    Args:
        result: Rendered rows
        diffs: File diffs the rows were rendered from
        start: First row position (inclusive)
        end: Last row position (inclusive)

    Returns:
        Selection within one hunk.

    Raises:
        SelectionError: If the range holds no diff rows or spans hunks or files.
    """
    if start > end:
        start, end = end, start

    refs = []
    for position in range(start, end + 1):
        ref = result.line_index.get(position)
        if ref is not None and ref.hunk_index is not None:
            refs.append(ref)
    if not refs:
        raise SelectionError("No diff lines selected")

    targets = {(ref.section, ref.path, ref.hunk_index) for ref in refs}
    if len(targets) > 1:
        raise SelectionError("Selection spans more than one hunk")

    section, path, hunk_index = targets.pop()
    file_diff = diffs.get((section, path))
    if file_diff is None:
        raise SelectionError(f"No diff loaded for {path}")

    line_indices = [ref.line_index for ref in refs if ref.line_index is not None]
    if not line_indices:
        hunk = file_diff.hunks[hunk_index] if hunk_index < len(file_diff.hunks) else None
        if hunk is None:
            raise SelectionError(f"No hunk {hunk_index} in {path}")
        return select_lines(file_diff, hunk_index, 0, len(hunk.lines) - 1)
    return select_lines(file_diff, hunk_index, min(line_indices), max(line_indices))
