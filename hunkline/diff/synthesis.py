"""Patch synthesis for partial staging, unstaging and discarding.

Contains:
- SynthesisMode: Which way a patch moves changes (stage, unstage, discard)
- select_lines: Build a range-checked Selection
- synthesize_hunk: Re-classify one hunk's lines for a selection
- synthesize: Build a single-hunk patch from a Selection
- synthesize_file: Build a patch covering every hunk of a file
- synthesize_files: Build one patch covering several files

Every staging granularity (line range, hunk, file, section) goes through
synthesize_hunk with a different set of selected lines.
"""

from enum import Enum
from typing import Optional

from hunkline.diff.exceptions import SelectionError
from hunkline.diff.models import (
    DiffLine,
    FileDiff,
    FileStatus,
    Hunk,
    LineKind,
    Selection,
)


class SynthesisMode(str, Enum):
    """Direction of a synthesized patch."""

    STAGE = "stage"
    UNSTAGE = "unstage"
    DISCARD = "discard"

    @property
    def flipped(self) -> bool:
        """Whether the patch reverses the diff it was built from."""
        return self is not SynthesisMode.STAGE


# (flipped, kind, selected) -> emitted kind, None when the line is dropped.
# Unflipped patches apply to the diff's old side, flipped ones to its new side.
_EMIT: dict[tuple[bool, LineKind, bool], Optional[LineKind]] = {
    (False, LineKind.ADD, True): LineKind.ADD,
    (False, LineKind.ADD, False): None,
    (False, LineKind.REMOVE, True): LineKind.REMOVE,
    (False, LineKind.REMOVE, False): LineKind.CONTEXT,
    (True, LineKind.ADD, True): LineKind.REMOVE,
    (True, LineKind.ADD, False): LineKind.CONTEXT,
    (True, LineKind.REMOVE, True): LineKind.ADD,
    (True, LineKind.REMOVE, False): None,
}


def _emitted_kind(flipped: bool, kind: LineKind, selected: bool) -> Optional[LineKind]:
    if kind is LineKind.CONTEXT:
        return LineKind.CONTEXT
    return _EMIT[(flipped, kind, selected)]


def _anchor(start: int, original_count: int, emitted_count: int) -> int:
    """Shift a start position when a side switches between empty and non-empty.

    Unified diff addresses a zero-length range by the line before it.
    """
    if emitted_count == 0 and original_count > 0:
        return start - 1
    if emitted_count > 0 and original_count == 0:
        return start + 1
    return start


def select_lines(file_diff: FileDiff, hunk_index: int, first: int, last: int) -> Selection:
    """Build a Selection after checking it fits inside one hunk.

    Args:
        file_diff: File the selection belongs to
        hunk_index: Index of the hunk within the file
        first: First selected line index (inclusive)
        last: Last selected line index (inclusive)

    Returns:
        Selection object

    Raises:
        SelectionError: If the hunk or line range does not exist.
    """
    if file_diff.is_binary:
        raise SelectionError(f"Cannot select lines in binary file {file_diff.path}")
    if not 0 <= hunk_index < len(file_diff.hunks):
        raise SelectionError(f"No hunk {hunk_index} in {file_diff.path}")
    _check_range(file_diff.hunks[hunk_index], first, last)
    return Selection(file_diff.path, hunk_index, first, last)


def _check_range(hunk: Hunk, first: int, last: int) -> None:
    if first > last:
        raise SelectionError(f"Empty selection: lines {first}-{last}")
    if first < 0 or last >= len(hunk.lines):
        raise SelectionError(
            f"Selection {first}-{last} is outside the hunk (0-{len(hunk.lines) - 1})"
        )


def _counterpart(hunk: Hunk, index: int) -> Optional[int]:
    """Find the opposite-kind line with the same text in index's change block."""
    start = index
    while start > 0 and hunk.lines[start - 1].is_change:
        start -= 1
    end = index
    while end + 1 < len(hunk.lines) and hunk.lines[end + 1].is_change:
        end += 1

    line = hunk.lines[index]
    for i in range(start, end + 1):
        other = hunk.lines[i]
        if other.kind is not line.kind and other.text == line.text:
            return i
    return None


def _selected_indices(hunk: Hunk, first: int, last: int, flipped: bool) -> set[int]:
    """Lines first..last, plus any pair a missing final newline drags in.

    A change line kept as context that lacks its trailing newline has to be
    the last emitted line. When emitted lines follow it, it is selected
    together with its counterpart so the newline change applies as well.

    Raises:
        SelectionError: If such a line has no counterpart.
    """
    selected = set(range(first, last + 1))
    for i, line in enumerate(hunk.lines):
        if not line.no_newline or not line.is_change or i in selected:
            continue
        if _emitted_kind(flipped, line.kind, False) is not LineKind.CONTEXT:
            continue
        followed = any(
            _emitted_kind(flipped, hunk.lines[j].kind, j in selected) is not None
            for j in range(i + 1, len(hunk.lines))
        )
        if not followed:
            continue

        partner = _counterpart(hunk, i)
        if partner is None:
            raise SelectionError(
                f"Line {line.text!r} has no newline at end of file; "
                "select it together with the lines after it"
            )
        selected.update((i, partner))
    return selected


def synthesize_hunk(hunk: Hunk, first: int, last: int, mode: SynthesisMode) -> Hunk:
    """Re-classify a hunk's lines so only lines first..last form the change.

    Counts are recomputed from the emitted lines. For flipped modes the old
    and new sides swap, since the patch applies to the diff's new side.

    Args:
        hunk: Source hunk
        first: First selected line index (inclusive)
        last: Last selected line index (inclusive)
        mode: Synthesis mode

    Returns:
        A new Hunk holding only the emitted lines.

    Raises:
        SelectionError: If the range is invalid or selects no Add/Remove lines.
    """
    _check_range(hunk, first, last)
    if not any(hunk.lines[i].is_change for i in range(first, last + 1)):
        raise SelectionError("Selection contains only context lines; nothing to apply")

    flipped = mode.flipped
    selected = _selected_indices(hunk, first, last, flipped)
    emitted: list[tuple[LineKind, DiffLine]] = []
    for i, line in enumerate(hunk.lines):
        kind = _emitted_kind(flipped, line.kind, i in selected)
        if kind is not None:
            emitted.append((kind, line))

    old_count = sum(1 for kind, _ in emitted if kind is not LineKind.ADD)
    new_count = sum(1 for kind, _ in emitted if kind is not LineKind.REMOVE)

    if flipped:
        old_start, orig_old = hunk.new_start, hunk.new_count
        new_start, orig_new = hunk.old_start, hunk.old_count
    else:
        old_start, orig_old = hunk.old_start, hunk.old_count
        new_start, orig_new = hunk.new_start, hunk.new_count
    old_start = _anchor(old_start, orig_old, old_count)
    new_start = _anchor(new_start, orig_new, new_count)

    # Renumber against the patch's own sides
    old_lineno, new_lineno = max(old_start, 1), max(new_start, 1)
    lines: list[DiffLine] = []
    for kind, line in emitted:
        lines.append(
            DiffLine(
                kind,
                line.text,
                old_lineno=old_lineno if kind is not LineKind.ADD else None,
                new_lineno=new_lineno if kind is not LineKind.REMOVE else None,
                no_newline=line.no_newline,
            )
        )
        if kind is not LineKind.ADD:
            old_lineno += 1
        if kind is not LineKind.REMOVE:
            new_lineno += 1

    return Hunk(
        old_start=old_start,
        old_count=old_count,
        new_start=new_start,
        new_count=new_count,
        header_text=hunk.header_text,
        lines=tuple(lines),
    )


def _effective_mode(file_diff: FileDiff, mode: SynthesisMode) -> SynthesisMode:
    # An untracked file has no index entry, so every patch is add-only
    if file_diff.status is FileStatus.UNTRACKED:
        return SynthesisMode.STAGE
    return mode


def _check_file(file_diff: FileDiff) -> None:
    if file_diff.is_binary:
        raise SelectionError(f"Cannot synthesize a patch for binary file {file_diff.path}")
    if not file_diff.hunks:
        raise SelectionError(f"Nothing to select in {file_diff.path}")


def _plain_header(path: str) -> list[str]:
    return [f"diff --git a/{path} b/{path}", f"--- a/{path}", f"+++ b/{path}"]


def _reversed_header(file_diff: FileDiff) -> list[str]:
    """Reverse a file header so it describes new -> old."""
    old_path = file_diff.old_path or file_diff.path
    header: list[str] = []
    minus: Optional[str] = None
    plus: Optional[str] = None

    for line in file_diff.header_lines:
        if line.startswith("diff --git "):
            header.append(f"diff --git a/{file_diff.path} b/{old_path}")
        elif line.startswith("new file mode "):
            header.append("deleted file mode " + line[len("new file mode "):])
        elif line.startswith("deleted file mode "):
            header.append("new file mode " + line[len("deleted file mode "):])
        elif line.startswith("old mode "):
            header.append("new mode " + line[len("old mode "):])
        elif line.startswith("new mode "):
            header.append("old mode " + line[len("new mode "):])
        elif line.startswith("rename from "):
            header.append(f"rename from {file_diff.path}")
        elif line.startswith("rename to "):
            header.append(f"rename to {old_path}")
        elif line.startswith("index "):
            hashes, _, file_mode = line[len("index "):].partition(" ")
            before, _, after = hashes.partition("..")
            reversed_line = f"index {after}..{before}"
            header.append(f"{reversed_line} {file_mode}" if file_mode else reversed_line)
        elif line.startswith("--- "):
            name = line[len("--- "):]
            plus = "+++ /dev/null" if name == "/dev/null" else f"+++ b/{old_path}"
        elif line.startswith("+++ "):
            name = line[len("+++ "):]
            minus = "--- /dev/null" if name == "/dev/null" else f"--- a/{file_diff.path}"
        else:
            header.append(line)

    if minus is not None and plus is not None:
        header.extend([minus, plus])
    return header


def _file_header(file_diff: FileDiff, mode: SynthesisMode, full: bool) -> list[str]:
    """Choose the file header for a synthesized patch.

    Full selections keep the original header (reversed for flipped modes).
    Partial selections that leave the file in place use a plain
    modification header on the current path.
    """
    if not mode.flipped:
        if full or file_diff.status is not FileStatus.DELETED:
            return list(file_diff.header_lines)
        return _plain_header(file_diff.path)

    if full or file_diff.status is FileStatus.DELETED:
        # Restoring part of a deleted file still recreates it
        return _reversed_header(file_diff)
    return _plain_header(file_diff.path)


def _patch_text(header: list[str], hunks: list[Hunk]) -> str:
    lines = list(header)
    for hunk in hunks:
        lines.extend(hunk.to_lines())
    return "\n".join(lines) + "\n"


def _covers_all_changes(file_diff: FileDiff, selection: Selection) -> bool:
    if len(file_diff.hunks) != 1:
        return False
    changes = file_diff.hunks[0].change_indices()
    return all(i in selection for i in changes)


def synthesize(file_diff: FileDiff, selection: Selection, mode: SynthesisMode) -> str:
    """Build a single-hunk patch applying only the selected lines.

    Args:
        file_diff: File the selection belongs to
        selection: Contiguous line range within one hunk
        mode: Synthesis mode

    Returns:
        Patch text ready for 'git apply'.

    Raises:
        SelectionError: If the selection is invalid or selects no changes.
    """
    _check_file(file_diff)
    if selection.path != file_diff.path:
        raise SelectionError(
            f"Selection for {selection.path} does not belong to {file_diff.path}"
        )
    if not 0 <= selection.hunk_index < len(file_diff.hunks):
        raise SelectionError(f"No hunk {selection.hunk_index} in {file_diff.path}")

    mode = _effective_mode(file_diff, mode)
    hunk = synthesize_hunk(
        file_diff.hunks[selection.hunk_index], selection.first, selection.last, mode
    )
    header = _file_header(file_diff, mode, _covers_all_changes(file_diff, selection))
    return _patch_text(header, [hunk])


def synthesize_file(file_diff: FileDiff, mode: SynthesisMode) -> str:
    """Build a patch selecting every line of every hunk of a file.

    Raises:
        SelectionError: If the file is binary or has no hunks left.
    """
    _check_file(file_diff)
    mode = _effective_mode(file_diff, mode)
    hunks = [
        synthesize_hunk(hunk, 0, len(hunk.lines) - 1, mode)
        for hunk in file_diff.hunks
        if hunk.has_changes
    ]
    if not hunks:
        raise SelectionError(f"Nothing to select in {file_diff.path}")
    return _patch_text(_file_header(file_diff, mode, full=True), hunks)


def synthesize_files(file_diffs: list[FileDiff], mode: SynthesisMode) -> str:
    """Build one patch covering several files, for section-wide actions.

    Raises:
        SelectionError: If no file is given, or any file cannot be synthesized.
    """
    if not file_diffs:
        raise SelectionError("No files selected")
    return "".join(synthesize_file(file_diff, mode) for file_diff in file_diffs)
