"""Data models for the hunkline diff engine.

Contains:
- LineKind: Kind of a hunk body line (context, add, remove)
- FileStatus: Change status of a file diff
- DiffLine: One row of a hunk body
- Hunk: One contiguous change region of a file diff
- FileDiff: One file's full change
- Selection: A contiguous run of lines within a single hunk
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


NO_NEWLINE_MARKER = "\\ No newline at end of file"


class LineKind(str, Enum):
    """Kind of a hunk body line."""

    CONTEXT = "context"
    ADD = "add"
    REMOVE = "remove"

    @property
    def marker(self) -> str:
        """The leading character used for this kind in unified diff output."""
        return _MARKERS[self]

    @classmethod
    def from_marker(cls, marker: str) -> Optional["LineKind"]:
        """Return the kind for a leading diff character, or None if unknown."""
        for kind, char in _MARKERS.items():
            if char == marker:
                return kind
        return None


_MARKERS = {
    LineKind.CONTEXT: " ",
    LineKind.ADD: "+",
    LineKind.REMOVE: "-",
}


class FileStatus(str, Enum):
    """Change status of a file diff."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNTRACKED = "untracked"


@dataclass(frozen=True)
class DiffLine:
    """One row of a hunk body.

    `text` excludes the leading marker. `no_newline` is set when the line is
    followed by a "No newline at end of file" marker.
    """

    kind: LineKind
    text: str
    old_lineno: Optional[int] = None
    new_lineno: Optional[int] = None
    no_newline: bool = False

    @property
    def is_change(self) -> bool:
        return self.kind is not LineKind.CONTEXT

    def to_lines(self) -> list[str]:
        """Render the line (and its no-newline marker) as unified diff lines."""
        rendered = [self.kind.marker + self.text]
        if self.no_newline:
            rendered.append(NO_NEWLINE_MARKER)
        return rendered


def format_hunk_header(
    old_start: int, old_count: int, new_start: int, new_count: int, header_text: str = ""
) -> str:
    """Format an @@ header line with explicit counts."""
    header = f"@@ -{old_start},{old_count} +{new_start},{new_count} @@"
    if header_text:
        header += f" {header_text}"
    return header


@dataclass(frozen=True)
class Hunk:
    """One contiguous change region of a file diff.

    Hunks are immutable; a new parse replaces them entirely.
    """

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    header_text: str = ""
    lines: tuple[DiffLine, ...] = ()
    header: str = ""  # The raw @@ ... @@ line, kept for lossless output

    @property
    def header_line(self) -> str:
        """The @@ line as parsed, or a freshly formatted one."""
        if self.header:
            return self.header
        return format_hunk_header(
            self.old_start, self.old_count, self.new_start, self.new_count, self.header_text
        )

    @property
    def has_changes(self) -> bool:
        return any(line.is_change for line in self.lines)

    def change_indices(self) -> list[int]:
        """Indices of the Add/Remove lines in this hunk."""
        return [i for i, line in enumerate(self.lines) if line.is_change]

    def to_lines(self) -> list[str]:
        """Serialize the hunk as unified diff lines (header first)."""
        rendered = [self.header_line]
        for line in self.lines:
            rendered.extend(line.to_lines())
        return rendered


@dataclass(frozen=True)
class FileDiff:
    """Diff for a single file containing its hunks.

    Rebuilt from scratch on every refresh, never patched in place.
    """

    path: str
    status: FileStatus
    header_lines: tuple[str, ...] = ()  # From 'diff --git' up to first @@
    hunks: tuple[Hunk, ...] = ()
    old_path: Optional[str] = None  # For renames
    is_binary: bool = False

    def to_lines(self) -> list[str]:
        rendered = list(self.header_lines)
        for hunk in self.hunks:
            rendered.extend(hunk.to_lines())
        return rendered

    def to_text(self) -> str:
        """Serialize back to unified diff text, newline-terminated."""
        return "\n".join(self.to_lines()) + "\n"


@dataclass(frozen=True)
class Selection:
    """A contiguous run of lines within exactly one hunk of one file.

    `first` and `last` are inclusive indices into the hunk's lines.
    """

    path: str
    hunk_index: int
    first: int
    last: int

    def __contains__(self, line_index: int) -> bool:
        return self.first <= line_index <= self.last

    @classmethod
    def whole_hunk(cls, file_diff: FileDiff, hunk_index: int) -> "Selection":
        """Select every line of one hunk."""
        hunk = file_diff.hunks[hunk_index]
        return cls(file_diff.path, hunk_index, 0, len(hunk.lines) - 1)
