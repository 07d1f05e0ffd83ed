"""Diff engine for hunkline.

This package provides parsing and patch synthesis with:
- models: LineKind, FileStatus, DiffLine, Hunk, FileDiff, Selection
- parser: parse_unified_diff, build_untracked_diff, unquote_path
- synthesis: SynthesisMode, select_lines, synthesize_hunk, synthesize,
             synthesize_file, synthesize_files
- exceptions: ParseError, SelectionError
"""

# Exceptions
from hunkline.diff.exceptions import (
    ParseError,
    SelectionError,
)

# Data models
from hunkline.diff.models import (
    NO_NEWLINE_MARKER,
    LineKind,
    FileStatus,
    DiffLine,
    Hunk,
    FileDiff,
    Selection,
    format_hunk_header,
)

# Parser
from hunkline.diff.parser import (
    parse_unified_diff,
    build_untracked_diff,
    unquote_path,
)

# Patch synthesis
from hunkline.diff.synthesis import (
    SynthesisMode,
    select_lines,
    synthesize_hunk,
    synthesize,
    synthesize_file,
    synthesize_files,
)


__all__ = [
    # Exceptions
    "ParseError",
    "SelectionError",
    # Models
    "NO_NEWLINE_MARKER",
    "LineKind",
    "FileStatus",
    "DiffLine",
    "Hunk",
    "FileDiff",
    "Selection",
    "format_hunk_header",
    # Parser
    "parse_unified_diff",
    "build_untracked_diff",
    "unquote_path",
    # Synthesis
    "SynthesisMode",
    "select_lines",
    "synthesize_hunk",
    "synthesize",
    "synthesize_file",
    "synthesize_files",
]
