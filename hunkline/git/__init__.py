"""Git plumbing for hunkline.

This package wraps the git command line with:
- exceptions: GitError, PatchRejected, ApplyFailure
- runner: _run_git_command, get_repo_root, has_head
- worktree: WorktreeEntry, parse_worktree_list, get_worktrees
- status: Section, FILE_SECTIONS, StatusEntry, StatusTree, parse_status, get_status
- apply: ApplyTarget, apply_patch, check_discard_allowed
- diff: DiffKey, DiffSnapshot, get_section_diffs, get_untracked_diff, get_diffs,
        add_paths, delete_untracked, add_intent, unstage_paths, restore_paths,
        has_conflict_markers
"""

# Exceptions
from hunkline.git.exceptions import (
    GitError,
    PatchRejected,
    ApplyFailure,
)

# Runner utilities
from hunkline.git.runner import (
    _run_git_command,
    get_repo_root,
    has_head,
)

# Worktree utilities
from hunkline.git.worktree import (
    WorktreeEntry,
    parse_worktree_list,
    get_worktrees,
)

# Status utilities
from hunkline.git.status import (
    Section,
    FILE_SECTIONS,
    StatusEntry,
    StatusTree,
    parse_status,
    get_status,
)

# Patch application
from hunkline.git.apply import (
    ApplyTarget,
    apply_patch,
    check_discard_allowed,
)

# Diff utilities
from hunkline.git.diff import (
    DiffKey,
    DiffSnapshot,
    get_section_diffs,
    get_untracked_diff,
    get_diffs,
    add_paths,
    delete_untracked,
    add_intent,
    unstage_paths,
    restore_paths,
    has_conflict_markers,
)


__all__ = [
    # Exceptions
    "GitError",
    "PatchRejected",
    "ApplyFailure",
    # Runner
    "_run_git_command",
    "get_repo_root",
    "has_head",
    # Worktree
    "WorktreeEntry",
    "parse_worktree_list",
    "get_worktrees",
    # Status
    "Section",
    "FILE_SECTIONS",
    "StatusEntry",
    "StatusTree",
    "parse_status",
    "get_status",
    # Apply
    "ApplyTarget",
    "apply_patch",
    "check_discard_allowed",
    # Diff
    "DiffKey",
    "DiffSnapshot",
    "get_section_diffs",
    "get_untracked_diff",
    "get_diffs",
    "add_paths",
    "delete_untracked",
    "add_intent",
    "unstage_paths",
    "restore_paths",
    "has_conflict_markers",
]
