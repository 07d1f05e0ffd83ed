"""Git diff utilities.

Contains:
- DiffKey: (section, path) key of a file diff
- DiffSnapshot: Diffs for every file section, plus per-file parse errors
- get_section_diffs: Parse 'git diff' (or 'git diff --cached') by path
- get_untracked_diff: Build a synthetic diff from an untracked file on disk
- get_diffs: Collect diffs for every file listed in a StatusTree
- add_paths: Stage whole paths with 'git add'
- delete_untracked: Remove an untracked file from the worktree
- add_intent: Mark untracked paths as intent-to-add
- unstage_paths: Reset whole paths in the index
- restore_paths: Check out whole paths from the index
- has_conflict_markers: Scan a worktree file for conflict markers
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from hunkline.diff.exceptions import ParseError
from hunkline.diff.models import FileDiff
from hunkline.diff.parser import build_untracked_diff, parse_unified_diff
from hunkline.git.runner import _run_git_command, has_head
from hunkline.git.status import Section, StatusEntry, StatusTree

logger = logging.getLogger(__name__)

DiffKey = tuple[Section, str]

CONFLICT_MARKER = b"<<<<<<<"

# Fixed output shape regardless of user diff config
_DIFF_ARGS = [
    "-c",
    "core.quotepath=false",
    "diff",
    "--no-color",
    "--no-ext-diff",
    "-M",
    "--src-prefix=a/",
    "--dst-prefix=b/",
]


@dataclass
class DiffSnapshot:
    """Diffs collected in one refresh.

    A file whose diff could not be parsed has an entry in `errors` and none
    in `diffs`.
    """

    diffs: dict[DiffKey, FileDiff] = field(default_factory=dict)
    errors: dict[DiffKey, str] = field(default_factory=dict)


def _diff_command(cached: bool, paths: list[str]) -> list[str]:
    args = list(_DIFF_ARGS)
    if cached:
        args.append("--cached")
    if paths:
        args.append("--")
        args.extend(paths)
    return args


def get_section_diffs(
    repo_root: Union[str, Path],
    entries: list[StatusEntry],
    cached: bool,
    snapshot: DiffSnapshot,
) -> None:
    """Fetch and parse the diffs for the files of one section.

    The whole section is diffed in a single call. If that output fails to
    parse, each file is diffed separately so one bad file does not hide
    the rest.

    Args:
        repo_root: Repository root
        entries: Status entries of the section
        cached: Diff the index against HEAD instead of the worktree against the index
        snapshot: Snapshot the results are added to
    """
    if not entries:
        return

    section = Section.STAGED if cached else Section.UNSTAGED
    wanted = {entry.path for entry in entries}

    output = _run_git_command(_diff_command(cached, []), cwd=repo_root, strip=False)
    try:
        for file_diff in parse_unified_diff(output):
            if file_diff.path in wanted:
                snapshot.diffs[(section, file_diff.path)] = file_diff
        return
    except ParseError as e:
        logger.warning("Could not parse %s diff, retrying per file: %s", section.value, e)

    for entry in entries:
        paths = [entry.path] + ([entry.orig_path] if entry.orig_path else [])
        output = _run_git_command(_diff_command(cached, paths), cwd=repo_root, strip=False)
        try:
            for file_diff in parse_unified_diff(output):
                if file_diff.path == entry.path:
                    snapshot.diffs[(section, entry.path)] = file_diff
        except ParseError as e:
            logger.warning("Could not parse diff for %s: %s", entry.path, e)
            snapshot.errors[(section, entry.path)] = str(e)


def get_untracked_diff(repo_root: Union[str, Path], path: str) -> FileDiff:
    """Build a synthetic add-only diff for an untracked file.

    Raises:
        OSError: If the file cannot be read.
    """
    full_path = Path(repo_root) / path
    if full_path.is_symlink():
        target = os.readlink(full_path)
        return build_untracked_diff(path, target.encode("utf-8", "surrogateescape"), mode="120000")

    mode = "100755" if os.access(full_path, os.X_OK) else "100644"
    return build_untracked_diff(path, full_path.read_bytes(), mode=mode)


def get_diffs(repo_root: Union[str, Path], tree: StatusTree) -> DiffSnapshot:
    """Collect diffs for every file listed in a StatusTree.

    Args:
        repo_root: Repository root
        tree: Parsed status

    Returns:
        DiffSnapshot keyed by (section, path).

    Raises:
        GitError: If a git diff command fails.
    """
    snapshot = DiffSnapshot()
    get_section_diffs(repo_root, tree.unstaged, cached=False, snapshot=snapshot)
    get_section_diffs(repo_root, tree.staged, cached=True, snapshot=snapshot)

    for entry in tree.untracked:
        try:
            snapshot.diffs[(Section.UNTRACKED, entry.path)] = get_untracked_diff(repo_root, entry.path)
        except OSError as e:
            logger.warning("Could not read untracked file %s: %s", entry.path, e)
            snapshot.errors[(Section.UNTRACKED, entry.path)] = str(e)

    return snapshot


def add_paths(repo_root: Union[str, Path], paths: list[str]) -> None:
    """Stage whole paths with 'git add'.

    Raises:
        GitError: If git add fails.
    """
    _run_git_command(["add", "--"] + paths, cwd=repo_root)


def delete_untracked(repo_root: Union[str, Path], path: str) -> None:
    """Remove an untracked file from the worktree.

    Raises:
        OSError: If the file cannot be removed.
    """
    full_path = Path(repo_root) / path
    full_path.unlink()
    logger.info("Deleted untracked file %s", path)


def add_intent(repo_root: Union[str, Path], paths: list[str]) -> None:
    """Record untracked paths as intent-to-add ('git add -N').

    The files then show up as unstaged additions, so their content can be
    staged hunk by hunk.

    Raises:
        GitError: If git add fails.
    """
    _run_git_command(["add", "-N", "--"] + paths, cwd=repo_root)


def unstage_paths(repo_root: Union[str, Path], paths: list[str]) -> None:
    """Reset whole paths in the index to HEAD.

    Before the first commit there is no HEAD to reset to, so the paths are
    removed from the index instead.

    Raises:
        GitError: If git reset or git rm fails.
    """
    if has_head(repo_root):
        _run_git_command(["reset", "-q", "HEAD", "--"] + paths, cwd=repo_root)
    else:
        _run_git_command(["rm", "--cached", "-q", "--ignore-unmatch", "--"] + paths, cwd=repo_root)


def restore_paths(repo_root: Union[str, Path], paths: list[str]) -> None:
    """Overwrite worktree files with their index version ('git checkout').

    Raises:
        GitError: If git checkout fails.
    """
    _run_git_command(["checkout", "--"] + paths, cwd=repo_root)


def has_conflict_markers(repo_root: Union[str, Path], path: str) -> bool:
    """Check whether a worktree file still has a '<<<<<<<' marker line.

    Unreadable files count as having no markers.
    """
    try:
        with open(Path(repo_root) / path, "rb") as f:
            return any(line.startswith(CONFLICT_MARKER) for line in f)
    except OSError as e:
        logger.debug("Could not scan %s for conflict markers: %s", path, e)
        return False
