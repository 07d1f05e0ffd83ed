"""Git status utilities.

Contains:
- Section: The status buffer sections a file or row can belong to
- StatusEntry: One path reported by 'git status'
- StatusTree: Parsed repository status, entries grouped by section
- parse_status: Parse 'git status --porcelain=v2 --branch' output
- get_status: Run git status and return a StatusTree
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from hunkline.diff.parser import unquote_path
from hunkline.git.exceptions import GitError
from hunkline.git.runner import _run_git_command
from hunkline.git.worktree import WorktreeEntry, get_worktrees

logger = logging.getLogger(__name__)


class Section(str, Enum):
    """A section of the status buffer."""

    UNTRACKED = "untracked"
    UNSTAGED = "unstaged"
    STAGED = "staged"
    CONFLICTED = "conflicted"
    WORKTREES = "worktrees"

    @property
    def title(self) -> str:
        return self.value.capitalize()

    @property
    def is_file_section(self) -> bool:
        return self is not Section.WORKTREES


FILE_SECTIONS = (Section.UNTRACKED, Section.UNSTAGED, Section.STAGED, Section.CONFLICTED)


@dataclass
class StatusEntry:
    """One path reported by 'git status'.

    Status characters use porcelain v2 notation, where "." means unchanged.
    """

    path: str
    index_status: str = "."
    worktree_status: str = "."
    orig_path: Optional[str] = None  # For renames and copies
    submodule: Optional[str] = None


@dataclass
class StatusTree:
    """Parsed repository status."""

    branch: str = ""
    oid: str = ""
    upstream: Optional[str] = None
    ahead: int = 0
    behind: int = 0
    head_subject: Optional[str] = None
    staged: list[StatusEntry] = field(default_factory=list)
    unstaged: list[StatusEntry] = field(default_factory=list)
    untracked: list[StatusEntry] = field(default_factory=list)
    conflicted: list[StatusEntry] = field(default_factory=list)
    worktrees: list[WorktreeEntry] = field(default_factory=list)

    def entries(self, section: Section) -> list[StatusEntry]:
        """Entries listed under a file section (empty for worktrees)."""
        if section is Section.WORKTREES:
            return []
        return getattr(self, section.value)

    def find(self, section: Section, path: str) -> Optional[StatusEntry]:
        for entry in self.entries(section):
            if entry.path == path:
                return entry
        return None

    @property
    def has_file_changes(self) -> bool:
        return any(self.entries(section) for section in FILE_SECTIONS)


_ORDINARY_RE = re.compile(r"^1 (..) (....) \S+ \S+ \S+ \S+ \S+ (.+)$")
_RENAMED_RE = re.compile(r"^2 (..) (....) \S+ \S+ \S+ \S+ \S+ \S+ (.+)$")
_UNMERGED_RE = re.compile(r"^u (..) \S+ \S+ \S+ \S+ \S+ \S+ \S+ \S+ (.+)$")
_AHEAD_BEHIND_RE = re.compile(r"^# branch\.ab \+(\d+) -(\d+)$")


def _categorize(entry: StatusEntry, tree: StatusTree) -> None:
    # A path changed in both index and worktree is listed in both sections
    if entry.index_status != ".":
        tree.staged.append(entry)
    if entry.worktree_status != ".":
        tree.unstaged.append(entry)


def parse_status(output: str) -> StatusTree:
    """Parse 'git status --porcelain=v2 --branch' output.

    Args:
        output: Raw status output

    Returns:
        StatusTree with entries grouped into sections.
    """
    tree = StatusTree()

    for line in output.split("\n"):
        if not line:
            continue

        if line.startswith("# branch.head "):
            tree.branch = line[len("# branch.head "):]
        elif line.startswith("# branch.oid "):
            tree.oid = line[len("# branch.oid "):]
        elif line.startswith("# branch.upstream "):
            tree.upstream = line[len("# branch.upstream "):]
        elif line.startswith("# branch.ab "):
            match = _AHEAD_BEHIND_RE.match(line)
            if match:
                tree.ahead, tree.behind = int(match.group(1)), int(match.group(2))
        elif line.startswith("1 "):
            match = _ORDINARY_RE.match(line)
            if match:
                xy, sub, path = match.groups()
                _categorize(
                    StatusEntry(
                        path=unquote_path(path),
                        index_status=xy[0],
                        worktree_status=xy[1],
                        submodule=sub if sub != "N..." else None,
                    ),
                    tree,
                )
        elif line.startswith("2 "):
            match = _RENAMED_RE.match(line)
            if match:
                xy, sub, rest = match.groups()
                path, _, orig_path = rest.partition("\t")
                _categorize(
                    StatusEntry(
                        path=unquote_path(path),
                        index_status=xy[0],
                        worktree_status=xy[1],
                        orig_path=unquote_path(orig_path) if orig_path else None,
                        submodule=sub if sub != "N..." else None,
                    ),
                    tree,
                )
        elif line.startswith("u "):
            match = _UNMERGED_RE.match(line)
            if match:
                xy, path = match.groups()
                tree.conflicted.append(
                    StatusEntry(path=unquote_path(path), index_status=xy[0], worktree_status=xy[1])
                )
        elif line.startswith("? "):
            tree.untracked.append(
                StatusEntry(path=unquote_path(line[2:]), index_status="?", worktree_status="?")
            )

    return tree


def get_status(repo_root: Union[str, Path]) -> StatusTree:
    """Run git status in a repository and return the parsed tree.

    Also collects the HEAD commit subject and the worktree list.

    Args:
        repo_root: Repository root

    Returns:
        StatusTree

    Raises:
        GitError: If git status fails.
    """
    output = _run_git_command(
        [
            "-c",
            "core.quotepath=false",
            "status",
            "--porcelain=v2",
            "--branch",
            "--untracked-files=all",
        ],
        cwd=repo_root,
        strip=False,
    )
    tree = parse_status(output)

    try:
        tree.head_subject = _run_git_command(["log", "-1", "--format=%s"], cwd=repo_root) or None
    except GitError:
        # No commits yet
        tree.head_subject = None

    tree.worktrees = get_worktrees(repo_root)
    return tree
