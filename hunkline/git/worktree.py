"""Git worktree utilities.

Contains:
- WorktreeEntry: One worktree attached to the repository
- parse_worktree_list: Parse 'git worktree list --porcelain' output
- get_worktrees: List the repository's worktrees
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from hunkline.git.runner import _run_git_command


@dataclass
class WorktreeEntry:
    """One worktree attached to the repository."""

    path: str
    head: str = ""
    branch: Optional[str] = None  # Short name; None when detached
    bare: bool = False
    locked: bool = False
    prunable: bool = False


def parse_worktree_list(output: str) -> list[WorktreeEntry]:
    """Parse 'git worktree list --porcelain' output.

    Records are separated by blank lines and start with a 'worktree' line.

    Args:
        output: Raw porcelain output

    Returns:
        List of WorktreeEntry objects, main worktree first.
    """
    worktrees: list[WorktreeEntry] = []
    current: Optional[WorktreeEntry] = None

    for line in output.split("\n"):
        if line.startswith("worktree "):
            current = WorktreeEntry(path=line[len("worktree "):])
            worktrees.append(current)
        elif current is None:
            continue
        elif line.startswith("HEAD "):
            current.head = line[len("HEAD "):]
        elif line.startswith("branch "):
            branch = line[len("branch "):]
            current.branch = branch[len("refs/heads/"):] if branch.startswith("refs/heads/") else branch
        elif line == "bare":
            current.bare = True
        elif line == "locked" or line.startswith("locked "):
            current.locked = True
        elif line == "prunable" or line.startswith("prunable "):
            current.prunable = True

    return worktrees


def get_worktrees(repo_root: Union[str, Path]) -> list[WorktreeEntry]:
    """List the repository's worktrees.

    Raises:
        GitError: If the command fails.
    """
    output = _run_git_command(["worktree", "list", "--porcelain"], cwd=repo_root)
    return parse_worktree_list(output)
