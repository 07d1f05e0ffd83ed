"""Git command runner and repository utilities.

Contains:
- _run_git_command: Run a git command and return its output
- get_repo_root: Get the root directory of a git repository
- has_head: Check whether HEAD points at a commit
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

from hunkline.git.exceptions import GitError

logger = logging.getLogger(__name__)


def _run_git_command(
    args: list[str],
    cwd: Optional[Union[str, Path]] = None,
    input_text: Optional[str] = None,
    strip: bool = True,
) -> str:
    """Run a git command and return its output.

    Output is decoded as UTF-8 with surrogate escapes, so any bytes git
    prints survive a decode/encode round trip.

    Args:
        args: List of arguments to pass to git.
        cwd: Directory to run git in. Defaults to the current directory.
        input_text: Text fed to git on stdin.
        strip: Strip surrounding whitespace from stdout. Diff output must
            not be stripped.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails.
    """
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd or ".")
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            input=input_text,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="surrogateescape",
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise GitError(
            f"Git command failed: git {' '.join(args)}\n{e.stderr.strip()}",
            stderr=e.stderr,
            returncode=e.returncode,
        )
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")

    if strip:
        return result.stdout.strip()
    return result.stdout


def get_repo_root(cwd: Optional[Union[str, Path]] = None) -> Path:
    """Get the root directory of a git repository.

    Args:
        cwd: Directory inside the repository. Defaults to the current directory.

    Returns:
        Path to the repository root.

    Raises:
        GitError: If not in a git repository.
    """
    try:
        root = _run_git_command(["rev-parse", "--show-toplevel"], cwd=cwd)
        return Path(root)
    except GitError:
        raise GitError("Not in a git repository. Please run this command from within a git repo.")


def has_head(cwd: Optional[Union[str, Path]] = None) -> bool:
    """Whether the repository has at least one commit."""
    try:
        _run_git_command(["rev-parse", "--verify", "--quiet", "HEAD"], cwd=cwd)
    except GitError:
        return False
    return True
