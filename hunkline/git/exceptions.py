"""Git-related exception classes.

Contains all exception classes for Git operations:
- GitError: Base exception for git-related errors
- PatchRejected: Raised when a patch no longer matches the index or worktree
- ApplyFailure: Raised when 'git apply' fails for any other reason
"""

from typing import Optional


class GitError(Exception):
    """Custom exception for git-related errors.

    Carries the command's stderr and exit code when git itself ran.
    """

    def __init__(self, message: str, stderr: str = "", returncode: Optional[int] = None):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class PatchRejected(GitError):
    """Raised when a synthesized patch no longer applies; refresh and retry."""

    pass


class ApplyFailure(GitError):
    """Raised when 'git apply' fails for a reason other than a stale patch."""

    pass
