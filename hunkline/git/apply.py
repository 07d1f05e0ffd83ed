"""Applying synthesized patches with 'git apply'.

Contains:
- ApplyTarget: Where a patch is applied (index, worktree, reverse into index)
- apply_patch: Feed a patch to 'git apply' on stdin
- check_discard_allowed: Refuse discards of changes that are already staged
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Union

from hunkline.diff.exceptions import SelectionError
from hunkline.diff.synthesis import SynthesisMode
from hunkline.git.exceptions import ApplyFailure, GitError, PatchRejected
from hunkline.git.runner import _run_git_command
from hunkline.git.status import Section

logger = logging.getLogger(__name__)

# stderr fragments meaning the patch is stale rather than broken
REJECTION_MARKERS = ("does not apply", "patch failed", "already exists")


class ApplyTarget(str, Enum):
    """Where 'git apply' writes the patch."""

    INDEX = "index"
    WORKTREE = "worktree"
    INDEX_REVERSE = "index-reverse"

    @property
    def flags(self) -> list[str]:
        if self is ApplyTarget.INDEX:
            return ["--cached"]
        if self is ApplyTarget.INDEX_REVERSE:
            return ["--cached", "-R"]
        return []

    @classmethod
    def for_mode(cls, mode: SynthesisMode) -> "ApplyTarget":
        """Target for a synthesized patch: discards go to the worktree, the rest to the index."""
        if mode is SynthesisMode.DISCARD:
            return cls.WORKTREE
        return cls.INDEX


def apply_patch(patch_text: str, target: ApplyTarget, repo_root: Union[str, Path]) -> None:
    """Apply a patch to the index or worktree.

    Args:
        patch_text: Patch text, fed to git on stdin
        target: Where to apply the patch
        repo_root: Repository root (patch paths are relative to it)

    Raises:
        PatchRejected: If the patch no longer matches; the caller must refresh.
        ApplyFailure: For any other failure, with git's stderr as payload.
    """
    args = ["apply", *target.flags, "--whitespace=nowarn", "-"]
    try:
        _run_git_command(args, cwd=repo_root, input_text=patch_text)
    except GitError as e:
        stderr = e.stderr.strip() or str(e)
        if any(marker in stderr for marker in REJECTION_MARKERS):
            logger.warning("Patch rejected by git apply (%s): %s", target.value, stderr)
            raise PatchRejected(stderr, stderr=e.stderr, returncode=e.returncode)
        raise ApplyFailure(stderr, stderr=e.stderr, returncode=e.returncode)
    logger.debug("Applied patch to %s", target.value)


def check_discard_allowed(section: Section) -> None:
    """Refuse to discard changes whose source is the staged section.

    Raises:
        SelectionError: If the changes are staged.
    """
    if section is Section.STAGED:
        raise SelectionError("Cannot discard staged changes. Unstage first.")
