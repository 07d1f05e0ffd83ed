"""Per-buffer session state and staging actions.

Contains:
- RefreshOutcome / RefreshResult: Whether a refresh result was applied or dropped
- Snapshot: Status and diffs collected by one refresh
- ActionResult: Outcome of a stage, unstage or discard action
- BufferSession: Owns expansion state, the parsed tree and refresh ordering

Public actions never raise for user-level failures (bad selection, stale
patch, git errors); they return an ActionResult instead.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from hunkline.diff.exceptions import ParseError, SelectionError
from hunkline.diff.models import FileDiff, FileStatus, Selection
from hunkline.diff.synthesis import (
    SynthesisMode,
    select_lines,
    synthesize,
    synthesize_files,
)
from hunkline.git.apply import ApplyTarget, apply_patch, check_discard_allowed
from hunkline.git.diff import (
    DiffKey,
    DiffSnapshot,
    add_intent,
    add_paths,
    delete_untracked,
    get_diffs,
    has_conflict_markers,
    restore_paths,
    unstage_paths,
)
from hunkline.git.exceptions import ApplyFailure, GitError, PatchRejected
from hunkline.git.status import FILE_SECTIONS, Section, StatusTree, get_status
from hunkline.pending_ops import PENDING_OPS, PendingOpKind, PendingOpRegistry
from hunkline.render.expansion import ExpansionStore, file_key
from hunkline.render.model import RenderResult, render_status, resolve, selection_from_rows
from hunkline.user_config import HunklineConfig, get_config

logger = logging.getLogger(__name__)

STALE_PATCH_MESSAGE = "Diff may be stale. Try refreshing first."

# Sections each mode may take changes from
_SOURCES = {
    SynthesisMode.STAGE: (Section.UNSTAGED, Section.UNTRACKED, Section.CONFLICTED),
    SynthesisMode.UNSTAGE: (Section.STAGED,),
    SynthesisMode.DISCARD: (Section.UNSTAGED, Section.UNTRACKED),
}

# Where a path-based action looks for the file, in order
_PATH_LOOKUP = {
    SynthesisMode.STAGE: (Section.UNSTAGED, Section.UNTRACKED, Section.CONFLICTED),
    SynthesisMode.UNSTAGE: (Section.STAGED,),
    SynthesisMode.DISCARD: (Section.UNSTAGED, Section.UNTRACKED, Section.STAGED),
}

_VERBS = {
    SynthesisMode.STAGE: "Staged",
    SynthesisMode.UNSTAGE: "Unstaged",
    SynthesisMode.DISCARD: "Discarded",
}


class RefreshOutcome(str, Enum):
    """Whether a completed refresh replaced the session state."""

    APPLIED = "applied"
    STALE = "stale"


@dataclass(frozen=True)
class RefreshResult:
    outcome: RefreshOutcome
    seq: int

    @property
    def applied(self) -> bool:
        return self.outcome is RefreshOutcome.APPLIED


@dataclass
class Snapshot:
    """Status and diffs collected by one refresh."""

    tree: StatusTree
    diffs: DiffSnapshot = field(default_factory=DiffSnapshot)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a user action."""

    ok: bool
    message: str
    error: Optional[Exception] = None


@dataclass
class _Plan:
    """The git operations one action performs."""

    mode: SynthesisMode
    paths: list[str]
    patch: Optional[str] = None
    add: list[str] = field(default_factory=list)
    intent: list[str] = field(default_factory=list)
    reset: list[str] = field(default_factory=list)
    checkout: list[str] = field(default_factory=list)
    delete: list[str] = field(default_factory=list)


class BufferSession:
    """State of one status buffer.

    Owns the expansion store, the last applied status tree and diffs, and
    the refresh sequence counters. The pending-operation registry is shared
    across sessions.
    """

    def __init__(
        self,
        repo_root: Union[str, Path],
        config: Optional[HunklineConfig] = None,
        pending_ops: PendingOpRegistry = PENDING_OPS,
    ):
        self.repo_root = Path(repo_root)
        self.config = config or get_config(self.repo_root)
        self.pending_ops = pending_ops
        self.expansion = ExpansionStore(self.config.status.visibility_level)
        self.tree: Optional[StatusTree] = None
        self.diffs: dict[DiffKey, FileDiff] = {}
        self.errors: dict[DiffKey, str] = {}
        self.last_render: Optional[RenderResult] = None
        self._issued_seq = 0
        self._applied_seq = 0

    @property
    def root(self) -> str:
        return str(self.repo_root)

    # Refresh

    def begin_refresh(self) -> int:
        """Issue the sequence number for a new refresh request."""
        self._issued_seq += 1
        logger.debug("Refresh %d started", self._issued_seq)
        return self._issued_seq

    def collect(self) -> Snapshot:
        """Run git and collect a snapshot. Does not touch session state.

        Raises:
            GitError: If git status or diff fails.
        """
        tree = get_status(self.repo_root)
        return Snapshot(tree=tree, diffs=get_diffs(self.repo_root, tree))

    def complete_refresh(self, seq: int, snapshot: Snapshot) -> RefreshResult:
        """Apply a snapshot unless a newer refresh has been issued or applied.

        Args:
            seq: Sequence number from begin_refresh
            snapshot: Collected snapshot

        Returns:
            RefreshResult telling whether the snapshot was applied.
        """
        if seq != self._issued_seq or seq <= self._applied_seq:
            logger.warning(
                "Dropping stale refresh %d (latest issued %d, applied %d)",
                seq,
                self._issued_seq,
                self._applied_seq,
            )
            return RefreshResult(RefreshOutcome.STALE, seq)

        self._applied_seq = seq
        self.tree = snapshot.tree
        self.diffs = dict(snapshot.diffs.diffs)
        self.errors = dict(snapshot.diffs.errors)
        self.expansion.prune(
            {
                file_key(section, entry.path)
                for section in FILE_SECTIONS
                for entry in snapshot.tree.entries(section)
            }
        )
        logger.debug("Refresh %d applied", seq)
        return RefreshResult(RefreshOutcome.APPLIED, seq)

    def refresh(self) -> RefreshResult:
        """Collect and apply a snapshot synchronously."""
        seq = self.begin_refresh()
        return self.complete_refresh(seq, self.collect())

    async def refresh_async(self) -> RefreshResult:
        """Collect a snapshot in a worker thread and apply it on the loop thread."""
        seq = self.begin_refresh()
        snapshot = await asyncio.to_thread(self.collect)
        return self.complete_refresh(seq, snapshot)

    # Rendering and expansion

    def render(self) -> RenderResult:
        """Render the last applied state and keep it for row lookups."""
        self.last_render = render_status(
            self.tree or StatusTree(),
            self.diffs,
            self.expansion,
            self.pending_ops,
            self.config,
            self.repo_root,
        )
        return self.last_render

    def toggle_at(self, position: int) -> None:
        """Toggle whatever the row at a position points to."""
        ref = self._ref_at(position)
        if ref is None:
            return
        if ref.path is None:
            self.expansion.toggle_section(ref.section)
        elif ref.hunk_index is not None and ref.line_index is None:
            file_diff = self.diffs.get((ref.section, ref.path))
            hunk_count = len(file_diff.hunks) if file_diff else 0
            self.expansion.toggle_hunk(ref.section, ref.path, ref.hunk_index, hunk_count)
        elif ref.section is not Section.WORKTREES:
            self.expansion.toggle_file(ref.section, ref.path)

    def expand_fully_at(self, position: int) -> None:
        ref = self._ref_at(position)
        if ref is not None and ref.path is not None and ref.section is not Section.WORKTREES:
            self.expansion.expand_fully(ref.section, ref.path)

    def set_visibility_level(self, level: int, position: Optional[int] = None) -> int:
        """Apply a visibility level globally, or to the section under a row."""
        ref = self._ref_at(position) if position is not None else None
        return self.expansion.set_visibility_level(level, ref.section if ref else None)

    def cycle_visibility_level(self) -> int:
        return self.expansion.cycle_visibility_level()

    def _ref_at(self, position: int):
        if self.last_render is None:
            return None
        return resolve(self.last_render.line_index, position)

    # Actions

    def stage(self, start: int, end: Optional[int] = None, force: bool = False) -> ActionResult:
        """Stage the section, file, hunk or lines under rows start..end."""
        return self.act_at(SynthesisMode.STAGE, start, end, force=force)

    def unstage(self, start: int, end: Optional[int] = None) -> ActionResult:
        return self.act_at(SynthesisMode.UNSTAGE, start, end)

    def discard(self, start: int, end: Optional[int] = None) -> ActionResult:
        return self.act_at(SynthesisMode.DISCARD, start, end)

    def act_at(
        self,
        mode: SynthesisMode,
        start: int,
        end: Optional[int] = None,
        force: bool = False,
    ) -> ActionResult:
        """Run an action on the rendered rows start..end.

        A section header acts on every file of the section, a file entry on
        the whole file, a hunk header on the whole hunk and diff lines on the
        selected lines. Conflicted files that still contain conflict markers
        are only staged with force.
        """
        try:
            plan = self._plan_at(mode, start, start if end is None else end, force)
        except (SelectionError, ParseError) as e:
            return self._failed(mode, e)
        return self._run(plan)

    def act_on_path(
        self,
        mode: SynthesisMode,
        path: str,
        hunk_index: Optional[int] = None,
        lines: Optional[tuple[int, int]] = None,
        force: bool = False,
        intent: bool = False,
    ) -> ActionResult:
        """Run an action on a file, one of its hunks, or a line range of a hunk.

        Args:
            mode: Action to run
            path: File path relative to the repository root
            hunk_index: Hunk to act on (0-based)
            lines: Inclusive (first, last) line indices within the hunk (0-based)
            force: Stage conflicted files even if they still contain conflict markers
            intent: Stage an untracked file as intent-to-add instead of its content
        """
        try:
            if intent:
                plan = self._plan_intent(mode, path, hunk_index, lines)
            else:
                plan = self._plan_path(mode, path, hunk_index, lines, force)
        except (SelectionError, ParseError) as e:
            return self._failed(mode, e)
        return self._run(plan)

    def _plan_at(self, mode: SynthesisMode, start: int, end: int, force: bool) -> _Plan:
        if self.last_render is None:
            raise SelectionError("Nothing rendered yet")
        ref = resolve(self.last_render.line_index, min(start, end))
        if ref is None:
            raise SelectionError("Nothing to act on at this line")
        self._check_source(mode, ref.section)

        if ref.path is None:
            entries = self.tree.entries(ref.section) if self.tree else []
            return self._plan_files(mode, ref.section, [entry.path for entry in entries], force)
        if ref.hunk_index is None:
            return self._plan_files(mode, ref.section, [ref.path], force)

        selection = selection_from_rows(self.last_render, self.diffs, start, end)
        return self._plan_selection(mode, ref.section, selection)

    def _plan_path(
        self,
        mode: SynthesisMode,
        path: str,
        hunk_index: Optional[int],
        lines: Optional[tuple[int, int]],
        force: bool,
    ) -> _Plan:
        section = self._find_section(mode, path)
        self._check_source(mode, section)
        if hunk_index is None:
            if lines is not None:
                raise SelectionError("A line range needs a hunk")
            return self._plan_files(mode, section, [path], force)

        file_diff = self._file_diff(section, path)
        if lines is None:
            if not 0 <= hunk_index < len(file_diff.hunks):
                raise SelectionError(f"No hunk {hunk_index} in {path}")
            selection = Selection.whole_hunk(file_diff, hunk_index)
        else:
            selection = select_lines(file_diff, hunk_index, lines[0], lines[1])
        return self._plan_selection(mode, section, selection)

    def _plan_intent(
        self,
        mode: SynthesisMode,
        path: str,
        hunk_index: Optional[int],
        lines: Optional[tuple[int, int]],
    ) -> _Plan:
        if mode is not SynthesisMode.STAGE or hunk_index is not None or lines is not None:
            raise SelectionError("Intent-to-add only stages whole files")
        if self.tree is None or self.tree.find(Section.UNTRACKED, path) is None:
            raise SelectionError("Intent-to-add only applies to untracked files")
        return _Plan(mode=mode, paths=[path], intent=[path])

    def _find_section(self, mode: SynthesisMode, path: str) -> Section:
        if self.tree is None:
            raise SelectionError("Status has not been loaded")
        for section in _PATH_LOOKUP[mode]:
            if self.tree.find(section, path) is not None:
                return section
        raise SelectionError(f"Nothing to {mode.value} in {path}")

    @staticmethod
    def _check_source(mode: SynthesisMode, section: Section) -> None:
        if mode is SynthesisMode.DISCARD:
            check_discard_allowed(section)
        if section not in _SOURCES[mode]:
            raise SelectionError(f"Cannot {mode.value} changes from the {section.title} section")

    def _file_diff(self, section: Section, path: str) -> FileDiff:
        file_diff = self.diffs.get((section, path))
        if file_diff is None:
            error = self.errors.get((section, path))
            if error:
                raise ParseError(error)
            raise SelectionError(f"No diff loaded for {path}")
        return file_diff

    def _plan_files(
        self,
        mode: SynthesisMode,
        section: Section,
        paths: list[str],
        force: bool = False,
    ) -> _Plan:
        if not paths:
            raise SelectionError(f"Nothing to {mode.value}")
        plan = _Plan(mode=mode, paths=list(paths))

        if section is Section.CONFLICTED:
            marked = [path for path in paths if has_conflict_markers(self.repo_root, path)]
            if marked and not force:
                raise SelectionError(
                    f"{len(marked)} file(s) still contain conflict markers: {', '.join(marked)}"
                )
            plan.add = list(paths)
            return plan
        if section is Section.UNTRACKED and mode is SynthesisMode.DISCARD:
            plan.delete = list(paths)
            return plan

        patchable = []
        for path in paths:
            file_diff = self._file_diff(section, path)
            if file_diff.hunks and not file_diff.is_binary:
                patchable.append(file_diff)
            # Binary, empty, mode-only and pure rename changes move whole paths
            elif mode is SynthesisMode.STAGE:
                plan.add.append(path)
            elif mode is SynthesisMode.UNSTAGE:
                plan.reset.append(path)
                if file_diff.old_path:
                    plan.reset.append(file_diff.old_path)
            else:
                plan.checkout.append(path)

        if patchable:
            plan.patch = synthesize_files(patchable, mode)
        return plan

    def _plan_selection(self, mode: SynthesisMode, section: Section, selection: Selection) -> _Plan:
        file_diff = self._file_diff(section, selection.path)
        if section is Section.UNTRACKED and mode is SynthesisMode.DISCARD:
            raise SelectionError("Cannot discard part of an untracked file")
        if file_diff.status is FileStatus.UNTRACKED and mode is SynthesisMode.UNSTAGE:
            raise SelectionError("Untracked files have nothing to unstage")
        return _Plan(
            mode=mode,
            paths=[selection.path],
            patch=synthesize(file_diff, selection, mode),
        )

    def _run(self, plan: _Plan) -> ActionResult:
        busy = [path for path in plan.paths if self.pending_ops.is_pending(path, self.root)]
        if busy:
            return ActionResult(False, f"An operation is already running for {busy[0]}")

        description = f"{plan.mode.value.capitalize()} {', '.join(plan.paths)}"
        done_callbacks = [
            self.pending_ops.register(path, PendingOpKind.GENERIC, description, self.root)
            for path in plan.paths
        ]
        try:
            if plan.patch is not None:
                apply_patch(plan.patch, ApplyTarget.for_mode(plan.mode), self.repo_root)
            if plan.add:
                add_paths(self.repo_root, plan.add)
            if plan.intent:
                add_intent(self.repo_root, plan.intent)
            if plan.reset:
                unstage_paths(self.repo_root, plan.reset)
            if plan.checkout:
                restore_paths(self.repo_root, plan.checkout)
            for path in plan.delete:
                delete_untracked(self.repo_root, path)
        except (GitError, OSError) as e:
            return self._failed(plan.mode, e)
        finally:
            for done in done_callbacks:
                done()

        if plan.intent:
            message = f"Marked {', '.join(plan.paths)} as intent-to-add"
        else:
            message = f"{_VERBS[plan.mode]} {', '.join(plan.paths)}"
        logger.info(message)

        try:
            self.refresh()
        except GitError as e:
            logger.warning("Refresh after %s failed: %s", plan.mode.value, e)
            return ActionResult(True, f"{message} (refresh failed)", e)
        return ActionResult(True, message)

    @staticmethod
    def _failed(mode: SynthesisMode, error: Exception) -> ActionResult:
        if isinstance(error, PatchRejected):
            message = STALE_PATCH_MESSAGE
        elif isinstance(error, ApplyFailure):
            message = f"{mode.value.capitalize()} failed: {error}"
        else:
            message = str(error)
        logger.warning("%s failed: %s", mode.value, error)
        return ActionResult(False, message, error)
