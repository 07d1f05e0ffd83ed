"""Pending operation registry.

Contains:
- PendingOpKind: Kind of an in-flight operation (add, delete, generic)
- PendingOp: One registered in-flight operation
- PendingOpRegistry: Process-wide registry with change/tick callbacks and a spinner
- PENDING_OPS: The shared registry instance

Registrations are never deduplicated: registering the same target twice
keeps two live entries, and both completion callbacks must run before the
target stops being pending.
"""

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# Braille dot spinner frames
SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")


class PendingOpKind(str, Enum):
    """Kind of an in-flight operation."""

    ADD = "add"
    DELETE = "delete"
    GENERIC = "generic"


def normalize_path(path: str) -> str:
    """Normalize a path for use as a lookup key (strip trailing slashes)."""
    return path.rstrip("/") or path


@dataclass(frozen=True)
class PendingOp:
    """One registered in-flight operation."""

    target_path: str
    kind: PendingOpKind
    message: str
    repo_root: str
    created_at: datetime = field(default_factory=datetime.now)
    op_id: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.repo_root, self.target_path)


class PendingOpRegistry:
    """Tracks in-flight operations for overlay rendering.

    All access is expected from a single thread, so no locking is done.
    """

    def __init__(self) -> None:
        self._live: dict[int, PendingOp] = {}
        self._ids = itertools.count(1)
        self._frame_index = 0
        self._change_callbacks: list[Callable[[], None]] = []
        self._tick_callbacks: list[Callable[[], None]] = []

    def register(
        self,
        target: str,
        kind: PendingOpKind,
        message: str,
        repo_root: str,
    ) -> Callable[[], None]:
        """Register an operation and return its completion callback.

        The callback removes this registration only. Calling it more than
        once has no further effect.

        Args:
            target: Path the operation mutates
            kind: Kind of operation
            message: Human-readable description
            repo_root: Repository the operation belongs to

        Returns:
            A callable to invoke when the operation finishes, success or failure.
        """
        op = PendingOp(
            target_path=normalize_path(target),
            kind=kind,
            message=message,
            repo_root=normalize_path(repo_root),
            op_id=next(self._ids),
        )
        if not self._live:
            self._frame_index = 0
        self._live[op.op_id] = op
        logger.debug("Registered pending %s op %d on %s", kind.value, op.op_id, op.target_path)
        self._fire(self._change_callbacks)

        called = False

        def done() -> None:
            nonlocal called
            if called:
                return
            called = True
            self._live.pop(op.op_id, None)
            if not self._live:
                self._frame_index = 0
            logger.debug("Completed pending op %d on %s", op.op_id, op.target_path)
            self._fire(self._change_callbacks)

        return done

    def all_pending(self, repo_root: Optional[str] = None) -> list[PendingOp]:
        """Return the latest live registration for each (repo_root, path) key.

        Args:
            repo_root: Only return operations for this repository.

        Returns:
            PendingOp list in registration order of each key's latest entry.
        """
        latest: dict[tuple[str, str], PendingOp] = {}
        for op in self._live.values():
            if repo_root is not None and op.repo_root != normalize_path(repo_root):
                continue
            latest.pop(op.key, None)
            latest[op.key] = op
        return list(latest.values())

    def is_pending(self, path: str, repo_root: Optional[str] = None) -> bool:
        """Check whether a path has a live registration."""
        path = normalize_path(path)
        return any(op.target_path == path for op in self.all_pending(repo_root))

    def has_any(self) -> bool:
        return bool(self._live)

    def live_count(self, path: Optional[str] = None) -> int:
        """Number of live registrations, optionally for one path."""
        if path is None:
            return len(self._live)
        path = normalize_path(path)
        return sum(1 for op in self._live.values() if op.target_path == path)

    def spinner_char(self) -> str:
        """Current spinner frame."""
        return SPINNER_FRAMES[self._frame_index]

    def tick(self) -> None:
        """Advance the spinner one frame and notify tick callbacks.

        Does nothing while no operation is pending.
        """
        if not self._live:
            return
        self._frame_index = (self._frame_index + 1) % len(SPINNER_FRAMES)
        self._fire(self._tick_callbacks)

    def on_change(self, callback: Callable[[], None]) -> None:
        """Register a callback fired when an operation is added or completed."""
        self._change_callbacks.append(callback)

    def off_change(self, callback: Callable[[], None]) -> None:
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)

    def on_tick(self, callback: Callable[[], None]) -> None:
        """Register a callback fired on every spinner frame."""
        self._tick_callbacks.append(callback)

    def off_tick(self, callback: Callable[[], None]) -> None:
        if callback in self._tick_callbacks:
            self._tick_callbacks.remove(callback)

    def clear_all(self) -> None:
        """Reset all state, callbacks included. Intended for tests and teardown."""
        self._live.clear()
        self._frame_index = 0
        self._change_callbacks.clear()
        self._tick_callbacks.clear()

    @staticmethod
    def _fire(callbacks: list[Callable[[], None]]) -> None:
        for callback in list(callbacks):
            callback()


PENDING_OPS = PendingOpRegistry()
