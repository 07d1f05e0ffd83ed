"""Expansion state for the status view.

Contains:
- ExpansionState: How much of a file's diff is shown
- FileExpansion: Per-file state, open hunks and remembered hunk set
- SectionExpansion: Per-section collapse flag, scoped level and remembered files
- ExpansionStore: The per-session store of all expansion state
- file_key: Build the "section:path" key used by the store

The visibility level (1-4) is only a default. A manual toggle creates an
entry for that file which overrides the default until the next bulk set.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from hunkline.git.status import Section

MIN_LEVEL = 1
MAX_LEVEL = 4
DEFAULT_LEVEL = 2


class ExpansionState(str, Enum):
    """How much of a file's diff is shown."""

    COLLAPSED = "collapsed"
    HEADERS_ONLY = "headers"
    FULLY_EXPANDED = "full"


@dataclass
class FileExpansion:
    """Expansion of one file.

    `open_hunks` only matters in HEADERS_ONLY. `remembered` is the hunk set
    restored the next time the file enters HEADERS_ONLY.
    """

    state: ExpansionState = ExpansionState.COLLAPSED
    open_hunks: set[int] = field(default_factory=set)
    remembered: Optional[set[int]] = None


@dataclass
class SectionExpansion:
    """Expansion of one section."""

    collapsed: Optional[bool] = None  # None follows the level
    level: Optional[int] = None  # Scoped visibility level
    remembered_files: dict[str, FileExpansion] = field(default_factory=dict)


def file_key(section: Section, path: str) -> str:
    return f"{section.value}:{path}"


def _clamp(level: int) -> int:
    return max(MIN_LEVEL, min(MAX_LEVEL, level))


def _state_for_level(level: int) -> ExpansionState:
    if level >= 4:
        return ExpansionState.FULLY_EXPANDED
    if level == 3:
        return ExpansionState.HEADERS_ONLY
    return ExpansionState.COLLAPSED


class ExpansionStore:
    """All expansion state of one status session."""

    def __init__(self, visibility_level: int = DEFAULT_LEVEL):
        self.visibility_level = _clamp(visibility_level)
        self.files: dict[str, FileExpansion] = {}
        self.sections: dict[Section, SectionExpansion] = {}

    # Queries

    def level_for(self, section: Section) -> int:
        """Effective visibility level of a section."""
        override = self.sections.get(section)
        if override is not None and override.level is not None:
            return override.level
        return self.visibility_level

    def get_file(self, section: Section, path: str) -> FileExpansion:
        """Expansion of a file; files without an entry follow the level default."""
        entry = self.files.get(file_key(section, path))
        if entry is not None:
            return entry
        return FileExpansion(state=_state_for_level(self.level_for(section)))

    def is_section_collapsed(self, section: Section) -> bool:
        override = self.sections.get(section)
        if override is not None and override.collapsed is not None:
            return override.collapsed
        return self.level_for(section) == 1

    def is_hunk_visible(self, section: Section, path: str, hunk_index: int) -> bool:
        entry = self.get_file(section, path)
        if entry.state is ExpansionState.FULLY_EXPANDED:
            return True
        if entry.state is ExpansionState.HEADERS_ONLY:
            return hunk_index in entry.open_hunks
        return False

    # File commands

    def toggle_file(self, section: Section, path: str) -> ExpansionState:
        """Cycle a file COLLAPSED -> HEADERS_ONLY -> FULLY_EXPANDED -> COLLAPSED.

        Returns:
            The new state.
        """
        entry = copy.deepcopy(self.get_file(section, path))

        if entry.state is ExpansionState.COLLAPSED:
            entry.state = ExpansionState.HEADERS_ONLY
            entry.open_hunks = set(entry.remembered or ())
        elif entry.state is ExpansionState.HEADERS_ONLY:
            entry.remembered = set(entry.open_hunks)
            entry.state = ExpansionState.FULLY_EXPANDED
        else:
            entry.state = ExpansionState.COLLAPSED

        self.files[file_key(section, path)] = entry
        return entry.state

    def expand_fully(self, section: Section, path: str) -> None:
        """Jump straight to FULLY_EXPANDED, remembering the open hunks."""
        entry = copy.deepcopy(self.get_file(section, path))
        if entry.state is ExpansionState.HEADERS_ONLY:
            entry.remembered = set(entry.open_hunks)
        entry.state = ExpansionState.FULLY_EXPANDED
        self.files[file_key(section, path)] = entry

    def collapse_file(self, section: Section, path: str) -> None:
        entry = copy.deepcopy(self.get_file(section, path))
        if entry.state is ExpansionState.HEADERS_ONLY:
            entry.remembered = set(entry.open_hunks)
        entry.state = ExpansionState.COLLAPSED
        self.files[file_key(section, path)] = entry

    def toggle_hunk(self, section: Section, path: str, hunk_index: int, hunk_count: int) -> None:
        """Open or close a single hunk.

        From FULLY_EXPANDED the file drops to HEADERS_ONLY with every other
        hunk left open. Collapsed files are left alone.
        """
        entry = copy.deepcopy(self.get_file(section, path))

        if entry.state is ExpansionState.COLLAPSED:
            return
        if entry.state is ExpansionState.FULLY_EXPANDED:
            entry.state = ExpansionState.HEADERS_ONLY
            entry.open_hunks = set(range(hunk_count)) - {hunk_index}
        elif hunk_index in entry.open_hunks:
            entry.open_hunks.discard(hunk_index)
        else:
            entry.open_hunks.add(hunk_index)

        self.files[file_key(section, path)] = entry

    # Section commands

    def toggle_section(self, section: Section) -> bool:
        """Collapse or re-open a section.

        Collapsing remembers the expansion of the section's files; re-opening
        restores it.

        Returns:
            True if the section is now collapsed.
        """
        override = self.sections.setdefault(section, SectionExpansion())
        prefix = f"{section.value}:"

        if not self.is_section_collapsed(section):
            override.remembered_files = {
                key: entry for key, entry in self.files.items() if key.startswith(prefix)
            }
            for key in override.remembered_files:
                del self.files[key]
            override.collapsed = True
        else:
            self.files.update(override.remembered_files)
            override.remembered_files = {}
            override.collapsed = False

        return override.collapsed

    # Visibility levels

    def set_visibility_level(self, level: int, section: Optional[Section] = None) -> int:
        """Apply a visibility level, clearing manual entries it covers.

        Args:
            level: Level 1-4, clamped
            section: Apply to this section only

        Returns:
            The applied level.
        """
        level = _clamp(level)

        if section is None:
            self.visibility_level = level
            self.files.clear()
            self.sections.clear()
            return level

        prefix = f"{section.value}:"
        for key in [key for key in self.files if key.startswith(prefix)]:
            del self.files[key]
        self.sections[section] = SectionExpansion(level=level)
        return level

    def cycle_visibility_level(self) -> int:
        """Step the global level 1 -> 2 -> 3 -> 4 -> 1."""
        return self.set_visibility_level(self.visibility_level % MAX_LEVEL + 1)

    def prune(self, valid_keys: set[str]) -> None:
        """Drop entries for files that are no longer listed."""
        for key in [key for key in self.files if key not in valid_keys]:
            del self.files[key]
        for override in self.sections.values():
            for key in [key for key in override.remembered_files if key not in valid_keys]:
                del override.remembered_files[key]
