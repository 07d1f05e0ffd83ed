"""Tests for hunkline.render.model module."""

import pytest

from hunkline.diff import Selection, SelectionError, build_untracked_diff, parse_unified_diff
from hunkline.git import Section, StatusEntry, StatusTree, WorktreeEntry
from hunkline.pending_ops import PendingOpKind
from hunkline.render import (
    CLEAN_TREE_NOTICE,
    ExpansionStore,
    LineRef,
    RowKind,
    render_status,
    resolve,
    selection_from_rows,
)
from hunkline.user_config import HunklineConfig, StatusConfig

REPO = "/repo"


@pytest.fixture
def tree():
    """Status with one untracked and one modified file."""
    return StatusTree(
        branch="main",
        head_subject="Initial commit",
        unstaged=[StatusEntry(path="file.txt", worktree_status="M")],
        untracked=[StatusEntry(path="new.txt", index_status="?", worktree_status="?")],
        worktrees=[WorktreeEntry(path=REPO, branch="main")],
    )


@pytest.fixture
def diffs(two_hunk_diff):
    return {
        (Section.UNSTAGED, "file.txt"): parse_unified_diff(two_hunk_diff)[0],
        (Section.UNTRACKED, "new.txt"): build_untracked_diff("new.txt", b"a\nb\n"),
    }


def _render(tree, diffs, registry, expansion=None, config=None):
    return render_status(
        tree,
        diffs,
        expansion or ExpansionStore(),
        registry,
        config or HunklineConfig(),
        REPO,
    )


class TestRenderStatus:
    """Tests for render_status function."""

    def test_default_layout(self, tree, diffs, registry):
        """Test the rows at the default visibility level."""
        result = _render(tree, diffs, registry)

        assert [(row.kind, row.text) for row in result.rows] == [
            (RowKind.HEAD, "Head:     main  Initial commit"),
            (RowKind.BLANK, ""),
            (RowKind.SECTION_HEADER, "Untracked (1)"),
            (RowKind.FILE_ENTRY, "?   new.txt"),
            (RowKind.BLANK, ""),
            (RowKind.SECTION_HEADER, "Unstaged (1)"),
            (RowKind.FILE_ENTRY, "○ M file.txt"),
            (RowKind.BLANK, ""),
        ]

    def test_line_index(self, tree, diffs, registry):
        """Test that every content row maps back to its entity."""
        result = _render(tree, diffs, registry)

        assert result.line_index[2] == LineRef(Section.UNTRACKED)
        assert result.line_index[6] == LineRef(Section.UNSTAGED, "file.txt")
        assert resolve(result.line_index, 6).path == "file.txt"
        assert resolve(result.line_index, 0) is None
        assert resolve(result.line_index, 1) is None

    def test_fully_expanded_file(self, tree, diffs, registry):
        """Test hunk headers and diff lines of an expanded file."""
        expansion = ExpansionStore()
        expansion.expand_fully(Section.UNSTAGED, "file.txt")

        result = _render(tree, diffs, registry, expansion)

        texts = [row.text for row in result.rows[7:19]]
        assert texts[0] == "@@ -1,4 +1,4 @@"
        assert texts[1:3] == ["-line1", "+line1 modified"]
        assert texts[6] == "@@ -7,4 +7,4 @@ def foo():"
        assert texts[-1] == "+line10 modified"
        assert result.rows[7].kind is RowKind.HUNK_HEADER
        assert result.line_index[7] == LineRef(Section.UNSTAGED, "file.txt", 0)
        assert result.line_index[8] == LineRef(Section.UNSTAGED, "file.txt", 0, 0)
        assert result.line_index[18] == LineRef(Section.UNSTAGED, "file.txt", 1, 4)

    def test_headers_only(self, tree, diffs, registry):
        """Test that closed hunks show only their header."""
        expansion = ExpansionStore()
        expansion.toggle_file(Section.UNSTAGED, "file.txt")
        expansion.toggle_hunk(Section.UNSTAGED, "file.txt", 1, hunk_count=2)

        result = _render(tree, diffs, registry, expansion)

        kinds = [row.kind for row in result.rows[7:14]]
        assert kinds == [RowKind.HUNK_HEADER, RowKind.HUNK_HEADER] + [RowKind.DIFF_LINE] * 5

    def test_level_one_hides_files(self, tree, diffs, registry):
        """Test that collapsed sections show only their header."""
        result = _render(tree, diffs, registry, ExpansionStore(visibility_level=1))

        assert [row.kind for row in result.rows if row.kind is not RowKind.BLANK] == [
            RowKind.HEAD,
            RowKind.SECTION_HEADER,
            RowKind.SECTION_HEADER,
        ]

    def test_binary_notice(self, sample_diffs, registry):
        """Test that expanded binary files show a notice instead of hunks."""
        tree = StatusTree(branch="main", unstaged=[StatusEntry(path="image.png", worktree_status="M")])
        diffs = {(Section.UNSTAGED, "image.png"): parse_unified_diff(sample_diffs["binary"])[0]}

        result = _render(tree, diffs, registry, ExpansionStore(visibility_level=4))

        notice = result.rows[4]
        assert notice.kind is RowKind.NOTICE
        assert notice.text == "Binary files differ"

    def test_staged_rename(self, registry):
        """Test the rename arrow in the staged section."""
        tree = StatusTree(
            branch="main",
            staged=[StatusEntry(path="after.txt", index_status="R", orig_path="before.txt")],
        )

        result = _render(tree, {}, registry)

        assert result.rows[3].text == "● R before.txt -> after.txt"

    def test_missing_diff_still_lists_file(self, tree, registry):
        """Test that a file without a loaded diff renders without hunks."""
        result = _render(tree, {}, registry, ExpansionStore(visibility_level=4))

        assert result.rows[6].text == "○ M file.txt"

    def test_section_order_from_config(self, tree, diffs, registry):
        """Test that only configured sections render, in order."""
        config = HunklineConfig(status=StatusConfig(sections=[Section.UNSTAGED]))

        result = _render(tree, diffs, registry, config=config)

        headers = [row.text for row in result.rows if row.kind is RowKind.SECTION_HEADER]
        assert headers == ["Unstaged (1)"]

    def test_clean_tree(self, registry):
        """Test the clean-tree notice and upstream line."""
        tree = StatusTree(branch="main", upstream="origin/main", ahead=1)

        result = _render(tree, {}, registry)

        assert [row.text for row in result.rows] == [
            "Head:     main",
            "Merge:    origin/main [+1/-0]",
            "",
            CLEAN_TREE_NOTICE,
        ]

    def test_pending_file_shows_spinner(self, tree, diffs, registry):
        """Test that a pending file gets the spinner in its gutter."""
        registry.register("file.txt", PendingOpKind.GENERIC, "Staging", REPO)

        result = _render(tree, diffs, registry)

        row = result.rows[6]
        assert row.pending
        assert row.gutter == registry.spinner_char()
        assert not result.rows[3].pending

    def test_pending_in_other_repo_ignored(self, tree, diffs, registry):
        """Test that operations of other repositories are not shown."""
        registry.register("file.txt", PendingOpKind.GENERIC, "Staging", "/elsewhere")

        result = _render(tree, diffs, registry)

        assert not result.rows[6].pending

    def test_to_text(self, tree, diffs, registry):
        """Test plain text output with the gutter column."""
        text = _render(tree, diffs, registry).to_text()

        assert text.splitlines()[0] == "  Head:     main  Initial commit"
        assert "  ○ M file.txt" in text.splitlines()


class TestWorktrees:
    """Tests for the worktrees section."""

    def test_hidden_below_min_count(self, tree, diffs, registry):
        """Test that a single worktree is not listed."""
        result = _render(tree, diffs, registry)

        assert all(row.ref is None or row.ref.section is not Section.WORKTREES for row in result.rows)

    def test_listed_with_markers(self, registry):
        """Test the current and locked markers."""
        tree = StatusTree(
            branch="main",
            worktrees=[
                WorktreeEntry(path=REPO, branch="main"),
                WorktreeEntry(path="/repo-feature", branch="feature", locked=True),
                WorktreeEntry(path="/repo-detached"),
            ],
        )

        result = _render(tree, {}, registry)

        rows = [row for row in result.rows if row.ref and row.ref.section is Section.WORKTREES]
        assert rows[0].text == "Worktrees (3)"
        assert [(row.gutter, row.text) for row in rows[1:]] == [
            ("*", "main        /repo/"),
            ("L", "feature     /repo-feature/"),
            ("", "(detached)  /repo-detached/"),
        ]

    def test_phantom_row(self, tree, diffs, registry):
        """Test that a worktree being created shows as a phantom row."""
        registry.register("/repo-new/", PendingOpKind.ADD, "Creating worktree", REPO)

        result = _render(tree, diffs, registry)

        phantoms = [row for row in result.rows if row.kind is RowKind.PHANTOM_LINE]
        assert len(phantoms) == 1
        assert phantoms[0].text == "(creating...)  /repo-new/"
        assert phantoms[0].gutter == registry.spinner_char()
        assert phantoms[0].ref == LineRef(Section.WORKTREES, "/repo-new")

    def test_phantom_disappears_once_listed(self, registry):
        """Test that a listed worktree is not duplicated by its phantom."""
        registry.register("/repo-new", PendingOpKind.ADD, "Creating worktree", REPO)
        tree = StatusTree(
            branch="main",
            worktrees=[WorktreeEntry(path=REPO, branch="main"), WorktreeEntry(path="/repo-new", branch="new")],
        )

        result = _render(tree, {}, registry)

        assert not [row for row in result.rows if row.kind is RowKind.PHANTOM_LINE]
        pending_rows = [row for row in result.rows if row.pending]
        assert [row.ref.path for row in pending_rows] == ["/repo-new"]


class TestSelectionFromRows:
    """Tests for selection_from_rows function."""

    @pytest.fixture
    def expanded(self, tree, diffs, registry):
        expansion = ExpansionStore()
        expansion.expand_fully(Section.UNSTAGED, "file.txt")
        return _render(tree, diffs, registry, expansion)

    def test_line_range(self, expanded, diffs):
        """Test a range of diff rows."""
        assert selection_from_rows(expanded, diffs, 8, 9) == Selection("file.txt", 0, 0, 1)

    def test_reversed_range(self, expanded, diffs):
        """Test that start and end may be given in either order."""
        assert selection_from_rows(expanded, diffs, 9, 8) == Selection("file.txt", 0, 0, 1)

    def test_header_row_selects_hunk(self, expanded, diffs):
        """Test that a hunk header alone selects the whole hunk."""
        assert selection_from_rows(expanded, diffs, 13, 13) == Selection("file.txt", 1, 0, 4)

    def test_header_and_lines(self, expanded, diffs):
        """Test that a header inside a line range is ignored."""
        assert selection_from_rows(expanded, diffs, 7, 9) == Selection("file.txt", 0, 0, 1)

    def test_spanning_hunks(self, expanded, diffs):
        """Test that a range crossing hunks is refused."""
        with pytest.raises(SelectionError, match="more than one hunk"):
            selection_from_rows(expanded, diffs, 10, 15)

    def test_no_diff_rows(self, expanded, diffs):
        """Test a range over file and section rows only."""
        with pytest.raises(SelectionError):
            selection_from_rows(expanded, diffs, 2, 6)
