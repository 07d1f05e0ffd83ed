"""Shared test fixtures and configuration."""

import subprocess
import tempfile
from pathlib import Path

import pytest

from hunkline.pending_ops import PendingOpRegistry


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def run_git(repo_dir: Path, *args: str) -> str:
    """Run a git command in a test repository and return its stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo_dir,
        capture_output=True,
        text=True,
    )
    return result.stdout


@pytest.fixture
def temp_repo(tmp_path):
    """Create a temporary git repository for testing."""
    repo_dir = tmp_path / "test_repo"
    repo_dir.mkdir()

    # Initialize git repo
    subprocess.run(["git", "init"], cwd=repo_dir, capture_output=True)
    subprocess.run(
        ["git", "config", "user.email", "test@example.com"],
        cwd=repo_dir,
        capture_output=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test User"],
        cwd=repo_dir,
        capture_output=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"],
        cwd=repo_dir,
        capture_output=True,
    )

    # Create initial commit
    (repo_dir / "README.md").write_text("# Test Repo\n")
    subprocess.run(["git", "add", "README.md"], cwd=repo_dir, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Initial commit"],
        cwd=repo_dir,
        capture_output=True,
    )

    return repo_dir


@pytest.fixture
def ten_line_repo(temp_repo):
    """Repository with a committed 10-line file.txt."""
    content = "".join(f"line{i}\n" for i in range(1, 11))
    (temp_repo / "file.txt").write_text(content)
    subprocess.run(["git", "add", "file.txt"], cwd=temp_repo, capture_output=True)
    subprocess.run(
        ["git", "commit", "-m", "Add file.txt"],
        cwd=temp_repo,
        capture_output=True,
    )
    return temp_repo


@pytest.fixture
def registry():
    """A fresh pending-operation registry."""
    return PendingOpRegistry()


# ============================================================================
# Sample diffs
# ============================================================================

TWO_HUNK_DIFF = """\
diff --git a/file.txt b/file.txt
index 1111111..2222222 100644
--- a/file.txt
+++ b/file.txt
@@ -1,4 +1,4 @@
-line1
+line1 modified
 line2
 line3
 line4
@@ -7,4 +7,4 @@ def foo():
 line7
 line8
 line9
-line10
+line10 modified
"""

NEW_FILE_DIFF = """\
diff --git a/new.txt b/new.txt
new file mode 100644
index 0000000..3333333
--- /dev/null
+++ b/new.txt
@@ -0,0 +1,2 @@
+hello
+world
"""

DELETED_FILE_DIFF = """\
diff --git a/old.txt b/old.txt
deleted file mode 100644
index 4444444..0000000
--- a/old.txt
+++ /dev/null
@@ -1,3 +0,0 @@
-one
-two
-three
"""

RENAME_DIFF = """\
diff --git a/before.txt b/after.txt
similarity index 80%
rename from before.txt
rename to after.txt
index 5555555..6666666 100644
--- a/before.txt
+++ b/after.txt
@@ -1,3 +1,3 @@
 keep
-old
+new
 tail
"""

BINARY_DIFF = """\
diff --git a/image.png b/image.png
index 7777777..8888888 100644
Binary files a/image.png and b/image.png differ
"""

NO_NEWLINE_DIFF = """\
diff --git a/end.txt b/end.txt
index 9999999..aaaaaaa 100644
--- a/end.txt
+++ b/end.txt
@@ -1,2 +1,2 @@
 first
-last
\\ No newline at end of file
+last changed
\\ No newline at end of file
"""


@pytest.fixture
def two_hunk_diff():
    return TWO_HUNK_DIFF


@pytest.fixture
def multi_file_diff():
    """Several file blocks in one diff output."""
    return TWO_HUNK_DIFF + NEW_FILE_DIFF + DELETED_FILE_DIFF + RENAME_DIFF + BINARY_DIFF + NO_NEWLINE_DIFF


@pytest.fixture
def sample_diffs():
    """Sample single-file diffs keyed by kind."""
    return {
        "two_hunk": TWO_HUNK_DIFF,
        "new_file": NEW_FILE_DIFF,
        "deleted": DELETED_FILE_DIFF,
        "rename": RENAME_DIFF,
        "binary": BINARY_DIFF,
        "no_newline": NO_NEWLINE_DIFF,
    }


@pytest.fixture
def git():
    """Helper that runs git in a test repository: git(repo_dir, *args) -> stdout."""
    return run_git
