"""Tests for path helpers, the pending clipboard and batch results."""

from pathlib import Path

import pytest

from terminus.core.batch import BatchResult, ItemResult
from terminus.core.clipboard import ClipboardKind, PendingClipboard
from terminus.core.paths import get_unique_path, path_exists, rename_caret


class TestGetUniquePath:
    """Test unique path generation."""

    def test_unique_path_no_conflict(self, temp_dir: Path):
        """Test when no conflict exists."""
        path = temp_dir / "newfile.txt"
        assert get_unique_path(path) == path

    def test_unique_path_with_conflict(self, temp_dir: Path):
        """Test when file already exists."""
        existing = temp_dir / "file.txt"
        existing.write_text("existing")

        assert get_unique_path(existing) == temp_dir / "file (1).txt"

    def test_unique_path_multiple_conflicts(self, temp_dir: Path):
        """Test with multiple existing files."""
        (temp_dir / "file.txt").write_text("0")
        (temp_dir / "file (1).txt").write_text("1")
        (temp_dir / "file (2).txt").write_text("2")

        assert get_unique_path(temp_dir / "file.txt") == temp_dir / "file (3).txt"

    def test_dangling_symlink_counts_as_taken(self, temp_dir: Path):
        """Test a broken link still occupies its name."""
        link = temp_dir / "link"
        link.symlink_to(temp_dir / "missing")

        assert path_exists(link)
        assert get_unique_path(link) == temp_dir / "link (1)"


class TestRenameCaret:
    """Test initial caret placement for rename."""

    @pytest.mark.parametrize(
        "name, is_dir, expected",
        [
            ("report.txt", False, 6),
            ("archive.tar.gz", False, 11),
            ("Makefile", False, 8),
            (".bashrc", False, 7),
            ("photos.2023", True, 11),
        ],
    )
    def test_stem_policy(self, name, is_dir, expected):
        assert rename_caret(name, is_dir) == expected

    def test_end_policy(self):
        assert rename_caret("report.txt", False, "end") == 10


class TestPendingClipboard:
    """Test clipboard values."""

    def test_empty(self):
        clipboard = PendingClipboard()

        assert clipboard.is_empty
        assert not clipboard.is_cut

    def test_duplicates_dropped(self):
        """Test each path is staged once, in order."""
        a, b = Path("/a"), Path("/b")

        clipboard = PendingClipboard.copy([a, b, a])

        assert clipboard.items == (a, b)
        assert clipboard.kind is ClipboardKind.COPY

    def test_without(self):
        """Test removing items keeps the kind."""
        a, b = Path("/a"), Path("/b")
        clipboard = PendingClipboard.cut([a, b])

        assert clipboard.without([a]) == PendingClipboard(ClipboardKind.CUT, (b,))
        assert clipboard.without([a, b]) == PendingClipboard()

    def test_cleared(self):
        assert PendingClipboard.cut([Path("/a")]).cleared().is_empty


class TestBatchResult:
    """Test batch summaries."""

    def test_all_succeeded(self):
        batch = BatchResult((ItemResult(Path("/a"), Path("/b/a"), True),))

        assert batch.all_succeeded
        assert batch.summary() == "1 item(s) done"

    def test_failures_summarized(self):
        """Test failed items are listed with their reason."""
        batch = BatchResult(
            (
                ItemResult(Path("/a"), Path("/b/a"), True),
                ItemResult(Path("/c"), Path("/b/c"), False, "Permission denied"),
            )
        )

        assert not batch.all_succeeded
        assert [r.source for r in batch.failed] == [Path("/c")]
        assert batch.summary() == "1 of 2 item(s) failed - c: Permission denied"
