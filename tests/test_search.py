"""Tests for recursive name search."""

from pathlib import Path

from terminus.core.search import iter_search, name_matcher


class TestNameMatcher:
    """Test pattern matching."""

    def test_substring(self):
        matches = name_matcher("Nest")

        assert matches("nested.txt")
        assert not matches("file1.txt")

    def test_glob(self):
        """Test wildcards switch to glob matching."""
        matches = name_matcher("*.TXT")

        assert matches("file1.txt")
        assert not matches("image.png")


class TestIterSearch:
    """Test the directory walk."""

    def test_finds_nested(self, source_dir: Path):
        """Test matches at every depth, shallow first."""
        hits = list(iter_search(source_dir, "*.txt"))

        assert hits == [
            source_dir / "file1.txt",
            source_dir / "file2.txt",
            source_dir / "subdir" / "nested.txt",
            source_dir / "subdir" / "deep" / "deepfile.txt",
        ]

    def test_matches_directories(self, source_dir: Path):
        assert list(iter_search(source_dir, "deep")) == [
            source_dir / "subdir" / "deep",
            source_dir / "subdir" / "deep" / "deepfile.txt",
        ]

    def test_max_results(self, source_dir: Path):
        """Test the walk stops at the limit."""
        assert len(list(iter_search(source_dir, "txt", max_results=2))) == 2

    def test_stop(self, source_dir: Path):
        """Test a stop request ends the walk."""
        assert list(iter_search(source_dir, "txt", should_stop=lambda: True)) == []

    def test_empty_pattern(self, source_dir: Path):
        assert list(iter_search(source_dir, "")) == []

    def test_missing_root(self, temp_dir: Path):
        """Test an unreadable root yields nothing."""
        assert list(iter_search(temp_dir / "missing", "a")) == []
