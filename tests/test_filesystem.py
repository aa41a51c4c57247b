"""Tests for LocalFileSystem."""

from pathlib import Path

from terminus.core.filesystem import LocalFileSystem


class TestListDirectory:
    """Test directory listing."""

    def test_directories_first_then_name(self, source_dir: Path):
        """Test listing order."""
        (source_dir / "Alpha").mkdir()

        entries = LocalFileSystem().list_directory(source_dir)

        assert [e.name for e in entries] == [
            "Alpha",
            "subdir",
            "file1.txt",
            "file2.txt",
            "image.png",
        ]

    def test_entry_metadata(self, source_dir: Path):
        """Test entries carry stat information."""
        entries = {e.name: e for e in LocalFileSystem().list_directory(source_dir)}

        file1 = entries["file1.txt"]
        assert file1.is_file and not file1.is_dir
        assert file1.size == len("content1")
        assert file1.modified is not None
        assert file1.error is None
        assert entries["subdir"].is_dir

    def test_failed_stat_keeps_entry(self, source_dir: Path):
        """Test an entry whose stat fails is listed with an error."""
        (source_dir / "broken").symlink_to(source_dir / "missing")

        entries = {e.name: e for e in LocalFileSystem(max_workers=2).list_directory(source_dir)}

        assert "broken" in entries
        assert entries["broken"].error
        assert entries["file1.txt"].error is None

    def test_empty_directory(self, dest_dir: Path):
        assert LocalFileSystem().list_directory(dest_dir) == []


class TestPrimitives:
    """Test the single-step primitives."""

    def test_read_file(self, source_dir: Path):
        fs = LocalFileSystem()

        assert fs.read_file(source_dir / "file1.txt") == "content1"
        assert fs.read_file(source_dir / "image.png", encoding=None) == b"\x89PNG\r\n\x1a\n"

    def test_copy_tree_keeps_symlinks(self, source_dir: Path, dest_dir: Path):
        """Test links inside a copied tree stay links."""
        (source_dir / "subdir" / "link").symlink_to("nested.txt")

        LocalFileSystem().copy_tree(source_dir / "subdir", dest_dir / "subdir")

        assert (dest_dir / "subdir" / "link").is_symlink()
        assert (dest_dir / "subdir" / "link").read_text() == "nested content"

    def test_make_dirs(self, dest_dir: Path):
        fs = LocalFileSystem()

        fs.make_dirs(dest_dir / "a" / "b")

        assert fs.exists(dest_dir / "a" / "b")
