"""Pytest fixtures for Terminus tests."""

import errno
import shutil
import tempfile
from pathlib import Path

import pytest

from terminus.core.filesystem import Entry, LocalFileSystem


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    # Cleanup
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def source_dir(temp_dir: Path):
    """Create a source directory with test files."""
    src = temp_dir / "source"
    src.mkdir()

    # Create test files
    (src / "file1.txt").write_text("content1")
    (src / "file2.txt").write_text("content2")
    (src / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n")

    # Create subdirectory with files
    subdir = src / "subdir"
    subdir.mkdir()
    (subdir / "nested.txt").write_text("nested content")
    (subdir / "deep").mkdir()
    (subdir / "deep" / "deepfile.txt").write_text("deep content")

    return src


@pytest.fixture
def dest_dir(temp_dir: Path):
    """Create a destination directory."""
    dst = temp_dir / "dest"
    dst.mkdir()
    return dst


class CrossDeviceFileSystem(LocalFileSystem):
    """Treats every directory as its own device.

    Renames between different parent directories fail with EXDEV; paths in
    ``undeletable`` cannot be removed.
    """

    def __init__(self):
        super().__init__()
        self.undeletable: set[Path] = set()
        self.renames: list[tuple[Path, Path]] = []

    def rename(self, source: Path, destination: Path) -> None:
        self.renames.append((source, destination))
        if source.parent != destination.parent:
            raise OSError(errno.EXDEV, "Invalid cross-device link")
        super().rename(source, destination)

    def remove_tree(self, path: Path) -> None:
        if path in self.undeletable:
            raise PermissionError(errno.EACCES, "Permission denied", str(path))
        super().remove_tree(path)

    def remove_file(self, path: Path) -> None:
        if path in self.undeletable:
            raise PermissionError(errno.EACCES, "Permission denied", str(path))
        super().remove_file(path)


@pytest.fixture
def cross_device_fs():
    """Filesystem where moves between directories cross a device boundary."""
    return CrossDeviceFileSystem()


@pytest.fixture
def engine():
    """Get a fresh FileOperations instance."""
    from terminus.core.file_operations import FileOperations

    return FileOperations(LocalFileSystem())


def _make_entries(*names: str, root: Path = Path("/work")) -> tuple[Entry, ...]:
    """Entries for a fake listing; names ending in '/' are directories."""
    entries = []
    for name in names:
        is_dir = name.endswith("/")
        clean = name.rstrip("/")
        entries.append(Entry(clean, root / clean, is_dir, not is_dir))
    return tuple(entries)


@pytest.fixture
def make_entries():
    """Factory for fake listings."""
    return _make_entries


@pytest.fixture(scope="session")
def qapp():
    """Core application so worker threads can deliver queued signals."""
    from PySide6.QtCore import QCoreApplication

    return QCoreApplication.instance() or QCoreApplication([])
