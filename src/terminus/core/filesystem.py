"""Filesystem access used by the operation engine and directory listing."""

import os
import shutil
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from terminus.core.paths import path_exists


@dataclass(frozen=True)
class Entry:
    """A file or directory observed in a listing."""

    name: str
    path: Path
    is_dir: bool
    is_file: bool
    size: int = 0
    modified: datetime | None = None
    created: datetime | None = None
    permissions: int | None = None
    error: str | None = None  # Set when stat failed; entry is still listed


@dataclass(frozen=True)
class StatResult:
    """Subset of stat information the application cares about."""

    size: int
    modified: datetime
    created: datetime
    is_dir: bool
    is_file: bool
    mode: int


class FileSystem(ABC):
    """Abstract filesystem collaborator.

    Implementations must raise ``OSError`` subclasses on failure. ``rename``
    must surface a cross-device condition as ``OSError`` with
    ``errno.EXDEV`` so callers can fall back to copy-then-delete.
    """

    @abstractmethod
    def list_directory(self, path: Path) -> list[Entry]:
        """List entries of a directory with metadata."""

    @abstractmethod
    def stat(self, path: Path) -> StatResult:
        """Stat a single path."""

    @abstractmethod
    def read_file(self, path: Path, encoding: str | None = "utf-8") -> str | bytes:
        """Read file contents; bytes when encoding is None."""

    @abstractmethod
    def copy_tree(self, source: Path, destination: Path) -> None:
        """Copy a file or directory tree to a destination that does not exist."""

    @abstractmethod
    def rename(self, source: Path, destination: Path) -> None:
        """Rename source to destination in one step."""

    @abstractmethod
    def remove_tree(self, path: Path) -> None:
        """Remove a directory recursively."""

    @abstractmethod
    def remove_file(self, path: Path) -> None:
        """Remove a single file or symlink."""

    @abstractmethod
    def make_dirs(self, path: Path) -> None:
        """Create a directory and any missing parents."""

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Check if something occupies path."""

    @abstractmethod
    def home(self) -> Path:
        """User home directory."""


class LocalFileSystem(FileSystem):
    """FileSystem backed by the local disk."""

    def __init__(self, max_workers: int = 8):
        self._max_workers = max_workers

    def list_directory(self, path: Path) -> list[Entry]:
        with os.scandir(path) as it:
            dir_entries = list(it)

        if not dir_entries:
            return []

        # Stats are independent reads; gather them concurrently
        workers = min(self._max_workers, len(dir_entries))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            entries = list(pool.map(self._entry_from_dir_entry, dir_entries))

        entries.sort(key=lambda e: (not e.is_dir, e.name.lower()))
        return entries

    def _entry_from_dir_entry(self, dir_entry: os.DirEntry) -> Entry:
        """Build an Entry, keeping it with an error marker if stat fails."""
        full_path = Path(dir_entry.path)
        try:
            is_dir = dir_entry.is_dir()
            is_file = dir_entry.is_file()
        except OSError:
            is_dir = is_file = False

        try:
            st = self.stat(full_path)
        except PermissionError:
            return Entry(dir_entry.name, full_path, is_dir, is_file, error="Permission denied")
        except OSError as e:
            return Entry(dir_entry.name, full_path, is_dir, is_file, error=e.strerror or str(e))

        return Entry(
            name=dir_entry.name,
            path=full_path,
            is_dir=is_dir,
            is_file=is_file,
            size=st.size,
            modified=st.modified,
            created=st.created,
            permissions=st.mode,
        )

    def stat(self, path: Path) -> StatResult:
        st = path.stat()
        # st_birthtime only exists on some platforms
        created = getattr(st, "st_birthtime", st.st_ctime)
        return StatResult(
            size=st.st_size,
            modified=datetime.fromtimestamp(st.st_mtime),
            created=datetime.fromtimestamp(created),
            is_dir=path.is_dir(),
            is_file=path.is_file(),
            mode=st.st_mode,
        )

    def read_file(self, path: Path, encoding: str | None = "utf-8") -> str | bytes:
        if encoding is None:
            return path.read_bytes()
        return path.read_text(encoding=encoding)

    def copy_tree(self, source: Path, destination: Path) -> None:
        if source.is_dir() and not source.is_symlink():
            shutil.copytree(str(source), str(destination), symlinks=True)
        else:
            shutil.copy2(str(source), str(destination), follow_symlinks=False)

    def rename(self, source: Path, destination: Path) -> None:
        os.rename(source, destination)

    def remove_tree(self, path: Path) -> None:
        shutil.rmtree(str(path))

    def remove_file(self, path: Path) -> None:
        path.unlink()

    def make_dirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def exists(self, path: Path) -> bool:
        return path_exists(path)

    def home(self) -> Path:
        return Path.home()
