"""File operations (copy, move, delete, rename) and batch paste."""

import errno
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import send2trash

from terminus.core.batch import BatchResult, ConflictResolution, ItemResult, OperationItem
from terminus.core.clipboard import PendingClipboard
from terminus.core.errors import (
    CrossDeviceFallbackFailed,
    DeleteError,
    DestinationExists,
    FileOperationError,
    NameCollision,
    PermissionDenied,
)
from terminus.core.filesystem import FileSystem, LocalFileSystem
from terminus.core.paths import destination_in, get_unique_path, sibling_path
from terminus.utils.logger import get_logger

_logger = get_logger()


@dataclass(frozen=True)
class PasteResult:
    """Batch outcome of a paste and the clipboard that should remain."""

    batch: BatchResult
    clipboard: PendingClipboard


def _delete_reason(exc: OSError) -> str:
    """Short reason for a failed removal."""
    if isinstance(exc, PermissionError):
        return "Permission denied"
    if isinstance(exc, FileNotFoundError):
        return "Not found"
    if exc.errno == errno.EBUSY:
        return "Busy"
    return exc.strerror or str(exc)


class FileOperations:
    """Copy, move, delete and rename against a FileSystem.

    Single-item operations raise FileOperationError subclasses. Batch
    operations never raise for item failures; they process items in order
    and report each outcome in a BatchResult.
    """

    def __init__(self, fs: FileSystem | None = None, use_trash: bool = False):
        self._fs = fs or LocalFileSystem()
        self._use_trash = use_trash

    @property
    def fs(self) -> FileSystem:
        return self._fs

    # === Single items ===

    def copy_entry(self, source: Path, destination: Path, overwrite: bool = False) -> Path:
        """Copy a file or directory tree to destination."""
        self._check_source(source)
        self._check_not_inside(source, destination)
        if self._fs.exists(destination) and not overwrite:
            raise DestinationExists(destination)

        try:
            self._staged_copy(source, destination, overwrite)
        except OSError as e:
            raise self._os_error(source, e) from e
        return destination

    def move_entry(self, source: Path, destination: Path, overwrite: bool = False) -> Path:
        """Move source to destination, copying then deleting across devices."""
        self._check_source(source)
        self._check_not_inside(source, destination)
        if self._fs.exists(destination):
            if not overwrite:
                raise DestinationExists(destination)
            try:
                self._remove(destination)
            except OSError as e:
                raise self._os_error(destination, e) from e

        try:
            self._fs.rename(source, destination)
            return destination
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise self._os_error(source, e) from e

        _logger.info(f"Cross-device move, copying {source} -> {destination}")
        try:
            self._staged_copy(source, destination, overwrite)
        except OSError as e:
            _logger.error(f"Cross-device copy failed for {source}: {e}")
            raise CrossDeviceFallbackFailed(source, "copy", e.strerror or str(e)) from e

        try:
            self._remove(source)
        except OSError as e:
            _logger.error(f"Cross-device move left source in place: {source}: {e}")
            raise CrossDeviceFallbackFailed(source, "remove-source", e.strerror or str(e)) from e
        return destination

    def delete_entry(self, path: Path, is_dir: bool, use_trash: bool | None = None) -> None:
        """Delete a file, or a directory recursively."""
        if use_trash is None:
            use_trash = self._use_trash
        if not self._fs.exists(path):
            raise DeleteError(path, "Not found")

        try:
            if use_trash:
                send2trash.send2trash(str(path))
            elif is_dir and not path.is_symlink():
                self._fs.remove_tree(path)
            else:
                self._fs.remove_file(path)
        except OSError as e:
            raise DeleteError(path, _delete_reason(e)) from e

    def rename_entry(self, old_path: Path, new_name: str) -> Path:
        """Rename in place. Returns the new path."""
        if not new_name or new_name in (".", "..") or "/" in new_name or "\\" in new_name:
            raise FileOperationError(old_path, f"Invalid name '{new_name}'")
        self._check_source(old_path)

        new_path = sibling_path(old_path, new_name)
        if new_path == old_path:
            return old_path
        if self._fs.exists(new_path) and not self._same_file(old_path, new_path):
            raise NameCollision(new_path)

        try:
            self._fs.rename(old_path, new_path)
        except OSError as e:
            raise self._os_error(old_path, e) from e
        return new_path

    # === Batches ===

    def copy_batch(self, items: list[OperationItem]) -> BatchResult:
        """Copy items one after another, reporting each."""
        return self._run_batch(items, self.copy_entry, "Copy")

    def move_batch(self, items: list[OperationItem]) -> BatchResult:
        """Move items one after another, reporting each."""
        return self._run_batch(items, self.move_entry, "Move")

    def delete_batch(self, targets: list[tuple[Path, bool]]) -> BatchResult:
        """Delete (path, is_dir) targets one after another, reporting each."""
        results = []
        for path, is_dir in targets:
            try:
                self.delete_entry(path, is_dir)
                results.append(ItemResult(path, None, True))
            except FileOperationError as e:
                _logger.warning(f"Delete failed: {e}")
                results.append(ItemResult(path, None, False, e.reason))
        return BatchResult(tuple(results))

    def _run_batch(
        self,
        items: list[OperationItem],
        operation: Callable[[Path, Path, bool], Path],
        label: str,
    ) -> BatchResult:
        results = []
        for item in items:
            try:
                dest = operation(item.source, item.destination, item.overwrite)
                results.append(ItemResult(item.source, dest, True))
            except FileOperationError as e:
                _logger.warning(f"{label} failed: {e}")
                results.append(ItemResult(item.source, item.destination, False, e.reason))
        batch = BatchResult(tuple(results))
        _logger.debug(f"{label} batch: {batch.summary()}")
        return batch

    # === Paste ===

    def build_paste_items(
        self,
        clipboard: PendingClipboard,
        target_directory: Path,
        resolution: ConflictResolution = ConflictResolution.FAIL,
    ) -> list[OperationItem]:
        """One OperationItem per clipboard entry, targeting target_directory.

        Copying an item into its own directory always keeps both.
        """
        items = []
        for source in clipboard.items:
            dest = destination_in(target_directory, source)
            overwrite = False
            if self._fs.exists(dest):
                if resolution is ConflictResolution.RENAME or (
                    dest == source and not clipboard.is_cut
                ):
                    dest = get_unique_path(dest)
                elif resolution is ConflictResolution.OVERWRITE:
                    overwrite = True
            items.append(OperationItem(source, dest, overwrite))
        return items

    def paste_items(
        self,
        clipboard: PendingClipboard,
        target_directory: Path,
        resolution: ConflictResolution = ConflictResolution.FAIL,
    ) -> PasteResult:
        """Paste clipboard into target_directory.

        A copy clipboard is left intact. A cut clipboard loses the items that
        moved, so a partially failed cut can be retried.
        """
        if clipboard.is_empty:
            return PasteResult(BatchResult(), clipboard)

        items = self.build_paste_items(clipboard, target_directory, resolution)
        if clipboard.is_cut:
            batch = self.move_batch(items)
            remaining = clipboard.without(r.source for r in batch.succeeded)
        else:
            batch = self.copy_batch(items)
            remaining = clipboard
        return PasteResult(batch, remaining)

    def find_conflicts(self, items: list[OperationItem]) -> list[OperationItem]:
        """Items whose destination is already occupied."""
        return [item for item in items if self._fs.exists(item.destination)]

    # === Helpers ===

    def _check_source(self, source: Path) -> None:
        if not self._fs.exists(source):
            raise FileOperationError(source, "Source not found")

    def _check_not_inside(self, source: Path, destination: Path) -> None:
        if destination == source:
            raise DestinationExists(destination)
        if destination.is_relative_to(source):
            raise FileOperationError(destination, "Cannot place a folder inside itself")
        if source.is_relative_to(destination):
            raise FileOperationError(destination, "Cannot replace a folder with its own contents")

    def _staged_copy(self, source: Path, destination: Path, overwrite: bool = False) -> None:
        """Copy to a hidden sibling, then move it over destination.

        An interrupted copy leaves only the partial sibling, which is
        discarded; destination is never a half-written result. Something
        that appeared at destination while copying is only replaced when
        overwrite was asked for.
        """
        partial = sibling_path(destination, f".{destination.name}.partial-{uuid.uuid4().hex[:8]}")
        try:
            self._fs.copy_tree(source, partial)
        except OSError:
            self._discard(partial)
            raise

        if self._fs.exists(destination) and not overwrite:
            _logger.warning(f"Destination appeared during copy: {destination}")
            self._discard(partial)
            raise DestinationExists(destination)

        try:
            if self._fs.exists(destination):
                self._remove(destination)
            self._fs.rename(partial, destination)
        except OSError:
            self._discard(partial)
            raise

    def _discard(self, partial: Path) -> None:
        if not self._fs.exists(partial):
            return
        try:
            self._remove(partial)
        except OSError as e:
            _logger.error(f"Could not remove partial copy {partial}: {e}")

    def _remove(self, path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            self._fs.remove_tree(path)
        else:
            self._fs.remove_file(path)

    def _same_file(self, a: Path, b: Path) -> bool:
        # Case-only renames on case-insensitive filesystems
        try:
            return a.samefile(b)
        except OSError:
            return False

    def _os_error(self, path: Path, exc: OSError) -> FileOperationError:
        if isinstance(exc, PermissionError):
            return PermissionDenied(path)
        return FileOperationError(path, exc.strerror or str(exc))
