"""Recursive name search below a directory."""

import fnmatch
import os
from collections import deque
from pathlib import Path
from typing import Callable, Iterator

from PySide6.QtCore import QThread, Signal


def name_matcher(pattern: str) -> Callable[[str], bool]:
    """Case-insensitive matcher: glob when pattern has wildcards, else substring."""
    pattern = pattern.lower()
    if "*" in pattern or "?" in pattern:
        return lambda name: fnmatch.fnmatch(name.lower(), pattern)
    return lambda name: pattern in name.lower()


def iter_search(
    root: Path,
    pattern: str,
    max_results: int | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> Iterator[Path]:
    """Yield paths below root whose name matches pattern.

    Walks breadth-first so shallow matches come first. Unreadable
    directories are skipped.
    """
    if not pattern:
        return
    matches = name_matcher(pattern)
    found = 0
    queue = deque([root])

    while queue:
        directory = queue.popleft()
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda e: e.name.lower())
        except OSError:
            continue

        for child in children:
            if should_stop and should_stop():
                return
            if matches(child.name):
                yield Path(child.path)
                found += 1
                if max_results is not None and found >= max_results:
                    return
            try:
                if child.is_dir(follow_symlinks=False):
                    queue.append(Path(child.path))
            except OSError:
                continue


class SearchWorker(QThread):
    """Background worker for recursive search."""

    # Use str instead of Path for cross-thread signal safety
    results_found = Signal(int, list)  # generation, [path str]
    search_finished = Signal(int)  # generation

    BATCH_SIZE = 20

    def __init__(self, root: Path, pattern: str, generation: int, max_results: int):
        super().__init__()
        self._root = root
        self._pattern = pattern
        self._generation = generation
        self._max_results = max_results
        self._stopped = False

    @property
    def generation(self) -> int:
        return self._generation

    def run(self):
        """Run the search, emitting hits in small batches."""
        batch: list[str] = []
        try:
            for path in iter_search(
                self._root, self._pattern, self._max_results, lambda: self._stopped
            ):
                batch.append(str(path))
                if len(batch) >= self.BATCH_SIZE:
                    self.results_found.emit(self._generation, batch)
                    batch = []
            if batch:
                self.results_found.emit(self._generation, batch)
        finally:
            self.search_finished.emit(self._generation)

    def stop(self):
        """Stop the search."""
        self._stopped = True
