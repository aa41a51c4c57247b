"""Path and collision helpers."""

from pathlib import Path


def path_exists(path: Path) -> bool:
    """Check if path exists, counting dangling symlinks as occupied."""
    return path.exists() or path.is_symlink()


def sibling_path(path: Path, new_name: str) -> Path:
    """Path of new_name in the same directory as path."""
    return path.parent / new_name


def destination_in(directory: Path, source: Path) -> Path:
    """Destination for source when pasted into directory."""
    return directory / source.name


def rename_caret(name: str, is_dir: bool, policy: str = "stem") -> int:
    """Initial caret position when renaming name.

    The "stem" policy places the caret before the last extension of files,
    e.g. ``report.txt`` -> 6. Directories, dotfiles without another dot and
    the "end" policy place it after the last character.
    """
    if policy != "stem" or is_dir:
        return len(name)
    dot = name.rfind(".")
    if dot <= 0:
        return len(name)
    return dot


def get_unique_path(path: Path) -> Path:
    """Get unique path by adding number suffix if needed."""
    if not path_exists(path):
        return path

    stem = path.stem
    suffix = path.suffix
    parent = path.parent
    counter = 1

    while True:
        new_name = f"{stem} ({counter}){suffix}"
        new_path = parent / new_name
        if not path_exists(new_path):
            return new_path
        counter += 1
