"""Error taxonomy for file operations and input handling."""

from pathlib import Path


class FileOperationError(Exception):
    """Base class for failures of a single file operation."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason


class DestinationExists(FileOperationError):
    """Destination is occupied and overwrite was not requested."""

    def __init__(self, path: Path):
        super().__init__(path, "Destination exists")


class NameCollision(FileOperationError):
    """Rename target already exists; rename never overwrites."""

    def __init__(self, path: Path):
        super().__init__(path, "A file or folder with that name already exists")


class PermissionDenied(FileOperationError):
    """Access to path was refused by the filesystem."""

    def __init__(self, path: Path):
        super().__init__(path, "Permission denied")


class DeleteError(FileOperationError):
    """Removal of path failed."""


class CrossDeviceFallbackFailed(FileOperationError):
    """Copy-then-delete move failed partway.

    ``stage`` is "copy" when the destination could not be completed (the
    partial copy has been discarded, source untouched) or "remove-source"
    when the destination is complete but the source is still present.
    """

    def __init__(self, path: Path, stage: str, reason: str):
        super().__init__(path, f"Cross-device move failed during {stage} ({reason})")
        self.stage = stage


class KeybindingError(ValueError):
    """Invalid keybinding table record."""


class ModeTransitionError(RuntimeError):
    """Attempt to open an edit session while another one is active."""
