"""Pending copy/cut clipboard."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ClipboardKind(Enum):
    """Staged operation kind."""

    COPY = "copy"
    CUT = "cut"


@dataclass(frozen=True)
class PendingClipboard:
    """Items staged for paste. Immutable; every change returns a new value."""

    kind: ClipboardKind | None = None
    items: tuple[Path, ...] = ()

    @classmethod
    def copy(cls, paths: list[Path]) -> "PendingClipboard":
        """Stage paths for copy."""
        return cls(ClipboardKind.COPY, tuple(dict.fromkeys(paths)))

    @classmethod
    def cut(cls, paths: list[Path]) -> "PendingClipboard":
        """Stage paths for cut."""
        return cls(ClipboardKind.CUT, tuple(dict.fromkeys(paths)))

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def is_cut(self) -> bool:
        return self.kind is ClipboardKind.CUT and bool(self.items)

    def without(self, paths) -> "PendingClipboard":
        """Clipboard with paths removed; empty clipboard when nothing is left."""
        drop = set(paths)
        remaining = tuple(p for p in self.items if p not in drop)
        if not remaining:
            return PendingClipboard()
        return PendingClipboard(self.kind, remaining)

    def cleared(self) -> "PendingClipboard":
        return PendingClipboard()
