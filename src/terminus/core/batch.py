"""Batch operation items and results."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ConflictResolution(Enum):
    """How paste handles a destination that already exists."""

    FAIL = "fail"
    OVERWRITE = "overwrite"
    RENAME = "rename"  # Keep both (rename new item)


@dataclass(frozen=True)
class OperationItem:
    """A single queued transfer."""

    source: Path
    destination: Path
    overwrite: bool = False


@dataclass(frozen=True)
class ItemResult:
    """Outcome of one item in a batch."""

    source: Path
    destination: Path | None
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Ordered per-item outcomes of a batch, in submission order."""

    per_item: tuple[ItemResult, ...] = field(default_factory=tuple)

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.per_item)

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.per_item if r.success]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.per_item if not r.success]

    def summary(self) -> str:
        """One-line human-readable report of failures."""
        failed = self.failed
        if not failed:
            return f"{len(self.per_item)} item(s) done"
        details = "; ".join(f"{r.source.name}: {r.error}" for r in failed)
        return f"{len(failed)} of {len(self.per_item)} item(s) failed - {details}"
