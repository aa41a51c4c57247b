"""Input modes and the state value owned by the mode machine."""

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from terminus.core.batch import ConflictResolution
from terminus.core.clipboard import PendingClipboard
from terminus.core.filesystem import Entry


class Mode(Enum):
    """Interpretation context for keyboard input."""

    NORMAL = auto()
    INSERT = auto()  # Renaming the entry under the cursor
    VISUAL = auto()  # Multi-select
    FILTER = auto()  # Live filter of the current listing
    SEARCH = auto()  # Recursive search below the current directory


@dataclass(frozen=True)
class TextBuffer:
    """Single-line edit buffer with a caret."""

    raw: str = ""
    caret: int = 0

    @classmethod
    def seeded(cls, text: str, caret: int | None = None) -> "TextBuffer":
        return cls(text, len(text) if caret is None else max(0, min(caret, len(text))))

    def insert(self, text: str) -> "TextBuffer":
        raw = self.raw[: self.caret] + text + self.raw[self.caret :]
        return TextBuffer(raw, self.caret + len(text))

    def backspace(self) -> "TextBuffer":
        if self.caret == 0:
            return self
        return TextBuffer(self.raw[: self.caret - 1] + self.raw[self.caret :], self.caret - 1)

    def delete(self) -> "TextBuffer":
        if self.caret >= len(self.raw):
            return self
        return TextBuffer(self.raw[: self.caret] + self.raw[self.caret + 1 :], self.caret)

    def move(self, delta: int) -> "TextBuffer":
        return TextBuffer(self.raw, max(0, min(self.caret + delta, len(self.raw))))

    def home(self) -> "TextBuffer":
        return TextBuffer(self.raw, 0)

    def end(self) -> "TextBuffer":
        return TextBuffer(self.raw, len(self.raw))


@dataclass(frozen=True)
class Selection:
    """Cursor into the visible listing plus the VISUAL multi-select set."""

    cursor: int = 0
    multi: frozenset[Path] = frozenset()


@dataclass(frozen=True)
class ShellConfig:
    """Behaviour options for the mode machine."""

    rename_caret_policy: str = "stem"  # "stem" or "end"
    preserve_search_query: bool = True


@dataclass(frozen=True)
class ShellState:
    """Everything the mode machine owns. Transitions return a new value."""

    cwd: Path
    entries: tuple[Entry, ...] = ()
    mode: Mode = Mode.NORMAL
    selection: Selection = field(default_factory=Selection)
    buffer: TextBuffer | None = None  # Active rename/filter/search text
    filter_query: str = ""
    search_query: str = ""
    search_results: tuple[Path, ...] = ()
    search_cursor: int = 0
    search_generation: int = 0  # Bumped whenever the query changes
    rename_target: Path | None = None
    clipboard: PendingClipboard = field(default_factory=PendingClipboard)
    last_error: str | None = None
    status: str = ""


class ActionKind(Enum):
    """What a key event asked for."""

    NONE = auto()  # Unrecognized key, nothing happens
    MOVE_CURSOR = auto()
    NAVIGATE = auto()  # Enter a directory (target)
    OPEN_FILE = auto()  # Open a file with the system handler (target)
    REVEAL = auto()  # Navigate to target's parent and focus it
    MODE_CHANGED = auto()
    BUFFER_EDITED = auto()
    SEARCH_CHANGED = auto()  # Search query changed; restart the search
    TOGGLE_SELECT = auto()
    STAGE_COPY = auto()
    STAGE_CUT = auto()
    CANCEL_CUT = auto()
    PASTE = auto()
    DELETE = auto()
    RENAME = auto()
    SHOW_HELP = auto()
    QUIT = auto()


MUTATIONS = {ActionKind.PASTE, ActionKind.DELETE, ActionKind.RENAME}


@dataclass(frozen=True)
class Action:
    """Result of handling one key event."""

    kind: ActionKind = ActionKind.NONE
    binding_id: str | None = None
    target: Path | None = None
    new_name: str | None = None
    # DELETE: (path, is_dir) pairs
    targets: tuple[tuple[Path, bool], ...] = ()
    clipboard: PendingClipboard | None = None  # PASTE snapshot
    resolution: ConflictResolution = ConflictResolution.FAIL

    @property
    def is_mutation(self) -> bool:
        return self.kind in MUTATIONS

    @property
    def recognized(self) -> bool:
        return self.kind is not ActionKind.NONE
