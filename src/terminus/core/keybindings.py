"""Keybinding table and mode-aware key resolution."""

import json
import sys
from dataclasses import dataclass
from pathlib import Path

from terminus.core.errors import KeybindingError
from terminus.core.modes import Mode
from terminus.utils.logger import get_logger

_logger = get_logger()

ALL_MODES = "ALL"

CATEGORIES = [
    "Navigation",
    "File operations",
    "Modes",
    "Editing",
    "Misc",
]

# Named keys accepted under more than one spelling
KEY_ALIASES = {
    "Escape": "Esc",
    "Return": "Enter",
    "Del": "Delete",
    "Down": "ArrowDown",
    "Up": "ArrowUp",
    "Left": "ArrowLeft",
    "Right": "ArrowRight",
    " ": "Space",
}

# Ordered records: {id, keys, desc, category, mode, implemented}
DEFAULT_KEYBINDS = [
    # Navigation
    {"id": "down", "keys": ["j", "ArrowDown"], "desc": "move down", "category": "Navigation", "mode": "NORMAL"},
    {"id": "up", "keys": ["k", "ArrowUp"], "desc": "move up", "category": "Navigation", "mode": "NORMAL"},
    {"id": "open", "keys": ["l", "Enter", "ArrowRight"], "desc": "open / enter", "category": "Navigation", "mode": "NORMAL"},
    {"id": "parent", "keys": ["h", "ArrowLeft", "Backspace"], "desc": "go to parent", "category": "Navigation", "mode": "NORMAL"},
    {"id": "top", "keys": ["g", "Home"], "desc": "jump to top", "category": "Navigation", "mode": "NORMAL"},
    {"id": "bottom", "keys": ["G", "End"], "desc": "jump to bottom", "category": "Navigation", "mode": "NORMAL"},
    # File operations
    {"id": "copy", "keys": ["c", "C-c"], "desc": "copy", "category": "File operations", "mode": "NORMAL"},
    {"id": "cut", "keys": ["x", "C-x"], "desc": "cut", "category": "File operations", "mode": "NORMAL"},
    {"id": "paste", "keys": ["p", "C-v"], "desc": "paste", "category": "File operations", "mode": "NORMAL"},
    {"id": "paste-overwrite", "keys": ["P"], "desc": "paste, replacing existing items", "category": "File operations", "mode": "NORMAL"},
    {"id": "paste-keep-both", "keys": ["B"], "desc": "paste, keeping both on a name clash", "category": "File operations", "mode": "NORMAL"},
    {"id": "delete", "keys": ["d", "Delete"], "desc": "delete", "category": "File operations", "mode": "NORMAL"},
    # Modes
    {"id": "rename", "keys": ["i", "F2"], "desc": "rename (INSERT mode)", "category": "Modes", "mode": "NORMAL"},
    {"id": "visual", "keys": ["v"], "desc": "multi-select (VISUAL mode)", "category": "Modes", "mode": "NORMAL"},
    {"id": "filter", "keys": ["/"], "desc": "filter (live)", "category": "Modes", "mode": "NORMAL"},
    {"id": "search", "keys": ["C-f", "F3"], "desc": "recursive search", "category": "Modes", "mode": "NORMAL"},
    {"id": "esc-cut-cancel", "keys": ["Esc"], "desc": "cancel pending cut", "category": "Modes", "mode": "NORMAL"},
    # INSERT
    {"id": "rename-commit", "keys": ["Enter"], "desc": "apply rename", "category": "Editing", "mode": "INSERT"},
    {"id": "esc-insert", "keys": ["Esc"], "desc": "cancel rename (back to NORMAL)", "category": "Modes", "mode": "INSERT"},
    {"id": "insert-backspace", "keys": ["Backspace"], "desc": "delete before caret", "category": "Editing", "mode": "INSERT"},
    {"id": "insert-delete", "keys": ["Delete"], "desc": "delete after caret", "category": "Editing", "mode": "INSERT"},
    {"id": "caret-left", "keys": ["ArrowLeft"], "desc": "caret left", "category": "Editing", "mode": "INSERT"},
    {"id": "caret-right", "keys": ["ArrowRight"], "desc": "caret right", "category": "Editing", "mode": "INSERT"},
    {"id": "caret-home", "keys": ["Home", "C-a"], "desc": "caret to start", "category": "Editing", "mode": "INSERT"},
    {"id": "caret-end", "keys": ["End", "C-e"], "desc": "caret to end", "category": "Editing", "mode": "INSERT"},
    # VISUAL
    {"id": "visual-down", "keys": ["j", "ArrowDown"], "desc": "move down, toggling entry", "category": "Navigation", "mode": "VISUAL"},
    {"id": "visual-up", "keys": ["k", "ArrowUp"], "desc": "move up, toggling entry", "category": "Navigation", "mode": "VISUAL"},
    {"id": "visual-mark", "keys": ["Space"], "desc": "toggle entry under cursor", "category": "Modes", "mode": "VISUAL"},
    {"id": "visual-exit", "keys": ["v"], "desc": "leave VISUAL mode", "category": "Modes", "mode": "VISUAL"},
    {"id": "esc-visual", "keys": ["Esc"], "desc": "clear selection (back to NORMAL)", "category": "Modes", "mode": "VISUAL"},
    {"id": "visual-copy", "keys": ["c", "C-c"], "desc": "copy selection", "category": "File operations", "mode": "VISUAL"},
    {"id": "visual-cut", "keys": ["x", "C-x"], "desc": "cut selection", "category": "File operations", "mode": "VISUAL"},
    {"id": "visual-delete", "keys": ["d", "Delete"], "desc": "delete selection", "category": "File operations", "mode": "VISUAL"},
    # FILTER
    {"id": "filter-down", "keys": ["ArrowDown", "C-n"], "desc": "move down", "category": "Navigation", "mode": "FILTER"},
    {"id": "filter-up", "keys": ["ArrowUp", "C-p"], "desc": "move up", "category": "Navigation", "mode": "FILTER"},
    {"id": "filter-open", "keys": ["Enter"], "desc": "open match", "category": "Navigation", "mode": "FILTER"},
    {"id": "filter-backspace", "keys": ["Backspace"], "desc": "delete last character", "category": "Editing", "mode": "FILTER"},
    {"id": "esc-filter", "keys": ["Esc"], "desc": "clear filter (back to NORMAL)", "category": "Modes", "mode": "FILTER"},
    # SEARCH
    {"id": "search-down", "keys": ["ArrowDown", "C-n"], "desc": "next result", "category": "Navigation", "mode": "SEARCH"},
    {"id": "search-up", "keys": ["ArrowUp", "C-p"], "desc": "previous result", "category": "Navigation", "mode": "SEARCH"},
    {"id": "search-reveal", "keys": ["Enter"], "desc": "reveal result", "category": "Navigation", "mode": "SEARCH"},
    {"id": "search-backspace", "keys": ["Backspace"], "desc": "delete last character", "category": "Editing", "mode": "SEARCH"},
    {"id": "esc-search", "keys": ["Esc"], "desc": "close search (back to NORMAL)", "category": "Modes", "mode": "SEARCH"},
    # Misc
    {"id": "help", "keys": ["?"], "desc": "open help", "category": "Misc", "mode": "NORMAL"},
    {"id": "quit", "keys": ["C-q"], "desc": "quit", "category": "Misc", "mode": "ALL"},
]


def is_mac(platform: str) -> bool:
    return platform == "darwin"


def normalize_key(key: str, ctrl_held: bool = False) -> str:
    """Match key for a raw key event.

    Aliased names collapse to one spelling, and a single character typed
    with Ctrl held becomes the ``C-x`` chord form.
    """
    key = KEY_ALIASES.get(key, key)
    if ctrl_held and len(key) == 1 and not key.startswith("C-"):
        return f"C-{key.lower()}"
    return key


def normalize_key_label(key: str, platform: str = sys.platform) -> str:
    """Convert ``C-x`` to the platform's modifier form for display."""
    if not key:
        return key
    if key.startswith("C-"):
        base = key[2:].upper()
        return f"⌘+{base}" if is_mac(platform) else f"Ctrl+{base}"
    return key


@dataclass(frozen=True)
class Keybinding:
    """One record of the keybinding table."""

    id: str
    keys: tuple[str, ...]
    desc: str
    category: str
    mode: Mode | None  # None means every mode
    implemented: bool = True

    def applies_to(self, mode: Mode) -> bool:
        return self.mode is None or self.mode is mode

    def format_keys(self, platform: str = sys.platform) -> str:
        """Human readable key list, e.g. ``c, Ctrl+C``."""
        return ", ".join(normalize_key_label(k, platform) for k in self.keys)


def parse_keybind(record: dict) -> Keybinding:
    """Validate one table record. Unknown mode tags are rejected."""
    binding_id = record.get("id")
    if not binding_id:
        raise KeybindingError(f"Keybinding without id: {record!r}")

    keys = record.get("keys") or []
    if isinstance(keys, str) or not keys:
        raise KeybindingError(f"Keybinding '{binding_id}' needs a non-empty key list")

    mode_tag = record.get("mode", "NORMAL")
    if mode_tag == ALL_MODES:
        mode = None
    else:
        try:
            mode = Mode[mode_tag]
        except KeyError:
            raise KeybindingError(
                f"Keybinding '{binding_id}' has unknown mode '{mode_tag}'"
            ) from None

    return Keybinding(
        id=binding_id,
        keys=tuple(KEY_ALIASES.get(k, k) for k in keys),
        desc=record.get("desc", ""),
        category=record.get("category", "Misc"),
        mode=mode,
        implemented=record.get("implemented", True),
    )


def load_keybinds(path: Path) -> list[dict]:
    """Load a keybinding table from a JSON file (list of records)."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise KeybindingError(f"{path}: expected a list of keybinding records")
    return data


class KeybindingResolver:
    """Resolves (key, mode) to the first matching binding of the table."""

    def __init__(self, records: list[dict] | None = None):
        self._bindings = [parse_keybind(r) for r in (records or DEFAULT_KEYBINDS)]
        # key -> bindings in table order
        self._by_key: dict[str, list[Keybinding]] = {}
        for binding in self._bindings:
            if not binding.implemented:
                continue
            for key in binding.keys:
                self._by_key.setdefault(key, []).append(binding)

    @classmethod
    def from_file(cls, path: Path | None) -> "KeybindingResolver":
        """Resolver for a JSON table, falling back to the built-in table."""
        if path is None:
            return cls()
        try:
            return cls(load_keybinds(path))
        except (OSError, json.JSONDecodeError, KeybindingError) as e:
            _logger.error(f"Ignoring keybinding file {path}: {e}")
            return cls()

    @property
    def bindings(self) -> list[Keybinding]:
        return list(self._bindings)

    def resolve(self, key: str, mode: Mode, ctrl_held: bool = False) -> Keybinding | None:
        """First binding for key active in mode, or None when unbound."""
        match_key = normalize_key(key, ctrl_held)
        for binding in self._by_key.get(match_key, ()):
            if binding.applies_to(mode):
                return binding
        return None

    def get(self, binding_id: str) -> Keybinding | None:
        for binding in self._bindings:
            if binding.id == binding_id:
                return binding
        return None

    def label(self, binding_id: str, platform: str = sys.platform) -> str:
        """``keys - description`` label for a binding id."""
        binding = self.get(binding_id)
        if binding is None:
            return ""
        return f"{binding.format_keys(platform)} - {binding.desc}"

    def group(self) -> list[tuple[str, list[Keybinding]]]:
        """Bindings grouped by category, in category order."""
        groups: dict[str, list[Keybinding]] = {cat: [] for cat in CATEGORIES}
        for binding in self._bindings:
            groups.setdefault(binding.category, []).append(binding)
        return [(cat, items) for cat, items in groups.items() if items]
