"""Tests for the keybinding table and resolver."""

import json
from pathlib import Path

import pytest

from terminus.core.errors import KeybindingError
from terminus.core.keybindings import (
    DEFAULT_KEYBINDS,
    KeybindingResolver,
    normalize_key,
    normalize_key_label,
    parse_keybind,
)
from terminus.core.modes import Mode


@pytest.fixture
def resolver():
    return KeybindingResolver()


class TestDefaultTable:
    """Test the built-in table."""

    def test_ids_unique(self):
        """Test every binding id appears once."""
        ids = [record["id"] for record in DEFAULT_KEYBINDS]
        assert len(ids) == len(set(ids))

    @pytest.mark.parametrize("mode", list(Mode))
    def test_no_key_bound_twice_per_mode(self, resolver, mode):
        """Test a key never maps to two bindings in the same mode."""
        seen = {}
        for binding in resolver.bindings:
            if not binding.applies_to(mode):
                continue
            for key in binding.keys:
                assert key not in seen, f"{key} bound to {seen.get(key)} and {binding.id}"
                seen[key] = binding.id

    @pytest.mark.parametrize(
        "mode, expected",
        [
            (Mode.NORMAL, "esc-cut-cancel"),
            (Mode.INSERT, "esc-insert"),
            (Mode.VISUAL, "esc-visual"),
            (Mode.FILTER, "esc-filter"),
            (Mode.SEARCH, "esc-search"),
        ],
    )
    def test_escape_per_mode(self, resolver, mode, expected):
        """Test Esc resolves to a different binding in every mode."""
        assert resolver.resolve("Esc", mode).id == expected

    def test_quit_in_every_mode(self, resolver):
        """Test an ALL binding applies everywhere."""
        for mode in Mode:
            assert resolver.resolve("q", mode, ctrl_held=True).id == "quit"

    def test_group_in_category_order(self, resolver):
        """Test help grouping follows the category list."""
        groups = resolver.group()

        assert [name for name, _ in groups][:2] == ["Navigation", "File operations"]
        assert sum(len(items) for _, items in groups) == len(DEFAULT_KEYBINDS)


class TestResolve:
    """Test key resolution."""

    def test_unbound_key(self, resolver):
        """Test unbound keys resolve to nothing."""
        assert resolver.resolve("z", Mode.NORMAL) is None
        assert resolver.resolve("j", Mode.INSERT) is None

    def test_aliases(self, resolver):
        """Test alternate spellings of named keys."""
        assert resolver.resolve("Escape", Mode.INSERT).id == "esc-insert"
        assert resolver.resolve("Return", Mode.NORMAL).id == "open"
        assert resolver.resolve("Down", Mode.NORMAL).id == "down"

    def test_ctrl_chord(self, resolver):
        """Test Ctrl+letter resolves to the chord binding, ignoring case."""
        assert resolver.resolve("c", Mode.NORMAL, ctrl_held=True).id == "copy"
        assert resolver.resolve("F", Mode.NORMAL, ctrl_held=True).id == "search"

    def test_paste_variants(self, resolver):
        """Test the shifted paste keys pick the clash-resolving pastes."""
        assert resolver.resolve("p", Mode.NORMAL).id == "paste"
        assert resolver.resolve("P", Mode.NORMAL).id == "paste-overwrite"
        assert resolver.resolve("B", Mode.NORMAL).id == "paste-keep-both"
        assert resolver.resolve("P", Mode.FILTER) is None

    def test_first_match_wins(self):
        """Test the earlier record wins on a duplicate key."""
        resolver = KeybindingResolver(
            [
                {"id": "first", "keys": ["a"], "mode": "NORMAL"},
                {"id": "second", "keys": ["a"], "mode": "NORMAL"},
            ]
        )

        assert resolver.resolve("a", Mode.NORMAL).id == "first"

    def test_unimplemented_ignored(self):
        """Test unimplemented bindings never resolve."""
        resolver = KeybindingResolver(
            [{"id": "later", "keys": ["a"], "mode": "NORMAL", "implemented": False}]
        )

        assert resolver.resolve("a", Mode.NORMAL) is None
        assert resolver.get("later") is not None


class TestParse:
    """Test table validation."""

    def test_unknown_mode_rejected(self):
        """Test a record naming an unknown mode."""
        with pytest.raises(KeybindingError):
            parse_keybind({"id": "x", "keys": ["x"], "mode": "COMMAND"})

    def test_missing_id_rejected(self):
        with pytest.raises(KeybindingError):
            parse_keybind({"keys": ["x"]})

    @pytest.mark.parametrize("keys", [[], "x"])
    def test_bad_keys_rejected(self, keys):
        """Test keys must be a non-empty list."""
        with pytest.raises(KeybindingError):
            parse_keybind({"id": "x", "keys": keys})

    def test_all_mode(self):
        """Test ALL maps to every mode."""
        binding = parse_keybind({"id": "x", "keys": ["x"], "mode": "ALL"})

        assert binding.mode is None
        assert binding.applies_to(Mode.SEARCH)

    def test_resolver_rejects_bad_table(self):
        """Test an invalid record fails at construction."""
        with pytest.raises(KeybindingError):
            KeybindingResolver([{"id": "x", "keys": ["x"], "mode": "NOPE"}])


class TestLoadFromFile:
    """Test keybinding files."""

    def test_load_custom_table(self, temp_dir: Path):
        """Test a JSON table replaces the defaults."""
        path = temp_dir / "keybinds.json"
        path.write_text(json.dumps([{"id": "down", "keys": ["n"], "mode": "NORMAL"}]))

        resolver = KeybindingResolver.from_file(path)

        assert resolver.resolve("n", Mode.NORMAL).id == "down"
        assert resolver.resolve("j", Mode.NORMAL) is None

    def test_invalid_file_falls_back(self, temp_dir: Path):
        """Test a broken file falls back to the built-in table."""
        path = temp_dir / "keybinds.json"
        path.write_text(json.dumps([{"id": "x", "keys": ["x"], "mode": "NOPE"}]))

        resolver = KeybindingResolver.from_file(path)

        assert resolver.resolve("j", Mode.NORMAL).id == "down"

    def test_missing_file_falls_back(self, temp_dir: Path):
        resolver = KeybindingResolver.from_file(temp_dir / "missing.json")

        assert len(resolver.bindings) == len(DEFAULT_KEYBINDS)


class TestLabels:
    """Test platform-dependent labels."""

    def test_normalize_key(self):
        assert normalize_key("Escape") == "Esc"
        assert normalize_key(" ") == "Space"
        assert normalize_key("X", ctrl_held=True) == "C-x"
        assert normalize_key("Enter", ctrl_held=True) == "Enter"

    def test_mac_label(self):
        """Test Cmd symbol on macOS."""
        assert normalize_key_label("C-c", "darwin") == "⌘+C"

    def test_other_label(self):
        """Test Ctrl elsewhere."""
        assert normalize_key_label("C-c", "linux") == "Ctrl+C"
        assert normalize_key_label("Esc", "win32") == "Esc"

    def test_binding_label(self, resolver):
        """Test the help label of a binding."""
        assert resolver.label("copy", "linux") == "c, Ctrl+C - copy"
        assert resolver.label("copy", "darwin") == "c, ⌘+C - copy"
        assert resolver.label("nope") == ""
