"""Modal key handling.

Every function here takes a ShellState and returns a new one; nothing is
stored globally. ``handle_key`` turns one raw key event into a state
transition plus exactly one Action. The ``apply_*`` reducers fold results
coming back from the filesystem (listings, batch outcomes, search hits)
into the state.
"""

import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable

from terminus.core.batch import BatchResult, ConflictResolution
from terminus.core.clipboard import PendingClipboard
from terminus.core.errors import ModeTransitionError
from terminus.core.file_operations import PasteResult
from terminus.core.filesystem import Entry
from terminus.core.keybindings import Keybinding, KeybindingResolver, normalize_key
from terminus.core.modes import (
    Action,
    ActionKind,
    Mode,
    Selection,
    ShellConfig,
    ShellState,
    TextBuffer,
)
from terminus.core.paths import rename_caret

# NORMAL bindings still usable while filtering (only Ctrl chords, so that
# plain letters keep going into the query)
FILTER_PASSTHROUGH = {"copy", "cut", "paste"}

TEXT_MODES = {Mode.INSERT, Mode.FILTER, Mode.SEARCH}


@dataclass(frozen=True)
class KeyEvent:
    """Raw key event from the presentation layer."""

    key: str
    ctrl_held: bool = False
    platform: str = sys.platform


Transition = tuple[ShellState, Action]
Handler = Callable[[ShellState, ShellConfig, Keybinding], Transition]


# === Listing helpers ===


def filter_entries(entries, query: str) -> tuple[Entry, ...]:
    """Entries whose name contains query, ignoring case."""
    if not query:
        return tuple(entries)
    needle = query.casefold()
    return tuple(e for e in entries if needle in e.name.casefold())


def visible_entries(state: ShellState) -> tuple[Entry, ...]:
    """Entries the cursor moves over in the current mode."""
    if state.mode is Mode.FILTER:
        return filter_entries(state.entries, state.filter_query)
    return state.entries


def current_entry(state: ShellState) -> Entry | None:
    visible = visible_entries(state)
    if not visible:
        return None
    return visible[min(state.selection.cursor, len(visible) - 1)]


def _clamp(index: int, count: int) -> int:
    if count == 0:
        return 0
    return max(0, min(index, count - 1))


def _index_of(entries, path: Path | None) -> int | None:
    if path is None:
        return None
    for i, entry in enumerate(entries):
        if entry.path == path:
            return i
    return None


def _selected_paths(state: ShellState) -> list[Path]:
    """Multi-select in listing order, or the entry under the cursor."""
    if state.selection.multi:
        return [e.path for e in state.entries if e.path in state.selection.multi]
    entry = current_entry(state)
    return [entry.path] if entry else []


def _selected_targets(state: ShellState) -> tuple[tuple[Path, bool], ...]:
    paths = set(_selected_paths(state))
    return tuple((e.path, e.is_dir) for e in state.entries if e.path in paths)


# === Mode entry/exit ===


def enter_mode(state: ShellState, mode: Mode, **changes) -> ShellState:
    """Switch to mode.

    Only NORMAL may open another mode; opening one edit session while
    another is active raises ModeTransitionError.
    """
    if mode is not Mode.NORMAL and state.mode is not Mode.NORMAL:
        raise ModeTransitionError(f"Cannot enter {mode.name} while in {state.mode.name}")
    return replace(state, mode=mode, **changes)


def _to_normal(state: ShellState, **changes) -> ShellState:
    defaults = dict(mode=Mode.NORMAL, buffer=None, rename_target=None)
    defaults.update(changes)
    return replace(state, **defaults)


def _unchanged(state: ShellState, binding: Keybinding | None = None) -> Transition:
    return state, Action(ActionKind.NONE, binding.id if binding else None)


# === NORMAL ===


def _move(state: ShellState, binding: Keybinding, delta: int | None = None, to: int | None = None) -> Transition:
    count = len(visible_entries(state))
    target = to if to is not None else state.selection.cursor + (delta or 0)
    cursor = _clamp(target, count)
    state = replace(state, selection=replace(state.selection, cursor=cursor))
    return state, Action(ActionKind.MOVE_CURSOR, binding.id)


def _down(state, config, binding):
    return _move(state, binding, delta=1)


def _up(state, config, binding):
    return _move(state, binding, delta=-1)


def _top(state, config, binding):
    return _move(state, binding, to=0)


def _bottom(state, config, binding):
    return _move(state, binding, to=len(visible_entries(state)) - 1)


def _open(state, config, binding):
    entry = current_entry(state)
    if entry is None:
        return _unchanged(state, binding)
    if entry.is_dir:
        return state, Action(ActionKind.NAVIGATE, binding.id, target=entry.path)
    return state, Action(ActionKind.OPEN_FILE, binding.id, target=entry.path)


def _parent(state, config, binding):
    parent = state.cwd.parent
    if parent == state.cwd:
        return _unchanged(state, binding)
    return state, Action(ActionKind.NAVIGATE, binding.id, target=parent)


def _stage(state: ShellState, binding: Keybinding, cut: bool) -> Transition:
    paths = _selected_paths(state)
    if not paths:
        return _unchanged(state, binding)
    clipboard = PendingClipboard.cut(paths) if cut else PendingClipboard.copy(paths)
    verb = "Cut" if cut else "Copied"
    state = replace(state, clipboard=clipboard, status=f"{verb} {len(paths)} item(s)")
    if state.mode is Mode.VISUAL:
        state = _to_normal(state, selection=replace(state.selection, multi=frozenset()))
    kind = ActionKind.STAGE_CUT if cut else ActionKind.STAGE_COPY
    return state, Action(kind, binding.id)


def _copy(state, config, binding):
    return _stage(state, binding, cut=False)


def _cut(state, config, binding):
    return _stage(state, binding, cut=True)


def _paste_with(resolution: ConflictResolution) -> Handler:
    def paste(state, config, binding):
        if state.clipboard.is_empty:
            return replace(state, status="Nothing to paste"), Action(ActionKind.NONE, binding.id)
        action = Action(
            ActionKind.PASTE,
            binding.id,
            target=state.cwd,
            clipboard=state.clipboard,
            resolution=resolution,
        )
        return state, action

    return paste


def _delete(state, config, binding):
    targets = _selected_targets(state)
    if not targets:
        return _unchanged(state, binding)
    if state.mode is Mode.VISUAL:
        state = _to_normal(state, selection=replace(state.selection, multi=frozenset()))
    return state, Action(ActionKind.DELETE, binding.id, targets=targets)


def _cancel_cut(state, config, binding):
    if state.clipboard.is_cut:
        state = replace(state, clipboard=PendingClipboard(), status="Cut cancelled")
    return replace(state, last_error=None), Action(ActionKind.CANCEL_CUT, binding.id)


def _start_rename(state, config, binding):
    entry = current_entry(state)
    if entry is None:
        return _unchanged(state, binding)
    caret = rename_caret(entry.name, entry.is_dir, config.rename_caret_policy)
    state = enter_mode(
        state,
        Mode.INSERT,
        buffer=TextBuffer.seeded(entry.name, caret),
        rename_target=entry.path,
    )
    return state, Action(ActionKind.MODE_CHANGED, binding.id)


def _start_visual(state, config, binding):
    entry = current_entry(state)
    multi = frozenset([entry.path]) if entry else frozenset()
    state = enter_mode(state, Mode.VISUAL, selection=replace(state.selection, multi=multi))
    return state, Action(ActionKind.MODE_CHANGED, binding.id)


def _start_filter(state, config, binding):
    state = enter_mode(state, Mode.FILTER, buffer=TextBuffer(), filter_query="")
    return state, Action(ActionKind.MODE_CHANGED, binding.id)


def _start_search(state, config, binding):
    query = state.search_query if config.preserve_search_query else ""
    state = enter_mode(
        state,
        Mode.SEARCH,
        buffer=TextBuffer.seeded(query),
        search_query=query,
        search_results=(),
        search_cursor=0,
        search_generation=state.search_generation + 1,
    )
    kind = ActionKind.SEARCH_CHANGED if query else ActionKind.MODE_CHANGED
    return state, Action(kind, binding.id, target=state.cwd)


def _help(state, config, binding):
    return state, Action(ActionKind.SHOW_HELP, binding.id)


def _quit(state, config, binding):
    return state, Action(ActionKind.QUIT, binding.id)


# === INSERT ===


def _edit(state: ShellState, binding: Keybinding | None, edit: Callable[[TextBuffer], TextBuffer]) -> Transition:
    state = replace(state, buffer=edit(state.buffer or TextBuffer()))
    return state, Action(ActionKind.BUFFER_EDITED, binding.id if binding else None)


def _commit_rename(state, config, binding):
    target = state.rename_target
    new_name = state.buffer.raw if state.buffer else ""
    state = _to_normal(state)
    if target is None or not new_name or new_name == target.name:
        return state, Action(ActionKind.MODE_CHANGED, binding.id)
    return state, Action(ActionKind.RENAME, binding.id, target=target, new_name=new_name)


def _cancel_rename(state, config, binding):
    return _to_normal(state), Action(ActionKind.MODE_CHANGED, binding.id)


# === VISUAL ===


def _toggle(multi: frozenset, path: Path) -> frozenset:
    return multi - {path} if path in multi else multi | {path}


def _visual_step(state: ShellState, binding: Keybinding, delta: int) -> Transition:
    count = len(state.entries)
    cursor = _clamp(state.selection.cursor + delta, count)
    multi = state.selection.multi
    if count and cursor != state.selection.cursor:
        multi = _toggle(multi, state.entries[cursor].path)
    state = replace(state, selection=Selection(cursor, multi))
    return state, Action(ActionKind.TOGGLE_SELECT, binding.id)


def _visual_down(state, config, binding):
    return _visual_step(state, binding, 1)


def _visual_up(state, config, binding):
    return _visual_step(state, binding, -1)


def _visual_mark(state, config, binding):
    entry = current_entry(state)
    if entry is None:
        return _unchanged(state, binding)
    multi = _toggle(state.selection.multi, entry.path)
    return replace(state, selection=replace(state.selection, multi=multi)), Action(
        ActionKind.TOGGLE_SELECT, binding.id
    )


def _exit_visual(state, config, binding):
    state = _to_normal(state, selection=replace(state.selection, multi=frozenset()))
    return state, Action(ActionKind.MODE_CHANGED, binding.id)


# === FILTER ===


def _edit_filter(state: ShellState, binding: Keybinding | None, edit) -> Transition:
    focused = current_entry(state)
    buffer = edit(state.buffer or TextBuffer())
    state = replace(state, buffer=buffer, filter_query=buffer.raw)
    visible = visible_entries(state)
    cursor = _index_of(visible, focused.path if focused else None) or 0
    state = replace(state, selection=replace(state.selection, cursor=cursor))
    return state, Action(ActionKind.BUFFER_EDITED, binding.id if binding else None)


def _exit_filter(state, config, binding):
    focused = current_entry(state)
    cursor = _index_of(state.entries, focused.path if focused else None) or 0
    state = _to_normal(state, filter_query="", selection=replace(state.selection, cursor=cursor))
    return state, Action(ActionKind.MODE_CHANGED, binding.id)


# === SEARCH ===


def _edit_search(state: ShellState, binding: Keybinding | None, edit) -> Transition:
    buffer = edit(state.buffer or TextBuffer())
    if buffer.raw == state.search_query:
        return replace(state, buffer=buffer), Action(
            ActionKind.BUFFER_EDITED, binding.id if binding else None
        )
    state = replace(
        state,
        buffer=buffer,
        search_query=buffer.raw,
        search_results=(),
        search_cursor=0,
        search_generation=state.search_generation + 1,
    )
    return state, Action(ActionKind.SEARCH_CHANGED, binding.id if binding else None, target=state.cwd)


def _search_move(state: ShellState, binding: Keybinding, delta: int) -> Transition:
    cursor = _clamp(state.search_cursor + delta, len(state.search_results))
    return replace(state, search_cursor=cursor), Action(ActionKind.MOVE_CURSOR, binding.id)


def _close_search(state: ShellState, config: ShellConfig) -> ShellState:
    query = state.search_query if config.preserve_search_query else ""
    return _to_normal(
        state,
        search_query=query,
        search_results=(),
        search_cursor=0,
        search_generation=state.search_generation + 1,
    )


def _reveal(state, config, binding):
    if not state.search_results:
        return _unchanged(state, binding)
    target = state.search_results[state.search_cursor]
    return _close_search(state, config), Action(ActionKind.REVEAL, binding.id, target=target)


def _exit_search(state, config, binding):
    return _close_search(state, config), Action(ActionKind.MODE_CHANGED, binding.id)


HANDLERS: dict[str, Handler] = {
    "down": _down,
    "up": _up,
    "top": _top,
    "bottom": _bottom,
    "open": _open,
    "parent": _parent,
    "copy": _copy,
    "cut": _cut,
    "paste": _paste_with(ConflictResolution.FAIL),
    "paste-overwrite": _paste_with(ConflictResolution.OVERWRITE),
    "paste-keep-both": _paste_with(ConflictResolution.RENAME),
    "delete": _delete,
    "rename": _start_rename,
    "visual": _start_visual,
    "filter": _start_filter,
    "search": _start_search,
    "esc-cut-cancel": _cancel_cut,
    "help": _help,
    "quit": _quit,
    "rename-commit": _commit_rename,
    "esc-insert": _cancel_rename,
    "insert-backspace": lambda s, c, b: _edit(s, b, TextBuffer.backspace),
    "insert-delete": lambda s, c, b: _edit(s, b, TextBuffer.delete),
    "caret-left": lambda s, c, b: _edit(s, b, lambda buf: buf.move(-1)),
    "caret-right": lambda s, c, b: _edit(s, b, lambda buf: buf.move(1)),
    "caret-home": lambda s, c, b: _edit(s, b, TextBuffer.home),
    "caret-end": lambda s, c, b: _edit(s, b, TextBuffer.end),
    "visual-down": _visual_down,
    "visual-up": _visual_up,
    "visual-mark": _visual_mark,
    "visual-exit": _exit_visual,
    "esc-visual": _exit_visual,
    "visual-copy": _copy,
    "visual-cut": _cut,
    "visual-delete": _delete,
    "filter-down": _down,
    "filter-up": _up,
    "filter-open": _open,
    "filter-backspace": lambda s, c, b: _edit_filter(s, b, TextBuffer.backspace),
    "esc-filter": _exit_filter,
    "search-down": lambda s, c, b: _search_move(s, b, 1),
    "search-up": lambda s, c, b: _search_move(s, b, -1),
    "search-reveal": _reveal,
    "search-backspace": lambda s, c, b: _edit_search(s, b, TextBuffer.backspace),
    "esc-search": _exit_search,
}


def _insert_text(state: ShellState, text: str) -> Transition:
    insert = lambda buf: buf.insert(text)  # noqa: E731
    if state.mode is Mode.FILTER:
        return _edit_filter(state, None, insert)
    if state.mode is Mode.SEARCH:
        return _edit_search(state, None, insert)
    return _edit(state, None, insert)


def resolve_binding(
    state: ShellState, event: KeyEvent, resolver: KeybindingResolver
) -> Keybinding | None:
    """Binding a key event maps to in the current mode."""
    binding = resolver.resolve(event.key, state.mode, event.ctrl_held)
    if binding is None and state.mode is Mode.FILTER:
        if normalize_key(event.key, event.ctrl_held).startswith("C-"):
            normal = resolver.resolve(event.key, Mode.NORMAL, event.ctrl_held)
            if normal is not None and normal.id in FILTER_PASSTHROUGH:
                return normal
    return binding


def handle_key(
    state: ShellState,
    event: KeyEvent,
    resolver: KeybindingResolver,
    config: ShellConfig | None = None,
) -> Transition:
    """Apply one key event. Unbound keys are a silent no-op."""
    config = config or ShellConfig()
    binding = resolve_binding(state, event, resolver)

    if binding is not None:
        handler = HANDLERS.get(binding.id)
        if handler is not None:
            return handler(state, config, binding)

    if (
        state.mode in TEXT_MODES
        and not event.ctrl_held
        and len(event.key) == 1
        and event.key.isprintable()
    ):
        return _insert_text(state, event.key)

    return _unchanged(state, binding)


# === Reducers for results coming back from the filesystem ===


def apply_listing(
    state: ShellState, cwd: Path, entries, focus: Path | None = None
) -> ShellState:
    """Navigation finished: new directory, NORMAL mode, selection cleared."""
    entries = tuple(entries)
    cursor = _index_of(entries, focus) or 0
    return _to_normal(
        state,
        cwd=cwd,
        entries=entries,
        selection=Selection(cursor=cursor),
        filter_query="",
        search_results=(),
        search_cursor=0,
        last_error=None,
    )


def apply_refresh(state: ShellState, entries, focus: Path | None = None) -> ShellState:
    """Same directory re-listed; mode and edit session are kept."""
    focused = current_entry(state)
    entries = tuple(entries)
    paths = {e.path for e in entries}
    state = replace(
        state,
        entries=entries,
        selection=replace(state.selection, multi=state.selection.multi & paths),
    )
    visible = visible_entries(state)
    index = _index_of(visible, focus)
    if index is None:
        index = _index_of(visible, focused.path if focused else None)
    if index is None:
        index = _clamp(state.selection.cursor, len(visible))
    return replace(state, selection=replace(state.selection, cursor=index))


def apply_paste_result(
    state: ShellState, pasted: PendingClipboard, result: PasteResult
) -> ShellState:
    """Fold a finished paste into state.

    The clipboard is only replaced when it is still the one that was pasted;
    a clipboard staged while the paste ran is left alone.
    """
    if state.clipboard == pasted:
        state = replace(state, clipboard=result.clipboard)
    return apply_batch_result(state, "Paste", result.batch)


def apply_batch_result(state: ShellState, label: str, batch: BatchResult) -> ShellState:
    if batch.all_succeeded:
        return replace(state, last_error=None, status=f"{label}: {batch.summary()}")
    return replace(state, last_error=f"{label}: {batch.summary()}", status="")


def apply_rename_result(
    state: ShellState, new_path: Path | None, error: str | None = None
) -> ShellState:
    if error:
        return apply_error(state, f"Rename failed: {error}")
    return replace(state, last_error=None, status=f"Renamed to {new_path.name}")


def apply_error(state: ShellState, message: str) -> ShellState:
    return replace(state, last_error=message, status="")


def apply_search_results(state: ShellState, generation: int, paths) -> ShellState:
    """Append hits from a search run; stale runs are ignored."""
    if state.mode is not Mode.SEARCH or generation != state.search_generation:
        return state
    return replace(state, search_results=state.search_results + tuple(paths))
