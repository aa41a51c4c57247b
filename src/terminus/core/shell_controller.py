"""Shell controller - owns the shell state and runs file operations."""

from collections import deque
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, QThread, Signal

from terminus.core.batch import BatchResult, ConflictResolution
from terminus.core.errors import FileOperationError
from terminus.core.file_operations import FileOperations, PasteResult
from terminus.core.filesystem import FileSystem
from terminus.core.keybindings import KeybindingResolver, normalize_key_label
from terminus.core.mode_machine import (
    KeyEvent,
    apply_batch_result,
    apply_error,
    apply_listing,
    apply_paste_result,
    apply_refresh,
    apply_rename_result,
    apply_search_results,
    handle_key,
)
from terminus.core.modes import Action, ActionKind, Mode, ShellConfig, ShellState
from terminus.core.search import SearchWorker, iter_search
from terminus.utils.logger import get_logger
from terminus.utils.settings import Settings

_logger = get_logger()


@dataclass(frozen=True)
class OperationOutcome:
    """What a dispatched mutation produced."""

    action: Action
    paste: PasteResult | None = None
    batch: BatchResult | None = None
    new_path: Path | None = None
    error: str | None = None


def run_operation(ops: FileOperations, action: Action) -> OperationOutcome:
    """Execute a mutation action against the engine. Never raises for
    filesystem failures; they come back in the outcome."""
    try:
        if action.kind is ActionKind.PASTE:
            paste = ops.paste_items(action.clipboard, action.target, action.resolution)
            return OperationOutcome(action, paste=paste)
        if action.kind is ActionKind.DELETE:
            return OperationOutcome(action, batch=ops.delete_batch(list(action.targets)))
        if action.kind is ActionKind.RENAME:
            new_path = ops.rename_entry(action.target, action.new_name)
            return OperationOutcome(action, new_path=new_path)
    except FileOperationError as e:
        _logger.warning(f"{action.kind.name.lower()} failed: {e}")
        return OperationOutcome(action, error=e.reason)
    except OSError as e:
        _logger.error(f"{action.kind.name.lower()} failed unexpectedly: {e}")
        return OperationOutcome(action, error=e.strerror or str(e))
    raise ValueError(f"Not a mutation: {action.kind}")


def reduce_outcome(state: ShellState, outcome: OperationOutcome) -> ShellState:
    """Fold an operation outcome into state."""
    kind = outcome.action.kind
    if outcome.error:
        return apply_error(state, f"{kind.name.capitalize()} failed: {outcome.error}")
    if kind is ActionKind.PASTE:
        return apply_paste_result(state, outcome.action.clipboard, outcome.paste)
    if kind is ActionKind.DELETE:
        return apply_batch_result(state, "Delete", outcome.batch)
    if kind is ActionKind.RENAME:
        return apply_rename_result(state, outcome.new_path)
    return state


class OperationWorker(QThread):
    """Worker thread running one mutation at a time."""

    completed = Signal(object)  # OperationOutcome

    def __init__(self, job: Callable[[], OperationOutcome]):
        super().__init__()
        self._job = job

    def run(self):
        """Run the operation."""
        self.completed.emit(self._job())


class ShellController(QObject):
    """Routes key events through the mode machine and runs what they ask for.

    All state changes go through ``_set_state``; results of background
    operations arrive through ``_on_operation_finished`` only. Mutations
    run one at a time, in the order they were asked for.
    """

    # Signals
    state_changed = Signal(object)  # ShellState
    open_requested = Signal(object)  # Path of a file to open externally
    help_requested = Signal()
    quit_requested = Signal()

    def __init__(
        self,
        start_path: Path | None = None,
        fs: FileSystem | None = None,
        resolver: KeybindingResolver | None = None,
        config: ShellConfig | None = None,
        settings: Settings | None = None,
        background: bool = True,
        parent=None,
    ):
        super().__init__(parent)
        self._settings = settings
        use_trash = settings.load_delete_use_trash() if settings else False
        self._ops = FileOperations(fs, use_trash=use_trash)
        self._resolver = resolver or KeybindingResolver()
        self._config = config or (settings.load_shell_config() if settings else ShellConfig())
        self._background = background
        self._max_results = settings.load_search_max_results() if settings else 500
        self._queue: deque[Action] = deque()
        self._worker: OperationWorker | None = None
        self._pending_conflict: Action | None = None
        self._searches: list[SearchWorker] = []

        self._state = ShellState(cwd=start_path or self._ops.fs.home())
        self.navigate(self._state.cwd)

    @property
    def state(self) -> ShellState:
        return self._state

    @property
    def resolver(self) -> KeybindingResolver:
        return self._resolver

    @property
    def pending_operations(self) -> int:
        return len(self._queue) + (1 if self._worker is not None else 0)

    @property
    def searching(self) -> bool:
        return bool(self._searches)

    def _set_state(self, state: ShellState) -> None:
        if state != self._state:
            self._state = state
            self.state_changed.emit(state)

    # === Input ===

    def handle_key(self, event: KeyEvent) -> Action:
        """Handle one raw key event. Never blocks on file operations."""
        state, action = handle_key(self._state, event, self._resolver, self._config)
        self._set_state(state)
        self._dispatch(action)
        return action

    def _dispatch(self, action: Action) -> None:
        kind = action.kind
        if action.recognized and kind is not ActionKind.PASTE:
            self._pending_conflict = None
        if kind is ActionKind.NAVIGATE:
            focus = self._state.cwd if action.target == self._state.cwd.parent else None
            self.navigate(action.target, focus=focus)
        elif kind is ActionKind.REVEAL:
            self.navigate(action.target.parent, focus=action.target)
        elif kind is ActionKind.OPEN_FILE:
            self.open_requested.emit(action.target)
        elif kind is ActionKind.SEARCH_CHANGED:
            self._start_search()
        elif kind is ActionKind.SHOW_HELP:
            self.help_requested.emit()
        elif kind is ActionKind.QUIT:
            self.quit_requested.emit()
        elif action.is_mutation:
            self._run_operation(action)

    # === Navigation ===

    def navigate(self, path: Path, focus: Path | None = None) -> bool:
        """List path and make it the current directory."""
        try:
            entries = self._ops.fs.list_directory(path)
        except OSError as e:
            _logger.warning(f"Cannot open {path}: {e}")
            self._set_state(apply_error(self._state, f"Cannot open {path}: {e.strerror or e}"))
            return False

        self._set_state(apply_listing(self._state, path, entries, focus))
        if self._settings:
            self._settings.save_last_path(path)
        return True

    def refresh(self, focus: Path | None = None) -> None:
        """Re-list the current directory, keeping mode and selection."""
        try:
            entries = self._ops.fs.list_directory(self._state.cwd)
        except OSError as e:
            # Current directory vanished; fall back to its nearest parent
            _logger.warning(f"Cannot refresh {self._state.cwd}: {e}")
            parent = self._state.cwd.parent
            while parent != parent.parent and not parent.is_dir():
                parent = parent.parent
            self.navigate(parent)
            return
        self._set_state(apply_refresh(self._state, entries, focus))

    # === Mutations ===

    def _run_operation(self, action: Action) -> None:
        if action.kind is ActionKind.PASTE and not self._confirm_paste(action):
            return
        _logger.debug(f"Queueing {action.kind.name} ({action.binding_id})")
        self._queue.append(action)
        self._start_next()

    def _confirm_paste(self, action: Action) -> bool:
        """Hold a plain paste that would land on existing names.

        Pasting again with the same clipboard runs it anyway, and the
        clashing items fail; the overwrite and keep-both bindings resolve
        the clash instead.
        """
        if action.resolution is not ConflictResolution.FAIL or action == self._pending_conflict:
            self._pending_conflict = None
            return True

        items = self._ops.build_paste_items(action.clipboard, action.target)
        conflicts = self._ops.find_conflicts(items)
        if not conflicts:
            return True

        self._pending_conflict = action
        names = ", ".join(item.destination.name for item in conflicts[:3])
        if len(conflicts) > 3:
            names += ", ..."
        hints = [
            f"{self._key_hint(binding_id)} {verb}"
            for binding_id, verb in (
                ("paste-overwrite", "overwrite"),
                ("paste-keep-both", "keep both"),
                (action.binding_id, "again to skip them"),
            )
            if self._key_hint(binding_id)
        ]
        _logger.info(f"Paste into {action.target} held: {len(conflicts)} conflict(s)")
        self._set_state(
            apply_error(
                self._state,
                f"{len(conflicts)} item(s) already exist ({names}): {', '.join(hints)}",
            )
        )
        return False

    def _key_hint(self, binding_id: str | None) -> str:
        binding = self._resolver.get(binding_id) if binding_id else None
        if binding is None or not binding.keys:
            return ""
        return normalize_key_label(binding.keys[0])

    def _start_next(self) -> None:
        while self._queue and self._worker is None:
            action = self._queue.popleft()
            if not self._background:
                self._on_operation_finished(run_operation(self._ops, action))
                continue

            worker = OperationWorker(partial(run_operation, self._ops, action))
            worker.completed.connect(self._on_operation_finished)
            worker.finished.connect(self._on_worker_finished)
            self._worker = worker
            worker.start()

    def _on_worker_finished(self) -> None:
        worker, self._worker = self._worker, None
        if worker is not None:
            # finished is emitted just before the thread exits
            worker.wait()
            worker.deleteLater()
        self._start_next()

    def _on_operation_finished(self, outcome: OperationOutcome) -> None:
        self._set_state(reduce_outcome(self._state, outcome))
        self.refresh(focus=outcome.new_path)

    # === Search ===

    def _start_search(self) -> None:
        self._stop_search()
        state = self._state
        if state.mode is not Mode.SEARCH or not state.search_query:
            return

        if not self._background:
            hits = list(iter_search(state.cwd, state.search_query, self._max_results))
            self._on_search_results(state.search_generation, [str(p) for p in hits])
            return

        worker = SearchWorker(
            state.cwd, state.search_query, state.search_generation, self._max_results
        )
        worker.results_found.connect(self._on_search_results)
        worker.search_finished.connect(self._on_search_finished)
        self._searches.append(worker)
        worker.start()

    def _stop_search(self, wait: bool = False) -> None:
        # Hits of a stopped run are dropped by generation, so key handling
        # does not wait for the thread to finish
        for worker in self._searches:
            worker.stop()
            if wait:
                worker.wait()

    def _on_search_finished(self, generation: int) -> None:
        for worker in [w for w in self._searches if w.generation == generation]:
            self._searches.remove(worker)
            worker.wait()
            worker.deleteLater()

    def _on_search_results(self, generation: int, paths: list) -> None:
        self._set_state(apply_search_results(self._state, generation, [Path(p) for p in paths]))

    def shutdown(self) -> None:
        """Finish queued mutations before the application exits."""
        self._stop_search(wait=True)
        if self._worker is not None:
            self._worker.wait()
        while self._queue:
            action = self._queue.popleft()
            _logger.info(f"Running queued {action.kind.name} before exit")
            run_operation(self._ops, action)
