"""Main window: listing, mode line and status bar."""

import sys
from pathlib import Path

from PySide6.QtCore import Qt, QUrl
from PySide6.QtGui import QColor, QDesktopServices, QKeyEvent
from PySide6.QtWidgets import (
    QDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QVBoxLayout,
    QWidget,
)

from terminus.core.keybindings import KeybindingResolver
from terminus.core.mode_machine import KeyEvent, visible_entries
from terminus.core.modes import Mode, ShellState
from terminus.core.shell_controller import ShellController
from terminus.utils.logger import get_logger
from terminus.utils.settings import Settings

_logger = get_logger()

# Qt key codes to the named keys used by the keybinding table
_NAMED_KEYS = {
    int(Qt.Key.Key_Escape): "Esc",
    int(Qt.Key.Key_Return): "Enter",
    int(Qt.Key.Key_Enter): "Enter",
    int(Qt.Key.Key_Backspace): "Backspace",
    int(Qt.Key.Key_Delete): "Delete",
    int(Qt.Key.Key_Up): "ArrowUp",
    int(Qt.Key.Key_Down): "ArrowDown",
    int(Qt.Key.Key_Left): "ArrowLeft",
    int(Qt.Key.Key_Right): "ArrowRight",
    int(Qt.Key.Key_Home): "Home",
    int(Qt.Key.Key_End): "End",
    int(Qt.Key.Key_Space): "Space",
    int(Qt.Key.Key_F2): "F2",
    int(Qt.Key.Key_F3): "F3",
}


def key_event_from_qt(event: QKeyEvent) -> KeyEvent | None:
    """Translate a Qt key press into a raw KeyEvent."""
    modifiers = event.modifiers()
    # Qt maps Cmd to ControlModifier on macOS
    ctrl = bool(modifiers & Qt.KeyboardModifier.ControlModifier)

    key = int(event.key())
    named = _NAMED_KEYS.get(key)
    if named == "Space" and not ctrl:
        return KeyEvent(" ", platform=sys.platform)
    if named:
        return KeyEvent(named, ctrl, sys.platform)

    text = event.text()
    if ctrl and int(Qt.Key.Key_A) <= key <= int(Qt.Key.Key_Z):
        text = chr(key).lower()
    if text and text.isprintable():
        return KeyEvent(text, ctrl, sys.platform)
    return None


class HelpDialog(QDialog):
    """Keybinding reference grouped by category."""

    def __init__(self, resolver: KeybindingResolver, mode: Mode, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Keybindings")
        self.setMinimumSize(480, 420)

        layout = QVBoxLayout(self)
        listing = QListWidget()
        for category, bindings in resolver.group():
            header = QListWidgetItem(category)
            font = header.font()
            font.setBold(True)
            header.setFont(font)
            header.setFlags(Qt.ItemFlag.NoItemFlags)
            listing.addItem(header)
            for binding in bindings:
                scope = binding.mode.name if binding.mode else "ALL"
                item = QListWidgetItem(f"  {binding.format_keys():<22} {binding.desc}  [{scope}]")
                if binding.applies_to(mode):
                    item.setForeground(QColor(Qt.GlobalColor.darkBlue))
                listing.addItem(item)
        layout.addWidget(listing)


class MainWindow(QMainWindow):
    """Single-pane modal file manager window."""

    def __init__(self, start_path: Path | None = None):
        _logger.info("MainWindow.__init__ started")
        super().__init__()
        self._settings = Settings()
        resolver = KeybindingResolver.from_file(self._settings.load_keybinds_path())

        self._setup_ui()

        self._controller = ShellController(
            start_path or self._settings.load_last_path(),
            resolver=resolver,
            settings=self._settings,
            parent=self,
        )
        self._controller.state_changed.connect(self._render)
        self._controller.open_requested.connect(self._open_file)
        self._controller.help_requested.connect(self._show_help)
        self._controller.quit_requested.connect(self.close)

        geometry = self._settings.load_window_geometry()
        if geometry:
            self.restoreGeometry(geometry)
        else:
            self.resize(900, 640)

        self._render(self._controller.state)
        _logger.info("MainWindow.__init__ completed")

    def _setup_ui(self):
        """Setup UI."""
        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(4, 4, 4, 4)

        self._path_label = QLabel()
        self._path_label.setStyleSheet("font-weight: bold;")
        layout.addWidget(self._path_label)

        self._list = QListWidget()
        # Keys are handled by the window, never by the list itself
        self._list.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        layout.addWidget(self._list, stretch=1)

        self._input_label = QLabel()
        layout.addWidget(self._input_label)

        self._error_label = QLabel()
        self._error_label.setStyleSheet("color: #c0392b;")
        self._error_label.setWordWrap(True)
        layout.addWidget(self._error_label)

        self.setCentralWidget(central)
        self._mode_label = QLabel()
        self.statusBar().addPermanentWidget(self._mode_label)

    def keyPressEvent(self, event: QKeyEvent):
        key_event = key_event_from_qt(event)
        if key_event is None:
            super().keyPressEvent(event)
            return
        self._controller.handle_key(key_event)

    def _render(self, state: ShellState):
        """Redraw from a state snapshot."""
        self.setWindowTitle(f"Terminus - {state.cwd}")
        self._path_label.setText(str(state.cwd))
        self._list.clear()

        if state.mode is Mode.SEARCH:
            for path in state.search_results:
                self._list.addItem(str(path.relative_to(state.cwd)))
            self._list.setCurrentRow(state.search_cursor)
        else:
            for entry in visible_entries(state):
                marker = "*" if entry.path in state.selection.multi else " "
                suffix = "/" if entry.is_dir else ""
                item = QListWidgetItem(f"{marker} {entry.name}{suffix}")
                if entry.error:
                    item.setToolTip(entry.error)
                    item.setForeground(QColor(Qt.GlobalColor.gray))
                if state.clipboard.is_cut and entry.path in state.clipboard.items:
                    item.setForeground(QColor(Qt.GlobalColor.darkGray))
                self._list.addItem(item)
            self._list.setCurrentRow(state.selection.cursor)

        if state.buffer is not None:
            prompt = {Mode.INSERT: "rename", Mode.FILTER: "/", Mode.SEARCH: "search"}.get(state.mode, "")
            text = state.buffer.raw
            caret = state.buffer.caret
            self._input_label.setText(f"{prompt}: {text[:caret]}|{text[caret:]}")
            self._input_label.show()
        else:
            self._input_label.hide()

        self._error_label.setText(state.last_error or "")
        self._error_label.setVisible(bool(state.last_error))

        clip = ""
        if not state.clipboard.is_empty:
            clip = f"  [{state.clipboard.kind.value} {len(state.clipboard.items)}]"
        self._mode_label.setText(f"-- {state.mode.name} --{clip}")
        self.statusBar().showMessage(state.status)

    def _open_file(self, path: Path):
        """Open a file with the system default application."""
        if not QDesktopServices.openUrl(QUrl.fromLocalFile(str(path))):
            _logger.warning(f"No application to open {path}")

    def _show_help(self):
        HelpDialog(self._controller.resolver, self._controller.state.mode, self).exec()

    def closeEvent(self, event):
        """Save state and wait for running operations."""
        self._settings.save_window_geometry(self.saveGeometry())
        self._controller.shutdown()
        super().closeEvent(event)
