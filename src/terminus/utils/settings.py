"""Application settings management."""

from pathlib import Path

from PySide6.QtCore import QSettings

from terminus.core.modes import ShellConfig


class Settings:
    """Manage application settings using QSettings."""

    def __init__(self, settings: QSettings | None = None):
        self._settings = settings or QSettings("Terminus", "Terminus")

    # Window geometry
    def save_window_geometry(self, geometry: bytes):
        """Save window geometry."""
        self._settings.setValue("window/geometry", geometry)

    def load_window_geometry(self) -> bytes | None:
        """Load window geometry."""
        return self._settings.value("window/geometry")

    # Last path
    def save_last_path(self, path: Path):
        """Save last visited path."""
        self._settings.setValue("navigation/last_path", str(path))

    def load_last_path(self) -> Path | None:
        """Load last visited path."""
        path_str = self._settings.value("navigation/last_path")
        if path_str:
            path = Path(path_str)
            if path.is_dir():
                return path
        return None

    # Logging enabled
    def save_logging_enabled(self, enabled: bool):
        """Save logging enabled setting."""
        self._settings.setValue("debug/logging_enabled", enabled)

    def load_logging_enabled(self) -> bool:
        """Load logging enabled setting. Default True."""
        return self._settings.value("debug/logging_enabled", True, type=bool)

    # Rename caret placement
    def save_rename_caret_policy(self, policy: str):
        """Save rename caret policy ("stem" or "end")."""
        self._settings.setValue("rename/caret_policy", policy)

    def load_rename_caret_policy(self) -> str:
        """Load rename caret policy. Default 'stem'."""
        policy = self._settings.value("rename/caret_policy", "stem", type=str)
        return policy if policy in ("stem", "end") else "stem"

    # Search
    def save_search_preserve_query(self, preserve: bool):
        """Save whether the search query survives closing search."""
        self._settings.setValue("search/preserve_query", preserve)

    def load_search_preserve_query(self) -> bool:
        """Load search query preservation. Default True."""
        return self._settings.value("search/preserve_query", True, type=bool)

    def save_search_max_results(self, count: int):
        """Save search max results."""
        self._settings.setValue("search/max_results", count)

    def load_search_max_results(self) -> int:
        """Load search max results. Default 500."""
        return self._settings.value("search/max_results", 500, type=int)

    # Delete behaviour
    def save_delete_use_trash(self, use_trash: bool):
        """Save whether delete moves items to the trash."""
        self._settings.setValue("delete/use_trash", use_trash)

    def load_delete_use_trash(self) -> bool:
        """Load delete-to-trash. Default False (permanent delete)."""
        return self._settings.value("delete/use_trash", False, type=bool)

    # Keybinding table override
    def save_keybinds_path(self, path: Path | None):
        """Save path of a JSON keybinding table."""
        self._settings.setValue("keybinds/path", str(path) if path else "")

    def load_keybinds_path(self) -> Path | None:
        """Load path of a JSON keybinding table, if one is configured."""
        path_str = self._settings.value("keybinds/path", "", type=str)
        return Path(path_str) if path_str else None

    def load_shell_config(self) -> ShellConfig:
        """Mode machine options."""
        return ShellConfig(
            rename_caret_policy=self.load_rename_caret_policy(),
            preserve_search_query=self.load_search_preserve_query(),
        )
