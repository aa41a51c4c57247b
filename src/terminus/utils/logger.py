"""Application logging utility."""

import logging
import sys
from datetime import datetime
from pathlib import Path

from PySide6.QtCore import QStandardPaths

LOGGER_NAME = "Terminus"

_logger: logging.Logger | None = None
_file_handler: logging.FileHandler | None = None


def get_log_path() -> Path:
    """Log file location: per-user app data, or beside a frozen executable."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent / "Terminus.log"
    location = QStandardPaths.writableLocation(
        QStandardPaths.StandardLocation.AppLocalDataLocation
    )
    base = Path(location) if location else Path.home() / ".terminus"
    return base / "Terminus.log"


def setup_logging(console_level: int = logging.INFO) -> logging.Logger:
    """Create the application logger with its console handler, once."""
    global _logger

    if _logger is not None:
        return _logger

    _logger = logging.getLogger(LOGGER_NAME)
    _logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    _logger.addHandler(console_handler)

    return _logger


def configure_file_logging(settings=None):
    """Apply the file logging switch from settings."""
    if settings is None:
        from terminus.utils.settings import Settings

        settings = Settings()

    if settings.load_logging_enabled():
        _enable_file_logging()
    else:
        _disable_file_logging()


def _enable_file_logging():
    global _file_handler

    if _file_handler is not None or _logger is None:
        return

    log_path = get_log_path()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        # One log per session
        _file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    except OSError as e:
        _logger.warning(f"Could not create log file {log_path}: {e}")
        return

    _file_handler.setLevel(logging.DEBUG)
    _file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    _logger.addHandler(_file_handler)
    _write_banner(log_path)


def _write_banner(log_path: Path):
    from terminus import __build_date__, __version__

    _logger.info("=" * 50)
    _logger.info(f"Terminus v{__version__} ({__build_date__ or 'dev'})")
    _logger.info(f"Session started {datetime.now():%Y-%m-%d %H:%M:%S}, log {log_path}")
    _logger.info(f"Python {sys.version.split()[0]} on {sys.platform}")
    _logger.info("=" * 50)


def _disable_file_logging():
    global _file_handler

    if _file_handler is not None and _logger is not None:
        _logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None


def get_logger() -> logging.Logger:
    """Get the application logger."""
    if _logger is None:
        return setup_logging()
    return _logger
