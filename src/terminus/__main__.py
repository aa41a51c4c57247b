"""Entry point for Terminus: ``terminus [directory]``."""

import sys
from pathlib import Path


def setup_logging():
    """Start logging and route uncaught exceptions into the log."""
    from terminus.utils.logger import configure_file_logging, setup_logging as init_logging

    logger = init_logging()
    configure_file_logging()

    def exception_hook(exc_type, exc_value, exc_tb):
        logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_tb))
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = exception_hook
    return logger


def _start_directory(argv: list[str], logger) -> Path | None:
    """Directory given on the command line, if it is one."""
    if len(argv) < 2:
        return None
    path = Path(argv[1]).expanduser().resolve()
    if not path.is_dir():
        logger.warning(f"Not a directory, ignoring: {path}")
        return None
    return path


def main():
    from PySide6.QtWidgets import QApplication

    app = QApplication(sys.argv)
    # Names must be set before logging resolves the per-user data directory
    app.setApplicationName("Terminus")
    app.setOrganizationName("Terminus")

    logger = setup_logging()

    from terminus.views.main_window import MainWindow

    window = MainWindow(_start_directory(sys.argv, logger))
    window.show()

    result = app.exec()
    logger.info(f"Exiting with status {result}")
    sys.exit(result)


if __name__ == "__main__":
    main()
