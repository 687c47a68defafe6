"""Application bootstrap for ImageLabel."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from PyQt6.QtWidgets import QApplication

from .core.config import ConfigManager
from .ui.main_window import MainWindow

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stdout at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def create_application(argv: Optional[List[str]] = None) -> QApplication:
    """
    Create and configure the Qt application.

    Returns:
        Configured QApplication instance
    """
    app = QApplication(argv if argv is not None else sys.argv)
    app.setApplicationName("ImageLabel")
    app.setApplicationVersion("1.0.0")
    app.setOrganizationName("ImageLabel")
    return app


def run(argv: Optional[List[str]] = None) -> int:
    """
    Run the ImageLabel application.

    An image path given as the first argument is opened on startup.

    Returns:
        Exit code
    """
    argv = list(argv if argv is not None else sys.argv)
    config_manager = ConfigManager()
    configure_logging(config_manager.config.log_level)
    logger.info("Starting ImageLabel")

    try:
        app = create_application(argv)

        window = MainWindow(config_manager)
        window.show()
        logger.info("MainWindow shown")

        if len(argv) > 1:
            window.load_image(argv[1])

        return app.exec()

    except Exception as e:
        logger.error(f"Application error: {e}", exc_info=True)
        return 1


def main() -> None:
    """Main entry point for the application."""
    sys.exit(run())


if __name__ == "__main__":
    main()
