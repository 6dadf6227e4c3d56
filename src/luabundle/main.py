"""
Application entry point for the Lua bundler GUI.

This module initializes the PyQt6 application and creates the main window.

Example:
    Run the application from command line:
    $ python -m luabundle.main
"""

import sys

from PyQt6.QtWidgets import QApplication

from luabundle import __version__
from luabundle.gui import MainWindow
from luabundle.utils.logger import get_log_directory, setup_logger

# Application metadata
APP_NAME = "Lua Bundler"
ORGANIZATION_NAME = "luabundle"

# Baseline stylesheet for consistent appearance
BASELINE_STYLESHEET = """
QMainWindow {
    background-color: #2b2b2b;
}

QWidget {
    font-family: "Segoe UI", "Ubuntu", "Roboto", sans-serif;
    font-size: 13px;
    color: #e0e0e0;
}

QPushButton {
    background-color: #3c3f41;
    border: 1px solid #555555;
    border-radius: 4px;
    padding: 6px 12px;
}

QPushButton:disabled {
    color: #777777;
}

QLineEdit, QPlainTextEdit, QComboBox {
    background-color: #1e1e1e;
    border: 1px solid #555555;
    border-radius: 4px;
    padding: 4px;
}

QGroupBox {
    border: 1px solid #555555;
    border-radius: 4px;
    margin-top: 8px;
    padding-top: 8px;
    font-weight: bold;
}
"""


def main() -> int:
    """
    Initialize and run the bundler window.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    logger = setup_logger(
        "luabundle",
        level="INFO",
        log_file=get_log_directory() / "luabundle.log"
    )

    logger.info(f"Application starting - version {__version__}")

    try:
        app = QApplication(sys.argv)
        app.setApplicationName(APP_NAME)
        app.setOrganizationName(ORGANIZATION_NAME)
        app.setApplicationVersion(__version__)
        app.setStyleSheet(BASELINE_STYLESHEET)

        window = MainWindow()
        window.show()

        logger.info("Main window displayed")
        return app.exec()

    except Exception as e:
        logger.exception(f"Fatal error during application startup: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
