"""
Main window implementation for the Lua bundler.

This module provides the MainWindow class: entry and output pickers, a
define editor, mangling options, a bundle button and a log view. Bundling
runs through the same BundleOrchestrator as the command line.
"""

from pathlib import Path

from PyQt6.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from luabundle.core.config import BundleConfig, MangleMode, parse_define
from luabundle.core.identifiers import NAMING_SCHEMES
from luabundle.core.orchestrator import BundleOrchestrator, JobState
from luabundle.utils.logger import get_logger
from luabundle.utils.path_utils import derive_output_path, get_platform

# Module-level logger
logger = get_logger("luabundle.gui.main_window")

MANGLE_MODE_LABELS = {
    MangleMode.DISABLED: "Off",
    MangleMode.MANUAL: "Manual (names starting with _)",
    MangleMode.AUTO: "Auto (all property names)",
}


class MainWindow(QMainWindow):
    """
    Main application window for the Lua bundler.

    Attributes:
        DEFAULT_WIDTH: Default window width in pixels.
        DEFAULT_HEIGHT: Default window height in pixels.
        WINDOW_TITLE: Window title text.
    """

    DEFAULT_WIDTH = 760
    DEFAULT_HEIGHT = 620
    WINDOW_TITLE = "Lua Bundler"

    def __init__(self) -> None:
        super().__init__()

        logger.info(f"Initializing MainWindow on {get_platform()}")

        self.setWindowTitle(self.WINDOW_TITLE)
        self.resize(self.DEFAULT_WIDTH, self.DEFAULT_HEIGHT)
        self._setup_central_widget()
        self._connect_signals()
        self._update_bundle_enabled()

    def _setup_central_widget(self) -> None:
        """Build the file, options and log sections."""
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        # Files
        files_group = QGroupBox("Files")
        files_form = QFormLayout(files_group)

        self.entry_edit = QLineEdit()
        self.entry_edit.setPlaceholderText("Entry .lua file")
        self.entry_browse = QPushButton("Browse...")
        files_form.addRow("Entry:", self._with_button(self.entry_edit, self.entry_browse))

        self.output_edit = QLineEdit()
        self.output_edit.setPlaceholderText("Defaults to <entry>.min.lua")
        self.output_browse = QPushButton("Browse...")
        files_form.addRow("Output:", self._with_button(self.output_edit, self.output_browse))
        layout.addWidget(files_group)

        # Options
        options_group = QGroupBox("Options")
        options_form = QFormLayout(options_group)

        self.defines_edit = QPlainTextEdit()
        self.defines_edit.setPlaceholderText("One PATTERN=REPLACEMENT per line")
        self.defines_edit.setMaximumHeight(90)
        options_form.addRow("Defines:", self.defines_edit)

        self.mangle_combo = QComboBox()
        for mode, label in MANGLE_MODE_LABELS.items():
            self.mangle_combo.addItem(label, mode)
        options_form.addRow("Mangling:", self.mangle_combo)

        self.scheme_combo = QComboBox()
        self.scheme_combo.addItems(sorted(NAMING_SCHEMES))
        options_form.addRow("Naming scheme:", self.scheme_combo)

        self.sentinel_check = QCheckBox("Keep names starting with __ (metamethods)")
        self.sentinel_check.setChecked(True)
        options_form.addRow("", self.sentinel_check)

        self.minify_check = QCheckBox("Minify output (strip comments and whitespace)")
        self.minify_check.setChecked(True)
        options_form.addRow("", self.minify_check)
        layout.addWidget(options_group)

        self.bundle_button = QPushButton("Bundle")
        layout.addWidget(self.bundle_button)

        self.log_view = QPlainTextEdit()
        self.log_view.setReadOnly(True)
        layout.addWidget(self.log_view, stretch=1)

        self.setCentralWidget(container)

    @staticmethod
    def _with_button(edit: QLineEdit, button: QPushButton) -> QWidget:
        row = QWidget()
        row_layout = QHBoxLayout(row)
        row_layout.setContentsMargins(0, 0, 0, 0)
        row_layout.addWidget(edit, stretch=1)
        row_layout.addWidget(button)
        return row

    def _connect_signals(self) -> None:
        self.entry_browse.clicked.connect(self._on_browse_entry)
        self.output_browse.clicked.connect(self._on_browse_output)
        self.entry_edit.textChanged.connect(self._update_bundle_enabled)
        self.bundle_button.clicked.connect(self._on_bundle)
        logger.debug("Widget signals connected")

    def _update_bundle_enabled(self) -> None:
        self.bundle_button.setEnabled(bool(self.entry_edit.text().strip()))

    def _on_browse_entry(self) -> None:
        file_name, _ = QFileDialog.getOpenFileName(
            self, "Select entry file", "", "Lua files (*.lua *.luau);;All files (*)"
        )
        if file_name:
            self.entry_edit.setText(file_name)
            if not self.output_edit.text().strip():
                self.output_edit.setText(str(derive_output_path(file_name)))

    def _on_browse_output(self) -> None:
        file_name, _ = QFileDialog.getSaveFileName(
            self, "Select output file", self.output_edit.text(), "Lua files (*.lua)"
        )
        if file_name:
            self.output_edit.setText(file_name)

    def add_log_entry(self, message: str, level: str = "info") -> None:
        prefix = "" if level == "info" else f"[{level.upper()}] "
        self.log_view.appendPlainText(prefix + message)

    def get_config(self) -> BundleConfig:
        """Build a configuration from the option widgets.

        Raises:
            ValueError: If a define line is malformed.
        """
        defines: dict[str, str] = {}
        for line in self.defines_edit.toPlainText().splitlines():
            if line.strip():
                pattern, replacement = parse_define(line)
                defines[pattern] = replacement

        return BundleConfig(
            mangle_mode=self.mangle_combo.currentData(),
            defines=defines,
            naming_scheme=self.scheme_combo.currentText(),
            protect_sentinel=self.sentinel_check.isChecked(),
            minify=self.minify_check.isChecked(),
        )

    def _on_bundle(self) -> None:
        entry = self.entry_edit.text().strip()
        output_text = self.output_edit.text().strip()
        output = Path(output_text) if output_text else None

        try:
            config = self.get_config()
        except ValueError as e:
            QMessageBox.warning(self, "Invalid defines", str(e))
            return

        logger.info(f"Bundle requested: entry={entry}, output={output}, mode={config.mangle_mode.value}")
        self.log_view.clear()
        self.bundle_button.setEnabled(False)

        def on_progress(state: JobState, message: str) -> None:
            level = "error" if state is JobState.FAILED else "info"
            self.add_log_entry(message, level)
            QApplication.processEvents()

        try:
            result = BundleOrchestrator(config).bundle_file(entry, output, progress_callback=on_progress)
            for warning in result.warnings:
                self.add_log_entry(warning, "warning")
            if result.success:
                self.add_log_entry(
                    f"Done: {result.metadata.get('module_count', 0)} module(s) -> {result.output_path}",
                    "success",
                )
        except Exception as e:
            logger.error(f"Bundling failed: {e}", exc_info=True)
            self.add_log_entry(f"Bundling failed: {e}", "error")
        finally:
            self._update_bundle_enabled()
