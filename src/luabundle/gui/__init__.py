"""
GUI package for the Lua bundler.

This package provides the PyQt6 main window used by ``luabundle-gui``.

Example:
    >>> from luabundle.gui import MainWindow
    >>> window = MainWindow()
    >>> window.show()
"""

from luabundle.gui.main_window import MainWindow

__all__ = ["MainWindow"]
