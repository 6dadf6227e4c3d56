"""Bundle multi-file Lua programs into a single file.

Subpackages:
    core: module resolution, bundling, configuration and the pipeline
    processors: luaparser wrapper and property name mangling
    utils: logging and path helpers
    gui: PyQt6 desktop front-end
"""

__version__ = "1.0.0"
