"""Public API for Lua processors with lazy imports.

Importing this package does not import luaparser; the processor modules are
loaded on first attribute access.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORT_MAP: dict[str, tuple[str, str]] = {
    "LuaProcessor": (
        "luabundle.processors.lua_processor",
        "LuaProcessor",
    ),
    "ParseResult": (
        "luabundle.processors.lua_processor",
        "ParseResult",
    ),
    "GenerateResult": (
        "luabundle.processors.lua_processor",
        "GenerateResult",
    ),
    "minify_lua": (
        "luabundle.processors.lua_minifier",
        "minify_lua",
    ),
    "PropertyMangler": (
        "luabundle.processors.property_mangler",
        "PropertyMangler",
    ),
    "NamingPolicy": (
        "luabundle.processors.property_mangler",
        "NamingPolicy",
    ),
    "TransformResult": (
        "luabundle.processors.property_mangler",
        "TransformResult",
    ),
}

__all__ = list(_EXPORT_MAP.keys())


def __getattr__(name: str) -> Any:
    target = _EXPORT_MAP.get(name)
    if target is None:
        raise AttributeError(f"module 'luabundle.processors' has no attribute {name!r}")

    module_name, attr_name = target
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
