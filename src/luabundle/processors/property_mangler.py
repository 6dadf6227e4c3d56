"""Table property name mangling for Lua syntax trees.

Only names in property position are renamed:

* member access ``a.name`` and method calls/definitions ``a:name``
* identifier keys in table constructors ``{ name = v }``
* quoted string keys ``a["name"]`` and ``{ ["name"] = v }``

Local and global variable names are never touched.

Which names qualify is decided by :class:`NamingPolicy`:

* names starting with the sentinel (``__index``, ``__call`` ...) are kept
  when sentinel protection is on;
* in manual mode only names starting with the marker (``_secret``) are
  mangled;
* in auto mode every name is mangled except marker-prefixed ones, which
  lose their marker instead (``_keep`` becomes ``keep``).

The walk is structural rather than syntax-directed: every public attribute
holding a node or a list of nodes is followed, whatever the node kind. The
tree may share or even cycle back to nodes, so each node is entered at most
once, tracked by identity.

Example:
    >>> from luaparser import ast
    >>> tree = ast.parse("local t = {}\\nt._hidden = 1")
    >>> mangler = PropertyMangler()
    >>> mangler.mangle(tree, auto_mode=False) is tree
    True
    >>> mangler.name_map
    {'_hidden': 'a'}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from luaparser import astnodes as lua_nodes

from luabundle.core.identifiers import LUA_KEYWORDS, NAMING_SCHEMES, IdentifierGenerator
from luabundle.utils.logger import get_logger

logger = get_logger("luabundle.processors.property_mangler")

QUOTE_CHARS = ("'", '"')


@dataclass
class TransformResult:
    """Outcome of a mangling pass.

    Attributes:
        ast_node: The mutated tree, or None if the pass failed.
        success: Whether the pass completed.
        transformation_count: Number of names actually rewritten.
        errors: Error messages collected during the pass.
    """

    ast_node: Any
    success: bool
    transformation_count: int
    errors: list[str] = field(default_factory=list)


@dataclass
class NamingPolicy:
    """Rules deciding which property names are mangled.

    Attributes:
        marker: Prefix that opts a name in (manual mode) or out (auto mode).
        sentinel: Prefix of names that are never mangled when protected.
        protect_sentinel: Whether sentinel-prefixed names are kept as is.
        scheme: Alphabet for generated names, a key of ``NAMING_SCHEMES``.
    """

    marker: str = "_"
    sentinel: str = "__"
    protect_sentinel: bool = True
    scheme: str = "compact"

    def __post_init__(self) -> None:
        if not self.marker:
            raise ValueError("marker must be a non-empty string")
        if self.scheme not in NAMING_SCHEMES:
            raise ValueError(
                f"Invalid naming scheme: {self.scheme}. Expected one of {sorted(NAMING_SCHEMES)}"
            )

    def new_generator(self, reserved: Iterable[str] = ()) -> IdentifierGenerator:
        """Generator for this scheme that skips Lua keywords and ``reserved``."""
        return IdentifierGenerator.for_scheme(self.scheme, reserved=LUA_KEYWORDS | set(reserved))

    def is_protected(self, name: str) -> bool:
        return self.protect_sentinel and bool(self.sentinel) and name.startswith(self.sentinel)

    def unwrap(self, name: str) -> str:
        """Strip the marker, keeping the name when the result would not be usable."""
        stripped = name[len(self.marker):]
        if not stripped or stripped in LUA_KEYWORDS or not stripped.isidentifier():
            return name
        return stripped


class PropertyMangler:
    """Rewrite property names in a Lua AST in place.

    A fresh name map, visited set and generator are created on every call
    to :meth:`mangle`, so two passes never share names.

    Attributes:
        policy: The naming policy.
        name_map: Original -> mangled names from the last pass.
        visit_count: Nodes entered during the last pass.
        transformation_count: Names rewritten during the last pass.
    """

    def __init__(self, policy: NamingPolicy | None = None) -> None:
        self.policy = policy or NamingPolicy()
        self.name_map: dict[str, str] = {}
        self.visit_count = 0
        self.transformation_count = 0
        self._auto_mode = False
        self._generator: IdentifierGenerator | None = None
        self._visited: set[int] = set()
        self._rewritten: set[int] = set()

    # ------------------------------------------------------------------
    # Naming policy
    # ------------------------------------------------------------------

    def kept_form(self, original: str) -> str | None:
        """Return what ``original`` becomes when it is not mangled, else None."""
        policy = self.policy
        if policy.is_protected(original):
            return original

        has_marker = original.startswith(policy.marker)
        if not self._auto_mode and not has_marker:
            return original
        if self._auto_mode and has_marker:
            return policy.unwrap(original)
        return None

    def mangled_name(self, original: str) -> str:
        """Apply the naming policy to one name, recording new mappings."""
        kept = self.kept_form(original)
        if kept is not None:
            return kept

        mangled = self.name_map.get(original)
        if mangled is None:
            if self._generator is None:
                self._generator = self.policy.new_generator()
            mangled = self._generator.next()
            self.name_map[original] = mangled
            logger.debug(f"Mapped property '{original}' -> '{mangled}'")
        return mangled

    # ------------------------------------------------------------------
    # Node handlers
    # ------------------------------------------------------------------

    def _rename(self, name_node: Any) -> None:
        if not isinstance(name_node, lua_nodes.Name) or id(name_node) in self._rewritten:
            return
        self._rewritten.add(id(name_node))
        new_name = self.mangled_name(name_node.id)
        if new_name != name_node.id:
            name_node.id = new_name
            self.transformation_count += 1

    def _rewrite_string_key(self, string_node: Any) -> None:
        if id(string_node) in self._rewritten:
            return
        quoted = _split_quoted(string_node)
        if quoted is None:
            return
        quote, inner = quoted

        self._rewritten.add(id(string_node))
        self._visited.add(id(string_node))

        new_inner = self.mangled_name(inner)
        if new_inner == inner:
            return
        raw = getattr(string_node, "raw", None)
        if isinstance(raw, str) and len(raw) >= 2 and raw[0] == quote and raw[-1] == quote:
            string_node.raw = f"{quote}{new_inner}{quote}"
        else:
            string_node.raw = new_inner
        string_node.s = new_inner.encode("utf-8") if isinstance(string_node.s, bytes) else new_inner
        self.transformation_count += 1

    def _property_keys(self, node: Any) -> list[Any]:
        """Name and String nodes of ``node`` that sit in property position."""
        if isinstance(node, lua_nodes.Index):
            if isinstance(node.idx, lua_nodes.String):
                return [node.idx]
            if getattr(node, "notation", None) == lua_nodes.IndexNotation.DOT:
                return [node.idx]
        elif isinstance(node, lua_nodes.Invoke):
            return [node.func]
        elif isinstance(node, lua_nodes.Method):
            return [node.name]
        elif isinstance(node, lua_nodes.Table):
            keys = []
            for entry in node.fields or []:
                key = getattr(entry, "key", None)
                if isinstance(key, lua_nodes.String):
                    keys.append(key)
                elif isinstance(key, lua_nodes.Name) and not getattr(entry, "between_brackets", False):
                    keys.append(key)
            return keys
        return []

    def _dispatch(self, node: Any) -> None:
        for key in self._property_keys(node):
            if isinstance(key, lua_nodes.String):
                self._rewrite_string_key(key)
            else:
                self._rename(key)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _children(self, node: Any) -> list[Any]:
        children: list[Any] = []
        for attr_name in dir(node):
            if attr_name.startswith('_'):
                continue
            attr = getattr(node, attr_name, None)
            if isinstance(attr, lua_nodes.Node):
                children.append(attr)
            elif isinstance(attr, (list, tuple)):
                children.extend(item for item in attr if isinstance(item, lua_nodes.Node))
        return children

    def _kept_names(self, root: Any) -> set[str]:
        """Collect the final form of every property name that is not mangled."""
        kept: set[str] = set()
        seen: set[int] = set()
        stack = [root]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            for key in self._property_keys(node):
                name = _key_text(key)
                if name is None:
                    continue
                final = self.kept_form(name)
                if final is not None:
                    kept.add(final)
            stack.extend(self._children(node))
        return kept

    def _traverse(self, root: Any) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            if id(node) in self._visited:
                continue
            self._visited.add(id(node))
            self.visit_count += 1

            self._dispatch(node)

            # reversed so the first attribute is walked first
            stack.extend(reversed(self._children(node)))

    def mangle(self, tree: Any, auto_mode: bool = False) -> Any:
        """Mangle property names in ``tree`` and return the same tree.

        Every name that stays as written (or only loses its marker) is
        reserved first, so no generated name can equal a kept one.

        Args:
            tree: Root node (usually a Chunk) from ``luaparser.ast.parse``.
            auto_mode: Mangle everything not marker-prefixed instead of
                only marker-prefixed names.
        """
        self._auto_mode = auto_mode
        self._visited = set()
        self._rewritten = set()
        self.name_map = {}
        self.visit_count = 0
        self.transformation_count = 0

        try:
            kept = self._kept_names(tree)
            self._generator = self.policy.new_generator(reserved=kept)
            self._traverse(tree)
        finally:
            self._visited = set()
            self._rewritten = set()

        logger.debug(
            f"Mangled {self.transformation_count} property names "
            f"({len(self.name_map)} distinct, {len(kept)} kept, {self.visit_count} nodes visited, "
            f"auto_mode={auto_mode})"
        )
        return tree

    def transform(self, tree: Any, auto_mode: bool = False) -> TransformResult:
        """Run :meth:`mangle` and capture failures in a TransformResult."""
        try:
            self.mangle(tree, auto_mode)
            return TransformResult(
                ast_node=tree,
                success=True,
                transformation_count=self.transformation_count,
            )
        except Exception as e:
            error_msg = f"Property mangling failed: {e.__class__.__name__}: {e}"
            logger.error(error_msg, exc_info=True)
            return TransformResult(
                ast_node=None,
                success=False,
                transformation_count=self.transformation_count,
                errors=[error_msg],
            )


def _split_quoted(string_node: Any) -> tuple[str, str] | None:
    """Return ``(quote, key text)`` for a quoted string node, else None.

    Long-bracket strings (``[[...]]``) are not treated as keys.
    """
    delimiter = getattr(string_node, "delimiter", None)
    if delimiter is None:
        raw = getattr(string_node, "raw", None)
        if isinstance(raw, str) and len(raw) >= 2 and raw[0] in QUOTE_CHARS and raw[-1] == raw[0]:
            return raw[0], raw[1:-1]
        return None

    if delimiter == lua_nodes.StringDelimiter.SINGLE_QUOTE:
        quote = "'"
    elif delimiter == lua_nodes.StringDelimiter.DOUBLE_QUOTE:
        quote = '"'
    else:
        return None

    value = string_node.s
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return quote, value or ""


def _key_text(key: Any) -> str | None:
    if isinstance(key, lua_nodes.Name):
        return key.id
    quoted = _split_quoted(key)
    return quoted[1] if quoted is not None else None
