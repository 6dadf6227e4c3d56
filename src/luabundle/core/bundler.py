"""Text-level bundling of ``require``-linked Lua modules.

Every ``require "x"`` whose reference resolves to a file is replaced by a
call into a module table, ``TABLE[n]()``, and the required file is inlined
once, as the body of a loader function. References that do not resolve are
left exactly as written so the host runtime can satisfy them. Slots are
numbered per text: every new module required by one text gets its slot
before any of those modules is expanded.

The output of an entry call looks like this::

    local __MODULES_Qx... = {}
    do
        local body = function(...)
    <module text>
        end
        local state, result = 0, nil
        __MODULES_Qx...[1] = function(...)
            ...
        end
    end
    <entry text>

Loaders run their module at most once. A loader that is re-entered while its
module is still running (a circular require) returns nil instead of running
it again.
"""

from __future__ import annotations

import random
import re
from pathlib import Path

from luabundle.core.identifiers import (
    DEFAULT_TABLE_NAME_LENGTH,
    DEFAULT_TABLE_PREFIX,
    RandomSource,
    make_table_name,
)
from luabundle.core.module_graph import ModuleGraph, ModuleNode, ModuleState
from luabundle.core.path_resolver import PathResolver
from luabundle.processors.lua_processor import LuaProcessor
from luabundle.utils.logger import get_logger
from luabundle.utils.path_utils import PathLike

logger = get_logger("luabundle.core.bundler")

# require "x" | require 'x' | require [[x]] | require [==[x]==], optionally in
# parentheses. The closing parenthesis is only consumed when one was opened.
REQUIRE_PATTERN = re.compile(
    r"""(?<![\w.:])require\s*
        (?P<paren>\(\s*)?
        (?:
            (?P<quote>['"])(?P<quoted>[^\n]*?)(?P=quote)
          | \[(?P<level>=*)\[(?P<long>.*?)\](?P=level)\]
        )
        (?(paren)\s*\))""",
    re.VERBOSE | re.DOTALL,
)

# The body is defined before state/result so module code cannot see them.
MODULE_LOADER_TEMPLATE = """\
do
    local body = function(...)
{body}
    end
    local state, result = 0, nil
    {table}[{slot}] = function(...)
        if state == 2 then
            return result
        elseif state == 1 then
            return nil
        end
        state = 1
        result = body(...)
        state = 2
        return result
    end
end"""


def apply_defines(source: str, defines: dict[str, str] | None) -> str:
    """Replace each define pattern literally, in insertion order.

    Empty patterns are ignored.
    """
    if not defines:
        return source
    for pattern, replacement in defines.items():
        if not pattern:
            logger.warning("Ignoring define with an empty pattern")
            continue
        count = source.count(pattern)
        if count:
            source = source.replace(pattern, replacement)
            logger.debug(f"Define '{pattern}' replaced {count} occurrence(s)")
    return source


def reference_of(match: re.Match) -> str:
    """Extract the module reference from a ``REQUIRE_PATTERN`` match."""
    if match.group("quote") is not None:
        return match.group("quoted")
    return match.group("long")


class ModuleBundler:
    """Recursively inline required modules into a single Lua chunk.

    Attributes:
        resolver: Maps references to files.
        random_source: Source for the module table name.
        processor: Reads module files (with the same checks as the entry)
            and, when ``validate_modules`` is set, syntax-checks them.
        validate_modules: Replace modules that do not parse by an empty
            body instead of inlining them.
        table_prefix: Literal start of the module table name.
        table_name_length: Number of random characters in the table name.

    Example:
        >>> bundler = ModuleBundler(random_source=random.Random(1))
        >>> code = bundler.bundle('local u = require("util")', base_dir="game")
    """

    def __init__(
        self,
        resolver: PathResolver | None = None,
        random_source: RandomSource | None = None,
        processor: LuaProcessor | None = None,
        validate_modules: bool = False,
        table_prefix: str = DEFAULT_TABLE_PREFIX,
        table_name_length: int = DEFAULT_TABLE_NAME_LENGTH,
    ) -> None:
        self.resolver = resolver or PathResolver()
        self.random_source = random_source if random_source is not None else random.Random()
        self.processor = processor or LuaProcessor()
        self.validate_modules = validate_modules
        self.table_prefix = table_prefix
        self.table_name_length = table_name_length

    def new_graph(self) -> ModuleGraph:
        """Create an empty graph with a freshly generated table name."""
        table_name = make_table_name(
            self.random_source, prefix=self.table_prefix, length=self.table_name_length
        )
        logger.debug(f"Module table name: {table_name}")
        return ModuleGraph(table_name=table_name)

    def bundle(
        self,
        source: str,
        is_entry: bool = True,
        parent: Path | None = None,
        base_dir: PathLike | None = None,
        graph: ModuleGraph | None = None,
        defines: dict[str, str] | None = None,
    ) -> str:
        """Replace resolvable requires in ``source`` and inline their modules.

        Args:
            source: Lua text to process.
            is_entry: True for the top-level call. Only then are defines
                applied and the module table prologue prepended.
            parent: Path of the module ``source`` came from, for edges.
            base_dir: Directory references are resolved against; defaults to
                the current working directory.
            graph: Graph shared by the whole invocation. A new one is made
                for an entry call without one.
            defines: Literal pattern -> replacement pairs for the entry text.

        Returns:
            The transformed text, with the prologue when ``is_entry``.

        Raises:
            ValueError: If a non-entry call is made without a graph.
        """
        if graph is None:
            if not is_entry:
                raise ValueError("A module graph is required when bundling a non-entry module")
            graph = self.new_graph()

        base = Path(base_dir) if base_dir is not None else Path.cwd()
        text = apply_defines(source, defines) if is_entry else source
        discovered: list[ModuleNode] = []

        def replace(match: re.Match) -> str:
            reference = reference_of(match)
            line_number = text.count("\n", 0, match.start()) + 1
            resolved = self.resolver.resolve(reference, base)
            graph.add_edge(parent, reference, resolved, line_number)

            if resolved is None:
                logger.debug(f"Leaving require '{reference}' (line {line_number}) to the runtime")
                return match.group(0)

            node, created = graph.assign_slot(resolved)
            if created:
                discovered.append(node)
            return f"{graph.table_name}[{node.slot}]()"

        body = REQUIRE_PATTERN.sub(replace, text)

        # Every module first seen in this text already holds its slot, so
        # siblings are numbered before any of them is expanded.
        for node in discovered:
            self._include(node, graph)

        if not is_entry:
            return body

        logger.info(
            f"Bundled {len(graph.nodes)} module(s) into table {graph.table_name}"
        )
        return self.render_prologue(graph) + body

    def _include(self, node: ModuleNode, graph: ModuleGraph) -> None:
        if node.state is not ModuleState.UNSEEN:
            # Already bundled, or still in progress further up (a cycle)
            return

        path = node.path
        source, error = self.processor.read_source(path)
        if source is None:
            logger.warning(f"Module {path} left empty: {error}")
            node.error = error
            node.body = ""
            node.state = ModuleState.FULLY_BUNDLED
            return

        node.source = source
        node.body = source
        node.state = ModuleState.CONTENT_CACHED

        body = self.bundle(
            source,
            is_entry=False,
            parent=path,
            base_dir=path.parent,
            graph=graph,
        )

        if self.validate_modules:
            is_valid, message = self.processor.validate_syntax(body)
            if not is_valid:
                logger.warning(f"Module {path} left empty: {message}")
                node.error = message
                body = ""

        node.body = body
        node.state = ModuleState.FULLY_BUNDLED

    def render_prologue(self, graph: ModuleGraph) -> str:
        """Declare the module table and one loader per slot, in slot order."""
        parts = [f"local {graph.table_name} = {{}}"]
        for node in graph.modules_by_slot():
            parts.append(
                MODULE_LOADER_TEMPLATE.format(
                    table=graph.table_name,
                    slot=node.slot,
                    body=node.body or "",
                )
            )
        return "\n".join(parts) + "\n"
