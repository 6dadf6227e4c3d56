"""Module graph shared across one bundling invocation.

The graph records every module discovered while following ``require``
references: its resolved path, the slot it occupies in the runtime module
table, its raw and transformed text, and how far processing has come.
Require edges are kept for diagnostics only; slot order is discovery order
and cycles are tolerated rather than rejected.

Example:
    >>> graph = ModuleGraph(table_name="__MODULES_x")
    >>> node, created = graph.assign_slot(Path("/game/util.lua"))
    >>> node.slot, created
    (1, True)
    >>> graph.assign_slot(Path("/game/util.lua"))[0].slot
    1
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from luabundle.utils.logger import get_logger

logger = get_logger("luabundle.core.module_graph")


class ModuleState(Enum):
    """Processing state of a discovered module.

    States:
        UNSEEN: Slot assigned, file not read yet.
        CONTENT_CACHED: Raw text cached; the module's own requires are being
            processed. Meeting the module again in this state means a cycle.
        FULLY_BUNDLED: Body holds the transformed text (or nothing, if the
            module could not be read).
    """
    UNSEEN = "unseen"
    CONTENT_CACHED = "content_cached"
    FULLY_BUNDLED = "fully_bundled"


@dataclass
class ModuleNode:
    """A single module in the graph.

    Attributes:
        path: Absolute path of the module's source file.
        slot: Index in the runtime module table, starting at 1.
        state: Processing state.
        source: Raw text as read from disk.
        body: Text spliced into the bundle; transformed once processing ends.
        error: Reason the module was left empty, if it was.
    """
    path: Path
    slot: int
    state: ModuleState = ModuleState.UNSEEN
    source: str = ""
    body: str | None = None
    error: str | None = None

    def __hash__(self) -> int:
        return hash(self.path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModuleNode):
            return NotImplemented
        return self.path == other.path


@dataclass
class ModuleEdge:
    """One ``require`` occurrence.

    Attributes:
        parent: Requiring module, or None for the entry text.
        reference: The string exactly as written inside ``require``.
        resolved: Path it resolved to, or None when it passes through.
        line_number: 1-based line of the ``require`` in the parent text.
    """
    parent: Path | None
    reference: str
    resolved: Path | None
    line_number: int = 0


@dataclass
class ModuleGraph:
    """Nodes, slots and edges for one top-level bundle.

    Attributes:
        table_name: Identifier of the runtime module table.
        nodes: Resolved path -> node, in discovery order.
        edges: Every require occurrence seen, resolved or not.
        next_slot: Slot the next new module will receive.
    """
    table_name: str
    nodes: dict[Path, ModuleNode] = field(default_factory=dict)
    edges: list[ModuleEdge] = field(default_factory=list)
    next_slot: int = 1

    def assign_slot(self, path: Path) -> tuple[ModuleNode, bool]:
        """Return the node for ``path``, creating it with the next slot if new.

        Returns:
            ``(node, created)``; ``created`` is False when the path already
            had a slot, in which case the counter is left untouched.
        """
        node = self.nodes.get(path)
        if node is not None:
            return node, False

        node = ModuleNode(path=path, slot=self.next_slot)
        self.nodes[path] = node
        self.next_slot += 1
        logger.debug(f"Assigned slot {node.slot} to {path}")
        return node, True

    def add_edge(
        self,
        parent: Path | None,
        reference: str,
        resolved: Path | None,
        line_number: int = 0,
    ) -> ModuleEdge:
        edge = ModuleEdge(parent, reference, resolved, line_number)
        self.edges.append(edge)
        return edge

    def get_node(self, path: Path) -> ModuleNode | None:
        return self.nodes.get(path)

    def slot_of(self, path: Path) -> int | None:
        node = self.nodes.get(path)
        return node.slot if node is not None else None

    def modules_by_slot(self) -> list[ModuleNode]:
        """All nodes in ascending slot order."""
        return sorted(self.nodes.values(), key=lambda n: n.slot)

    def get_dependencies(self, path: Path | None) -> list[Path]:
        """Distinct resolved modules required directly by ``path``."""
        deps: list[Path] = []
        for edge in self.edges:
            if edge.parent == path and edge.resolved is not None and edge.resolved not in deps:
                deps.append(edge.resolved)
        return deps

    def unresolved_references(self) -> list[ModuleEdge]:
        """Edges left for the host runtime's own ``require``."""
        return [edge for edge in self.edges if edge.resolved is None]

    def detect_cycles(self) -> list[list[Path]]:
        """Find require cycles, for reporting only.

        Uses depth-first search with color marking. Each cycle is returned
        as a path list that starts and ends with the same module.
        """
        # 0 = unvisited, 1 = in progress, 2 = done
        color: dict[Path, int] = {path: 0 for path in self.nodes}
        cycles: list[list[Path]] = []

        def dfs(node: Path, trail: list[Path]) -> None:
            color[node] = 1
            for neighbor in self.get_dependencies(node):
                if neighbor not in color:
                    continue
                if color[neighbor] == 0:
                    dfs(neighbor, trail + [neighbor])
                elif color[neighbor] == 1 and neighbor in trail:
                    cycles.append(trail[trail.index(neighbor):] + [neighbor])
            color[node] = 2

        for path in self.nodes:
            if color[path] == 0:
                dfs(path, [path])

        for cycle in cycles:
            logger.info(
                "Circular require: " + " -> ".join(p.name for p in cycle)
            )
        return cycles

    def to_dict(self) -> dict[str, Any]:
        """Serialize the graph for debugging/logging."""
        return {
            "table_name": self.table_name,
            "modules": {
                str(node.path): {
                    "slot": node.slot,
                    "state": node.state.value,
                    "error": node.error,
                }
                for node in self.modules_by_slot()
            },
            "edges": [
                {
                    "parent": str(edge.parent) if edge.parent else None,
                    "reference": edge.reference,
                    "resolved": str(edge.resolved) if edge.resolved else None,
                    "line_number": edge.line_number,
                }
                for edge in self.edges
            ],
            "module_count": len(self.nodes),
            "edge_count": len(self.edges),
        }
