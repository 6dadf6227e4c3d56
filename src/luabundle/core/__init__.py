"""Core bundling components.

Classes:
    PathResolver: Maps require references to source files
    IdentifierGenerator: Deterministic short-name enumeration
    ModuleGraph: Modules, slots and require edges of one bundling run
    ModuleBundler: Recursive text-level inlining of required modules
    BundleConfig: Configuration data model with JSON load/save
    MangleMode: Property mangling mode
    BundleOrchestrator: End-to-end pipeline for one entry file
    OutputWriter: Atomic output writing
"""

from luabundle.core.bundler import REQUIRE_PATTERN, ModuleBundler, apply_defines
from luabundle.core.config import BundleConfig, MangleMode
from luabundle.core.identifiers import IdentifierGenerator, make_table_name
from luabundle.core.module_graph import ModuleEdge, ModuleGraph, ModuleNode, ModuleState
from luabundle.core.orchestrator import BundleOrchestrator, BundleResult, JobState
from luabundle.core.output_writer import OutputWriter, WriteResult
from luabundle.core.path_resolver import PathResolver

__all__ = [
    "REQUIRE_PATTERN",
    "ModuleBundler",
    "apply_defines",
    "BundleConfig",
    "MangleMode",
    "IdentifierGenerator",
    "make_table_name",
    "ModuleEdge",
    "ModuleGraph",
    "ModuleNode",
    "ModuleState",
    "BundleOrchestrator",
    "BundleResult",
    "JobState",
    "OutputWriter",
    "WriteResult",
    "PathResolver",
]
