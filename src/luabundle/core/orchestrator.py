"""Bundling orchestrator coordinating one entry file end to end.

The orchestrator drives a single run through these phases:

1. **Validation** (VALIDATING): check the configuration and read the entry.
2. **Bundling** (BUNDLING): inline required modules into one chunk.
3. **Parsing** (PARSING): parse the chunk. A bundle that does not parse
   fails the run whatever the mangling mode.
4. **Mangling** (MANGLING): rename property names in the tree. Skipped when
   mangling is off.
5. **Generating** (GENERATING): print the tree back and, unless disabled,
   minify it.
6. **Writing** (WRITING): write the result atomically.
7. **Completion** (COMPLETED/FAILED).

State Transitions::

    PENDING -> VALIDATING -> BUNDLING -> PARSING -> [MANGLING] -> GENERATING -> WRITING -> COMPLETED
                  |             |           |            |              |            |
                  v             v           v            v              v            v
                FAILED       FAILED      FAILED       FAILED         FAILED       FAILED

Example:
    >>> config = BundleConfig(mangle_mode=MangleMode.MANUAL, random_seed=42)
    >>> orchestrator = BundleOrchestrator(config)
    >>> result = orchestrator.bundle_file(Path("game/main.lua"))
    >>> if result.success:
    ...     print(f"Wrote {result.output_path} ({result.metadata['module_count']} modules)")
    ... else:
    ...     print(result.errors)
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from luaparser.astnodes import Chunk

from luabundle.core.bundler import ModuleBundler
from luabundle.core.config import BundleConfig, MangleMode
from luabundle.core.module_graph import ModuleGraph
from luabundle.core.output_writer import OutputWriter
from luabundle.core.path_resolver import PathResolver
from luabundle.processors.lua_minifier import minify_lua
from luabundle.processors.lua_processor import LuaProcessor
from luabundle.processors.property_mangler import NamingPolicy, PropertyMangler
from luabundle.utils.logger import get_logger
from luabundle.utils.path_utils import PathLike, derive_output_path

logger = get_logger("luabundle.core.orchestrator")


class JobState(Enum):
    """Phase of a bundling run.

    States:
        PENDING: Created, not started
        VALIDATING: Checking configuration and reading the entry file
        BUNDLING: Following requires and inlining modules
        PARSING: Parsing the bundled chunk
        MANGLING: Renaming property names in the tree
        GENERATING: Printing (and minifying) the bundle
        WRITING: Writing the output file
        COMPLETED: Finished successfully
        FAILED: Stopped on an error
    """
    PENDING = "pending"
    VALIDATING = "validating"
    BUNDLING = "bundling"
    PARSING = "parsing"
    MANGLING = "mangling"
    GENERATING = "generating"
    WRITING = "writing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BundleResult:
    """Result of a bundling run.

    Attributes:
        success: Whether the run succeeded
        current_state: Last state reached
        output_path: File written, or None when nothing was written
        code: The final bundled text (empty on failure)
        graph: Module graph built during bundling
        errors: Fatal error messages
        warnings: Non-fatal problems such as modules left empty
        metadata: Counters and timings for reporting
    """
    success: bool
    current_state: JobState = field(default=JobState.PENDING)
    output_path: Path | None = None
    code: str = ""
    graph: ModuleGraph | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[JobState, str], None]


class BundleOrchestrator:
    """Run the bundle -> parse -> mangle -> generate -> write pipeline for one entry file.

    Every call to :meth:`bundle_file` or :meth:`bundle_source` builds a new
    bundler, graph and mangler, so runs never share state.
    """

    def __init__(
        self,
        config: BundleConfig | None = None,
        processor: LuaProcessor | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self.config = config or BundleConfig()
        self.processor = processor or LuaProcessor()
        self.writer = writer or OutputWriter()
        self._logger = logger
        self._current_state = JobState.PENDING
        self._progress_callback: ProgressCallback | None = None

    def _transition_state(self, new_state: JobState, result: BundleResult, message: str = "") -> None:
        old_state = self._current_state
        self._current_state = new_state
        result.current_state = new_state
        self._logger.debug(f"State transition: {old_state.name} -> {new_state.name}")
        if self._progress_callback is not None:
            self._progress_callback(new_state, message or new_state.value)

    def _fail(self, result: BundleResult, message: str) -> BundleResult:
        self._logger.error(message)
        result.errors.append(message)
        result.success = False
        result.code = ""
        self._transition_state(JobState.FAILED, result, message)
        return result

    def create_bundler(self) -> ModuleBundler:
        """Build a bundler from the current configuration."""
        config = self.config
        return ModuleBundler(
            resolver=PathResolver(config.extensions),
            random_source=random.Random(config.random_seed),
            processor=self.processor,
            validate_modules=config.validate_modules,
            table_prefix=config.table_name_prefix,
            table_name_length=config.table_name_length,
        )

    def create_mangler(self) -> PropertyMangler:
        config = self.config
        return PropertyMangler(
            NamingPolicy(
                marker=config.marker,
                sentinel=config.sentinel,
                protect_sentinel=config.protect_sentinel,
                scheme=config.naming_scheme,
            )
        )

    def bundle_source(
        self,
        source: str,
        base_dir: PathLike | None = None,
        origin: Path | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> BundleResult:
        """Bundle, parse and regenerate entry text without writing it.

        Args:
            source: Text of the entry module.
            base_dir: Directory its requires are resolved against.
            origin: Path of the entry file, recorded as the parent of its edges.
            progress_callback: Called with each new state and a message.

        Returns:
            BundleResult with ``code`` set on success.
        """
        self._progress_callback = progress_callback
        result = BundleResult(success=False)
        start_time = time.time()

        self._transition_state(JobState.VALIDATING, result)
        try:
            self.config.validate()
        except ValueError as e:
            return self._fail(result, f"Invalid configuration: {e}")

        result = self._run(source, base_dir, origin, result, start_time)
        if result.success:
            self._transition_state(JobState.COMPLETED, result, "Bundling complete")
        return result

    def bundle_file(
        self,
        entry: PathLike,
        output: PathLike | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> BundleResult:
        """Bundle ``entry`` and write the result.

        Args:
            entry: Entry module path.
            output: Output path. Defaults to the entry path with ``.lua``
                replaced by ``.min.lua``.
            progress_callback: Called with each new state and a message.

        Returns:
            BundleResult; on failure nothing is written.
        """
        self._progress_callback = progress_callback
        result = BundleResult(success=False)
        start_time = time.time()
        entry_path = Path(entry)
        output_path = Path(output) if output is not None else derive_output_path(entry_path)

        self._transition_state(JobState.VALIDATING, result, f"Reading {entry_path.name}")
        try:
            self.config.validate()
        except ValueError as e:
            return self._fail(result, f"Invalid configuration: {e}")

        source, error = self.processor.read_source(entry_path)
        if source is None:
            return self._fail(result, f"Cannot read entry file: {error}")

        entry_path = entry_path.resolve()
        result = self._run(source, entry_path.parent, entry_path, result, start_time)
        if not result.success:
            return result

        self._transition_state(JobState.WRITING, result, f"Writing {output_path.name}")
        write_result = self.writer.write_file(output_path, result.code)
        if not write_result.success:
            return self._fail(result, f"Cannot write output: {write_result.error}")

        result.output_path = write_result.output_path
        result.metadata["output_path"] = str(write_result.output_path)
        result.metadata["total_time_seconds"] = time.time() - start_time
        self._transition_state(JobState.COMPLETED, result, f"Bundled into {output_path}")
        return result

    def _run(
        self,
        source: str,
        base_dir: PathLike | None,
        origin: Path | None,
        result: BundleResult,
        start_time: float,
    ) -> BundleResult:
        config = self.config

        self._transition_state(JobState.BUNDLING, result, "Resolving modules")
        bundler = self.create_bundler()
        graph = bundler.new_graph()
        result.graph = graph
        try:
            code = bundler.bundle(
                source,
                is_entry=True,
                parent=origin,
                base_dir=base_dir,
                graph=graph,
                defines=config.defines,
            )
        except RecursionError:
            return self._fail(result, "Require chain is too deep to bundle (RecursionError)")
        except Exception as e:
            self._logger.error(f"Bundling failed: {e}", exc_info=True)
            return self._fail(result, f"Bundling failed: {e}")

        for node in graph.modules_by_slot():
            if node.error is not None:
                result.warnings.append(f"Module {node.path} was left empty: {node.error}")
        cycles = graph.detect_cycles()

        result.metadata.update({
            "table_name": graph.table_name,
            "module_count": len(graph.nodes),
            "unresolved_count": len(graph.unresolved_references()),
            "cycle_count": len(cycles),
            "mangle_mode": config.mangle_mode.value,
            "minified": config.minify,
        })

        self._transition_state(JobState.PARSING, result, "Parsing bundled code")
        parse_result = self.processor.parse_source(code, origin="<bundle>")
        if not parse_result.success:
            return self._fail(result, "Bundled code does not parse: " + "; ".join(parse_result.errors))
        tree = parse_result.ast_node

        if config.mangle_mode is not MangleMode.DISABLED:
            self._transition_state(JobState.MANGLING, result, "Mangling property names")
            tree = self._mangle(tree, result)
            if tree is None:
                return result

        self._transition_state(JobState.GENERATING, result, "Generating code")
        gen_result = self.processor.generate_code(tree)
        if not gen_result.success:
            return self._fail(result, "; ".join(gen_result.errors))
        code = gen_result.code
        if config.minify:
            code = minify_lua(code)
            self._logger.info(f"Minified bundle from {len(gen_result.code)} to {len(code)} characters")

        result.code = code
        result.success = True
        result.metadata["output_size"] = len(code)
        result.metadata["elapsed_seconds"] = time.time() - start_time
        return result

    def _mangle(self, tree: Chunk, result: BundleResult) -> Chunk | None:
        mangler = self.create_mangler()
        transform = mangler.transform(
            tree,
            auto_mode=self.config.mangle_mode is MangleMode.AUTO,
        )
        if not transform.success:
            self._fail(result, "; ".join(transform.errors))
            return None

        result.metadata.update({
            "mangled_names": len(mangler.name_map),
            "transformation_count": transform.transformation_count,
            "nodes_visited": mangler.visit_count,
        })
        self._logger.info(
            f"Mangled {len(mangler.name_map)} distinct property names "
            f"({transform.transformation_count} occurrences)"
        )
        return transform.ast_node
