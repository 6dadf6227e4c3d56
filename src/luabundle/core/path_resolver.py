"""Resolution of ``require`` references to source files.

A reference such as ``"util"``, ``"net.http"`` or ``"lib/json.lua"`` can
name a file in several ways. :class:`PathResolver` builds a fixed, ordered
list of candidate paths and returns the first one that is a readable file.
The order matters: when two candidates exist, it decides which file a
reference binds to.

Candidate order for reference ``r`` and base directory ``b``:

1. ``r``
2. ``b/r``
3. for each extension ``e``: ``r+e``, ``b/r+e``
4. when ``r`` contains dots, with ``d`` = ``r`` with dots replaced by ``/``:
   ``d``, ``b/d``, then ``d+e``, ``b/d+e`` for each extension
5. ``b/d/init+e`` for each extension (``d`` = ``r`` when there are no dots)
6. the whole list again for ``r`` with its first character's case swapped

Example:
    >>> resolver = PathResolver()
    >>> resolver.resolve("net.http", Path("/game/src"))
    PosixPath('/game/src/net/http.lua')
"""

from __future__ import annotations

from pathlib import Path

from luabundle.utils.logger import get_logger
from luabundle.utils.path_utils import PathLike, is_readable_file

# Primary dialect first, then the alternate one
DEFAULT_EXTENSIONS: tuple[str, ...] = (".lua", ".luau")

logger = get_logger("luabundle.core.path_resolver")


def swap_first_case(reference: str) -> str:
    """Swap the case of the first character (``Util`` <-> ``util``)."""
    if not reference:
        return reference
    return reference[0].swapcase() + reference[1:]


class PathResolver:
    """Read-only probing of module reference candidates.

    Attributes:
        extensions: Extensions appended to references, in probing order.
    """

    def __init__(self, extensions: tuple[str, ...] | list[str] = DEFAULT_EXTENSIONS) -> None:
        if not extensions:
            raise ValueError("At least one module extension is required")
        self.extensions = tuple(
            ext if ext.startswith(".") else f".{ext}" for ext in extensions
        )

    def _variants(self, reference: str, base_dir: Path) -> list[Path]:
        candidates = [Path(reference), base_dir / reference]
        for ext in self.extensions:
            candidates.append(Path(reference + ext))
            candidates.append(base_dir / (reference + ext))

        dotted = reference.replace(".", "/")
        if dotted != reference:
            candidates.append(Path(dotted))
            candidates.append(base_dir / dotted)
            for ext in self.extensions:
                candidates.append(Path(dotted + ext))
                candidates.append(base_dir / (dotted + ext))

        for ext in self.extensions:
            candidates.append(base_dir / dotted / f"init{ext}")

        return candidates

    def candidates(self, reference: str, base_dir: PathLike) -> list[Path]:
        """Return every candidate path for ``reference`` in resolution order."""
        base = Path(base_dir)
        ordered = self._variants(reference, base)

        swapped = swap_first_case(reference)
        if swapped != reference:
            ordered.extend(self._variants(swapped, base))

        unique: list[Path] = []
        seen: set[Path] = set()
        for candidate in ordered:
            if candidate not in seen:
                seen.add(candidate)
                unique.append(candidate)
        return unique

    def resolve(self, reference: str, base_dir: PathLike) -> Path | None:
        """Return the first readable candidate as an absolute path, or None.

        An empty reference never resolves.
        """
        if not reference:
            return None

        for candidate in self.candidates(reference, base_dir):
            if is_readable_file(candidate):
                resolved = candidate.resolve()
                logger.debug(f"Resolved '{reference}' -> {resolved}")
                return resolved

        logger.debug(f"No file found for '{reference}' under {base_dir}")
        return None
