"""Lua parsing and code generation on top of luaparser.

The bundler works on text, but the mangler needs a syntax tree and the
final bundle is printed back from that tree. This module wraps
``luaparser.ast.parse`` and ``luaparser.ast.to_lua_source`` so both steps
report failures through result objects instead of raising.

Example:
    >>> processor = LuaProcessor()
    >>> result = processor.parse_source("local t = {}\\nt.x = 1", origin="<bundle>")
    >>> if result.success:
    ...     gen_result = processor.generate_code(result.ast_node)
    ...     print(gen_result.code)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import luaparser.ast
import luaparser.astnodes

from luabundle.utils.logger import get_logger
from luabundle.utils.path_utils import is_readable

MAX_FILE_SIZE_MB: int = 10

logger = get_logger("luabundle.processors.lua_processor")


@dataclass
class ParseResult:
    """Result of parsing Lua source.

    Attributes:
        ast_node: The parsed Chunk, or None if parsing failed.
        source_code: The text that was parsed.
        origin: File path or a label such as "<bundle>".
        success: Whether parsing succeeded.
        errors: Error messages encountered during parsing.
    """

    ast_node: luaparser.astnodes.Chunk | None
    source_code: str
    origin: str
    success: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class GenerateResult:
    """Result of generating Lua code from an AST.

    Attributes:
        code: Generated Lua source code.
        success: Whether code generation succeeded.
        errors: Error messages encountered during generation.
        metadata: Extra information about the generation.
    """

    code: str
    success: bool
    errors: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


class LuaProcessor:
    """Parser/printer facade used by the bundling pipeline.

    Example:
        >>> processor = LuaProcessor()
        >>> ok, message = processor.validate_syntax("return 1")
        >>> ok
        True
    """

    def __init__(self) -> None:
        self.logger = get_logger("luabundle.processors.lua_processor")

    def read_source(self, file_path: Path | str) -> tuple[str | None, str | None]:
        """Read a Lua file after existence, permission and size checks.

        Returns:
            ``(source, None)`` on success or ``(None, error_message)``.
        """
        path = Path(file_path)

        if not path.is_file():
            return None, f"File not found: {path}"

        if not is_readable(path):
            return None, f"File is not readable: {path}"

        try:
            file_size = path.stat().st_size
            max_size = MAX_FILE_SIZE_MB * 1024 * 1024
            if file_size > max_size:
                return None, (
                    f"File too large: {path} ({file_size / 1024 / 1024:.2f} MB). "
                    f"Maximum allowed size is {MAX_FILE_SIZE_MB} MB"
                )
            return path.read_text(encoding="utf-8"), None
        except OSError as e:
            return None, f"Failed to read file {path}: {e}"
        except ValueError as e:
            return None, f"Encoding error reading file {path}: {e}"

    def parse_source(self, source_code: str, origin: str = "<string>") -> ParseResult:
        """Parse Lua text into a Chunk.

        Args:
            source_code: Lua source text.
            origin: Label used in log and error messages.

        Returns:
            ParseResult with the tree on success, errors otherwise.
        """
        try:
            ast_node = luaparser.ast.parse(source_code)
            self.logger.debug(
                f"Parsed {origin} ({len(source_code)} characters), "
                f"root type: {type(ast_node).__name__}"
            )
            return ParseResult(
                ast_node=ast_node,
                source_code=source_code,
                origin=origin,
                success=True,
            )
        except SyntaxError as e:
            if getattr(e, "lineno", None) is not None:
                error_msg = f"Syntax error in {origin} at line {e.lineno}, column {e.offset}: {e.msg}"
            else:
                error_msg = f"Syntax error in {origin}: {e}"
            self.logger.error(error_msg)
        except Exception as e:
            error_msg = f"Failed to parse {origin}: {e}"
            self.logger.error(error_msg, exc_info=True)

        return ParseResult(
            ast_node=None,
            source_code=source_code,
            origin=origin,
            success=False,
            errors=[error_msg],
        )

    def generate_code(self, ast_node: luaparser.astnodes.Node) -> GenerateResult:
        """Print an AST back to Lua source.

        Note:
            Very deep trees can exhaust the printer's recursion; that is
            reported as a failed result.
        """
        try:
            code = luaparser.ast.to_lua_source(ast_node)
            self.logger.debug(f"Generated Lua code ({len(code)} characters)")
            return GenerateResult(
                code=code,
                success=True,
                metadata={"length": len(code)},
            )
        except RecursionError:
            error_msg = "AST is too deeply nested to generate code (RecursionError)"
            self.logger.error(error_msg)
        except Exception as e:
            error_msg = f"Unexpected error during code generation: {e}"
            self.logger.error(error_msg, exc_info=True)

        return GenerateResult(code="", success=False, errors=[error_msg])

    def validate_syntax(self, code: str) -> tuple[bool, str]:
        """Check that ``code`` parses.

        Returns:
            ``(is_valid, error_message)``; the message is empty when valid.
        """
        try:
            luaparser.ast.parse(code)
            return (True, "")
        except SyntaxError as e:
            if getattr(e, "lineno", None) is not None:
                return (False, f"Line {e.lineno}, column {e.offset}: {e.msg}")
            return (False, f"Syntax error: {e}")
        except Exception as e:
            return (False, f"Unexpected error validating syntax: {e}")
