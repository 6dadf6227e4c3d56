"""Comment and whitespace stripping for generated Lua code.

The printer lays the bundle out one statement per line, indented, and keeps
the comments it found in the sources. :func:`minify_lua` removes every
comment and all whitespace between tokens, then puts a single space back
only where two tokens would otherwise merge into a different token:

* two word-like tokens (names, keywords, numbers): ``local x``
* ``-`` followed by ``-``, which would open a comment
* ``[`` followed by ``[`` or ``=``, which would open a long string
* a dot after a number or another dot: ``1 ..x``, ``a.. .5``

String literals, long strings included, are copied unchanged.

Example:
    >>> minify_lua("local x = 1 -- counter\\nprint( x .. 'a' )\\n")
    "local x=1 print(x..'a')"
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from luabundle.utils.logger import get_logger

logger = get_logger("luabundle.processors.lua_minifier")

# Alternatives are tried in order, so comments win over the minus operator,
# long strings over "[" and "..." over "..". The final "." catches any other
# single character.
TOKEN_PATTERN = re.compile(
    r"""
      (?P<long_comment>--\[(?P<comment_level>=*)\[.*?\](?P=comment_level)\])
    | (?P<comment>--[^\n]*)
    | (?P<long_string>\[(?P<string_level>=*)\[.*?\](?P=string_level)\])
    | (?P<string>"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*')
    | (?P<space>\s+)
    | (?P<number>
          0[xX][0-9A-Fa-f]*(?:\.[0-9A-Fa-f]*)?(?:[pP][+-]?\d+)?
        | (?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?
      )
    | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<op>\.\.\.|\.\.|==|~=|<=|>=|<<|>>|//|::|.)
    """,
    re.VERBOSE | re.DOTALL,
)

DROPPED_KINDS = frozenset({"long_comment", "comment", "space"})


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def tokenize(source: str) -> Iterator[tuple[str, str]]:
    """Yield ``(kind, text)`` for every token of ``source``, comments and whitespace included."""
    for match in TOKEN_PATTERN.finditer(source):
        yield match.lastgroup, match.group(0)


def needs_space(prev_kind: str, prev: str, kind: str, text: str) -> bool:
    """Whether ``prev`` and ``text`` must stay apart to lex the same way."""
    last, first = prev[-1], text[0]
    if _is_word_char(last) and _is_word_char(first):
        return True
    if last == "-" and first == "-":
        return True
    if last == "[" and first in "[=":
        return True
    if first == "." and (last == "." or prev_kind == "number"):
        return True
    return False


def minify_lua(source: str) -> str:
    """Strip comments and collapse whitespace in ``source``.

    The result is a single line. Token order and every literal are kept.
    """
    pieces: list[str] = []
    prev_kind = ""
    prev = ""
    for kind, text in tokenize(source):
        if kind in DROPPED_KINDS:
            continue
        if prev and needs_space(prev_kind, prev, kind, text):
            pieces.append(" ")
        pieces.append(text)
        prev_kind, prev = kind, text

    minified = "".join(pieces)
    logger.debug(f"Minified {len(source)} -> {len(minified)} characters")
    return minified
