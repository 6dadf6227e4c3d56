"""Deterministic short-name generation and random table names.

Two kinds of names are produced here:

* Mangled property names, from :class:`IdentifierGenerator`. The sequence
  is the canonical enumeration of an alphabet: all one-character names,
  then all two-character names, and so on, lexicographic (in alphabet
  order) within each length. Lua keywords are skipped because the names
  end up after ``.`` and ``:`` where a keyword would not parse.
* The name of the runtime module table, from :func:`make_table_name`. It is
  random so it does not collide with user identifiers; the random source is
  passed in so builds can be made reproducible.

Example:
    >>> gen = IdentifierGenerator.for_scheme("lowercase")
    >>> [gen.next() for _ in range(3)]
    ['a', 'b', 'c']
    >>> make_table_name(random.Random(7), length=8)  # doctest: +SKIP
    '__MODULES_qT3_a9Zk'
"""

from __future__ import annotations

import random
import string
from typing import Iterable, Protocol, Sequence

# Lua 5.1-5.4 reserved words, never valid as `a.<name>`
LUA_KEYWORDS = frozenset({
    "and", "break", "do", "else", "elseif", "end", "false", "for", "function",
    "goto", "if", "in", "local", "nil", "not", "or", "repeat", "return", "then",
    "true", "until", "while",
})

COMPACT_FIRST_ALPHABET = string.ascii_lowercase + string.ascii_uppercase
COMPACT_ALPHABET = COMPACT_FIRST_ALPHABET + string.digits + "_"
LOWERCASE_ALPHABET = string.ascii_lowercase

NAMING_SCHEMES: dict[str, tuple[str, str]] = {
    # scheme -> (first character alphabet, alphabet for the remaining characters)
    "compact": (COMPACT_FIRST_ALPHABET, COMPACT_ALPHABET),
    "lowercase": (LOWERCASE_ALPHABET, LOWERCASE_ALPHABET),
}

TABLE_NAME_FIRST_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + "_"
TABLE_NAME_ALPHABET = TABLE_NAME_FIRST_ALPHABET + string.digits
DEFAULT_TABLE_PREFIX = "__MODULES_"
DEFAULT_TABLE_NAME_LENGTH = 25


class RandomSource(Protocol):
    """Anything with ``choice``; ``random.Random`` satisfies it."""

    def choice(self, seq: Sequence[str]) -> str: ...


class IdentifierGenerator:
    """Stateful generator of distinct short identifiers.

    Attributes:
        alphabet: Characters used after the first position.
        first_alphabet: Characters allowed in the first position.
        reserved: Names that are skipped when the enumeration reaches them.
        issued: Number of names handed out so far.

    Example:
        >>> gen = IdentifierGenerator("ab")
        >>> [gen.next() for _ in range(6)]
        ['a', 'b', 'aa', 'ab', 'ba', 'bb']
    """

    def __init__(
        self,
        alphabet: str,
        first_alphabet: str | None = None,
        reserved: Iterable[str] = LUA_KEYWORDS,
    ) -> None:
        if not alphabet:
            raise ValueError("alphabet must not be empty")
        if len(set(alphabet)) != len(alphabet):
            raise ValueError("alphabet must not contain duplicate characters")
        first = first_alphabet if first_alphabet is not None else alphabet
        if not first or len(set(first)) != len(first):
            raise ValueError("first_alphabet must be non-empty and free of duplicates")

        self.alphabet = alphabet
        self.first_alphabet = first
        self.reserved = frozenset(reserved)
        self.issued = 0
        self._index = 0

    @classmethod
    def for_scheme(
        cls,
        scheme: str,
        reserved: Iterable[str] = LUA_KEYWORDS,
    ) -> IdentifierGenerator:
        """Build a generator for one of :data:`NAMING_SCHEMES`."""
        try:
            first, rest = NAMING_SCHEMES[scheme]
        except KeyError:
            raise ValueError(
                f"Unknown naming scheme: {scheme}. Expected one of {sorted(NAMING_SCHEMES)}"
            ) from None
        return cls(rest, first_alphabet=first, reserved=reserved)

    def name_at(self, index: int) -> str:
        """Return the ``index``-th name of the enumeration, reserved words included."""
        if index < 0:
            raise ValueError("index must be non-negative")

        length = 1
        span = len(self.first_alphabet)
        while index >= span:
            index -= span
            length += 1
            span = len(self.first_alphabet) * len(self.alphabet) ** (length - 1)

        tail = []
        base = len(self.alphabet)
        for _ in range(length - 1):
            index, remainder = divmod(index, base)
            tail.append(self.alphabet[remainder])
        return self.first_alphabet[index] + "".join(reversed(tail))

    def next(self) -> str:
        """Return the next unused, non-reserved name."""
        while True:
            name = self.name_at(self._index)
            self._index += 1
            if name not in self.reserved:
                self.issued += 1
                return name

    def __iter__(self):
        return self

    def __next__(self) -> str:
        return self.next()


def make_table_name(
    random_source: RandomSource | None = None,
    prefix: str = DEFAULT_TABLE_PREFIX,
    length: int = DEFAULT_TABLE_NAME_LENGTH,
) -> str:
    """Generate the runtime module table identifier.

    Args:
        random_source: Source of randomness. A fresh ``random.Random()`` is
            used when omitted, so repeated builds differ unless one is given.
        prefix: Literal prefix placed before the random part.
        length: Number of random characters; the first is never a digit.

    Returns:
        A valid Lua identifier such as ``__MODULES_Qa8_x...``.

    Raises:
        ValueError: If ``length`` is not positive.
    """
    if length <= 0:
        raise ValueError("Table name length must be a positive integer")

    rng = random_source if random_source is not None else random.Random()
    chars = [rng.choice(TABLE_NAME_FIRST_ALPHABET)]
    chars.extend(rng.choice(TABLE_NAME_ALPHABET) for _ in range(length - 1))
    return prefix + "".join(chars)
