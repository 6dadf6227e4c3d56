"""Tests for comment and whitespace stripping."""

from __future__ import annotations

import pytest

from luabundle.processors.lua_minifier import minify_lua, needs_space, tokenize
from luabundle.processors.lua_processor import LuaProcessor


class TestTokenize:
    """Token kinds reported by the scanner."""

    def test_kinds(self):
        kinds = [kind for kind, _ in tokenize("local x = 0x1F -- note\n")]
        assert kinds == ["name", "space", "name", "space", "op", "space", "number", "space", "comment", "space"]

    def test_long_comment_before_minus(self):
        tokens = list(tokenize("a --[==[ x ]] y ]==] - b"))
        assert ("long_comment", "--[==[ x ]] y ]==]") in tokens
        assert ("op", "-") in tokens

    def test_operators_longest_first(self):
        ops = [text for kind, text in tokenize("a...b..c.d==e~=f//g") if kind == "op"]
        assert ops == ["...", "..", ".", "==", "~=", "//"]


class TestComments:
    """Every comment form is removed."""

    def test_line_comment(self):
        assert minify_lua("local x = 1 -- one\nlocal y = 2\n") == "local x=1 local y=2"

    def test_long_comment(self):
        assert minify_lua("print(1) --[[ many\nlines ]] print(2)") == "print(1)print(2)"

    def test_leveled_long_comment(self):
        assert minify_lua("--[=[ a ]] b ]=]\nreturn 1") == "return 1"

    def test_comment_only(self):
        assert minify_lua("-- nothing here\n") == ""


class TestStrings:
    """Literals are copied unchanged."""

    @pytest.mark.parametrize(
        "literal",
        [
            "'-- not a comment'",
            '"a  b"',
            r"'it\'s'",
            r'"tab\t  \"quoted\""',
            "[[ keep   --[[ this ]]",
            "[==[ a ]] b ]==]",
        ],
    )
    def test_literal_survives(self, literal):
        assert minify_lua(f"local s = {literal}\n") == f"local s={literal}"

    def test_escaped_newline_in_string(self):
        assert minify_lua('local s = "a\\\n b"\n') == 'local s="a\\\n b"'


class TestSpacing:
    """A space is kept only where tokens would merge."""

    def test_words_stay_apart(self):
        assert minify_lua("if x then return y end") == "if x then return y end"

    def test_operators_glued(self):
        assert minify_lua("x = ( a + b ) * c [ 1 ]") == "x=(a+b)*c[1]"

    def test_double_minus(self):
        assert minify_lua("x = a - -b") == "x=a- -b"

    def test_number_before_concat(self):
        assert minify_lua("s = 1 .. x") == "s=1 ..x"

    def test_concat_before_fraction(self):
        assert minify_lua("s = a .. .5") == "s=a.. .5"

    def test_nested_long_string_index(self):
        assert minify_lua("v = t[ [[k]] ]") == "v=t[ [[k]]]"

    def test_newlines_collapse(self):
        assert minify_lua("local a = 1\n\n\tlocal b = 2\r\n") == "local a=1 local b=2"

    @pytest.mark.parametrize(
        "prev_kind, prev, text, expected",
        [
            ("name", "local", "x", True),
            ("number", "1", "e", True),
            ("op", "-", "-", True),
            ("op", "[", "[[s]]", True),
            ("number", "1", "..", True),
            ("op", "..", ".5", True),
            ("name", "a", ".", False),
            ("op", "=", "1", False),
            ("string", "'a'", "..", False),
        ],
    )
    def test_needs_space(self, prev_kind, prev, text, expected):
        assert needs_space(prev_kind, prev, "", text) is expected


def test_minified_printer_output_still_parses():
    processor = LuaProcessor()
    source = (
        "local M = {}\n"
        "-- adds two numbers\n"
        "function M.add(a, b)\n"
        "    return a + b\n"
        "end\n"
        "local s = 'x' .. 1 .. 2\n"
        "for i = 1, 10 do s = s .. i end\n"
        "return M\n"
    )
    printed = processor.generate_code(processor.parse_source(source).ast_node).code

    minified = minify_lua(printed)

    assert "adds two numbers" not in minified
    assert "\n" not in minified
    assert processor.validate_syntax(minified) == (True, "")
