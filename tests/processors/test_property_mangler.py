"""Tests for property name mangling."""

from __future__ import annotations

import pytest
from luaparser import ast as lua_ast
from luaparser import astnodes as lua_nodes

from luabundle.processors.lua_processor import LuaProcessor
from luabundle.processors.property_mangler import (
    NamingPolicy,
    PropertyMangler,
    TransformResult,
)


def reachable(tree) -> list:
    """Every distinct node reachable through public attributes."""
    found, seen, stack = [], set(), [tree]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        found.append(node)
        for name in dir(node):
            if name.startswith("_"):
                continue
            attr = getattr(node, name, None)
            if isinstance(attr, lua_nodes.Node):
                stack.append(attr)
            elif isinstance(attr, (list, tuple)):
                stack.extend(item for item in attr if isinstance(item, lua_nodes.Node))
    return found


def nodes_of(tree, cls) -> list:
    return [node for node in reachable(tree) if isinstance(node, cls)]


def dot_names(tree) -> list[str]:
    return sorted(
        node.idx.id
        for node in nodes_of(tree, lua_nodes.Index)
        if isinstance(node.idx, lua_nodes.Name) and node.notation == lua_nodes.IndexNotation.DOT
    )


def text(value) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def string_keys(tree) -> list:
    return [
        node.idx for node in nodes_of(tree, lua_nodes.Index)
        if isinstance(node.idx, lua_nodes.String)
    ]


@pytest.fixture
def mangler():
    return PropertyMangler()


class TestManualMode:
    """Only marker-prefixed names are mangled."""

    def test_member_access(self, mangler):
        tree = lua_ast.parse("local t = {}\nt._secret = 1\nt.public = 2\nprint(t._secret)\n")

        assert mangler.mangle(tree, auto_mode=False) is tree
        assert mangler.name_map == {"_secret": "a"}
        assert dot_names(tree) == ["a", "a", "public"]
        assert mangler.transformation_count == 2

    def test_local_and_global_names_untouched(self, mangler):
        tree = lua_ast.parse("local _secret = {}\n_secret._field = _G._other\n")

        mangler.mangle(tree, auto_mode=False)

        names = {node.id for node in nodes_of(tree, lua_nodes.Name)}
        assert "_secret" in names
        assert "_G" in names
        assert set(mangler.name_map) == {"_field", "_other"}

    def test_methods_stay_in_sync(self, mangler):
        tree = lua_ast.parse("local obj = {}\nfunction obj:_run() return 1 end\nobj:_run()\n")

        mangler.mangle(tree, auto_mode=False)

        (method,) = nodes_of(tree, lua_nodes.Method)
        (invoke,) = nodes_of(tree, lua_nodes.Invoke)
        assert method.name.id == invoke.func.id == "a"
        assert mangler.name_map == {"_run": "a"}

    def test_table_constructor_keys(self, mangler):
        tree = lua_ast.parse('local t = { _a = 1, ["_b"] = 2, [_c] = 3, "_list" }\n')

        mangler.mangle(tree, auto_mode=False)

        assert mangler.name_map == {"_a": "a", "_b": "b"}
        names = {node.id for node in nodes_of(tree, lua_nodes.Name)}
        assert "_c" in names
        values = {text(node.s) for node in nodes_of(tree, lua_nodes.String)}
        assert "_list" in values
        assert "b" in values

    def test_regenerated_code_parses(self, mangler):
        processor = LuaProcessor()
        tree = lua_ast.parse("local t = {_x = 1}\nt._y = t._x\nfunction t:_z() end\n")

        mangler.mangle(tree, auto_mode=False)
        generated = processor.generate_code(tree)

        assert generated.success
        assert "_x" not in generated.code
        assert processor.validate_syntax(generated.code) == (True, "")


class TestAutoMode:
    """Everything is mangled except marker-prefixed names, which are unwrapped."""

    def test_mangles_and_unwraps(self, mangler):
        tree = lua_ast.parse("local t = {}\nt.alpha = 1\nt.beta = t.alpha\nt._keep = 3\n")

        mangler.mangle(tree, auto_mode=True)

        assert mangler.name_map == {"alpha": "a", "beta": "b"}
        assert dot_names(tree) == ["a", "a", "b", "keep"]

    def test_unwrap_keeps_unusable_results(self, mangler):
        tree = lua_ast.parse("local t = {}\nt._end = 1\nt._ = 2\nt._1 = 3\n")

        mangler.mangle(tree, auto_mode=True)

        assert dot_names(tree) == ["_", "_1", "_end"]
        assert mangler.name_map == {}


class TestSentinelProtection:
    """Names starting with the sentinel are kept when protected."""

    SOURCE = "local mt = {__index = {}}\nmt.__call = nil\nlocal obj = setmetatable({}, mt)\nobj._x = 1\n"

    def _keys(self, tree) -> set[str]:
        keys = {f.key.id for f in nodes_of(tree, lua_nodes.Field) if isinstance(f.key, lua_nodes.Name)}
        return keys | set(dot_names(tree))

    @pytest.mark.parametrize("auto_mode", [False, True])
    def test_protected_in_every_mode(self, auto_mode):
        mangler = PropertyMangler(NamingPolicy(protect_sentinel=True))
        tree = lua_ast.parse(self.SOURCE)

        mangler.mangle(tree, auto_mode=auto_mode)

        keys = self._keys(tree)
        assert {"__index", "__call"} <= keys
        assert "__index" not in mangler.name_map
        assert "__call" not in mangler.name_map

    def test_unprotected_manual(self):
        mangler = PropertyMangler(NamingPolicy(protect_sentinel=False))
        tree = lua_ast.parse(self.SOURCE)

        mangler.mangle(tree, auto_mode=False)

        assert set(mangler.name_map) == {"__index", "__call", "_x"}
        assert not {"__index", "__call"} & self._keys(tree)

    def test_unprotected_auto_unwraps(self):
        mangler = PropertyMangler(NamingPolicy(protect_sentinel=False))
        tree = lua_ast.parse(self.SOURCE)

        mangler.mangle(tree, auto_mode=True)

        assert {"_index", "_call", "x"} <= self._keys(tree)


class TestStringKeys:
    """Quoted keys are renamed with their quote preserved."""

    def test_quotes_preserved(self, mangler):
        tree = lua_ast.parse("local t = {}\nt['_x'] = 1\nt[\"_x\"] = 2\nlocal y = t[ [[_x]] ]\n")

        mangler.mangle(tree, auto_mode=False)

        keys = string_keys(tree)
        by_delimiter = {key.delimiter: text(key.s) for key in keys}
        assert by_delimiter[lua_nodes.StringDelimiter.SINGLE_QUOTE] == "a"
        assert by_delimiter[lua_nodes.StringDelimiter.DOUBLE_QUOTE] == "a"
        assert by_delimiter[lua_nodes.StringDelimiter.DOUBLE_SQUARE] == "_x"
        assert mangler.name_map == {"_x": "a"}

    def test_quotes_preserved_in_output(self, mangler):
        tree = lua_ast.parse("local t = {}\nt['_x'] = 1\nt[\"_y\"] = 2\n")

        mangler.mangle(tree, auto_mode=False)
        code = LuaProcessor().generate_code(tree).code

        assert "'a'" in code
        assert '"b"' in code

    def test_string_key_matches_member_access(self, mangler):
        tree = lua_ast.parse("local t = {}\nt._k = 1\nprint(t['_k'])\n")

        mangler.mangle(tree, auto_mode=False)

        assert dot_names(tree) == ["a"]
        assert [text(key.s) for key in string_keys(tree)] == ["a"]

    def test_string_values_untouched(self, mangler):
        tree = lua_ast.parse("local t = {}\nt._k = '_k'\nprint(\"_k\")\n")

        mangler.mangle(tree, auto_mode=False)

        values = sorted(text(node.s) for node in nodes_of(tree, lua_nodes.String))
        assert values == ["_k", "_k"]


class TestBijectivity:
    """Equal names share an output; distinct names never do."""

    @pytest.mark.parametrize("auto_mode", [False, True])
    def test_many_names(self, mangler, auto_mode):
        lines = ["local t = {}"]
        for i in range(80):
            lines.append(f"t._n{i} = {i}")
            lines.append(f"t._n{i} = t._n{i} + 1")
        prefix = "" if auto_mode else "_"
        source = "\n".join(lines).replace("t._n", f"t.{prefix}n") + "\n"
        tree = lua_ast.parse(source)

        mangler.mangle(tree, auto_mode=auto_mode)

        assert len(mangler.name_map) == 80
        assert len(set(mangler.name_map.values())) == 80
        names = dot_names(tree)
        for mangled in mangler.name_map.values():
            assert names.count(mangled) == 3

    def test_lowercase_scheme(self):
        mangler = PropertyMangler(NamingPolicy(scheme="lowercase"))
        source = "local t = {}\n" + "\n".join(f"t._p{i} = 1" for i in range(28)) + "\n"
        tree = lua_ast.parse(source)

        mangler.mangle(tree, auto_mode=False)

        assert set(mangler.name_map.values()) == set("abcdefghijklmnopqrstuvwxyz") | {"aa", "ab"}


class TestKeptNamesReserved:
    """Generated names never equal a name that stays in the output."""

    def test_manual_mode_skips_kept_property(self, mangler):
        tree = lua_ast.parse("local t = {}\nt.a = 1\nt._x = 2\nreturn t.a + t._x\n")

        mangler.mangle(tree, auto_mode=False)

        assert mangler.name_map == {"_x": "b"}
        assert dot_names(tree) == ["a", "a", "b", "b"]

    def test_auto_mode_skips_unwrapped_names(self, mangler):
        tree = lua_ast.parse("local t = {}\nt._a = 1\nt.x = 2\nt._b = t.x\n")

        mangler.mangle(tree, auto_mode=True)

        assert mangler.name_map == {"x": "c"}
        assert dot_names(tree) == ["a", "b", "c", "c"]

    def test_kept_names_found_anywhere_in_tree(self, mangler):
        # the kept key appears only after the mangled one
        tree = lua_ast.parse("local t = {}\nt._first = 1\nlocal u = { a = 1, ['b'] = 2 }\n")

        mangler.mangle(tree, auto_mode=False)

        assert mangler.name_map == {"_first": "c"}

    def test_kept_form(self, mangler):
        mangler.mangle(lua_ast.parse("return 1"), auto_mode=True)
        assert mangler.kept_form("_keep") == "keep"
        assert mangler.kept_form("__index") == "__index"
        assert mangler.kept_form("plain") is None

    def test_policy_generator_reserves_extra_names(self):
        generator = NamingPolicy().new_generator(reserved={"a", "c"})
        assert [generator.next() for _ in range(3)] == ["b", "d", "e"]

    def test_policy_generator_still_skips_keywords(self):
        generator = NamingPolicy(scheme="lowercase").new_generator(reserved={"x"})
        assert "do" in generator.reserved
        assert "x" in generator.reserved


class TestTraversal:
    """Structural walk over shared and cyclic trees."""

    def test_cyclic_tree_terminates_and_visits_each_node_once(self, mangler, monkeypatch):
        tree = lua_ast.parse("local t = {}\nt._a = t._b\n")
        (assign,) = nodes_of(tree, lua_nodes.Assign)
        assign.loop = tree
        tree.self_ref = tree

        dispatched = []
        original = mangler._dispatch

        def spy(node):
            dispatched.append(id(node))
            original(node)

        monkeypatch.setattr(mangler, "_dispatch", spy)
        mangler.mangle(tree, auto_mode=False)

        assert len(dispatched) == len(set(dispatched))
        assert mangler.visit_count == len(dispatched) == len(reachable(tree))
        assert mangler.name_map == {"_a": "a", "_b": "b"}

    def test_shared_name_renamed_once(self, mangler):
        tree = lua_ast.parse("local t, u = {}, {}\nt._a = 1\nu._b = 2\n")
        by_name = {node.idx.id: node for node in nodes_of(tree, lua_nodes.Index)}
        first, second = by_name["_a"], by_name["_b"]
        second.idx = first.idx

        mangler.mangle(tree, auto_mode=True)

        assert first.idx.id == "a"
        assert second.idx is first.idx
        assert mangler.transformation_count == 1

    def test_shared_string_key_renamed_once(self, mangler):
        tree = lua_ast.parse("local t = {}\nt['_s'] = 1\nt['_other'] = 2\n")
        by_text = {text(node.idx.s): node for node in nodes_of(tree, lua_nodes.Index)}
        first = by_text["_s"].idx
        by_text["_other"].idx = first

        mangler.mangle(tree, auto_mode=False)

        assert text(first.s) == "a"
        assert mangler.name_map == {"_s": "a"}
        assert mangler.transformation_count == 1

    def test_fresh_state_per_pass(self, mangler):
        first = lua_ast.parse("local t = {}\nt._one = 1\n")
        second = lua_ast.parse("local t = {}\nt._two = 1\n")

        mangler.mangle(first, auto_mode=False)
        mangler.mangle(second, auto_mode=False)

        assert mangler.name_map == {"_two": "a"}
        assert dot_names(first) == dot_names(second) == ["a"]


class TestTransform:
    """Result-object wrapper."""

    def test_success(self, mangler):
        tree = lua_ast.parse("local t = {}\nt._a = 1\n")
        result = mangler.transform(tree, auto_mode=False)

        assert isinstance(result, TransformResult)
        assert result.success
        assert result.ast_node is tree
        assert result.transformation_count == 1
        assert result.errors == []

    def test_failure_is_captured(self, mangler, monkeypatch):
        def boom(node):
            raise RuntimeError("broken node")

        monkeypatch.setattr(mangler, "_dispatch", boom)
        result = mangler.transform(lua_ast.parse("return 1"), auto_mode=False)

        assert not result.success
        assert result.ast_node is None
        assert "RuntimeError" in result.errors[0]


class TestNamingPolicy:
    """Policy validation and helpers."""

    def test_invalid_marker(self):
        with pytest.raises(ValueError, match="marker"):
            NamingPolicy(marker="")

    def test_invalid_scheme(self):
        with pytest.raises(ValueError, match="naming scheme"):
            NamingPolicy(scheme="emoji")

    @pytest.mark.parametrize(
        "name, expected",
        [("_ok", "ok"), ("_", "_"), ("_end", "_end"), ("_1x", "_1x"), ("__meta", "_meta")],
    )
    def test_unwrap(self, name, expected):
        assert NamingPolicy().unwrap(name) == expected

    def test_custom_marker(self):
        mangler = PropertyMangler(NamingPolicy(marker="m_"))
        tree = lua_ast.parse("local t = {}\nt.m_value = 1\nt._plain = 2\n")

        mangler.mangle(tree, auto_mode=False)

        assert mangler.name_map == {"m_value": "a"}
