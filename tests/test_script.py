"""Tests for lib/statblock/script.py"""

from types import SimpleNamespace

import pytest
from statblock.exceptions import ConditionScriptError
from statblock.script import evaluate, evaluate_condition, prepare_expression


GOBLIN = {
    "name": "Goblin",
    "hp": 7,
    "hit points": 7,
    "spells": [],
    "speed": {"walk": 30, "fly": 40},
    "traits": [{"name": "Nimble Escape", "desc": "..."}],
}


def _bindings(record=GOBLIN, plugin=None):
    return {"monster": record, "plugin": plugin}


# ── prepare_expression ──────────────────────────────────────────────

class TestPrepareExpression:
    def test_dotted_names_become_resolve_calls(self):
        assert prepare_expression("monster.hp > 3") == "resolve('monster.hp') > 3"

    def test_c_style_operators(self):
        prepared = prepare_expression("a && !b || c")
        assert "and" in prepared
        assert "or" in prepared
        assert "not" in prepared
        assert "&" not in prepared and "|" not in prepared

    def test_not_equal_is_preserved(self):
        assert "!=" in prepare_expression("monster.cr != 1")

    def test_strict_equality(self):
        assert prepare_expression("monster.cr === '1'") == "resolve('monster.cr') == '1'"

    def test_js_literals(self):
        assert prepare_expression("true") == "True"
        assert prepare_expression("null") == "None"
        assert prepare_expression("undefined") == "None"

    def test_quoted_strings_untouched(self):
        assert prepare_expression('monster.name == "Goblin Boss"') == (
            "resolve('monster.name') == \"Goblin Boss\""
        )

    def test_numbers_untouched(self):
        assert prepare_expression("1.5 + 2") == "1.5 + 2"


# ── evaluate ────────────────────────────────────────────────────────

class TestEvaluate:
    def test_comparison(self):
        assert evaluate("monster.hp > 5", _bindings()) is True

    def test_length_of_list(self):
        assert evaluate("monster.traits.length", _bindings()) == 1
        assert evaluate("monster.spells.length > 0", _bindings()) is False

    def test_len_function(self):
        assert evaluate("len(monster.traits) == 1", _bindings()) is True

    def test_membership(self):
        assert evaluate('"fly" in monster.speed', _bindings()) is True
        assert evaluate('"swim" in monster.speed', _bindings()) is False

    def test_constant_subscript(self):
        assert evaluate('monster["hit points"] == 7', _bindings()) is True

    def test_missing_field_is_none(self):
        assert evaluate("monster.legendary_actions", _bindings()) is None
        assert evaluate("!monster.legendary_actions", _bindings()) is True

    def test_js_style_condition(self):
        assert evaluate('monster.name === "Goblin" && !monster.legendary', _bindings()) is True

    def test_plugin_binding(self):
        plugin = SimpleNamespace(settings=SimpleNamespace(columns=2))
        assert evaluate("plugin.settings.columns", _bindings(plugin=plugin)) == 2

    def test_conditional_expression(self):
        assert evaluate("'big' if monster.hp > 100 else 'small'", _bindings()) == "small"

    def test_small_repetition_and_products(self):
        assert evaluate('"ab" * 3', _bindings()) == "ababab"
        assert evaluate("monster.hp * 2 + 1", _bindings()) == 15

    def test_operators_inside_strings_untouched(self):
        record = {"name": "a&&b || c===d"}
        assert evaluate('monster.name === "a&&b || c===d"', _bindings(record)) is True
        assert prepare_expression('monster.name !== "x&&y"') == "resolve('monster.name') != \"x&&y\""

    def test_string_concatenation(self):
        assert evaluate("monster.name + ' roars'", _bindings()) == "Goblin roars"


# ── Sandbox rejections ──────────────────────────────────────────────

class TestRejected:
    @pytest.mark.parametrize("expr", [
        "__import__('os')",
        "monster.__class__",
        "plugin._secret",
        "open('x')",
        "unknown_name > 1",
        "monster.hp >",
        "lambda: 1",
        "monster[monster.name]",
        "1 + " * 100 + "1",
        "10 ** 100",
    ])
    def test_raises_condition_script_error(self, expr):
        with pytest.raises(ConditionScriptError):
            evaluate(expr, _bindings(plugin=SimpleNamespace(_secret=1)))

    @pytest.mark.parametrize("expr", [
        'len("aaaa" * 100000000) > 0',
        '100000000 * "aaaa"',
        "[1, 2] * 100000000",
        "monster.name * 100000000",
    ])
    def test_oversized_repetition(self, expr):
        with pytest.raises(ConditionScriptError):
            evaluate(expr, _bindings())

    def test_runtime_error_is_wrapped(self):
        with pytest.raises(ConditionScriptError):
            evaluate("monster.hp / 0", _bindings())

    def test_plugin_methods_are_not_readable(self):
        plugin = SimpleNamespace(delete_everything=lambda: None)
        with pytest.raises(ConditionScriptError):
            evaluate("plugin.delete_everything", _bindings(plugin=plugin))

    def test_non_text_expression(self):
        with pytest.raises(ConditionScriptError):
            evaluate(42, _bindings())


class TestEvaluateCondition:
    def test_empty_is_false(self):
        assert evaluate_condition("", _bindings()) is False
        assert evaluate_condition(None, _bindings()) is False
        assert evaluate_condition("   ", _bindings()) is False

    def test_truthiness(self):
        assert evaluate_condition("monster.traits", _bindings()) is True
        assert evaluate_condition("monster.spells", _bindings()) is False

    def test_errors_propagate(self):
        with pytest.raises(ConditionScriptError):
            evaluate_condition("monster.(", _bindings())
