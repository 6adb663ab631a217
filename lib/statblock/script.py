# statblock/script.py
"""
Restricted expression evaluator for ifelse conditions and javascript blocks.

Layout authors write small boolean/value expressions against two bindings,
``monster`` (the data record) and ``plugin`` (the host handle):

    monster.spells.length > 0 && monster.cr !== "0"
    "fly" in monster.speed or monster["hit points"] > 100

The text is rewritten into a Python expression where every dotted identifier
becomes ``resolve('a.b.c')``, parsed, checked against a node whitelist, and
evaluated with empty builtins in a namespace built fresh for each call.
"""
from __future__ import annotations

import ast
from collections.abc import Mapping, Sized
from typing import Any, Callable, Dict, Optional, Tuple

from statblock.exceptions import ConditionScriptError

_SAFE_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "len": len,
    "abs": abs,
    "min": min,
    "max": max,
}

_LITERALS = {
    "true": "True",
    "false": "False",
    "null": "None",
    "undefined": "None",
    "none": "None",
}

# Rewritten outside string literals only
_OPERATOR_REWRITES = {
    "===": "==",
    "!==": "!=",
    "&&": " and ",
    "||": " or ",
}

_KEYWORDS = {"and", "or", "not", "in", "is", "if", "else", "True", "False", "None"}

_ALLOWED_BOOL_OPS: Tuple[type, ...] = (ast.And, ast.Or)
_ALLOWED_BIN_OPS: Tuple[type, ...] = (
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.Mod,
    ast.FloorDiv,
)
_ALLOWED_UNARY_OPS: Tuple[type, ...] = (ast.Not, ast.UAdd, ast.USub)
_ALLOWED_COMPARE_OPS: Tuple[type, ...] = (
    ast.Eq,
    ast.NotEq,
    ast.Lt,
    ast.LtE,
    ast.Gt,
    ast.GtE,
    ast.In,
    ast.NotIn,
    ast.Is,
    ast.IsNot,
)

_MAX_AST_NODES = 80
_MAX_NUMERIC_CONSTANT = 10**9
_MAX_STRING_LENGTH = 1000
_MAX_EXPRESSION_LENGTH = 2000
# Longest str/list/tuple a single '*' may produce
_MAX_REPEAT_LENGTH = 10_000
_MUL_NAME = "_guarded_mul"


def _count_nodes(node: ast.AST) -> int:
    return 1 + sum(_count_nodes(child) for child in ast.iter_child_nodes(node))


def _guarded_mul(left: Any, right: Any) -> Any:
    for seq, count in ((left, right), (right, left)):
        if isinstance(seq, (str, list, tuple)) and isinstance(count, int):
            if len(seq) * max(count, 0) > _MAX_REPEAT_LENGTH:
                raise ConditionScriptError(
                    f"Repeated sequence too long: {len(seq)} x {count} exceeds {_MAX_REPEAT_LENGTH}"
                )
    return left * right


class _GuardMultiplication(ast.NodeTransformer):
    """Route every ``a * b`` through _guarded_mul so repetition stays bounded."""

    def visit_BinOp(self, node: ast.BinOp) -> ast.AST:
        self.generic_visit(node)
        if not isinstance(node.op, ast.Mult):
            return node
        call = ast.Call(
            func=ast.Name(id=_MUL_NAME, ctx=ast.Load()),
            args=[node.left, node.right],
            keywords=[],
        )
        return ast.copy_location(call, node)


def _validate(node: ast.AST, allowed_names: Mapping[str, Any]) -> None:
    """Reject anything outside the whitelist before the expression is compiled."""
    node_count = _count_nodes(node)
    if node_count > _MAX_AST_NODES:
        raise ConditionScriptError(
            f"Expression too complex: {node_count} nodes exceeds limit of {_MAX_AST_NODES}"
        )

    def _check(inner: ast.AST) -> None:
        if isinstance(inner, ast.Expression):
            _check(inner.body)
        elif isinstance(inner, ast.BoolOp):
            if not isinstance(inner.op, _ALLOWED_BOOL_OPS):
                raise ConditionScriptError("Boolean operation not allowed")
            for value in inner.values:
                _check(value)
        elif isinstance(inner, ast.BinOp):
            if not isinstance(inner.op, _ALLOWED_BIN_OPS):
                raise ConditionScriptError("Binary operation not allowed")
            _check(inner.left)
            _check(inner.right)
        elif isinstance(inner, ast.UnaryOp):
            if not isinstance(inner.op, _ALLOWED_UNARY_OPS):
                raise ConditionScriptError("Unary operation not allowed")
            _check(inner.operand)
        elif isinstance(inner, ast.Compare):
            for op in inner.ops:
                if not isinstance(op, _ALLOWED_COMPARE_OPS):
                    raise ConditionScriptError("Comparison not allowed")
            _check(inner.left)
            for comparator in inner.comparators:
                _check(comparator)
        elif isinstance(inner, ast.IfExp):
            _check(inner.test)
            _check(inner.body)
            _check(inner.orelse)
        elif isinstance(inner, ast.Subscript):
            # Only constant keys: monster["hit points"], monster.stats[0]
            if not isinstance(inner.slice, ast.Constant):
                raise ConditionScriptError("Only constant subscripts are allowed")
            _check(inner.value)
            _check(inner.slice)
        elif isinstance(inner, ast.Call):
            if not isinstance(inner.func, ast.Name):
                raise ConditionScriptError("Only direct function calls are allowed")
            if inner.func.id != "resolve" and inner.func.id not in _SAFE_FUNCTIONS:
                raise ConditionScriptError(f"Call to '{inner.func.id}' not permitted")
            if inner.keywords:
                raise ConditionScriptError("Keyword arguments are not allowed")
            for arg in inner.args:
                _check(arg)
        elif isinstance(inner, ast.Name):
            if inner.id not in allowed_names:
                raise ConditionScriptError(f"Name '{inner.id}' is not allowed in expressions")
        elif isinstance(inner, ast.Constant):
            value = inner.value
            if isinstance(value, bool) or value is None or isinstance(value, float):
                return
            if isinstance(value, int):
                if abs(value) > _MAX_NUMERIC_CONSTANT:
                    raise ConditionScriptError(f"Numeric constant too large: {value}")
                return
            if isinstance(value, str):
                if len(value) > _MAX_STRING_LENGTH:
                    raise ConditionScriptError(
                        f"String constant too long: {len(value)} characters"
                    )
                return
            raise ConditionScriptError("Unsupported constant value")
        elif isinstance(inner, (ast.List, ast.Tuple)):
            for element in inner.elts:
                _check(element)
        else:
            raise ConditionScriptError(
                f"Unsupported expression element: {ast.dump(inner, include_attributes=False)}"
            )

    _check(node)


def prepare_expression(expr: str) -> str:
    """
    Rewrite a layout expression into the restricted Python form.

    - ``&&``/``||`` become ``and``/``or``; ``!`` becomes ``not`` (``!=`` kept),
      ``===``/``!==`` become ``==``/``!=``.
    - ``true``/``false``/``null``/``undefined`` become Python literals.
    - Identifiers (``monster.hp.length``) become ``resolve('monster.hp.length')``
      unless they name a safe function or a keyword.
    - Quoted strings and numeric literals pass through untouched.
    """
    cleaned = expr
    tokens: list[str] = []
    index = 0
    length = len(cleaned)
    while index < length:
        char = cleaned[index]
        if char in {"'", '"'}:
            end = index + 1
            while end < length and cleaned[end] != char:
                end += 2 if cleaned[end] == "\\" else 1
            tokens.append(cleaned[index:end + 1])
            index = end + 1
            continue
        operator = next((op for op in _OPERATOR_REWRITES if cleaned.startswith(op, index)), None)
        if operator:
            tokens.append(_OPERATOR_REWRITES[operator])
            index += len(operator)
            continue
        if char.isdigit():
            start = index
            while index < length and (cleaned[index].isalnum() or cleaned[index] in {".", "_"}):
                index += 1
            tokens.append(cleaned[start:index])
            continue
        if char.isalpha() or char == "_":
            start = index
            while index < length and (cleaned[index].isalnum() or cleaned[index] in {"_", "."}):
                index += 1
            token = cleaned[start:index].rstrip(".")
            index = start + len(token)
            lowered = token.lower()
            if token in _KEYWORDS:
                tokens.append(token)
            elif lowered in _LITERALS:
                tokens.append(_LITERALS[lowered])
            elif token in _SAFE_FUNCTIONS:
                tokens.append(token)
            else:
                tokens.append(f"resolve('{token}')")
            continue
        if char == "!":
            if index + 1 < length and cleaned[index + 1] == "=":
                tokens.append("!=")
                index += 2
                continue
            tokens.append(" not ")
            index += 1
            continue
        tokens.append(char)
        index += 1
    return "".join(tokens)


def _make_resolver(bindings: Mapping[str, Any]) -> Callable[[str], Any]:
    def resolve(path: str) -> Any:
        head, *rest = path.split(".")
        if head not in bindings:
            raise ConditionScriptError(f"Unknown name '{head}'")
        value = bindings[head]
        for part in rest:
            if value is None:
                return None
            if part.startswith("_"):
                raise ConditionScriptError(f"Private attribute '{part}' is not accessible")
            if isinstance(value, Mapping):
                value = value.get(part)
            elif part == "length" and isinstance(value, Sized):
                value = len(value)
            else:
                value = getattr(value, part, None)
                if callable(value):
                    raise ConditionScriptError(f"'{part}' is not a readable value")
        return value

    return resolve


def evaluate(expr: str, bindings: Mapping[str, Any]) -> Any:
    """Evaluate *expr* against *bindings*; raise ConditionScriptError on any failure."""
    if not isinstance(expr, str):
        raise ConditionScriptError(f"Expression must be text, got {type(expr).__name__}")
    if len(expr) > _MAX_EXPRESSION_LENGTH:
        raise ConditionScriptError("Expression too long")

    prepared = prepare_expression(expr.strip()).strip()
    try:
        tree = ast.parse(prepared, mode="eval")
    except SyntaxError as exc:
        raise ConditionScriptError(f"Invalid expression syntax: {expr!r}") from exc

    namespace: Dict[str, Any] = dict(_SAFE_FUNCTIONS)
    namespace["resolve"] = _make_resolver(bindings)
    _validate(tree, namespace)

    tree = ast.fix_missing_locations(_GuardMultiplication().visit(tree))
    namespace[_MUL_NAME] = _guarded_mul
    compiled = compile(tree, "<statblock-expression>", "eval")
    try:
        return eval(compiled, {"__builtins__": {}}, namespace)
    except ConditionScriptError:
        raise
    except Exception as exc:
        raise ConditionScriptError(f"{type(exc).__name__}: {exc}") from exc


def evaluate_condition(expr: Optional[str], bindings: Mapping[str, Any]) -> bool:
    """Truthiness of *expr*; an empty expression is False. Errors propagate."""
    expression = (expr or "").strip()
    if not expression:
        return False
    return bool(evaluate(expression, bindings))
