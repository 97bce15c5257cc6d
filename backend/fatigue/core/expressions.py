"""
Evaluation of user-declared scalar expressions.

Expressions are parsed once with Python's ``ast`` module and checked
against a small whitelist (numbers, names, + - * / % **, unary signs and a
fixed set of functions). Anything else is rejected as a ParseError; the
expression text is never passed to ``eval``.

The evaluation order is given by the caller. Before anything is evaluated
the order is checked: every name an expression references must be a
parameter or appear earlier in the order, so a bad order fails before any
work is done.

Usage:
    values = evaluate_expressions(
        parameters={"a": 5, "b": 3},
        variables={"total": "a + b", "twice": "2 * total"},
        order=["total", "twice"],
    )
"""
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence
import ast
import logging
import math
import re

from fatigue.core.errors import (
    ConfigurationError,
    DomainError,
    ParseError,
    UnresolvedReferenceError,
)


logger = logging.getLogger(__name__)

FUNCTIONS: Dict[str, Callable[..., float]] = {
    "max": max,
    "min": min,
    "abs": abs,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
}

def _power(base: float, exponent: float) -> float:
    result = base ** exponent
    if isinstance(result, complex):
        raise ValueError("negative base with fractional exponent")
    return result


_BINARY = {
    ast.Add: lambda a, b: a + b,
    ast.Sub: lambda a, b: a - b,
    ast.Mult: lambda a, b: a * b,
    ast.Div: lambda a, b: a / b,
    ast.Mod: lambda a, b: a % b,
    ast.Pow: _power,
}

_UNARY = {
    ast.UAdd: lambda a: +a,
    ast.USub: lambda a: -a,
}

_MODULE_PREFIX = re.compile(r"\bmath::")


@dataclass(frozen=True)
class CompiledExpression:
    """A parsed, validated expression.

    Attributes:
        name: Variable name the expression defines
        text: Original expression text
        tree: Validated expression body
        references: Names (not functions) the expression reads
    """
    name: str
    text: str
    tree: ast.AST
    references: FrozenSet[str]


def compile_expression(name: str, text: str) -> CompiledExpression:
    """
    Parse and validate expression text.

    Raises:
        ParseError: On malformed text or unsupported syntax
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseError(f"Expression '{name}' is empty", context={"expression": name})

    # ``^`` is exponentiation and binds like ``**``
    source = _MODULE_PREFIX.sub("", text.strip()).replace("^", "**")
    try:
        tree = ast.parse(source, mode="eval").body
    except SyntaxError as e:
        raise ParseError(
            f"Malformed expression '{name}': {text!r} ({e.msg})",
            context={"expression": name},
        )

    callees = {id(node.func) for node in ast.walk(tree) if isinstance(node, ast.Call)}
    references = set()
    for node in ast.walk(tree):
        _check_node(name, text, node, references, callees)
    return CompiledExpression(name, text, tree, frozenset(references))


def _check_node(name: str, text: str, node: ast.AST, references: set, callees: set) -> None:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ParseError(
                f"Unsupported literal {node.value!r} in expression '{name}'",
                context={"expression": name},
            )
    elif isinstance(node, ast.Name):
        if id(node) in callees:
            return
        if node.id in FUNCTIONS:
            raise ParseError(
                f"Function '{node.id}' used as a value in expression '{name}': {text!r}",
                context={"expression": name},
            )
        references.add(node.id)
    elif isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            raise ParseError(
                f"Unknown function in expression '{name}': {text!r}",
                context={"expression": name},
            )
        if node.keywords or not node.args:
            raise ParseError(
                f"Invalid call of '{node.func.id}' in expression '{name}'",
                context={"expression": name},
            )
    elif isinstance(node, ast.BinOp):
        if type(node.op) not in _BINARY:
            raise ParseError(
                f"Unsupported operator {type(node.op).__name__} in expression '{name}'",
                context={"expression": name},
            )
    elif isinstance(node, ast.UnaryOp):
        if type(node.op) not in _UNARY:
            raise ParseError(
                f"Unsupported operator {type(node.op).__name__} in expression '{name}'",
                context={"expression": name},
            )
    elif not isinstance(node, (ast.Load, ast.operator, ast.unaryop)):
        raise ParseError(
            f"Unsupported syntax {type(node).__name__} in expression '{name}': {text!r}",
            context={"expression": name},
        )


class ExpressionEngine:
    """
    Evaluates named expressions against parameters in a given order.

    Each expression is compiled on first use and cached for the lifetime
    of the engine, so repeated evaluations (different orders, or the same
    order several times) never parse twice.
    """

    def __init__(self, parameters: Mapping[str, float], variables: Mapping[str, str]):
        self.parameters: Dict[str, float] = {}
        for key, value in parameters.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"Parameter '{key}' must be a finite number, got {value!r}")
            self.parameters[key] = float(value)

        shadowed = sorted(set(self.parameters) & set(variables))
        if shadowed:
            raise ConfigurationError(
                f"Names defined both as parameter and variable: {', '.join(shadowed)}"
            )
        self.variables = dict(variables)
        self._cache: Dict[str, CompiledExpression] = {}

    def compile(self, name: str) -> CompiledExpression:
        if name not in self._cache:
            if name not in self.variables:
                raise UnresolvedReferenceError(
                    name, name, f"No expression defined for '{name}'"
                )
            self._cache[name] = compile_expression(name, self.variables[name])
        return self._cache[name]

    def check_order(self, order: Sequence[str]) -> List[CompiledExpression]:
        """
        Compile all ordered expressions and verify their references.

        Raises:
            ParseError: If an expression is malformed
            UnresolvedReferenceError: On the first expression that reads a
                name not defined before it
        """
        if len(set(order)) != len(order):
            raise ConfigurationError("Expression order contains duplicate names")

        known = set(self.parameters)
        compiled = []
        for name in order:
            expr = self.compile(name)
            missing = sorted(expr.references - known)
            if missing:
                raise UnresolvedReferenceError(
                    name, missing[0],
                    f"Expression '{name}' references '{missing[0]}' before it is defined",
                )
            known.add(name)
            compiled.append(expr)
        return compiled

    def evaluate(self, order: Sequence[str]) -> Dict[str, float]:
        """Evaluate the expressions in ``order``; returns name -> value."""
        compiled = self.check_order(order)
        scope: Dict[str, float] = dict(self.parameters)
        results: Dict[str, float] = {}
        for expr in compiled:
            value = _evaluate(expr, expr.tree, scope)
            scope[expr.name] = value
            results[expr.name] = value
            logger.debug(f"{expr.name} = {value!r}")
        return results


def _evaluate(expr: CompiledExpression, node: ast.AST, scope: Mapping[str, float]) -> float:
    try:
        value = float(_eval_node(node, scope))
    except ZeroDivisionError:
        raise DomainError(
            f"Division by zero in expression '{expr.name}': {expr.text!r}",
            context={"expression": expr.name},
        )
    except (ValueError, OverflowError, TypeError) as e:
        raise DomainError(
            f"Cannot evaluate expression '{expr.name}': {expr.text!r} ({e})",
            context={"expression": expr.name},
        )

    if not math.isfinite(value):
        raise DomainError(
            f"Expression '{expr.name}' evaluates to a non-finite value",
            context={"expression": expr.name},
        )
    return value


def _eval_node(node: ast.AST, scope: Mapping[str, float]) -> float:
    # float arithmetic only; integer powers would grow without bound
    if isinstance(node, ast.Constant):
        return float(node.value)
    if isinstance(node, ast.Name):
        return scope[node.id]
    if isinstance(node, ast.BinOp):
        return _BINARY[type(node.op)](_eval_node(node.left, scope), _eval_node(node.right, scope))
    if isinstance(node, ast.UnaryOp):
        return _UNARY[type(node.op)](_eval_node(node.operand, scope))
    if isinstance(node, ast.Call):
        args = [_eval_node(arg, scope) for arg in node.args]
        return FUNCTIONS[node.func.id](*args)
    raise TypeError(f"unsupported node {type(node).__name__}")


def evaluate_expressions(
    parameters: Mapping[str, float],
    variables: Mapping[str, str],
    order: Sequence[str],
    engine: Optional[ExpressionEngine] = None,
) -> Dict[str, float]:
    """
    Evaluate user expressions in an explicit order.

    Args:
        parameters: Constants by name
        variables: Expression text by name
        order: Names to evaluate, in evaluation order

    Returns:
        Dict of evaluated values for every name in ``order``

    Raises:
        ParseError: Malformed expression text
        UnresolvedReferenceError: A name is read before it is defined
        DomainError: Division by zero or a non-finite result
    """
    engine = engine or ExpressionEngine(parameters, variables)
    return engine.evaluate(order)
