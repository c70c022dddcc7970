"""
Restricted Decimal evaluator for formula strings.

Payment parameters may carry an ``amount_expression`` that replaces the
``rate x reservations`` product.  Expressions are parsed with ``ast`` and
only a fixed node set is interpreted; nothing is ever passed to ``eval``.

Allowed:
  - Arithmetic: +, -, *, /, unary minus/plus
  - Comparisons: <, <=, >, >=, ==, !=
  - Logical: and, or, not
  - Conditional: ternary (a if b else c)
  - Functions: min(), max(), abs(), round()
  - Names: variables supplied by the caller
  - Literals: numbers and booleans

Rejected:
  - attribute access, subscripts, strings, lambdas, comprehensions,
    any other function call, undefined names
"""

import ast
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from studio_kernel.exceptions import EvaluationError, UndefinedVariableError
from studio_kernel.logging_config import get_logger

logger = get_logger("engines.expression")

ALLOWED_FUNCTIONS: frozenset[str] = frozenset({"min", "max", "abs", "round"})

_ARITHMETIC = (ast.Add, ast.Sub, ast.Mult, ast.Div)
_COMPARISONS = (ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE)


@dataclass(frozen=True)
class ExpressionProblem:
    """A validation problem found in a formula expression."""

    expression: str
    message: str
    node_type: str = ""


@dataclass(frozen=True)
class EvaluationResult:
    """Numeric value of an expression plus the substitutions that produced it."""

    value: Decimal
    trace: tuple[str, ...] = ()


def validate_expression(
    expression: str, variables: Iterable[str] | None = None,
) -> list[ExpressionProblem]:
    """Validate an expression without evaluating it.

    When ``variables`` is given, names outside it are reported too.
    Returns an empty list for a valid expression.
    """
    problems: list[ExpressionProblem] = []
    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError as e:
        return [ExpressionProblem(expression, f"Syntax error: {e.msg}")]

    known = frozenset(variables) if variables is not None else None
    for node in ast.walk(tree.body):
        if isinstance(node, ast.Name):
            if known is not None and node.id not in known and not _is_call_target(tree, node):
                problems.append(ExpressionProblem(expression, f"Unknown variable: {node.id}", "Name"))
        elif isinstance(node, ast.Call):
            if not (isinstance(node.func, ast.Name) and node.func.id in ALLOWED_FUNCTIONS):
                problems.append(ExpressionProblem(expression, "Disallowed function call", "Call"))
            elif node.keywords:
                problems.append(ExpressionProblem(expression, "Keyword arguments are not allowed", "Call"))
        elif isinstance(node, ast.BinOp):
            if not isinstance(node.op, _ARITHMETIC):
                problems.append(ExpressionProblem(
                    expression, f"Disallowed binary operator: {type(node.op).__name__}", "BinOp",
                ))
        elif isinstance(node, ast.Compare):
            for op in node.ops:
                if not isinstance(op, _COMPARISONS):
                    problems.append(ExpressionProblem(
                        expression, f"Disallowed comparison: {type(op).__name__}", "Compare",
                    ))
        elif isinstance(node, ast.Constant):
            if isinstance(node.value, str) or node.value is None:
                problems.append(ExpressionProblem(
                    expression, f"Disallowed constant: {node.value!r}", "Constant",
                ))
        elif not isinstance(node, (
            ast.UnaryOp, ast.BoolOp, ast.IfExp, ast.Load,
            ast.operator, ast.unaryop, ast.boolop, ast.cmpop,
        )):
            problems.append(ExpressionProblem(
                expression, f"Disallowed AST node type: {type(node).__name__}", type(node).__name__,
            ))
    return problems


def _is_call_target(tree: ast.AST, name: ast.Name) -> bool:
    return any(isinstance(n, ast.Call) and n.func is name for n in ast.walk(tree))


class ExpressionEvaluator:
    """Evaluates formula strings against a variable map using Decimal arithmetic."""

    def evaluate(
        self, expression: str, variables: Mapping[str, Decimal | int],
    ) -> EvaluationResult:
        """Evaluate ``expression``.

        Raises:
            UndefinedVariableError: a name is not present in ``variables``.
            EvaluationError: malformed or disallowed syntax, division by zero.
        """
        try:
            tree = ast.parse(expression, mode="eval")
        except SyntaxError as e:
            raise EvaluationError(expression, f"syntax error: {e.msg}") from e

        scope = {name: Decimal(value) for name, value in variables.items()}
        used: dict[str, Decimal] = {}
        try:
            value = self._eval(tree.body, expression, scope, used)
        except (InvalidOperation, ArithmeticError) as e:
            raise EvaluationError(expression, f"arithmetic error: {e}") from e

        result = _as_decimal(value)
        trace = tuple(f"{name} = {val}" for name, val in sorted(used.items()))
        trace += (f"{expression} = {result}",)
        logger.debug(
            "expression_evaluated",
            extra={"expression": expression, "value": str(result)},
        )
        return EvaluationResult(value=result, trace=trace)

    def _eval(
        self,
        node: ast.AST,
        expression: str,
        scope: Mapping[str, Decimal],
        used: dict[str, Decimal],
    ) -> Decimal | bool:
        ev = lambda n: self._eval(n, expression, scope, used)  # noqa: E731

        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool):
                return node.value
            if isinstance(node.value, (int, float)):
                return Decimal(str(node.value))
            raise EvaluationError(expression, f"disallowed constant {node.value!r}")

        if isinstance(node, ast.Name):
            if node.id not in scope:
                raise UndefinedVariableError(expression, node.id)
            used[node.id] = scope[node.id]
            return scope[node.id]

        if isinstance(node, ast.BinOp):
            left = _as_decimal(ev(node.left))
            right = _as_decimal(ev(node.right))
            if isinstance(node.op, ast.Add):
                return left + right
            if isinstance(node.op, ast.Sub):
                return left - right
            if isinstance(node.op, ast.Mult):
                return left * right
            if isinstance(node.op, ast.Div):
                if right == 0:
                    raise EvaluationError(expression, "division by zero")
                return left / right
            raise EvaluationError(expression, f"disallowed operator {type(node.op).__name__}")

        if isinstance(node, ast.UnaryOp):
            operand = ev(node.operand)
            if isinstance(node.op, ast.USub):
                return -_as_decimal(operand)
            if isinstance(node.op, ast.UAdd):
                return _as_decimal(operand)
            if isinstance(node.op, ast.Not):
                return not operand
            raise EvaluationError(expression, f"disallowed operator {type(node.op).__name__}")

        if isinstance(node, ast.Compare):
            left = _as_decimal(ev(node.left))
            for op, comparator in zip(node.ops, node.comparators):
                right = _as_decimal(ev(comparator))
                if not _compare(op, left, right, expression):
                    return False
                left = right
            return True

        if isinstance(node, ast.BoolOp):
            value: Decimal | bool = False
            for operand in node.values:
                value = ev(operand)
                if isinstance(node.op, ast.And) and not value:
                    return value
                if isinstance(node.op, ast.Or) and value:
                    return value
            return value

        if isinstance(node, ast.IfExp):
            return ev(node.body) if ev(node.test) else ev(node.orelse)

        if isinstance(node, ast.Call):
            return self._call(node, expression, ev)

        raise EvaluationError(expression, f"disallowed syntax {type(node).__name__}")

    def _call(self, node: ast.Call, expression: str, ev) -> Decimal:
        if not (isinstance(node.func, ast.Name) and node.func.id in ALLOWED_FUNCTIONS):
            raise EvaluationError(expression, "disallowed function call")
        if node.keywords:
            raise EvaluationError(expression, "keyword arguments are not allowed")
        args = [_as_decimal(ev(arg)) for arg in node.args]
        name = node.func.id
        match name:
            case "min" | "max":
                if not args:
                    raise EvaluationError(expression, f"{name}() needs at least one argument")
                return min(args) if name == "min" else max(args)
            case "abs":
                if len(args) != 1:
                    raise EvaluationError(expression, "abs() takes exactly one argument")
                return abs(args[0])
            case "round":
                if len(args) not in (1, 2):
                    raise EvaluationError(expression, "round() takes one or two arguments")
                places = int(args[1]) if len(args) == 2 else 0
                return args[0].quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
        raise EvaluationError(expression, f"disallowed function {name}")


def _compare(op: ast.cmpop, left: Decimal, right: Decimal, expression: str) -> bool:
    if isinstance(op, ast.Eq):
        return left == right
    if isinstance(op, ast.NotEq):
        return left != right
    if isinstance(op, ast.Lt):
        return left < right
    if isinstance(op, ast.LtE):
        return left <= right
    if isinstance(op, ast.Gt):
        return left > right
    if isinstance(op, ast.GtE):
        return left >= right
    raise EvaluationError(expression, f"disallowed comparison {type(op).__name__}")


def _as_decimal(value: Decimal | bool) -> Decimal:
    if isinstance(value, bool):
        return Decimal(1) if value else Decimal(0)
    return value
