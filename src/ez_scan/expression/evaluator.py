"""Expression evaluation against per-instrument series bindings."""

import math
import operator
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Optional, Union

import numpy as np

from .bindings import SeriesBindings
from .functions import FunctionRegistry, ParamKind
from .nodes import Binary, Call, Compare, Node, Number, Symbol, Unary
from .parser import Parser
from .symbols import SymbolTable

Value = Union[float, bool]

_ARITHMETIC: Dict[str, Callable[[Decimal, Decimal], Decimal]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}

_COMPARISON: Dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


def is_nan(value: Value) -> bool:
    return not isinstance(value, bool) and math.isnan(value)


def truthy(value: Value) -> bool:
    """Boolean reading of a result: NaN and zero are not satisfied."""
    if isinstance(value, bool):
        return value
    return not math.isnan(value) and value != 0


_NAN = Decimal("NaN")


def arithmetic(op: str, left: float, right: float) -> float:
    """Apply *op* on the decimal forms of the operands.

    ``(110 / 100 - 1) * 100`` gives exactly 10. Division by zero and
    undefined results (``inf - inf``) give NaN.
    """
    return float(_decimal_op(op, _to_decimal(left), _to_decimal(right)))


def _decimal_op(op: str, left: Decimal, right: Decimal) -> Decimal:
    if left.is_nan() or right.is_nan():
        return _NAN
    if op == "/" and right == 0:
        return _NAN
    try:
        return _ARITHMETIC[op](left, right)
    except InvalidOperation:
        return _NAN


def _to_decimal(value: float) -> Decimal:
    return _NAN if math.isnan(value) else Decimal(repr(float(value)))


class SeriesView:
    """Lazy view of an argument expression as a series.

    Index 0 is the bar the enclosing call is evaluated at; index ``i`` is the
    argument's value ``i`` bars before that.
    """

    def __init__(self, evaluator: "Evaluator", node: Node, bindings: SeriesBindings, offset: int):
        self._evaluator = evaluator
        self._node = node
        self._bindings = bindings
        self._offset = offset

    def at(self, index: int) -> float:
        if isinstance(self._node, Symbol):
            return self._bindings.get(self._node.field, self._offset + index)
        return _as_float(self._evaluator.evaluate_node(self._node, self._bindings, self._offset + index))

    def window(self, size: int) -> np.ndarray:
        if isinstance(self._node, Symbol):
            return self._bindings.window(self._node.field, self._offset, size)
        return np.array([self.at(i) for i in range(size)], dtype=float)

    def history(self) -> np.ndarray:
        """Every available value from the current bar back to the oldest.

        A bare field reads its own history; a derived argument spans the
        longest bound field and may start with NaN where its inputs lack data.
        """
        if isinstance(self._node, Symbol):
            available = self._bindings.length(self._node.field)
        else:
            available = len(self._bindings)
        return self.window(max(available - self._offset, 0))


class Evaluator:
    """Evaluates formulas at a given bar offset.

    Evaluating at offset ``k`` answers "what was this formula's value k bars
    ago": every bare series reference is shifted by ``k`` before functions
    are applied.
    """

    def __init__(
        self,
        symbols: Optional[SymbolTable] = None,
        functions: Optional[FunctionRegistry] = None,
        parser: Optional[Parser] = None,
    ):
        self.parser = parser or Parser(symbols, functions)
        self.functions = self.parser.functions

    def evaluate(
        self,
        expression: Union[str, Node],
        bindings: SeriesBindings,
        bar_offset: int = 0,
    ) -> Value:
        node = self.parser.parse(expression) if isinstance(expression, str) else expression
        return self.evaluate_node(node, bindings, bar_offset)

    def evaluate_node(self, node: Node, bindings: SeriesBindings, offset: int) -> Value:
        if isinstance(node, Number):
            return node.value
        if isinstance(node, Symbol):
            return bindings.get(node.field, offset)
        if isinstance(node, Binary):
            return float(self._exact(node, bindings, offset))
        if isinstance(node, Compare):
            left = _as_float(self.evaluate_node(node.left, bindings, offset))
            right = _as_float(self.evaluate_node(node.right, bindings, offset))
            if math.isnan(left) or math.isnan(right):
                return False
            return _COMPARISON[node.op](left, right)
        if isinstance(node, Unary):
            value = _as_float(self.evaluate_node(node.operand, bindings, offset))
            return -value if node.op == "-" else value
        if isinstance(node, Call):
            return self._call(node, bindings, offset)
        raise TypeError(f"Unsupported node {type(node).__name__}")

    def _exact(self, node: Node, bindings: SeriesBindings, offset: int) -> Decimal:
        """Arithmetic subtree as a Decimal; rounded to float only by the caller."""
        if isinstance(node, Binary):
            left = self._exact(node.left, bindings, offset)
            right = self._exact(node.right, bindings, offset)
            return _decimal_op(node.op, left, right)
        if isinstance(node, Unary):
            operand = self._exact(node.operand, bindings, offset)
            return -operand if node.op == "-" else operand
        return _to_decimal(_as_float(self.evaluate_node(node, bindings, offset)))

    def _call(self, node: Call, bindings: SeriesBindings, offset: int) -> float:
        spec = self.functions.get(node.name)
        args = []
        for index, kind in enumerate(spec.params):
            if index < len(node.args):
                arg = node.args[index]
                if kind is ParamKind.SERIES:
                    args.append(SeriesView(self, arg, bindings, offset))
                else:
                    args.append(_as_float(self.evaluate_node(arg, bindings, offset)))
            else:
                args.append(spec.defaults[index - spec.min_arity])
        return _as_float(spec.func(*args))


def _as_float(value: Value) -> float:
    if value is None:
        return math.nan
    return float(value)
