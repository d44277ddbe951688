"""
Evaluates expression nodes against the scopes of a GraphicalModel.

`evaluate` returns either a Value (literals, constant arrays, looked-up identifiers)
or a DeterministicFunction whose inputs are already bound; `evaluate_value` applies
functions so the caller always gets a Value.
"""

import logging
from typing import Any, Dict, List, Union

from modelscript.config import BINARY_OPERATOR_MAP, LITERAL_PARSE_ORDER, RANGE_OPERATOR, UNARY_OPERATOR_MAP
from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.functions.core import Range, binary_operator, unary_operator
from modelscript.functions.vector import ElementAt, ElementsAt, array_of, concat_of
from modelscript.generators.registry import FUNCTION, GeneratorRegistry
from modelscript.graph import DeterministicFunction, GraphicalModel, Value
from modelscript.graph.values import is_array, scalar_type
from modelscript.parser.classes import ArrayLiteral, BinaryOp, Call, Constant, Expression, Identifier, IndexExpression, UnaryOp

log = logging.getLogger(__name__)

Evaluated = Union[Value, DeterministicFunction]


# --- Literal parsing ---


def _parse_int(text: str) -> int:
    return int(text)


def _parse_float(text: str) -> float:
    return float(text)


def _parse_boolean(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValueError(f"'{text}' is not a boolean literal")


def _parse_string(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return text


LITERAL_PARSERS = {
    "int": _parse_int,
    "float": _parse_float,
    "boolean": _parse_boolean,
    "string": _parse_string,
}


def parse_literal(text: str) -> Any:
    """Parses a literal token as an int, then a float, then a boolean, falling back to a string."""
    for kind in LITERAL_PARSE_ORDER:
        try:
            return LITERAL_PARSERS[kind](text)
        except ValueError:
            continue
    return text


def _raise_located(error: ModelScriptError, node) -> None:
    located = error.with_span(node.span)
    if located is error:
        raise error
    raise located from error


class ExpressionEvaluator:
    def __init__(self, model: GraphicalModel, registry: GeneratorRegistry, context: str):
        self.model = model
        self.registry = registry
        self.context = context
        self._dispatch = {
            Constant: self._constant,
            Identifier: self._identifier,
            BinaryOp: self._binary,
            UnaryOp: self._unary,
            ArrayLiteral: self._array,
            IndexExpression: self._index,
            Call: self._call,
        }

    def evaluate(self, expression: Expression) -> Evaluated:
        handler = self._dispatch.get(type(expression))
        if handler is None:
            raise TypeError(f"Cannot evaluate a {type(expression).__name__} node.")
        try:
            return handler(expression)
        except ModelScriptError as e:
            _raise_located(e, expression)

    def evaluate_value(self, expression: Expression) -> Value:
        """Evaluates and, for functions, applies, so the result is always a Value."""
        result = self.evaluate(expression)
        if isinstance(result, DeterministicFunction):
            try:
                return result.apply()
            except ModelScriptError as e:
                _raise_located(e, expression)
        return result

    def evaluate_arguments(self, call: Call) -> Union[Dict[str, Value], List[Value]]:
        if call.is_named:
            return {arg.name: self.evaluate_value(arg.value) for arg in call.named_args}
        return [self.evaluate_value(arg) for arg in call.args]

    # --- Node handlers ---

    def _constant(self, node: Constant) -> Value:
        return Value(None, parse_literal(node.text))

    def _identifier(self, node: Identifier) -> Value:
        return self.model.lookup(node.name, self.context)

    def _binary(self, node: BinaryOp) -> DeterministicFunction:
        left = self.evaluate_value(node.left)
        right = self.evaluate_value(node.right)
        if node.op == RANGE_OPERATOR:
            return Range(start=left, end=right)
        if node.op not in BINARY_OPERATOR_MAP:
            raise ModelScriptError(ErrorCode.UNKNOWN_GENERATOR, kind="operator", name=node.op)
        return binary_operator(BINARY_OPERATOR_MAP[node.op], a=left, b=right)

    def _unary(self, node: UnaryOp) -> DeterministicFunction:
        operand = self.evaluate_value(node.operand)
        if node.op not in UNARY_OPERATOR_MAP:
            raise ModelScriptError(ErrorCode.UNKNOWN_GENERATOR, kind="operator", name=node.op)
        return unary_operator(UNARY_OPERATOR_MAP[node.op], x=operand)

    def _array(self, node: ArrayLiteral) -> Evaluated:
        items = [self.evaluate_value(item) for item in node.items]
        if all(item.is_constant for item in items) and len({scalar_type(item.value) for item in items}) <= 1:
            return Value(None, [item.value for item in items])
        return array_of(items)

    def _index(self, node: IndexExpression) -> DeterministicFunction:
        target = self.evaluate_value(node.target)
        indices = [self.evaluate_value(index) for index in node.indices]
        if len(indices) == 1:
            (index,) = indices
            if scalar_type(index.value) is int:
                return ElementAt(array=target, i=index)
            if is_array(index.value):
                return ElementsAt(array=target, indices=index)
            raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=target.id or "array", details=f"cannot index with {index.value!r}.")
        return ElementsAt(array=target, indices=concat_of(indices).apply())

    def _call(self, node: Call) -> Evaluated:
        arguments = self.evaluate_arguments(node)
        generator = self.registry.resolve(node.name, arguments, kind=FUNCTION)
        log.debug("%s resolved to %r", node.name, generator)
        return generator
