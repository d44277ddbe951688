"""
Core deterministic functions: operator expression nodes, univariate math,
identity and integer ranges.

Operators work element-wise on arrays and broadcast scalars against arrays,
so `x + 1.0` is valid for a scalar or a vector `x`.
"""

import math
from functools import partial
from typing import Any, Callable, Optional

from scipy import special

from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.generators.registry import FUNCTION, GeneratorSpec
from modelscript.graph.generators import DeterministicFunction, ParameterInfo, Signature
from modelscript.graph.values import is_array

# --- Element-wise helpers ---


def _elementwise_binary(op: Callable[[Any, Any], Any]) -> Callable[[Any, Any], Any]:
    """
    A factory that lifts a scalar binary operation to arrays.
    It handles scalar/array broadcasting and nested (2D) arrays.
    """

    def apply(a, b):
        # Case 1: array op array
        if is_array(a) and is_array(b):
            if len(a) != len(b):
                raise ValueError(f"arrays of different lengths ({len(a)} and {len(b)})")
            return [apply(x, y) for x, y in zip(a, b)]
        # Case 2: array op scalar (broadcasting)
        if is_array(a):
            return [apply(x, b) for x in a]
        # Case 3: scalar op array (broadcasting)
        if is_array(b):
            return [apply(a, y) for y in b]
        if a is None or b is None:
            return None
        return op(a, b)

    return apply


def _elementwise_unary(op: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def apply(a):
        if is_array(a):
            return [apply(x) for x in a]
        if a is None:
            return None
        return op(a)

    return apply


def _divide(a, b):
    return a / b


def _logit(p):
    return math.log(p / (1.0 - p))


def _step(x):
    return 1.0 if x > 0 else 0.0


def _signum(x):
    return float((x > 0) - (x < 0))


def _cloglog(p):
    return math.log(-math.log(1.0 - p))


def _zero_fill_right_shift(a, b):
    # Shifts the 32-bit two's-complement pattern of `a`, filling with zeros.
    shifted = (a & 0xFFFFFFFF) >> b
    return shifted - (1 << 32) if shifted >= (1 << 31) else shifted


BINARY_OPERATORS = {
    "add": ("+", _elementwise_binary(lambda a, b: a + b)),
    "subtract": ("-", _elementwise_binary(lambda a, b: a - b)),
    "multiply": ("*", _elementwise_binary(lambda a, b: a * b)),
    "divide": ("/", _elementwise_binary(_divide)),
    "power": ("**", _elementwise_binary(lambda a, b: a**b)),
    "mod": ("%", _elementwise_binary(lambda a, b: a % b)),
    "__eq__": ("==", _elementwise_binary(lambda a, b: a == b)),
    "__neq__": ("!=", _elementwise_binary(lambda a, b: a != b)),
    "__gt__": (">", _elementwise_binary(lambda a, b: a > b)),
    "__lt__": ("<", _elementwise_binary(lambda a, b: a < b)),
    "__gte__": (">=", _elementwise_binary(lambda a, b: a >= b)),
    "__lte__": ("<=", _elementwise_binary(lambda a, b: a <= b)),
    "__and__": ("&&", _elementwise_binary(lambda a, b: bool(a) and bool(b))),
    "__or__": ("||", _elementwise_binary(lambda a, b: bool(a) or bool(b))),
    "bitwise_and": ("&", _elementwise_binary(lambda a, b: a & b)),
    "bitwise_or": ("|", _elementwise_binary(lambda a, b: a | b)),
    "bitwise_xor": ("^", _elementwise_binary(lambda a, b: a ^ b)),
    "left_shift": ("<<", _elementwise_binary(lambda a, b: a << b)),
    "right_shift": (">>", _elementwise_binary(lambda a, b: a >> b)),
    "zero_fill_right_shift": (">>>", _elementwise_binary(_zero_fill_right_shift)),
}

UNARY_OPERATORS = {
    "__not__": ("!", _elementwise_unary(lambda a: not a)),
    "negate": ("-", _elementwise_unary(lambda a: -a)),
}

MATH_FUNCTIONS = {
    "abs": abs,
    "acos": math.acos,
    "acosh": math.acosh,
    "asin": math.asin,
    "asinh": math.asinh,
    "atan": math.atan,
    "atanh": math.atanh,
    "cLogLog": _cloglog,
    "cbrt": lambda x: math.copysign(abs(x) ** (1.0 / 3.0), x),
    "ceil": math.ceil,
    "cos": math.cos,
    "cosh": math.cosh,
    "exp": math.exp,
    "expm1": math.expm1,
    "floor": math.floor,
    "log": math.log,
    "log10": math.log10,
    "log1p": math.log1p,
    "logFact": lambda x: special.gammaln(x + 1.0).item(),
    "logGamma": lambda x: special.gammaln(x).item(),
    "logit": _logit,
    "phi": lambda x: special.ndtr(x).item(),
    "probit": lambda p: special.ndtri(p).item(),
    "round": round,
    "signum": _signum,
    "sin": math.sin,
    "sinh": math.sinh,
    "sqrt": math.sqrt,
    "step": _step,
    "tan": math.tan,
    "tanh": math.tanh,
}


class ExpressionNode(DeterministicFunction):
    """An operator applied to one or two operand values."""

    signatures = ((ParameterInfo("a"), ParameterInfo("b")),)

    def __init__(self, symbol: str, op: Callable, parameters: Optional[Signature] = None, **inputs):
        self.name = symbol
        self.op = op
        super().__init__(parameters, **inputs)

    def compute(self) -> Any:
        args = [self.param_value(name) for name in self.parameter_names]
        try:
            return self.op(*args)
        except (TypeError, ValueError, ZeroDivisionError, OverflowError) as e:
            raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=self.name, details=f"cannot evaluate {self.code_string()}: {e}") from e

    def code_string(self) -> str:
        operands = [self._operand_string(name) for name in self.parameter_names]
        if len(operands) == 1:
            return f"{self.name}{operands[0]}"
        return f" {self.name} ".join(operands)

    def _operand_string(self, param_name: str) -> str:
        value = self.get_param(param_name)
        if value.id is not None:
            return value.id
        if value.generator is not None:
            return f"({value.generator.code_string()})"
        return repr(value.value)


UNARY_SIGNATURE = (ParameterInfo("x"),)


def binary_operator(function_name: str, **inputs) -> ExpressionNode:
    symbol, op = BINARY_OPERATORS[function_name]
    return ExpressionNode(symbol, op, **inputs)


def unary_operator(function_name: str, **inputs) -> ExpressionNode:
    symbol, op = UNARY_OPERATORS[function_name]
    return ExpressionNode(symbol, op, parameters=UNARY_SIGNATURE, **inputs)


class MathFunction(ExpressionNode):
    """A univariate math function applied element-wise, e.g. exp(x)."""

    signatures = (UNARY_SIGNATURE,)

    def __init__(self, name: str, op: Callable, parameters: Optional[Signature] = None, **inputs):
        super().__init__(name, _elementwise_unary(op), parameters or UNARY_SIGNATURE, **inputs)

    def code_string(self) -> str:
        return f"{self.name}({self._operand_string('x')})"


class Identity(DeterministicFunction):
    """Re-exposes another value under a new id."""

    name = "identity"
    signatures = ((ParameterInfo("x"),),)

    def compute(self) -> Any:
        datum = self.param_value("x")
        return list(datum) if is_array(datum) else datum


class Range(DeterministicFunction):
    """The inclusive integer range start:end."""

    name = "range"
    description = "The integers from start to end, both inclusive."
    signatures = ((ParameterInfo("start", shape="integer"), ParameterInfo("end", shape="integer")),)

    def compute(self) -> Any:
        start, end = self.param_value("start"), self.param_value("end")
        step = 1 if end >= start else -1
        return list(range(start, end + step, step))

    def code_string(self) -> str:
        return f"{self._bound('start')}:{self._bound('end')}"

    def _bound(self, param_name: str) -> str:
        value = self.get_param(param_name)
        return value.id if value.id is not None else repr(value.value)


def _math_spec(name: str, op: Callable) -> GeneratorSpec:
    return GeneratorSpec(name=name, kind=FUNCTION, signatures=(UNARY_SIGNATURE,), factory=partial(MathFunction, name, op))


GENERATORS = [Range, Identity] + [_math_spec(name, op) for name, op in MATH_FUNCTIONS.items()]
