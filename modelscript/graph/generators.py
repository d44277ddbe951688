"""
Generators produce Values from named parameters.

A DeterministicFunction maps its parameters to one Value and always returns the same
datum for the same inputs. A GenerativeDistribution draws a RandomVariable using the
process-wide random source. Every generator declares the parameters it accepts with
ParameterInfo records, which the registry uses to match call arguments.
"""

import copy
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.generators.random_source import get_random

from .values import ABSENT, RandomVariable, Value, has_random_ancestry, shape_compatible, shape_of


@dataclass(frozen=True)
class ParameterInfo:
    """Declared parameter of a generator signature."""

    name: str
    description: str = ""
    optional: bool = False
    # One of: any, scalar, number, integer, vector, matrix, array
    shape: str = "any"


Signature = Tuple[ParameterInfo, ...]


class Generator:
    name: str = ""
    description: str = ""
    signatures: Tuple[Signature, ...] = ((),)

    def __init__(self, parameters: Optional[Signature] = None, **inputs: Value):
        self.parameters: Signature = tuple(parameters) if parameters is not None else self.signatures[0]
        self._params: Dict[str, Any] = {}
        for param_name, value in inputs.items():
            self.set_input(param_name, value)

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    @property
    def is_distribution(self) -> bool:
        return False

    def set_param(self, param_name: str, value: Any):
        if param_name not in self.parameter_names:
            raise ValueError(f"'{param_name}' is not a parameter of {self.name}; the valid parameter names are {self.parameter_names}.")
        self._params[param_name] = value

    def set_input(self, param_name: str, value: Any):
        """Binds a parameter and records this generator as a dependent of the value."""
        self.set_param(param_name, value)
        if value is not ABSENT and value is not None:
            value.add_output(self)

    def set_inputs(self, params: Dict[str, Any]):
        for param_name, value in params.items():
            self.set_input(param_name, value)

    def get_param(self, param_name: str) -> Any:
        return self._params.get(param_name, ABSENT)

    def param_value(self, param_name: str, default: Any = None) -> Any:
        """The datum bound to a parameter, or `default` when it is absent."""
        value = self._params.get(param_name, ABSENT)
        if value is ABSENT or value is None:
            return default
        return value.value

    def inputs(self) -> List[Value]:
        return [v for v in self._params.values() if v is not ABSENT and v is not None]

    def has_random_parameters(self) -> bool:
        return has_random_ancestry(self.inputs())

    def check_shapes(self):
        """Verifies every bound datum against the declared parameter shapes."""
        for info in self.parameters:
            value = self._params.get(info.name, ABSENT)
            if value is ABSENT or value is None:
                if not info.optional:
                    raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=self.name, details=f"required parameter '{info.name}' is not bound.")
                continue
            if not shape_compatible(info.shape, value.value):
                raise ModelScriptError(
                    ErrorCode.SHAPE_MISMATCH,
                    name=self.name,
                    details=f"parameter '{info.name}' expects a {info.shape} but got a {shape_of(value.value)} ({value.value!r}).",
                )

    def with_params(self, params: Dict[str, Any]) -> "Generator":
        """A copy of this generator bound to `params`; the original is left untouched."""
        duplicate = copy.copy(self)
        duplicate._params = {}
        for param_name in self._params:
            duplicate.set_input(param_name, params.get(param_name, self._params[param_name]))
        return duplicate

    def code_string(self) -> str:
        args = []
        for param_name, value in self._params.items():
            if value is ABSENT or value is None:
                continue
            args.append(f"{param_name}={value.id if value.id is not None else repr(value.value)}")
        return f"{self.name}({', '.join(args)})"

    def __repr__(self):
        return self.code_string()


class DeterministicFunction(Generator):
    """A pure function of its parameters."""

    def apply(self) -> Value:
        self.check_shapes()
        return Value(None, self.compute(), self)

    def compute(self) -> Any:
        raise NotImplementedError


class GenerativeDistribution(Generator):
    """A stochastic generator that draws random variables."""

    @property
    def is_distribution(self) -> bool:
        return True

    @property
    def random(self):
        return get_random()

    def sample(self, id: Optional[str] = None) -> RandomVariable:
        self.check_shapes()
        try:
            datum = self.draw()
        except (ValueError, ZeroDivisionError, OverflowError) as e:
            raise ModelScriptError(ErrorCode.SAMPLING_FAILED, name=self.code_string(), details=str(e)) from e
        return RandomVariable(id, datum, self)

    def draw(self) -> Any:
        raise NotImplementedError

    def log_density(self, x: Any) -> float:
        raise NotImplementedError

    def density(self, x: Any) -> float:
        return math.exp(self.log_density(x))


def positional_signature(count: int, prefix: str = "", shape: str = "any") -> Signature:
    """A signature of `count` parameters named by position ("0", "1", ...)."""
    return tuple(ParameterInfo(f"{prefix}{i}", shape=shape) for i in range(count))


def bind_all(generator: Generator, values: Sequence[Value]) -> Generator:
    for info, value in zip(generator.parameters, values):
        generator.set_input(info.name, value)
    return generator
