"""
Array functions: literal array construction, element access and simple reductions.
"""

from typing import Any, List, Sequence

from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.graph.generators import DeterministicFunction, ParameterInfo, bind_all, positional_signature
from modelscript.graph.values import Value, is_array


class ArrayFunction(DeterministicFunction):
    """Builds an array from element values, one parameter per element ("0", "1", ...)."""

    name = "array"

    def compute(self) -> List[Any]:
        return [self.param_value(name) for name in self.parameter_names]

    def code_string(self) -> str:
        items = []
        for name in self.parameter_names:
            value = self.get_param(name)
            items.append(value.id if value.id is not None else repr(value.value))
        return f"[{', '.join(items)}]"


class Concat(ArrayFunction):
    """Joins its arguments into one flat array; array arguments contribute every element."""

    name = "concat"

    def compute(self) -> List[Any]:
        joined = []
        for name in self.parameter_names:
            datum = self.param_value(name)
            joined.extend(datum if is_array(datum) else [datum])
        return joined


def array_of(values: Sequence[Value]) -> ArrayFunction:
    return bind_all(ArrayFunction(parameters=positional_signature(len(values))), values)


def concat_of(values: Sequence[Value]) -> Concat:
    return bind_all(Concat(parameters=positional_signature(len(values))), values)


def _checked_index(owner: str, datum: List[Any], index: Any) -> int:
    if not isinstance(index, int) or isinstance(index, bool):
        raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=owner, details=f"index {index!r} is not an integer.")
    if not -len(datum) <= index < len(datum):
        raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=owner, details=f"index {index} is out of range for an array of length {len(datum)}.")
    return index


class ElementAt(DeterministicFunction):
    name = "elementAt"
    description = "The element of an array at index i."
    signatures = (
        (
            ParameterInfo("array", "the array to read from.", shape="array"),
            ParameterInfo("i", "the index of the element.", shape="integer"),
        ),
    )

    def compute(self) -> Any:
        datum = self.param_value("array")
        return datum[_checked_index(self._owner(), datum, self.param_value("i"))]

    def _owner(self) -> str:
        array = self.get_param("array")
        return array.id if array.id is not None else self.name

    def code_string(self) -> str:
        array, i = self.get_param("array"), self.get_param("i")
        index = i.id if i.id is not None else repr(i.value)
        return f"{array.id or '(array)'}[{index}]"


class ElementsAt(ElementAt):
    name = "elementsAt"
    description = "The elements of an array at the given indices, in order."
    signatures = (
        (
            ParameterInfo("array", "the array to read from.", shape="array"),
            ParameterInfo("indices", "the indices of the elements.", shape="vector"),
        ),
    )

    def compute(self) -> List[Any]:
        datum = self.param_value("array")
        owner = self._owner()
        return [datum[_checked_index(owner, datum, i)] for i in self.param_value("indices")]

    def code_string(self) -> str:
        array, indices = self.get_param("array"), self.get_param("indices")
        selection = indices.id if indices.id is not None else ", ".join(repr(i) for i in indices.value)
        return f"{array.id or '(array)'}[{selection}]"


class Rep(DeterministicFunction):
    name = "rep"
    description = "An array holding `times` copies of element."
    signatures = (
        (
            ParameterInfo("element", "the value to replicate."),
            ParameterInfo("times", "the number of copies.", shape="integer"),
        ),
    )

    def compute(self) -> List[Any]:
        element = self.param_value("element")
        times = self.param_value("times")
        if times < 0:
            raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=self.name, details=f"cannot replicate {times} times.")
        return [list(element) if is_array(element) else element for _ in range(times)]


class Sum(DeterministicFunction):
    name = "sum"
    description = "The sum of the elements of an array."
    signatures = ((ParameterInfo("array", "the array to sum.", shape="vector"),),)

    def compute(self) -> Any:
        return sum(self.param_value("array"))


class Length(DeterministicFunction):
    name = "length"
    description = "The number of elements of an array."
    signatures = ((ParameterInfo("array", "the array to measure.", shape="array"),),)

    def compute(self) -> int:
        return len(self.param_value("array"))


GENERATORS = [ElementAt, ElementsAt, Rep, Sum, Length]
