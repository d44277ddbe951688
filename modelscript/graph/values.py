"""
Values are the nodes of a graphical model that hold data.

A Value is either a constant (no generator), the output of a DeterministicFunction,
or a RandomVariable drawn from a GenerativeDistribution. Values assembled from several
indexed assignments are IndexedValues and remember which source wrote each index.
"""

import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from modelscript.exceptions import ErrorCode, ModelScriptError

if TYPE_CHECKING:
    from modelscript.graph.generators import Generator


class ValueKind(Enum):
    CONSTANT = "constant"
    DETERMINISTIC = "deterministic"
    RANDOM = "random"


class _Absent:
    """Marker bound to optional parameters that were not supplied."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "ABSENT"

    def __bool__(self):
        return False


ABSENT = _Absent()

# Entries of an indexed value that no assignment has written yet.
UNSET = None


# --- Shape helpers ---


def is_array(datum: Any) -> bool:
    return isinstance(datum, (list, tuple))


def scalar_type(datum: Any) -> Optional[type]:
    """Returns the python type of a scalar datum; bool is kept apart from int."""
    if datum is None:
        return None
    if isinstance(datum, bool):
        return bool
    if isinstance(datum, int):
        return int
    if isinstance(datum, float):
        return float
    if isinstance(datum, str):
        return str
    if is_array(datum):
        return list
    return type(datum)


def element_type(datum: Any) -> Optional[type]:
    """The scalar type of the first set element of an array datum, or of the datum itself."""
    if not is_array(datum):
        return scalar_type(datum)
    for item in datum:
        if item is not None:
            return scalar_type(item)
    return None


def shape_of(datum: Any) -> str:
    if datum is None:
        return "unset"
    if is_array(datum):
        if any(is_array(item) for item in datum):
            return "matrix"
        return "vector"
    return "scalar"


def shape_compatible(expected: str, datum: Any) -> bool:
    if expected == "any":
        return True
    actual = shape_of(datum)
    if expected == "array":
        return actual in ("vector", "matrix")
    if expected == "number":
        return actual == "scalar" and scalar_type(datum) in (int, float)
    if expected == "integer":
        return actual == "scalar" and scalar_type(datum) is int
    return actual == expected


# --- Randomness ---


def has_random_ancestry(roots: Iterable[Any], known: Optional[Dict[int, bool]] = None) -> bool:
    """
    True if a random variable is among `roots` or upstream of them. Each node is
    visited once, so shared subexpressions do not multiply the work.

    `known` caches answers by node identity across calls: a root that turns out to
    have no random ancestry marks its whole upstream closure as non-random.
    """
    seen: Set[int] = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        key = id(node)
        if key in seen:
            continue
        seen.add(key)
        if known is not None and key in known:
            if known[key]:
                return True
            continue
        if isinstance(node, Value) and node.kind is ValueKind.RANDOM:
            if known is not None:
                known[key] = True
            return True
        stack.extend(node.inputs())
    if known is not None:
        for key in seen:
            known.setdefault(key, False)
    return False


# --- Value nodes ---


class Value:
    """A named or anonymous container for one realization of a quantity."""

    def __init__(self, id: Optional[str], value: Any, generator: Optional["Generator"] = None):
        self.id = id
        self.value = value
        self.generator = generator
        # Reverse edges: the generators this value was bound to with set_input.
        self._outputs = weakref.WeakSet()

    @property
    def kind(self) -> ValueKind:
        if self.generator is None:
            return ValueKind.CONSTANT
        return ValueKind.DETERMINISTIC

    @property
    def is_constant(self) -> bool:
        return self.kind is ValueKind.CONSTANT

    @property
    def is_anonymous(self) -> bool:
        return self.id is None

    @property
    def is_random(self) -> bool:
        return has_random_ancestry([self])

    @property
    def outputs(self) -> List["Generator"]:
        return list(self._outputs)

    def add_output(self, generator: "Generator"):
        self._outputs.add(generator)

    def inputs(self) -> List[Any]:
        """The direct upstream nodes of this value."""
        return [self.generator] if self.generator is not None else []

    def copy(self, id: Optional[str] = None) -> "Value":
        """A new node of the same class sharing datum and generator."""
        return type(self)(id, self.value, self.generator)

    def __repr__(self):
        label = self.id if self.id is not None else "<anonymous>"
        return f"{type(self).__name__}({label}={self.value!r})"


class RandomVariable(Value):
    """A value drawn from a GenerativeDistribution."""

    @property
    def kind(self) -> ValueKind:
        return ValueKind.RANDOM

    @property
    def distribution(self) -> Optional["Generator"]:
        return self.generator


class IndexedValue(Value):
    """
    An array value assembled from one or more indexed assignments.

    Each written index remembers the source Value that wrote it and the position
    inside that source (None when a scalar was broadcast). The last writer of an
    index owns it.
    """

    def __init__(self, id: Optional[str], length: int = 0, component_type: Optional[type] = None):
        super().__init__(id, [UNSET] * length)
        self.component_type = component_type
        self.provenance: Dict[int, Tuple[Value, Optional[int]]] = {}

    @classmethod
    def seeded(cls, id: Optional[str], source: Value) -> "IndexedValue":
        """An indexed value whose entries are read from an existing array value."""
        indexed = cls(id)
        if source.value:
            indexed.assign(list(range(len(source.value))), source)
        return indexed

    @property
    def kind(self) -> ValueKind:
        if any(not source.is_constant for source in self.sources()):
            return ValueKind.DETERMINISTIC
        return ValueKind.CONSTANT

    def sources(self) -> List[Value]:
        """The distinct values that wrote entries, in index order."""
        seen, result = set(), []
        for index in sorted(self.provenance):
            source = self.provenance[index][0]
            if id(source) not in seen:
                seen.add(id(source))
                result.append(source)
        return result

    def inputs(self) -> List[Any]:
        return self.sources()

    def assign(self, indices: Sequence[int], source: Value):
        """Writes `source` into `indices`, growing the array first if needed."""
        datum = source.value
        entries = self._entries_for(indices, datum)

        new_type = self.component_type
        for entry in entries:
            new_type = self._merge_component_type(new_type, entry)

        top = max(indices)
        if top >= len(self.value):
            self.value.extend([UNSET] * (top + 1 - len(self.value)))

        if new_type is float and self.component_type is int:
            self.value[:] = [float(item) if item is not UNSET else UNSET for item in self.value]
        self.component_type = new_type
        broadcast = not is_array(datum)
        for position, (index, entry) in enumerate(zip(indices, entries)):
            self.value[index] = float(entry) if new_type is float and scalar_type(entry) is int else entry
            self.provenance[index] = (source, None if broadcast else position)

    def rebuild(self, resolve) -> "IndexedValue":
        """
        Returns a new IndexedValue with the same id in which every written index is
        re-read from `resolve(source)`. Unwritten entries stay unset.
        """
        rebuilt = IndexedValue(self.id, len(self.value), self.component_type)
        replacements: Dict[int, Value] = {}
        for index in sorted(self.provenance):
            source, position = self.provenance[index]
            if id(source) not in replacements:
                replacements[id(source)] = resolve(source)
            new_source = replacements[id(source)]
            entry = new_source.value if position is None else new_source.value[position]
            if self.component_type is float and scalar_type(entry) is int:
                entry = float(entry)
            rebuilt.value[index] = entry
            rebuilt.provenance[index] = (new_source, position)
        return rebuilt

    def copy(self, id: Optional[str] = None) -> "IndexedValue":
        duplicate = IndexedValue(id, 0, self.component_type)
        duplicate.value = list(self.value)
        duplicate.provenance = dict(self.provenance)
        return duplicate

    def _entries_for(self, indices: Sequence[int], datum: Any) -> List[Any]:
        if not indices:
            raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=self.id, details="the index range is empty.")
        if any(not isinstance(i, int) or isinstance(i, bool) or i < 0 for i in indices):
            raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=self.id, details=f"indices must be non-negative integers, got {list(indices)}.")
        if is_array(datum):
            if len(datum) != len(indices):
                raise ModelScriptError(
                    ErrorCode.SHAPE_MISMATCH,
                    name=self.id,
                    details=f"cannot assign {len(datum)} values to a range of {len(indices)} indices.",
                )
            return list(datum)
        return [datum] * len(indices)

    def _merge_component_type(self, current: Optional[type], entry: Any) -> Optional[type]:
        entry_type = scalar_type(entry)
        if entry_type is None or current is None:
            return current or entry_type
        if entry_type is current:
            return current
        if {current, entry_type} == {int, float}:
            return float
        raise ModelScriptError(
            ErrorCode.SHAPE_MISMATCH,
            name=self.id,
            details=f"cannot store a '{entry_type.__name__}' in an array of '{current.__name__}'.",
        )
