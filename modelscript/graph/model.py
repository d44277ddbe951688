"""
The GraphicalModel holds the two scopes of declared values (data and model) and
answers structural queries about the dependency graph they span.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set

from modelscript.config import DATA_SCOPE, MODEL_SCOPE, SCOPES, VISIBLE_SCOPES
from modelscript.exceptions import ErrorCode, ModelScriptError

from .generators import Generator
from .values import Value

log = logging.getLogger(__name__)


@dataclass
class Scope:
    """An ordered mapping of ids to the values currently bound to them."""

    name: str
    values: Dict[str, Value] = field(default_factory=dict)

    def put(self, value: Value):
        if value.id is None:
            raise ValueError("Only named values can be bound into a scope.")
        # Re-declaring an id replaces the binding but keeps the original position.
        self.values[value.id] = value

    def get(self, id: str) -> Optional[Value]:
        return self.values.get(id)

    def remove(self, id: str) -> Optional[Value]:
        return self.values.pop(id, None)

    def clear(self):
        self.values.clear()

    def __contains__(self, id: str) -> bool:
        return id in self.values

    def __iter__(self) -> Iterator[Value]:
        return iter(list(self.values.values()))

    def __len__(self) -> int:
        return len(self.values)


def direct_inputs(node: Any) -> List[Any]:
    """Upstream neighbours: a value's generator (or sources), a generator's bound values."""
    return node.inputs()


def walk_upstream(roots: Iterable[Any]) -> List[Any]:
    """Every node reachable upstream of `roots`, roots included, without repeats."""
    seen: Set[int] = set()
    ordered: List[Any] = []
    stack = list(roots)
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        ordered.append(node)
        stack.extend(direct_inputs(node))
    return ordered


class GraphicalModel:
    def __init__(self):
        self.scopes: Dict[str, Scope] = {name: Scope(name) for name in SCOPES}
        self._listeners: List[Callable[[], None]] = []

    @property
    def data_scope(self) -> Scope:
        return self.scopes[DATA_SCOPE]

    @property
    def model_scope(self) -> Scope:
        return self.scopes[MODEL_SCOPE]

    def scope(self, context: str) -> Scope:
        try:
            return self.scopes[context]
        except KeyError:
            raise ValueError(f"Unknown scope '{context}'; expected one of {SCOPES}.") from None

    # --- Bindings ---

    def put(self, value: Value, context: str = MODEL_SCOPE):
        self.scope(context).put(value)
        log.debug("bound %r in the %s scope", value, context)

    def get_value(self, id: str, context: str = MODEL_SCOPE) -> Optional[Value]:
        """Looks `id` up in `context`, falling back to the scopes `context` can see."""
        for name in VISIBLE_SCOPES[self.scope(context).name]:
            value = self.scopes[name].get(id)
            if value is not None:
                return value
        return None

    def has_value(self, id: str, context: str = MODEL_SCOPE) -> bool:
        return self.get_value(id, context) is not None

    def lookup(self, id: str, context: str = MODEL_SCOPE) -> Value:
        value = self.get_value(id, context)
        if value is None:
            raise ModelScriptError(ErrorCode.UNDECLARED_IDENTIFIER, name=id, context=context)
        return value

    def remove(self, id: str, context: str = MODEL_SCOPE) -> Optional[Value]:
        removed = self.scope(context).remove(id)
        if removed is not None:
            self.notify_listeners()
        return removed

    def commit(self, bindings: Dict[str, Value], context: str = MODEL_SCOPE):
        """Rebinds several ids at once; used to publish a finished sampling pass."""
        scope = self.scope(context)
        for value in bindings.values():
            scope.put(value)

    def clear(self):
        for scope in self.scopes.values():
            scope.clear()
        self.notify_listeners()

    def is_data_value(self, value: Value) -> bool:
        return value.id is not None and self.data_scope.get(value.id) is value

    # --- Structural queries ---

    def sinks(self, context: str = MODEL_SCOPE) -> List[Value]:
        """Bound values of `context` that no generator or indexed value of that scope consumes."""
        scope = self.scope(context)
        consumed: Set[int] = set()
        for node in walk_upstream(scope):
            for parent in direct_inputs(node):
                if isinstance(parent, Value):
                    consumed.add(id(parent))
        return [value for value in scope if id(value) not in consumed]

    def upstream(self, node: Any) -> List[Any]:
        return direct_inputs(node)

    def downstream(self, node: Any) -> List[Any]:
        """Nodes of the live graph that list `node` among their direct inputs."""
        result = []
        for candidate in self.live_nodes():
            if any(parent is node for parent in direct_inputs(candidate)):
                result.append(candidate)
        return result

    def live_nodes(self) -> List[Any]:
        """Every node reachable upstream of a bound value, in either scope."""
        roots = [value for scope in self.scopes.values() for value in scope]
        return walk_upstream(roots)

    # --- Change notification ---

    def add_listener(self, listener: Callable[[], None]):
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self):
        for listener in list(self._listeners):
            listener()
