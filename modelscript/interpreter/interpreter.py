"""
The Interpreter applies statements to a GraphicalModel one at a time.

Every statement is evaluated completely before anything is bound, so a statement
that fails leaves both scopes exactly as they were. Listeners registered on the
model are notified after each successful statement.
"""

import logging
from typing import Iterable, List, Optional

from modelscript.config import DATA_SCOPE
from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.functions import default_registry
from modelscript.functions.core import Identity
from modelscript.generators.registry import DISTRIBUTION, GeneratorRegistry
from modelscript.graph import DeterministicFunction, GraphicalModel, IndexedValue, Value
from modelscript.graph.values import is_array, scalar_type
from modelscript.parser.classes import AnyStatement, DeterministicAssignment, Identifier, IndexedAssignment, Program, StochasticAssignment

from .evaluator import ExpressionEvaluator, _raise_located

log = logging.getLogger(__name__)


class Interpreter:
    def __init__(self, model: Optional[GraphicalModel] = None, registry: Optional[GeneratorRegistry] = None):
        self.model = model if model is not None else GraphicalModel()
        self.registry = registry if registry is not None else default_registry()
        self._handlers = {
            DeterministicAssignment: self._deterministic,
            StochasticAssignment: self._stochastic,
            IndexedAssignment: self._indexed,
        }

    def evaluator(self, context: str) -> ExpressionEvaluator:
        return ExpressionEvaluator(self.model, self.registry, context)

    def process(self, statement: AnyStatement) -> Value:
        """Interprets one statement and returns the value it bound."""
        handler = self._handlers.get(type(statement))
        if handler is None:
            raise TypeError(f"Cannot interpret a {type(statement).__name__}.")
        try:
            value = handler(statement)
        except ModelScriptError as e:
            _raise_located(e, statement)

        self.model.put(value, statement.scope)
        log.debug("%s: %s = %r", statement.scope, value.id, value.value)
        self.model.notify_listeners()
        return value

    def process_all(self, statements: Iterable[AnyStatement]) -> List[Value]:
        return [self.process(statement) for statement in statements]

    def run(self, program: Program) -> List[Value]:
        return self.process_all(program.statements)

    # --- Assignment forms ---

    def _deterministic(self, statement: DeterministicAssignment) -> Value:
        evaluator = self.evaluator(statement.scope)
        if isinstance(statement.expression, Identifier):
            # An alias is an identity function so it follows its source through resampling.
            result = Identity(x=evaluator.evaluate_value(statement.expression))
        else:
            result = evaluator.evaluate(statement.expression)

        if isinstance(result, DeterministicFunction):
            value = result.apply()
        else:
            value = result
        value.id = statement.target.name
        return value

    def _stochastic(self, statement: StochasticAssignment) -> Value:
        name = statement.target.name
        if statement.scope == DATA_SCOPE:
            raise ModelScriptError(ErrorCode.STOCHASTIC_IN_DATA_SCOPE, name=name)

        evaluator = self.evaluator(statement.scope)
        call = statement.distribution
        arguments = evaluator.evaluate_arguments(call)
        try:
            distribution = self.registry.resolve(call.name, arguments, kind=DISTRIBUTION)
            return distribution.sample(name)
        except ModelScriptError as e:
            _raise_located(e, call)

    def _indexed(self, statement: IndexedAssignment) -> Value:
        name = statement.target.name
        evaluator = self.evaluator(statement.scope)
        indices = self._flatten_indices(name, [evaluator.evaluate_value(r) for r in statement.ranges])
        source = evaluator.evaluate_value(statement.expression)

        indexed = self._writable_copy(name, statement.scope)
        indexed.assign(indices, source)
        return indexed

    # --- Helpers ---

    def _flatten_indices(self, name: str, ranges: List[Value]) -> List[int]:
        indices = []
        for value in ranges:
            entries = value.value if is_array(value.value) else [value.value]
            for entry in entries:
                if scalar_type(entry) is not int:
                    raise ModelScriptError(ErrorCode.SHAPE_MISMATCH, name=name, details=f"index {entry!r} is not an integer.")
                indices.append(entry)
        return indices

    def _writable_copy(self, name: str, context: str) -> IndexedValue:
        """
        The indexed value a ranged assignment writes into: a copy of the current array
        bound to `name` (so a failed write leaves it untouched), or a fresh empty one.
        """
        existing = self.model.get_value(name, context)
        if existing is None:
            return IndexedValue(name)
        if isinstance(existing, IndexedValue):
            return existing.copy(name)
        if is_array(existing.value):
            return IndexedValue.seeded(name, existing)
        raise ModelScriptError(
            ErrorCode.SHAPE_MISMATCH,
            name=name,
            details=f"'{name}' holds the scalar {existing.value!r} and cannot be assigned by index.",
        )
