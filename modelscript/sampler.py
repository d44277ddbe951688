"""
Ancestral (forward) sampling over the model scope.

A pass starts from the sinks of the model scope and walks upstream. Every value whose
ancestry contains a random draw is regenerated from a copy of its generator bound to
the regenerated inputs; everything else is reused unchanged. A memo keyed by id makes
every random variable draw exactly once per pass, so sinks that share an ancestor see
the same new draw. The redrawn named values are collected in an overlay and committed
into the model scope only when the whole pass succeeds.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Union

from modelscript.config import MODEL_SCOPE
from modelscript.exceptions import ErrorCode, InternalInconsistencyError, ModelScriptError
from modelscript.graph import GenerativeDistribution, GraphicalModel, IndexedValue, RandomVariable, Value
from modelscript.graph.values import ABSENT, has_random_ancestry

log = logging.getLogger(__name__)

MemoKey = Union[str, int]


class SamplingPass:
    """The state of one pass: the memo, the nodes on the current path and the overlay."""

    def __init__(self, model: GraphicalModel):
        self.model = model
        self.scope = model.model_scope
        self.memo: Dict[MemoKey, Value] = {}
        self.in_progress: Set[MemoKey] = set()
        self.overlay: Dict[str, Value] = {}
        self.randomness: Dict[int, bool] = {}

    def key(self, value: Value) -> MemoKey:
        # A named value is shared by id while it is the one bound in the model scope;
        # superseded or anonymous values are tracked by identity.
        if value.id is not None and self.scope.get(value.id) is value:
            return value.id
        return id(value)

    def is_random(self, value: Value) -> bool:
        return has_random_ancestry([value], self.randomness)

    def resample(self, value: Value) -> Value:
        if not self.is_random(value):
            return value

        key = self.key(value)
        if key in self.memo:
            return self.memo[key]
        if key in self.in_progress:
            raise InternalInconsistencyError(f"Cycle detected while resampling '{value.id or value!r}'.")

        self.in_progress.add(key)
        try:
            fresh = self._regenerate(value)
        finally:
            self.in_progress.discard(key)

        self.memo[key] = fresh
        if isinstance(key, str):
            self.overlay[key] = fresh
        return fresh

    def _regenerate(self, value: Value) -> Value:
        if isinstance(value, IndexedValue):
            return value.rebuild(self.resample)

        generator = value.generator
        if generator is None:
            raise ModelScriptError(ErrorCode.MISSING_GENERATOR, name=value.id or "<anonymous>")

        params = {name: self._resample_param(param) for name, param in generator.params.items()}
        fresh_generator = generator.with_params(params)

        if isinstance(fresh_generator, GenerativeDistribution):
            return fresh_generator.sample(value.id)
        if isinstance(value, RandomVariable):
            raise ModelScriptError(ErrorCode.MISSING_GENERATOR, name=value.id or "<anonymous>")

        fresh = fresh_generator.apply()
        fresh.id = value.id
        return fresh

    def _resample_param(self, param: Any) -> Any:
        if param is ABSENT or param is None:
            return param
        return self.resample(param)


class AncestralSampler:
    def __init__(self, model: GraphicalModel):
        self.model = model

    def sample(self, sinks: Optional[List[Value]] = None) -> Dict[str, Value]:
        """
        Runs one pass and returns the overlay of redrawn named values, which is already
        committed into the model scope. `sinks` defaults to the sinks of the model scope.
        """
        roots = sinks if sinks is not None else self.model.sinks(MODEL_SCOPE)
        state = SamplingPass(self.model)

        log.debug("sampling pass over %d sink(s)", len(roots))
        for sink in roots:
            if state.is_random(sink):
                state.resample(sink)

        self.model.commit(state.overlay, MODEL_SCOPE)
        log.debug("sampling pass redrew %s", sorted(state.overlay))
        self.model.notify_listeners()
        return state.overlay

    def sample_many(self, n: int) -> List[Dict[str, Any]]:
        """Runs `n` passes and records the datum of every model value after each one."""
        draws = []
        for _ in range(n):
            self.sample()
            draws.append({value.id: value.value for value in self.model.model_scope})
        return draws
