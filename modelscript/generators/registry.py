"""
The generator registry maps display names to candidate implementations and picks
the signature whose declared parameters are satisfied by the supplied arguments.

Candidates sharing a name are tried in registration order and, within a candidate,
signatures are tried in declaration order. The first satisfiable signature wins.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from modelscript.exceptions import ErrorCode, ModelScriptError
from modelscript.graph.generators import GenerativeDistribution, Generator, Signature
from modelscript.graph.values import ABSENT, Value

log = logging.getLogger(__name__)

FUNCTION = "function"
DISTRIBUTION = "distribution"

Arguments = Union[Mapping[str, Value], Sequence[Value]]


@dataclass(frozen=True)
class GeneratorSpec:
    """One registered implementation: its signatures and how to build an instance."""

    name: str
    kind: str
    signatures: Tuple[Signature, ...]
    factory: Callable[..., Generator]
    description: str = ""

    @classmethod
    def from_class(cls, generator_class) -> "GeneratorSpec":
        kind = DISTRIBUTION if issubclass(generator_class, GenerativeDistribution) else FUNCTION
        return cls(
            name=generator_class.name,
            kind=kind,
            signatures=tuple(generator_class.signatures),
            factory=generator_class,
            description=generator_class.description,
        )

    def create(self, signature: Signature, bound: Dict[str, Any]) -> Generator:
        generator = self.factory(parameters=signature)
        for param_name, value in bound.items():
            generator.set_input(param_name, value)
        return generator


# --- Signature matching ---


def match_named(arguments: Mapping[str, Value], signature: Signature) -> Optional[Dict[str, Any]]:
    """
    A signature matches named arguments if every required parameter is supplied and
    every supplied name is declared. One argument always matches a one-parameter signature.
    Returns the full parameter binding (ABSENT for unmatched optionals) or None.
    """
    if len(arguments) == 1 and len(signature) == 1:
        return {signature[0].name: next(iter(arguments.values()))}

    required = {p.name for p in signature if not p.optional}
    declared = {p.name for p in signature}
    supplied = set(arguments)
    if not required <= supplied or not supplied <= declared:
        return None
    return {p.name: arguments.get(p.name, ABSENT) for p in signature}


def match_positional(arguments: Sequence[Value], signature: Signature) -> Optional[Dict[str, Any]]:
    """Binds in declared order when the counts agree; no argument fills a single parameter with ABSENT."""
    if len(arguments) == len(signature):
        return {p.name: value for p, value in zip(signature, arguments)}
    if not arguments and len(signature) == 1:
        return {signature[0].name: ABSENT}
    return None


def describe_arguments(arguments: Arguments) -> str:
    def label(value):
        return value.id if getattr(value, "id", None) is not None else repr(getattr(value, "value", value))

    if isinstance(arguments, Mapping):
        return ", ".join(f"{name}={label(value)}" for name, value in arguments.items())
    return ", ".join(label(value) for value in arguments)


class GeneratorRegistry:
    def __init__(self, specs: Iterable[Union[GeneratorSpec, type]] = ()):
        self._specs: Dict[str, List[GeneratorSpec]] = {}
        self.register_all(specs)

    def register(self, spec: Union[GeneratorSpec, type]) -> GeneratorSpec:
        if not isinstance(spec, GeneratorSpec):
            spec = GeneratorSpec.from_class(spec)
        self._specs.setdefault(spec.name, []).append(spec)
        return spec

    def register_all(self, specs: Iterable[Union[GeneratorSpec, type]]):
        for spec in specs:
            self.register(spec)

    def candidates(self, name: str, kind: Optional[str] = None) -> List[GeneratorSpec]:
        return [spec for spec in self._specs.get(name, []) if kind is None or spec.kind == kind]

    def names(self, kind: Optional[str] = None) -> List[str]:
        return sorted(name for name in self._specs if self.candidates(name, kind))

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    def resolve(self, name: str, arguments: Arguments, kind: Optional[str] = None) -> Generator:
        """Constructs the first candidate whose signature accepts `arguments`."""
        candidates = self.candidates(name, kind)
        if not candidates:
            raise ModelScriptError(ErrorCode.UNKNOWN_GENERATOR, kind=kind or "generator", name=name)

        named = isinstance(arguments, Mapping)
        matcher = match_named if named else match_positional
        for spec in candidates:
            for signature in spec.signatures:
                bound = matcher(arguments, signature)
                if bound is not None:
                    log.debug("resolved %s(%s) with signature %s", name, describe_arguments(arguments), [p.name for p in signature])
                    return spec.create(signature, bound)

        raise ModelScriptError(ErrorCode.NO_MATCHING_SIGNATURE, name=name, arguments=describe_arguments(arguments))

    def resolve_named(self, name: str, arguments: Mapping[str, Value], kind: Optional[str] = None) -> Generator:
        return self.resolve(name, dict(arguments), kind)

    def resolve_positional(self, name: str, arguments: Sequence[Value], kind: Optional[str] = None) -> Generator:
        return self.resolve(name, list(arguments), kind)
