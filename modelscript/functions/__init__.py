from modelscript.generators.registry import GeneratorRegistry

from . import core, distributions, vector

# Registration order is the tie-break order for candidates sharing a name.
GENERATORS = [*core.GENERATORS, *vector.GENERATORS, *distributions.GENERATORS]


def default_registry() -> GeneratorRegistry:
    """A registry holding every built-in function and distribution."""
    return GeneratorRegistry(GENERATORS)
