from .values import ABSENT, UNSET, IndexedValue, RandomVariable, Value, ValueKind
from .generators import DeterministicFunction, GenerativeDistribution, Generator, ParameterInfo
from .model import GraphicalModel, Scope
