import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from modelscript.generators.random_source import set_seed
from modelscript.interpreter import Interpreter
from modelscript.parser import parse_modelscript


@pytest.fixture(autouse=True)
def seeded_random():
    """Every test starts from the same random state."""
    set_seed(20240611)
    yield


@pytest.fixture
def interpret():
    """Interprets a script into a fresh Interpreter and returns it."""

    def _interpret(script: str, default_scope: str = "model") -> Interpreter:
        interpreter = Interpreter()
        interpreter.run(parse_modelscript(script, default_scope=default_scope))
        return interpreter

    return _interpret
