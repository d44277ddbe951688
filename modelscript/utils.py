"""
Utility functions for the ModelScript interpreter, including terminal coloring,
value formatting and a JSON artifact serializer.
"""

import json

from lark import Token
from pydantic import BaseModel

from modelscript.graph import Value
from modelscript.graph.values import ABSENT, is_array


class TerminalColors:
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    RESET = "\033[0m"


class ArtifactEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, BaseModel):
            return o.model_dump(mode="json")
        if isinstance(o, Token):
            return o.value
        if isinstance(o, Value):
            return {"id": o.id, "kind": o.kind.value, "value": o.value, "generator": o.generator.code_string() if o.generator else None}
        if o is ABSENT:
            return None
        if isinstance(o, set):
            return list(o)
        return super().default(o)


def format_datum(datum, precision: int = 4) -> str:
    """Renders a scalar or (nested) array datum for terminal output; unset entries print as '_'."""
    if datum is None:
        return "_"
    if is_array(datum):
        return "[" + ", ".join(format_datum(item, precision) for item in datum) + "]"
    if isinstance(datum, bool):
        return "true" if datum else "false"
    if isinstance(datum, float):
        return f"{datum:.{precision}g}"
    if isinstance(datum, str):
        return f'"{datum}"'
    return str(datum)


def describe_value(value: Value) -> str:
    """One line per bound value: `id = datum` plus how it was generated."""
    line = f"{value.id} = {format_datum(value.value)}"
    if value.generator is not None:
        operator = "~" if value.generator.is_distribution else "<-"
        line += f"    {operator} {value.generator.code_string()}"
    return line
