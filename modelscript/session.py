import json
import logging
import os
from typing import Any, Dict, List, Optional

import pandas as pd

from modelscript.config import DEFAULT_SCOPE, MODEL_SCOPE
from modelscript.functions import default_registry
from modelscript.generators.random_source import set_seed
from modelscript.generators.registry import GeneratorRegistry
from modelscript.graph import GraphicalModel, Value
from modelscript.graph.values import is_array, scalar_type
from modelscript.interpreter import Interpreter
from modelscript.parser import parse_modelscript
from modelscript.parser.classes import AnyStatement, Program
from modelscript.sampler import AncestralSampler

from .utils import ArtifactEncoder

log = logging.getLogger(__name__)


def numeric_columns(value: Value) -> Dict[str, float]:
    """The numeric entries of a value as named columns: `x` for scalars, `x[i]` for vector entries."""
    datum = value.value
    if scalar_type(datum) in (int, float):
        return {value.id: datum}
    if is_array(datum):
        return {f"{value.id}[{i}]": item for i, item in enumerate(datum) if scalar_type(item) in (int, float)}
    return {}


class ModelScriptSession:
    """
    Orchestrates the interpreter stages for one graphical model: parsing source into
    statements, interpreting them into the model, and running sampling passes.
    Each stage's product is kept in `artifacts` under the stage name.
    """

    def __init__(
        self,
        registry: Optional[GeneratorRegistry] = None,
        default_scope: str = DEFAULT_SCOPE,
        seed: Optional[int] = None,
        dump_stages: List[str] = [],
    ):
        self.model = GraphicalModel()
        self.registry = registry if registry is not None else default_registry()
        self.interpreter = Interpreter(self.model, self.registry)
        self.sampler = AncestralSampler(self.model)
        self.default_scope = default_scope
        self.dump_stages = dump_stages
        self.file_path = "<stdin>"
        self.artifacts: Dict[str, Any] = {}
        if seed is not None:
            set_seed(seed)

    def run(self, source_content: str, file_path: Optional[str] = None) -> Program:
        """Parses `source_content` and interprets every statement in order."""
        self.file_path = os.path.abspath(file_path) if file_path else "<stdin>"

        program = self._run_simple_stage("ast", parse_modelscript, source_content, self.file_path, self.default_scope)
        self._run_simple_stage("model", self.interpreter.run, program)
        return program

    def execute(self, statement: AnyStatement) -> Value:
        return self.interpreter.process(statement)

    def sample(self) -> Dict[str, Value]:
        return self.sampler.sample()

    def sample_frame(self, n: int) -> pd.DataFrame:
        """Runs `n` sampling passes and tabulates the numeric sinks, one row per pass."""
        rows = []
        for _ in range(n):
            self.sampler.sample()
            row = {}
            for sink in self.model.sinks(MODEL_SCOPE):
                row.update(numeric_columns(sink))
            rows.append(row)
        frame = pd.DataFrame(rows)
        self.artifacts["samples"] = frame
        return frame

    def summarize(self, n: int) -> pd.DataFrame:
        """Summary statistics (count, mean, std, quantiles) of the numeric sinks over `n` passes."""
        frame = self.sample_frame(n)
        if frame.empty:
            return frame
        return frame.describe().transpose()

    def remove(self, id: str, context: str = MODEL_SCOPE) -> Optional[Value]:
        return self.model.remove(id, context)

    def clear(self):
        self.model.clear()
        self.artifacts.clear()

    def _run_simple_stage(self, name: str, func, *args, **kwargs) -> Any:
        """Runs a single function as a stage, storing and returning its result."""
        result = func(*args, **kwargs)
        self.artifacts[name] = result
        if name in self.dump_stages:
            self.save_artifact(name, result)
        return result

    def save_artifact(self, name: str, data: Any) -> str:
        """Saves an artifact to a JSON file named after the script."""
        if self.file_path == "<stdin>":
            base_name = "stdin_output"
        else:
            base_name = os.path.splitext(self.file_path)[0]

        output_path = f"{base_name}.{name}.json"
        log.info("saving artifact '%s' to %s", name, output_path)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=False, cls=ArtifactEncoder)
        return output_path


def run_modelscript(script_content: str, file_path: Optional[str] = None, default_scope: str = DEFAULT_SCOPE, seed: Optional[int] = None) -> ModelScriptSession:
    """High-level entry point: interprets a script into a fresh session."""
    session = ModelScriptSession(default_scope=default_scope, seed=seed)
    session.run(script_content, file_path)
    return session
