"""
Custom exception types for the ModelScript interpreter.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from modelscript.parser.classes import Span


class ErrorCode(Enum):

    # --- Generator Resolution Errors ---
    UNKNOWN_GENERATOR = "Found no implementation for {kind} '{name}'."
    NO_MATCHING_SIGNATURE = "No signature of '{name}' matches the arguments ({arguments})."

    # --- Scope & Binding Errors ---
    STOCHASTIC_IN_DATA_SCOPE = "Generative distributions are not allowed in the data block ('{name} ~ ...')."
    UNDECLARED_IDENTIFIER = "Identifier '{name}' is not declared in the {context} scope."
    SHAPE_MISMATCH = "Shape mismatch for '{name}': {details}"

    # --- Sampling Errors ---
    MISSING_GENERATOR = "Random variable '{name}' has no generative distribution to resample from."
    SAMPLING_FAILED = "{name} failed to draw a value: {details}"

    # --- Syntax Pre-Parsing Errors ---
    SYNTAX_UNMATCHED_BRACKET = "Syntax Error: Unmatched bracket '{char}'."
    SYNTAX_UNCLOSED_STRING = "Syntax Error: Unclosed string literal."

    # A valid token in the wrong place; details name what was expected.
    SYNTAX_UNEXPECTED_TOKEN = "Syntax Error: Invalid syntax. {details}"

    # A character no terminal accepts.
    SYNTAX_INVALID_CHARACTER = "Syntax Error: Invalid character '{char}' found."

    # Any other lark failure.
    SYNTAX_PARSING_ERROR = "Syntax Error: A general parsing error occurred. Details: {details}"


class ModelScriptError(Exception):
    def __init__(
        self,
        code: ErrorCode,
        span: Optional["Span"] = None,
        file_path: Optional[str] = None,
        **kwargs,
    ):
        self.code = code
        self.span = span
        self.details = kwargs

        # Templates are filled from kwargs.
        core_message = code.value.format(**kwargs)

        location_prefix = ""
        if span:
            location_prefix = f"Error in '{span.file_path or '<stdin>'}' (Line: {span.s_line}, Column: {span.s_col}):\n"
        elif file_path:
            location_prefix = f"Error in '{file_path}': "

        self.message = location_prefix + core_message

        super().__init__(self.message)

    def with_span(self, span: Optional["Span"]) -> "ModelScriptError":
        """Returns a copy of this error located at `span`, unless it already has a location."""
        if self.span is not None or span is None:
            return self
        return ModelScriptError(self.code, span=span, **self.details)


class InternalInconsistencyError(Exception):
    """Raised for states the graph invariants make unreachable (e.g. a cycle)."""

    def __init__(self, message: str):
        super().__init__(message)
