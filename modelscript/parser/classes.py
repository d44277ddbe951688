"""
Defines the formal data structures (contracts) for the statement AST handed to the
interpreter.

Each node is a pydantic model and includes a `Span` object to track its location in
the source code, enabling precise error reporting while the statement is interpreted.
Statements built by hand (without a parser) may leave the span unset.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

# --- Core Data Structures ---


class Span(BaseModel):
    """Represents a location in the source code for precise error reporting."""

    s_line: int
    s_col: int
    e_line: int
    e_col: int
    file_path: Optional[str] = None


class ASTNode(BaseModel):
    """A base class for all AST nodes."""

    span: Optional[Span] = None


# --- Literals and Identifiers ---


class Constant(ASTNode):
    """A literal token; its text is parsed into an int, float, boolean or string on evaluation."""

    text: str


class Identifier(ASTNode):
    name: str


# --- Expressions ---
# A generic type hint for any expression node
Expression = Union[Constant, Identifier, "ArrayLiteral", "BinaryOp", "UnaryOp", "IndexExpression", "Call"]


class ArrayLiteral(ASTNode):
    items: List[Expression]


class BinaryOp(ASTNode):
    """`left op right`; the ':' operator builds an inclusive integer range."""

    op: str
    left: Expression
    right: Expression


class UnaryOp(ASTNode):
    op: str
    operand: Expression


class IndexExpression(ASTNode):
    target: Expression
    indices: List[Expression]


class NamedArgument(ASTNode):
    name: str
    value: Expression


class Call(ASTNode):
    """A generator call with either positional or named arguments."""

    name: str
    args: List[Expression] = Field(default_factory=list)
    named_args: List[NamedArgument] = Field(default_factory=list)

    @property
    def is_named(self) -> bool:
        return bool(self.named_args)


# --- Statements ---


class Statement(ASTNode):
    """Base class for the assignment forms; `scope` names the block the statement belongs to."""

    scope: Literal["data", "model"] = "model"


class DeterministicAssignment(Statement):
    statement_type: Literal["deterministic"] = "deterministic"
    target: Identifier
    expression: Expression


class StochasticAssignment(Statement):
    statement_type: Literal["stochastic"] = "stochastic"
    target: Identifier
    distribution: Call


class IndexedAssignment(Statement):
    statement_type: Literal["indexed"] = "indexed"
    target: Identifier
    ranges: List[Expression]
    expression: Expression


AnyStatement = Union[DeterministicAssignment, StochasticAssignment, IndexedAssignment]
DiscriminatedStatement = Annotated[AnyStatement, Field(discriminator="statement_type")]


# --- Top-level Structures ---


class Program(ASTNode):
    """The root of the AST, representing a single script."""

    file_path: str
    statements: List[DiscriminatedStatement]

    def in_scope(self, scope: str) -> List[AnyStatement]:
        return [s for s in self.statements if s.scope == scope]


for _model in (ArrayLiteral, BinaryOp, UnaryOp, IndexExpression, NamedArgument, Call, DeterministicAssignment, IndexedAssignment, Program):
    _model.model_rebuild()
