import os
from typing import List

from lark import Lark, LarkError, Token, Transformer

from modelscript.config import DATA_SCOPE, DEFAULT_SCOPE, MODEL_SCOPE

from .classes import *
from .helpers import _translate_lark_error, pre_parsing_checks

LARK_PARSER = None
NUMBER_STARTS = set("0123456789.")

try:
    # Use importlib.resources for robust package data access
    from importlib.resources import files as pkg_files

    # The path is relative to the 'modelscript.parser' subpackage
    modelscript_grammar = (pkg_files("modelscript.parser") / "modelscript.lark").read_text()
    LARK_PARSER = Lark(modelscript_grammar, start="start", parser="lalr")
except Exception:
    # Fallback for development environments where the package data is not installed
    grammar_path = os.path.join(os.path.dirname(__file__), "modelscript.lark")
    with open(grammar_path, "r") as f:
        modelscript_grammar = f.read()
    LARK_PARSER = Lark(modelscript_grammar, start="start", parser="lalr")


class ModelScriptTransformer(Transformer):
    """
    Transforms the Lark parse tree into the statement AST consumed by the interpreter.
    Each method is called when the parser reduces a rule (or an alias) with the same name,
    bottom-up, so operands are already AST nodes when an operator node is built.
    Statements outside a block are tagged with `default_scope`; the block rules retag
    their statements with the block's scope.
    """

    def __init__(self, file_path: str, default_scope: str = DEFAULT_SCOPE):
        self.file_path = file_path
        self.default_scope = default_scope
        super().__init__()

    # --- Helper methods for creating spans ---
    def _create_span_from_token(self, token: Token) -> Span:
        """Creates a Span object from a single Lark Token."""
        return Span(s_line=token.line, s_col=token.column, e_line=token.end_line, e_col=token.end_column, file_path=self.file_path)

    def _get_span_from_items(self, items: list) -> Span:
        """Calculates a Span that covers a list of tokens and/or ASTNodes."""
        located = [item for item in items if isinstance(item, Token) or getattr(item, "span", None) is not None]
        if not located:  # Handle empty lists
            return Span(s_line=1, s_col=1, e_line=1, e_col=1, file_path=self.file_path)
        first, last = located[0], located[-1]

        s_line = first.line if isinstance(first, Token) else first.span.s_line
        s_col = first.column if isinstance(first, Token) else first.span.s_col
        e_line = last.end_line if isinstance(last, Token) else last.span.e_line
        e_col = last.end_column if isinstance(last, Token) else last.span.e_col

        return Span(s_line=s_line, s_col=s_col, e_line=e_line, e_col=e_col, file_path=self.file_path)

    def _identifier(self, token: Token) -> Identifier:
        return Identifier(name=token.value, span=self._create_span_from_token(token))

    # --- Literals and identifiers ---
    def constant(self, items):
        (token,) = items
        return Constant(text=token.value, span=self._create_span_from_token(token))

    def identifier(self, items):
        return self._identifier(items[0])

    def array(self, items):
        elements = items[0] if items and items[0] is not None else []
        return ArrayLiteral(items=elements, span=self._get_span_from_items(elements))

    # --- Operators ---
    def binary(self, items):
        left, op, right = items
        return BinaryOp(op=op.value, left=left, right=right, span=self._get_span_from_items(items))

    def range_op(self, items):
        left, _, right = items
        return BinaryOp(op=":", left=left, right=right, span=self._get_span_from_items(items))

    def unary_op(self, items):
        op, operand = items
        span = self._get_span_from_items(items)
        # A negative number literal is a single constant rather than a negation node.
        if op.type == "MINUS" and isinstance(operand, Constant) and operand.text[:1] in NUMBER_STARTS:
            return Constant(text=f"-{operand.text}", span=span)
        return UnaryOp(op=op.value, operand=operand, span=span)

    def index(self, items):
        target, indices = items
        return IndexExpression(target=target, indices=indices, span=self._get_span_from_items([target, *indices]))

    # --- Calls ---
    def named_arg(self, items):
        name, value = items
        return NamedArgument(name=name.value, value=value, span=self._get_span_from_items(items))

    def named_args(self, items):
        return list(items)

    def expression_list(self, items):
        return list(items)

    def range_list(self, items):
        return list(items)

    def call(self, items):
        name_token, arguments = items
        arguments = arguments or []
        span = self._get_span_from_items([name_token, *arguments])
        if arguments and isinstance(arguments[0], NamedArgument):
            return Call(name=name_token.value, named_args=arguments, span=span)
        return Call(name=name_token.value, args=arguments, span=span)

    # --- Statements ---
    def determ_relation(self, items):
        name, expression = items
        return DeterministicAssignment(
            target=self._identifier(name), expression=expression, scope=self.default_scope, span=self._get_span_from_items(items)
        )

    def indexed_relation(self, items):
        name, ranges, expression = items
        return IndexedAssignment(
            target=self._identifier(name),
            ranges=ranges,
            expression=expression,
            scope=self.default_scope,
            span=self._get_span_from_items([name, expression]),
        )

    def stoch_relation(self, items):
        name, distribution = items
        return StochasticAssignment(
            target=self._identifier(name), distribution=distribution, scope=self.default_scope, span=self._get_span_from_items(items)
        )

    # --- Blocks ---
    def _block(self, items, scope: str) -> List[AnyStatement]:
        statements = [item for item in items if not isinstance(item, Token)]
        for statement in statements:
            statement.scope = scope
        return statements

    def data_block(self, items):
        return self._block(items, DATA_SCOPE)

    def model_block(self, items):
        return self._block(items, MODEL_SCOPE)

    def start(self, children):
        statements = []
        for child in children:
            if isinstance(child, list):
                statements.extend(child)
            else:
                statements.append(child)
        return Program(file_path=self.file_path, statements=statements, span=self._get_span_from_items(statements))


def parse_modelscript(script_content: str, file_path: str = "<stdin>", default_scope: str = DEFAULT_SCOPE) -> Program:
    """Parses the script content and transforms it into a statement AST."""

    pre_parsing_checks(script_content, file_path)

    try:
        parse_tree = LARK_PARSER.parse(script_content)
        return ModelScriptTransformer(file_path=file_path, default_scope=default_scope).transform(parse_tree)
    except LarkError as e:
        raise _translate_lark_error(e, file_path) from e
